"""
Prometheus metrics 定义。

所有自定义指标集中定义，业务模块通过 `from genfuze.observability import metrics` 引用。
"""

from prometheus_client import Counter, Histogram, Info


class _Metrics:
    """集中管理所有 Prometheus 指标"""

    def __init__(self):
        # ── HTTP 请求 ──
        self.http_requests_total = Counter(
            "genfuze_http_requests_total",
            "HTTP 请求总数",
            ["method", "endpoint", "status_code"],
        )
        self.http_request_duration_seconds = Histogram(
            "genfuze_http_request_duration_seconds",
            "HTTP 请求延迟 (秒)",
            ["method", "endpoint"],
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 300.0),
        )

        # ── LLM ──
        self.llm_requests_total = Counter(
            "genfuze_llm_requests_total",
            "LLM 调用总数",
            ["provider", "model"],
        )
        self.llm_duration_seconds = Histogram(
            "genfuze_llm_duration_seconds",
            "LLM 调用延迟 (秒)",
            ["provider", "model"],
            buckets=(0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0),
        )
        self.llm_tokens_used = Counter(
            "genfuze_llm_tokens_total",
            "LLM token 消耗",
            ["provider", "model", "direction"],  # direction: input / output
        )
        self.llm_errors_total = Counter(
            "genfuze_llm_errors_total",
            "LLM 调用失败数",
            ["provider", "model"],
        )

        # ── 向量 ──
        self.embeddings_total = Counter(
            "genfuze_embeddings_total",
            "Gemini 向量化次数",
            ["cached"],  # true / false
        )

        # ── 浏览器自动化 ──
        self.automation_questions_total = Counter(
            "genfuze_automation_questions_total",
            "自动化提问数（按结果）",
            ["target", "outcome"],  # outcome: answered / no_input / no_response / error
        )
        self.automation_batch_duration_seconds = Histogram(
            "genfuze_automation_batch_duration_seconds",
            "一批问题的自动化总耗时 (秒)",
            ["target"],
            buckets=(10, 30, 60, 120, 300, 600, 1200),
        )

        # ── 内容抓取 ──
        self.content_fetch_total = Counter(
            "genfuze_content_fetch_total",
            "URL 正文抽取总数",
            ["success"],
        )

        # ── 会话 ──
        self.sessions_saved_total = Counter(
            "genfuze_sessions_saved_total",
            "保存的 Q&A 会话数",
            ["type"],  # question / answer
        )

        self.app_info = Info(
            "genfuze_app",
            "应用元信息",
        )


# 单例
metrics = _Metrics()
