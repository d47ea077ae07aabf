"""
FastAPI 中间件：自动采集 HTTP 请求延迟 / 计数 / 状态码，并注入 trace context。
"""

import time
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from genfuze.observability.metrics import metrics
from genfuze.observability.tracing import tracer

# sessions 之后除这些字面量外的 segment 都是会话 ID
_SESSION_LITERALS = {"question", "answer", "bulk"}
_SKIP_PATHS = ("/metrics", "/api/health")


def _normalize_path(path: str) -> str:
    """
    将 path 中的会话 ID 替换为占位符，防止高基数指标。
    e.g. /api/sessions/question/abc123 → /api/sessions/question/{id}
    """
    parts = path.strip("/").split("/")
    normalized = []
    in_sessions = False
    for part in parts:
        if in_sessions and part not in _SESSION_LITERALS:
            normalized.append("{id}")
        else:
            normalized.append(part)
        if part == "sessions":
            in_sessions = True
    return "/" + "/".join(normalized)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """采集每个 HTTP 请求的延迟和计数指标，并创建 trace span。"""

    async def dispatch(self, request: Request, call_next):
        if request.url.path in _SKIP_PATHS:
            return await call_next(request)

        method = request.method
        path = _normalize_path(request.url.path)

        with tracer.start_as_current_span(
            f"{method} {path}",
            attributes={"http.method": method, "http.route": path},
        ) as span:
            start = time.perf_counter()
            response: Response = await call_next(request)
            elapsed = time.perf_counter() - start

            span.set_attribute("http.status_code", response.status_code)
            metrics.http_requests_total.labels(
                method=method, endpoint=path, status_code=str(response.status_code)
            ).inc()
            metrics.http_request_duration_seconds.labels(method=method, endpoint=path).observe(elapsed)
            return response
