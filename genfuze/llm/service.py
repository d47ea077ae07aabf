"""
统一 LLM 调用入口

    from genfuze.llm import get_llm_service
    result = get_llm_service().call(prompt, "gemini", "gemini-1.5-flash", is_question=True)
    result.text, result.input_tokens, result.output_tokens

provider 名大小写不敏感，chatgpt 视为 openai。每次调用记录 Prometheus 指标并包一层 span。
"""

from __future__ import annotations

import threading
import time
from typing import Dict, List, Optional

import requests

from config.settings import PROVIDER_ALIASES, settings
from genfuze.llm.errors import LLMError
from genfuze.llm.providers import Provider, build_provider
from genfuze.log import get_logger
from genfuze.observability import metrics, tracer
from genfuze.storage.records import CamelModel

logger = get_logger(__name__)

SUPPORTED_PROVIDERS = ("gemini", "openai", "perplexity", "serper")


class LLMResult(CamelModel):
    text: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    provider: str
    model: str


def normalize_provider(provider: str) -> str:
    name = (provider or "").strip().lower()
    return PROVIDER_ALIASES.get(name, name)


class LLMService:
    """按 provider 分发；Provider 实例惰性创建并复用同一个 requests.Session。"""

    def __init__(self, session: Optional[requests.Session] = None):
        self._session = session or requests.Session()
        self._providers: Dict[str, Provider] = {}
        self._lock = threading.Lock()

    def _provider(self, name: str) -> Provider:
        with self._lock:
            if name not in self._providers:
                self._providers[name] = build_provider(name, self._session)
            return self._providers[name]

    def call(self, prompt: str, provider: str, model: Optional[str] = None,
             is_question: bool = False) -> LLMResult:
        name = normalize_provider(provider)
        if name not in SUPPORTED_PROVIDERS:
            raise LLMError(f"Unsupported LLM provider: {provider}", provider=provider)
        resolved_model = settings.llm.resolve_model(name, model)

        start = time.time()
        error = None
        text, input_tokens, output_tokens = "", 0, 0
        with tracer.start_as_current_span("llm.call") as span:
            span.set_attribute("llm.provider", name)
            span.set_attribute("llm.model", resolved_model)
            span.set_attribute("llm.is_question", is_question)
            try:
                text, input_tokens, output_tokens = self._provider(name).generate(
                    prompt, resolved_model, is_question
                )
            except LLMError as e:
                error = e.message
                raise
            except Exception as e:
                error = str(e)
                raise
            finally:
                elapsed = time.time() - start
                # ── Observability: LLM 指标 ──
                metrics.llm_requests_total.labels(provider=name, model=resolved_model).inc()
                metrics.llm_duration_seconds.labels(provider=name, model=resolved_model).observe(elapsed)
                if error:
                    metrics.llm_errors_total.labels(provider=name, model=resolved_model).inc()
                    span.set_attribute("error", True)
                    logger.warning("[llm] %s/%s failed after %.2fs: %s", name, resolved_model, elapsed, error)
                else:
                    metrics.llm_tokens_used.labels(provider=name, model=resolved_model, direction="input").inc(input_tokens)
                    metrics.llm_tokens_used.labels(provider=name, model=resolved_model, direction="output").inc(output_tokens)
                    logger.info(
                        "[llm] %s/%s ok in %.2fs (in=%d out=%d)",
                        name, resolved_model, elapsed, input_tokens, output_tokens,
                    )

        return LLMResult(
            text=text,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            provider=name,
            model=resolved_model,
        )

    def is_configured(self, provider: str) -> bool:
        name = normalize_provider(provider)
        return name in SUPPORTED_PROVIDERS and settings.llm.is_available(name)

    def configured_providers(self) -> List[str]:
        return [p for p in SUPPORTED_PROVIDERS if settings.llm.is_available(p)]


_service: Optional[LLMService] = None
_service_lock = threading.Lock()


def get_llm_service() -> LLMService:
    global _service
    if _service is None:
        with _service_lock:
            if _service is None:
                _service = LLMService()
                logger.info("[llm] configured providers: %s", _service.configured_providers() or "-")
    return _service


def set_llm_service(service: Optional[LLMService]) -> None:
    """替换单例（测试使用）。"""
    global _service
    with _service_lock:
        _service = service
