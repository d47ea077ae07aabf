"""
Gemini 向量化

POST {gemini_base}/models/{model}:embedContent，结果按文本缓存（TTLCache）。
无 GEMINI_API_KEY 时抛 ProviderNotConfiguredError。
"""

from __future__ import annotations

import threading
from typing import List, Optional

import requests

from config.settings import settings
from genfuze.llm.errors import LLMError, ProviderNotConfiguredError
from genfuze.log import get_logger
from genfuze.observability import metrics
from genfuze.utils import _make_key, get_cache

logger = get_logger(__name__)


class EmbeddingService:

    def __init__(self, session: Optional[requests.Session] = None, model: Optional[str] = None):
        self._session = session or requests.Session()
        self.model = model or settings.embedding.model
        self._cache = get_cache(
            settings.embedding.cache_enabled,
            ttl_seconds=settings.embedding.cache_ttl_seconds,
            maxsize=settings.embedding.cache_max_size,
        )

    def embed(self, text: str) -> List[float]:
        if not text or not text.strip():
            raise LLMError("Text is required for embedding", provider="gemini")
        key = _make_key("embed", self.model, text)
        if self._cache is not None:
            hit = self._cache.get(key)
            if hit is not None:
                metrics.embeddings_total.labels(cached="true").inc()
                return list(hit)

        values = self._request(text)
        metrics.embeddings_total.labels(cached="false").inc()
        if self._cache is not None:
            self._cache.set(key, tuple(values))
        return values

    def _request(self, text: str) -> List[float]:
        cfg = settings.llm.get_provider("gemini")
        if not cfg["api_key"]:
            raise ProviderNotConfiguredError("Missing Gemini API key", provider="gemini")
        url = f"{cfg['base_url']}/models/{self.model}:embedContent"
        try:
            resp = self._session.post(
                url,
                params={"key": cfg["api_key"]},
                json={"model": f"models/{self.model}", "content": {"parts": [{"text": text}]}},
                timeout=settings.perf_llm.timeout_seconds,
            )
            resp.raise_for_status()
            values = (resp.json().get("embedding") or {}).get("values") or []
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise LLMError(f"Gemini embedding failed: {e}", provider="gemini", status=status) from e
        except (requests.exceptions.RequestException, ValueError) as e:
            raise LLMError(f"Gemini embedding failed: {e}", provider="gemini") from e
        if not values:
            raise LLMError("Gemini embedding returned no values", provider="gemini")
        logger.debug("[embeddings] %d-dim vector for %d chars", len(values), len(text))
        return [float(v) for v in values]


_embedder: Optional[EmbeddingService] = None
_embedder_lock = threading.Lock()


def get_embedding_service() -> EmbeddingService:
    global _embedder
    if _embedder is None:
        with _embedder_lock:
            if _embedder is None:
                _embedder = EmbeddingService()
    return _embedder


def set_embedding_service(service: Optional[EmbeddingService]) -> None:
    global _embedder
    with _embedder_lock:
        _embedder = service
