# LLM 层：provider 调用、计费、基于 LLM 的打分、Gemini 向量
from genfuze.llm.errors import LLMError, ProviderNotConfiguredError
from genfuze.llm.pricing import available_models, calculate_cost, estimate_tokens
from genfuze.llm.service import LLMResult, LLMService, get_llm_service, normalize_provider, set_llm_service
from genfuze.llm.embeddings import EmbeddingService, get_embedding_service, set_embedding_service

__all__ = [
    "LLMError",
    "ProviderNotConfiguredError",
    "available_models",
    "calculate_cost",
    "estimate_tokens",
    "LLMResult",
    "LLMService",
    "get_llm_service",
    "normalize_provider",
    "set_llm_service",
    "EmbeddingService",
    "get_embedding_service",
    "set_embedding_service",
]
