# Utils: cache, prompt templates
from genfuze.utils.cache import TTLCache, _make_key, get_cache
from genfuze.utils.prompt_manager import PromptManager

__all__ = [
    "TTLCache",
    "_make_key",
    "get_cache",
    "PromptManager",
]
