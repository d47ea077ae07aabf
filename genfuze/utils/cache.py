"""
进程内 TTL 缓存

用于 Gemini 向量（同一文本重复向量化）与 URL 正文抽取结果。
"""

from __future__ import annotations

import hashlib
import json
import time
from collections import OrderedDict
from threading import RLock
from typing import Any, Callable, Optional, TypeVar

T = TypeVar("T")


def _make_key(prefix: str, *parts: Any) -> str:
    """生成缓存键。parts 会做稳定序列化。"""
    raw = [prefix]
    for p in parts:
        if p is None:
            raw.append("")
        elif isinstance(p, (str, int, float, bool)):
            raw.append(str(p))
        else:
            raw.append(json.dumps(p, sort_keys=True, default=str))
    return hashlib.sha256("|".join(raw).encode("utf-8")).hexdigest()


class TTLCache:
    """
    线程安全的 LRU + TTL 缓存。
    - maxsize: 最大条目数，超出时淘汰最久未访问的条目。
    - ttl_seconds: 过期时间，0 表示不过期。
    """

    __slots__ = ("_store", "_maxsize", "_ttl", "_lock", "hits", "misses")

    def __init__(self, maxsize: int = 1024, ttl_seconds: int = 3600):
        self._store: OrderedDict[str, tuple[float, Any]] = OrderedDict()
        self._maxsize = max(1, maxsize)
        self._ttl = max(0, ttl_seconds)
        self._lock = RLock()
        self.hits = 0
        self.misses = 0

    def _expired(self, stamp: float) -> bool:
        return self._ttl > 0 and (time.monotonic() - stamp) > self._ttl

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            item = self._store.get(key)
            if item is None or self._expired(item[0]):
                self._store.pop(key, None)
                self.misses += 1
                return None
            self._store.move_to_end(key)
            self.hits += 1
            return item[1]

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._store[key] = (time.monotonic(), value)
            self._store.move_to_end(key)
            while len(self._store) > self._maxsize:
                self._store.popitem(last=False)

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        return len(self._store)

    def get_or_set(self, key: str, factory: Callable[[], T]) -> T:
        val = self.get(key)
        if val is not None:
            return val
        val = factory()
        self.set(key, val)
        return val


def get_cache(enabled: bool, ttl_seconds: int = 3600, maxsize: int = 1024) -> Optional[TTLCache]:
    """若 enabled 为 False 返回 None，否则返回一个 TTLCache。"""
    if not enabled:
        return None
    return TTLCache(maxsize=maxsize, ttl_seconds=ttl_seconds)
