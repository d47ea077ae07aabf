"""Prompt asset manager: singleton that loads and caches .txt prompt templates."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Dict

_PROMPTS_DIR = Path(__file__).resolve().parents[1] / "prompts"


class PromptManager:
    """Singleton prompt template manager.

    Loads ``.txt`` templates from ``genfuze/prompts/`` and renders them with
    ``str.format(**kwargs)``. Literal braces inside a template (JSON answer
    formats) are written doubled. The trailing newline of the file is dropped.

    Usage::

        pm = PromptManager()
        text = pm.render("generate_answer.txt", content=blog, question=q)
    """

    _instance: PromptManager | None = None
    _lock: threading.Lock = threading.Lock()

    def __new__(cls) -> "PromptManager":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    inst = super().__new__(cls)
                    inst._cache: Dict[str, str] = {}
                    cls._instance = inst
        return cls._instance

    def render(self, template_name: str, **kwargs: object) -> str:
        if template_name not in self._cache:
            path = _PROMPTS_DIR / template_name
            self._cache[template_name] = path.read_text(encoding="utf-8").rstrip("\n")
        return self._cache[template_name].format(**kwargs)

