"""
模型目录与计费（每 1K token 的美元价格）。

前端的模型下拉与费用统计都以这里为准。
"""

from __future__ import annotations

import math
from typing import Dict, List

# provider -> [(model, label, input_per_1k, output_per_1k)]
_CATALOGUE = {
    "gemini": [
        ("gemini-1.5-flash", "Gemini 1.5 Flash (Recommended)", 0.000075, 0.0003),
        ("gemini-1.5-pro", "Gemini 1.5 Pro", 0.00125, 0.005),
        ("gemini-pro", "Gemini 1.0 Pro (Legacy)", 0.0005, 0.0015),
    ],
    "openai": [
        ("gpt-3.5-turbo", "GPT-3.5 Turbo (Recommended)", 0.0005, 0.0015),
        ("gpt-4", "GPT-4", 0.03, 0.06),
        ("gpt-4-turbo", "GPT-4 Turbo", 0.01, 0.03),
    ],
    "perplexity": [
        ("r1-1776", "R1-1776 (Recommended)", 0.0002, 0.0002),
        ("llama-3.1-sonar-small-128k-online", "Llama 3.1 Sonar Small", 0.0002, 0.0002),
        ("llama-3.1-sonar-medium-128k-online", "Llama 3.1 Sonar Medium", 0.0006, 0.0006),
        ("llama-3.1-sonar-large-128k-online", "Llama 3.1 Sonar Large", 0.001, 0.001),
    ],
    "serper": [
        ("serper-search", "Google Search (Answer Only)", 0.001, 0.001),
    ],
}

MODEL_PRICING: Dict[str, Dict[str, float]] = {
    model: {"input": inp, "output": out}
    for entries in _CATALOGUE.values()
    for model, _label, inp, out in entries
}

# 未知模型按 gemini-1.5-flash 计价
DEFAULT_PRICING_MODEL = "gemini-1.5-flash"


def estimate_tokens(text: str) -> int:
    """约 4 字符 / token。"""
    return math.ceil(len(text or "") / 4)


def available_models() -> Dict[str, List[Dict]]:
    return {
        provider: [
            {"value": model, "label": label, "pricing": {"input": inp, "output": out}}
            for model, label, inp, out in entries
        ]
        for provider, entries in _CATALOGUE.items()
    }


def calculate_cost(input_tokens: int, output_tokens: int, model: str) -> float:
    pricing = MODEL_PRICING.get(model) or MODEL_PRICING[DEFAULT_PRICING_MODEL]
    return (input_tokens / 1000.0) * pricing["input"] + (output_tokens / 1000.0) * pricing["output"]
