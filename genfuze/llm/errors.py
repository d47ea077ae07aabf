"""LLM 层异常。"""

from __future__ import annotations

from typing import Optional


class LLMError(Exception):
    """上游 LLM / 搜索 API 调用失败；status 为上游 HTTP 状态码（若有）。"""

    def __init__(self, message: str, provider: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.status = status


class ProviderNotConfiguredError(LLMError):
    """provider 未配置 api_key。"""
