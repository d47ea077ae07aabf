"""
LLM Provider 封装

- GeminiProvider: generateContent REST，503 / 超时重试，状态码映射为可读错误
- OpenAICompatProvider: OpenAI / Perplexity 的 /chat/completions
- SerperProvider: Google 搜索结果拼成 markdown 答案（仅用于回答）

每个 provider 的 generate() 返回 (text, input_tokens, output_tokens)。
"""

from __future__ import annotations

import re
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

import requests

from config.settings import settings
from genfuze.llm.errors import LLMError, ProviderNotConfiguredError
from genfuze.llm.pricing import estimate_tokens
from genfuze.log import get_logger

logger = get_logger(__name__)

QUESTION_SYSTEM_PROMPT = (
    "You are an expert at generating relevant questions from content. "
    "Generate clear, specific questions that can be answered from the provided content."
)
ANSWER_SYSTEM_PROMPT = (
    "You are an expert at providing comprehensive and accurate answers based on the given content."
)

# Serper 只取 prompt 里 question: / query: 之后的部分作为搜索词
_SERPER_QUERY_PREFIX = re.compile(r".*?(?:question|query):\s*", re.IGNORECASE)
SERPER_TOP_RESULTS = 5


def _generation_params(is_question: bool) -> Tuple[float, int]:
    """(temperature, max_output_tokens)"""
    return (0.8, 1024) if is_question else (0.7, 2048)


def _llm_perf_timeout() -> int:
    return settings.perf_llm.timeout_seconds or 30


def _llm_perf_retry() -> tuple:
    return settings.perf_llm.max_retries or 0, settings.perf_llm.retry_backoff or 1.0


def _request_with_retry(
    session: requests.Session,
    method: str,
    url: str,
    timeout: int,
    **kwargs: Any,
) -> requests.Response:
    """429/500/503 与网络错误按 backoff ** attempt 重试；其余 4xx 直接抛出。"""
    max_retries, backoff = _llm_perf_retry()
    last_err = None
    for attempt in range(max_retries + 1):
        try:
            resp = session.request(method, url, timeout=timeout, **kwargs)
            if resp.status_code in (429, 500, 503) and attempt < max_retries:
                time.sleep(backoff ** attempt)
                continue
            resp.raise_for_status()
            return resp
        except requests.exceptions.HTTPError as e:
            last_err = e
            if e.response is None or e.response.status_code not in (429, 500, 503) or attempt >= max_retries:
                raise
            time.sleep(backoff ** attempt)
        except requests.exceptions.RequestException as e:
            last_err = e
            if attempt >= max_retries:
                raise
            time.sleep(backoff ** attempt)
    if last_err:
        raise last_err
    raise RuntimeError("request_with_retry failed")


def _error_detail(resp: Optional[requests.Response]) -> str:
    if resp is None:
        return ""
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:300]
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict):
            return str(err.get("message") or "")
        if err:
            return str(err)
    return ""


class Provider(ABC):
    """Provider 基类：负责 HTTP 请求与响应解析"""

    name: str = ""
    label: str = ""

    def __init__(self, api_key: str, base_url: str, session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._session = session or requests.Session()

    def _require_key(self) -> None:
        if not self.api_key:
            raise ProviderNotConfiguredError(f"{self.label} API key not configured", provider=self.name)

    @abstractmethod
    def generate(self, prompt: str, model: str, is_question: bool = False) -> Tuple[str, int, int]:
        raise NotImplementedError


class GeminiProvider(Provider):
    name = "gemini"
    label = "Gemini"

    def generate(self, prompt: str, model: str, is_question: bool = False) -> Tuple[str, int, int]:
        self._require_key()
        temperature, max_tokens = _generation_params(is_question)
        url = f"{self.base_url}/models/{model}:generateContent"
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "topK": 40,
                "topP": 0.95,
                "maxOutputTokens": max_tokens,
            },
        }
        resp = self._post_with_retry(url, payload)
        data = resp.json()
        text = ""
        try:
            text = data["candidates"][0]["content"]["parts"][0].get("text") or ""
        except (KeyError, IndexError, TypeError):
            logger.warning("[llm] gemini returned no candidates for model=%s", model)
        return text, estimate_tokens(prompt), estimate_tokens(text)

    def _post_with_retry(self, url: str, payload: Dict[str, Any]) -> requests.Response:
        # 503 与超时重试，间隔 backoff * (attempt + 1)
        max_retries, backoff = _llm_perf_retry()
        attempt = 0
        while True:
            try:
                resp = self._session.post(
                    url,
                    params={"key": self.api_key},
                    json=payload,
                    headers={"Content-Type": "application/json"},
                    timeout=_llm_perf_timeout(),
                )
                resp.raise_for_status()
                return resp
            except requests.exceptions.Timeout as e:
                if attempt < max_retries:
                    attempt += 1
                    time.sleep(backoff * attempt)
                    continue
                raise LLMError("Gemini API Timeout: Request took too long", provider=self.name) from e
            except requests.exceptions.HTTPError as e:
                status = e.response.status_code if e.response is not None else None
                if status == 503 and attempt < max_retries:
                    attempt += 1
                    time.sleep(backoff * attempt)
                    continue
                raise self._map_http_error(status, e) from e
            except requests.exceptions.RequestException as e:
                raise LLMError(f"Gemini API Error: {e}", provider=self.name) from e

    def _map_http_error(self, status: Optional[int], err: requests.exceptions.HTTPError) -> LLMError:
        if status == 400:
            msg = f"Gemini API Bad Request: {_error_detail(err.response) or err}"
        elif status == 401:
            msg = "Gemini API Unauthorized: Check your API key"
        elif status == 403:
            msg = "Gemini API Forbidden: API key may be invalid or quota exceeded"
        elif status == 429:
            msg = "Gemini API Rate Limited: Too many requests"
        elif status == 503:
            msg = "Gemini API Error: Request failed with status code 503"
        else:
            msg = f"Gemini API Error: Request failed with status code {status}"
        return LLMError(msg, provider=self.name, status=status)


class OpenAICompatProvider(Provider):
    """
    OpenAI 兼容协议 Provider（OpenAI, Perplexity）。
    使用 Session 复用连接，支持可配置超时与重试。
    """

    def __init__(self, name: str, label: str, api_key: str, base_url: str,
                 session: Optional[requests.Session] = None):
        super().__init__(api_key, base_url, session)
        self.name = name
        self.label = label

    def generate(self, prompt: str, model: str, is_question: bool = False) -> Tuple[str, int, int]:
        self._require_key()
        temperature, max_tokens = _generation_params(is_question)
        payload = {
            "model": model,
            "messages": [
                {"role": "system", "content": QUESTION_SYSTEM_PROMPT if is_question else ANSWER_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        try:
            resp = _request_with_retry(
                self._session, "POST", f"{self.base_url}/chat/completions", _llm_perf_timeout(),
                headers=headers, json=payload,
            )
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            detail = _error_detail(e.response) or str(e)
            raise LLMError(f"{self.label} API Error: {detail}", provider=self.name, status=status) from e
        except requests.exceptions.RequestException as e:
            raise LLMError(f"{self.label} API Error: {e}", provider=self.name) from e

        data = resp.json()
        text = ""
        choices = data.get("choices") or []
        if choices:
            text = ((choices[0].get("message") or {}).get("content")) or ""
        usage = data.get("usage") or {}
        input_tokens = usage.get("prompt_tokens") or estimate_tokens(prompt)
        output_tokens = usage.get("completion_tokens") or estimate_tokens(text)
        return text, int(input_tokens), int(output_tokens)


class SerperProvider(Provider):
    name = "serper"
    label = "Serper"

    def generate(self, prompt: str, model: str, is_question: bool = False) -> Tuple[str, int, int]:
        self._require_key()
        if is_question:
            raise LLMError(
                "Serper API is only available for answer generation, not question generation",
                provider=self.name,
            )
        query = _SERPER_QUERY_PREFIX.sub("", prompt, count=1).strip()
        try:
            resp = _request_with_retry(
                self._session, "POST", f"{self.base_url}/search", _llm_perf_timeout(),
                headers={"Content-Type": "application/json", "X-API-KEY": self.api_key},
                json={"q": query, "num": 10, "gl": "us", "hl": "en"},
            )
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise LLMError(f"Serper API Error: {_error_detail(e.response) or e}",
                           provider=self.name, status=status) from e
        except requests.exceptions.RequestException as e:
            raise LLMError(f"Serper API Error: {e}", provider=self.name) from e

        answer = render_search_answer(query, resp.json())
        return answer, estimate_tokens(prompt), estimate_tokens(answer)


def render_search_answer(query: str, results: Dict[str, Any]) -> str:
    """answerBox / knowledgeGraph / 前 5 条自然结果拼成 markdown。"""
    parts = []
    answer_box = results.get("answerBox") or {}
    if answer_box.get("answer"):
        parts.append(f"**Direct Answer:** {answer_box['answer']}\n\n")
    graph = results.get("knowledgeGraph") or {}
    if graph.get("description"):
        parts.append(f"**Overview:** {graph['description']}\n\n")
    organic = results.get("organic") or []
    if organic:
        parts.append("**Search Results:**\n\n")
        for i, item in enumerate(organic[:SERPER_TOP_RESULTS], start=1):
            parts.append(f"{i}. **{item.get('title', '')}**\n")
            parts.append(f"   {item.get('snippet', '')}\n")
            parts.append(f"   Source: {item.get('link', '')}\n\n")
    answer = "".join(parts)
    if not answer:
        answer = (
            f'I couldn\'t find specific information about "{query}". '
            "Please try rephrasing your question or check if the search terms are correct."
        )
    return answer


def build_provider(name: str, session: Optional[requests.Session] = None) -> Provider:
    cfg = settings.llm.get_provider(name)
    if name == "gemini":
        return GeminiProvider(cfg["api_key"], cfg["base_url"], session)
    if name == "openai":
        return OpenAICompatProvider("openai", "OpenAI", cfg["api_key"], cfg["base_url"], session)
    if name == "perplexity":
        return OpenAICompatProvider("perplexity", "Perplexity", cfg["api_key"], cfg["base_url"], session)
    if name == "serper":
        return SerperProvider(cfg["api_key"], cfg["base_url"], session)
    raise LLMError(f"Unsupported LLM provider: {name}", provider=name)
