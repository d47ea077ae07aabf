"""
URL 正文抽取

requests 抓取页面（浏览器 UA），trafilatura 提取正文，BeautifulSoup 读取标题与 meta 描述。
trafilatura 抽不出正文时退回 BeautifulSoup 的可见文本。
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import requests
import trafilatura
from bs4 import BeautifulSoup

from config.settings import settings
from genfuze.log import get_logger
from genfuze.observability import metrics
from genfuze.utils import _make_key, get_cache

logger = get_logger(__name__)

_cache = get_cache(True, ttl_seconds=600, maxsize=256)

_STRIP_TAGS = ("script", "style", "noscript", "nav", "footer", "header", "aside")


class ContentFetchError(Exception):
    """上游返回非 2xx。"""

    def __init__(self, status: int, url: str = ""):
        super().__init__(f"Failed to fetch URL ({status})")
        self.status = status
        self.url = url


def _meta(soup: BeautifulSoup, *keys: str) -> str:
    for key in keys:
        tag = soup.find("meta", attrs={"name": key}) or soup.find("meta", attrs={"property": key})
        if tag and tag.get("content"):
            return tag["content"].strip()
    return ""


def parse_html(html: str, max_length: Optional[int] = None) -> Dict[str, Any]:
    """HTML -> {content, title, description}"""
    soup = BeautifulSoup(html, "html.parser")
    title = ""
    if soup.title and soup.title.string:
        title = soup.title.string.strip()
    title = title or _meta(soup, "og:title")
    description = _meta(soup, "description", "og:description")

    text = trafilatura.extract(
        html,
        include_comments=False,
        include_tables=True,
        favor_precision=True,
    )
    if not text:
        for tag in soup(_STRIP_TAGS):
            tag.decompose()
        body = soup.body or soup
        text = "\n".join(line.strip() for line in body.get_text("\n").splitlines() if line.strip())

    limit = max_length or settings.content.max_content_length
    text = (text or "").strip()
    if len(text) > limit:
        text = text[:limit]
    return {"content": text, "title": title, "description": description}


def extract_content(url: str, session: Optional[requests.Session] = None) -> Dict[str, Any]:
    key = _make_key("content", url)
    cached = _cache.get(key) if _cache is not None else None
    if cached is not None:
        return dict(cached)

    http = session or requests
    try:
        resp = http.get(
            url,
            headers={"User-Agent": settings.content.user_agent},
            timeout=settings.content.timeout_seconds,
        )
    except requests.RequestException:
        metrics.content_fetch_total.labels(success="false").inc()
        raise
    if not 200 <= resp.status_code < 300:
        metrics.content_fetch_total.labels(success="false").inc()
        logger.warning("[content] %s returned %s", url, resp.status_code)
        raise ContentFetchError(resp.status_code, url)

    result = parse_html(resp.text)
    metrics.content_fetch_total.labels(success="true").inc()
    logger.info("[content] %s -> %d chars", url, len(result["content"]))
    if _cache is not None:
        _cache.set(key, dict(result))
    return result
