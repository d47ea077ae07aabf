"""
Playwright 浏览器管理

持久化 Chromium context（复用已登录的用户目录），隐身参数 + 随机 UA / 视口，
每个页面应用 playwright_stealth。
"""

from __future__ import annotations

import asyncio
import os
import random
from pathlib import Path
from typing import Any, List, Optional

from playwright_stealth import Stealth

from config.settings import settings
from genfuze.log import get_logger

logger = get_logger(__name__)

_USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
]

_STEALTH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-features=AutomationControlled",
    "--no-sandbox",
]

# stealth 应用失败时的最小兜底
_WEBDRIVER_MASK = """
    Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
    Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
    Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });
"""


def _random_user_agent() -> str:
    return random.choice(_USER_AGENTS)


def _random_viewport() -> dict:
    return {
        "width": 1280 + random.randint(-50, 50),
        "height": 720 + random.randint(-50, 50),
    }


def resolve_user_data_dir(raw: Optional[str] = None) -> str:
    path = Path(raw or settings.automation.user_data_dir).expanduser()
    if not path.is_absolute():
        path = settings.path.base / path
    return str(path)


class BrowserManager:
    """一个持久化 context；close() 依次关闭页面、context、playwright。"""

    def __init__(self, user_data_dir: Optional[str] = None, profile: Optional[str] = None,
                 headless: Optional[bool] = None):
        self.user_data_dir = resolve_user_data_dir(user_data_dir)
        self.profile = profile or settings.automation.profile
        self.headless = settings.automation.headless if headless is None else headless
        self.playwright = None
        self.context = None

    async def __aenter__(self) -> "BrowserManager":
        await self.launch()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def launch(self):
        from playwright.async_api import async_playwright

        if self.context is not None:
            return self.context
        os.makedirs(self.user_data_dir, exist_ok=True)
        self.playwright = await async_playwright().start()
        args = list(_STEALTH_ARGS)
        if self.profile:
            args.append(f"--profile-directory={self.profile}")
        logger.info("[automation] launching chromium (headless=%s, profile=%s)", self.headless, self.profile)
        self.context = await self.playwright.chromium.launch_persistent_context(
            self.user_data_dir,
            headless=self.headless,
            user_agent=_random_user_agent(),
            viewport=_random_viewport(),
            locale="en-US",
            args=args,
        )
        for page in self.context.pages:
            await self.apply_stealth(page)
        return self.context

    async def new_page(self):
        context = await self.launch()
        pages: List[Any] = list(context.pages)
        page = pages[0] if pages else await context.new_page()
        await self.apply_stealth(page)
        return page

    async def apply_stealth(self, page) -> None:
        try:
            await Stealth().apply_stealth_async(page)
        except Exception as e:
            logger.warning("[automation] stealth failed (%s); masking navigator.webdriver only", e)
            await page.add_init_script(_WEBDRIVER_MASK)

    async def close(self) -> None:
        if self.context is not None:
            for page in list(getattr(self.context, "pages", []) or []):
                try:
                    if not page.is_closed():
                        await asyncio.wait_for(page.close(), timeout=5.0)
                except Exception as e:
                    logger.debug("[automation] page close failed: %s", e)
            try:
                await asyncio.wait_for(self.context.close(), timeout=10.0)
            except Exception as e:
                logger.warning("[automation] closing browser context failed: %s", e)
            self.context = None
        if self.playwright is not None:
            try:
                await asyncio.wait_for(self.playwright.stop(), timeout=10.0)
            except Exception as e:
                logger.warning("[automation] stopping playwright failed: %s", e)
            self.playwright = None
