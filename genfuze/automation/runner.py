"""
一次自动化批次：启动浏览器 -> 打开目标站点 -> AnswerExtractor 逐题提问 -> 关闭浏览器。

浏览器启动或导航失败时不抛出，返回已收集的回答并追加一条 [Automation error]。
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Dict, List, Optional

from config.settings import settings
from genfuze.automation.browser import BrowserManager
from genfuze.automation.extractor import AUTOMATION_ERROR, NO_RESPONSE, AnswerExtractor
from genfuze.automation.targets import TARGETS, ChatTarget
from genfuze.log import get_logger
from genfuze.observability import metrics, tracer

logger = get_logger(__name__)

COMPARE_TARGETS = ("chatgpt", "perplexity", "gemini", "claude")


async def run_questions(
    target: ChatTarget,
    questions: List[str],
    browser_factory: Callable[[], Any] = BrowserManager,
    **extractor_kwargs: Any,
) -> List[Dict[str, str]]:
    """Ask ``questions`` on ``target`` in one browser session; always closes the browser."""
    sleep = extractor_kwargs.get("sleep", asyncio.sleep)
    answers: List[Dict[str, str]] = []
    browser = browser_factory()
    start = time.time()
    with tracer.start_as_current_span("automation.batch") as span:
        span.set_attribute("automation.target", target.name)
        span.set_attribute("automation.questions", len(questions))
        try:
            page = await browser.new_page()
            logger.info("[automation] %s: opening %s for %d questions", target.name, target.url, len(questions))
            await page.goto(target.url, wait_until="domcontentloaded")
            await sleep(settings.automation.navigation_settle)
            answers = await AnswerExtractor(page, target, **extractor_kwargs).run(questions)
        except Exception as e:
            logger.error("[automation] %s: session failed: %s", target.name, e)
            span.set_attribute("error", True)
            answers.append({"question": AUTOMATION_ERROR, "answer": str(e)})
        finally:
            await browser.close()
            metrics.automation_batch_duration_seconds.labels(target=target.name).observe(time.time() - start)
    return answers


def answer_for(answers: List[Dict[str, str]], index: int, question: str) -> str:
    """第 index 题的回答；批次中途失败时用错误信息补齐。"""
    if index < len(answers) and answers[index].get("question") == question:
        return answers[index].get("answer") or ""
    for item in answers:
        if item.get("question") == AUTOMATION_ERROR:
            return f"{AUTOMATION_ERROR} {item.get('answer', '')}".strip()
    return NO_RESPONSE


async def compare_answers(
    questions: List[str],
    target_names: Optional[List[str]] = None,
    browser_factory: Callable[[], Any] = BrowserManager,
    **extractor_kwargs: Any,
) -> List[Dict[str, str]]:
    """每个目标依次跑完整批问题（同一时间只开一个浏览器），再按题目拼成对比行。"""
    names = list(target_names or COMPARE_TARGETS)
    per_target: Dict[str, List[Dict[str, str]]] = {}
    for name in names:
        per_target[name] = await run_questions(TARGETS[name], questions, browser_factory, **extractor_kwargs)

    rows = []
    for i, question in enumerate(questions):
        row = {"question": question}
        for name in names:
            row[name] = answer_for(per_target[name], i, question)
        rows.append(row)
    return rows
