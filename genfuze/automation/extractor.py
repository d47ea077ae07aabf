"""
Browser answer extractor.

Drives an already-open chat page: waits for the logged-in UI, then for each
question finds the input box, types the question like a person, submits it
and scrapes the rendered reply. Chat sites change their DOM without notice
and some actively resist automation, so every step walks a list of
candidate selectors and degrades to a sentinel answer instead of raising.

A session-level problem (not logged in, page gone) ends the batch with a
single ``[Automation error]`` entry after the answers already collected.
"""

from __future__ import annotations

import asyncio
import random
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

from config.settings import AutomationSettings, settings
from genfuze.automation.targets import CHATGPT, ChatTarget
from genfuze.log import get_logger
from genfuze.observability import metrics

logger = get_logger(__name__)

INPUT_NOT_FOUND = "[Input element not found]"
NO_RESPONSE = (
    "No response could be extracted. The AI platform may have detected automation "
    "or the response format has changed."
)
AUTOMATION_ERROR = "[Automation error]"

# a candidate containing any of these is an error / bot-check page, not an answer
ERROR_INDICATORS = (
    "error", "failed", "unavailable", "blocked", "detected",
    "captcha", "verify", "robot", "automation",
)

MIN_ANSWER_LENGTH = 20
MIN_CHILD_TEXT_LENGTH = 10
MIN_BODY_TEXT_LENGTH = 100
MIN_BODY_LINE_LENGTH = 50

_DISPATCH_ENTER_JS = """
(el) => {
    const event = new KeyboardEvent('keydown', {
        bubbles: true, cancelable: true, key: 'Enter', code: 'Enter', which: 13, keyCode: 13
    });
    el.dispatchEvent(event);
}
"""


class AutomationError(Exception):
    """The whole batch cannot continue (browser, navigation or login problem)."""


def looks_like_error(text: str) -> bool:
    lowered = text.lower()
    return any(ind in lowered for ind in ERROR_INDICATORS)


def last_long_line(body_text: str) -> Optional[str]:
    """Last line of the page whose stripped length exceeds 50 chars."""
    if not body_text or len(body_text) <= MIN_BODY_TEXT_LENGTH:
        return None
    for line in reversed(body_text.split("\n")):
        if len(line.strip()) > MIN_BODY_LINE_LENGTH:
            return line.strip()
    return None


class AnswerExtractor:
    """
    Ask questions on one chat page and read the answers back.

    ``sleep`` and ``clock`` are injectable so the polling loops can be
    driven by a fake clock in tests; ``rng`` controls typing jitter and the
    post-submit wait.
    """

    def __init__(
        self,
        page: Any,
        target: ChatTarget = CHATGPT,
        config: Optional[AutomationSettings] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        rng: Optional[random.Random] = None,
    ):
        self.page = page
        self.target = target
        self.cfg = config or settings.automation
        self._sleep = sleep
        self._clock = clock
        self._rng = rng or random.Random()

    # ── login ──

    async def wait_for_login(self) -> None:
        """Poll for the chat input; raise AutomationError when it never appears."""
        for _ in range(self.cfg.login_attempts):
            if await self._query_all(self.target.login_selector):
                logger.info("[automation] %s chat UI ready", self.target.name)
                return
            await self._sleep(self.cfg.login_poll_interval)
        raise AutomationError(self.target.not_logged_in_message)

    async def dismiss_popups(self) -> None:
        for selector in self.target.dismiss_selectors:
            for el in await self._query_all(selector):
                try:
                    await el.click()
                except Exception as e:
                    logger.debug("[automation] dismiss %s failed: %s", selector, e)

    # ── input ──

    async def find_input(self) -> Optional[Any]:
        """First visible and enabled element over the input selectors, retried for up to N rounds."""
        selectors = self.target.all_input_selectors()
        for _ in range(self.cfg.input_attempts):
            for selector in selectors:
                for el in await self._query_all(selector):
                    try:
                        if await el.is_visible() and await el.is_enabled():
                            return el
                    except Exception:
                        continue
            await self._sleep(self.cfg.input_poll_interval)
        return None

    async def type_question(self, el: Any, question: str) -> None:
        # clearing is best effort
        try:
            await el.press("Control+A")
            await el.press("Delete")
        except Exception as e:
            logger.debug("[automation] clearing input failed: %s", e)

        low, high = self.cfg.typing_delay_min_ms, self.cfg.typing_delay_max_ms
        for ch in question:
            await el.type(ch)
            await self._sleep(self._rng.uniform(low, high) / 1000.0)
        await self._sleep(self.cfg.post_type_pause)

    async def submit(self, el: Any) -> bool:
        """Enter on the element, then keyboard Return, then a JS keydown; stop at the first that works."""
        attempts = (
            ("element Enter", lambda: el.press("Enter")),
            ("keyboard Return", lambda: self.page.keyboard.press("Enter")),
            ("js keydown", lambda: self.page.evaluate(_DISPATCH_ENTER_JS, el)),
        )
        for name, attempt in attempts:
            try:
                await attempt()
                logger.debug("[automation] submitted via %s", name)
                return True
            except Exception as e:
                logger.debug("[automation] submit via %s failed: %s", name, e)
        logger.warning("[automation] every submit strategy failed")
        return False

    # ── response ──

    async def _element_text(self, el: Any) -> str:
        text = (await el.inner_text()) or ""
        if len(text) < MIN_ANSWER_LENGTH:
            parts = []
            for child in await el.query_selector_all("xpath=.//*"):
                try:
                    child_text = (await child.inner_text()) or ""
                except Exception:
                    continue
                if len(child_text) > MIN_CHILD_TEXT_LENGTH:
                    parts.append(child_text)
            if parts:
                text = "\n".join(parts)
        return text

    async def _sweep(self) -> Optional[str]:
        """One pass over the response selectors; the last element of a matching selector is the newest reply."""
        for selector in self.target.all_response_selectors():
            try:
                elements = await self.page.query_selector_all(selector)
                if not elements:
                    continue
                latest = elements[-1]
                await self._sleep(self.cfg.element_settle)
                text = await self._element_text(latest)
            except Exception as e:
                logger.debug("[automation] selector %s failed: %s", selector, e)
                continue
            if len(text) > MIN_ANSWER_LENGTH and not looks_like_error(text):
                logger.debug("[automation] answer found via %s (%d chars)", selector, len(text))
                return text
        return None

    async def _body_fallback(self) -> Optional[str]:
        try:
            body = await self.page.inner_text("body")
        except Exception as e:
            logger.debug("[automation] reading body failed: %s", e)
            return None
        return last_long_line(body or "")

    async def extract_response(self) -> str:
        """Poll the page until an answer shows up or the timeout passes; the wait between sweeps backs off."""
        deadline = self._clock() + self.cfg.response_timeout
        interval = self.cfg.response_poll_interval
        while self._clock() < deadline:
            text = await self._sweep()
            if text:
                return text
            await self._sleep(interval)
            interval = min(interval * self.cfg.response_poll_backoff, self.cfg.response_poll_max_interval)

        fallback = await self._body_fallback()
        if fallback:
            logger.info("[automation] %s: using body text fallback", self.target.name)
            return fallback
        return NO_RESPONSE

    # ── batch ──

    async def ask(self, question: str) -> str:
        el = await self.find_input()
        if el is None:
            logger.warning("[automation] %s: no input element for question", self.target.name)
            metrics.automation_questions_total.labels(target=self.target.name, outcome="no_input").inc()
            return INPUT_NOT_FOUND

        await self.type_question(el, question)
        await self.submit(el)
        await self._sleep(self._rng.uniform(self.cfg.response_wait_min, self.cfg.response_wait_max))
        answer = await self.extract_response()
        outcome = "no_response" if answer == NO_RESPONSE else "answered"
        metrics.automation_questions_total.labels(target=self.target.name, outcome=outcome).inc()
        return answer

    def _page_closed(self) -> bool:
        is_closed = getattr(self.page, "is_closed", None)
        return callable(is_closed) and is_closed() is True

    async def run(self, questions: List[str]) -> List[Dict[str, str]]:
        """
        Ask every question in order and return ``[{question, answer}]``.

        A failure on one question becomes that question's answer. A
        session-level failure (not logged in, page closed) stops the batch:
        answers collected so far are kept and one ``[Automation error]``
        entry carrying the message is appended. Never raises.
        """
        answers: List[Dict[str, str]] = []
        try:
            await self.wait_for_login()
            await self.dismiss_popups()
            for i, question in enumerate(questions):
                try:
                    answer = await self.ask(question)
                except Exception as e:
                    if self._page_closed():
                        raise
                    logger.exception("[automation] %s: question %d failed", self.target.name, i + 1)
                    metrics.automation_questions_total.labels(target=self.target.name, outcome="error").inc()
                    answer = f"{AUTOMATION_ERROR} {e}"
                answers.append({"question": question, "answer": answer})
                if i < len(questions) - 1:
                    await self._sleep(self.cfg.between_questions)
        except Exception as e:
            logger.error("[automation] %s batch stopped after %d answers: %s", self.target.name, len(answers), e)
            answers.append({"question": AUTOMATION_ERROR, "answer": str(e)})
        return answers

    async def _query_all(self, selector: str) -> List[Any]:
        try:
            return list(await self.page.query_selector_all(selector))
        except Exception as e:
            logger.debug("[automation] query %s failed: %s", selector, e)
            return []
