"""
聊天站点目标表

每个 ChatTarget 给出入口 URL、登录检测选择器、输入框与回答选择器。
站点专属选择器排在前面，通用列表追加在后面兜底。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

# 输入框：第一个可见且可用的元素胜出
GENERIC_INPUT_SELECTORS: Tuple[str, ...] = (
    'textarea[placeholder*="Message"]',
    '[data-testid="chat-input"]',
    'textarea[placeholder*="Send a message"]',
    'textarea[placeholder*="Ask"]',
    "textarea",
    '[contenteditable="true"]',
    'input[type="text"]',
    '[role="textbox"]',
)

# 回答：命中后取最后一个元素
GENERIC_RESPONSE_SELECTORS: Tuple[str, ...] = (
    '[data-message-author-role="assistant"]',
    '[data-testid="message-content"]',
    '[data-testid="answer-text"]',
    '[data-testid^="conversation-turn-"]',
    '[class*="markdown"]',
    '[class*="prose"]',
    '[class*="whitespace-pre-wrap"]',
    '[class*="text-gray-800"]',
    '[class*="text-gray-900"]',
    '[class*="dark:text-gray-100"]',
    '[class*="dark:text-gray-200"]',
    '[class*="message"]',
    '[class*="response"]',
    '[class*="content"]',
    'div[role="article"]',
    ".text-content",
    '[data-testid="chatgpt-message"]',
    "pre",
    "code",
    "p",
    'div[class*="text"]',
    '[class*="conversation"]',
    '[class*="chat"]',
    '[class*="assistant"]',
)


@dataclass(frozen=True)
class ChatTarget:
    name: str
    label: str
    url: str
    login_selector: str
    input_selectors: Tuple[str, ...] = ()
    response_selectors: Tuple[str, ...] = ()
    # 首屏弹窗（cookie / 登录引导）的关闭按钮，找不到就忽略
    dismiss_selectors: Tuple[str, ...] = ()
    # 前端展示的模型名
    model: str = ""

    def all_input_selectors(self) -> List[str]:
        return _dedupe(self.input_selectors + GENERIC_INPUT_SELECTORS)

    def all_response_selectors(self) -> List[str]:
        return _dedupe(self.response_selectors + GENERIC_RESPONSE_SELECTORS)

    @property
    def not_logged_in_message(self) -> str:
        return f"Not logged in to {self.label}. Please log in manually in the opened browser."


def _dedupe(selectors: Tuple[str, ...]) -> List[str]:
    seen = set()
    out = []
    for s in selectors:
        if s not in seen:
            seen.add(s)
            out.append(s)
    return out


CHATGPT = ChatTarget(
    name="chatgpt",
    label="ChatGPT",
    url="https://chat.openai.com",
    login_selector='textarea[placeholder*="Message"], [data-testid="chat-input"], textarea',
    response_selectors=(".markdown.prose", ".text-base"),
    model="chatgpt-web",
)

PERPLEXITY = ChatTarget(
    name="perplexity",
    label="Perplexity",
    url="https://www.perplexity.ai/",
    login_selector='div[contenteditable="true"], textarea',
    input_selectors=('div[contenteditable="true"]',),
    response_selectors=(".text-textMain",),
    dismiss_selectors=('button[aria-label="Close"]',),
    model="perplexity-web",
)

GEMINI = ChatTarget(
    name="gemini",
    label="Gemini",
    url="https://gemini.google.com/",
    login_selector='textarea, [contenteditable="true"]',
    response_selectors=(".response-text", ".markdown"),
    model="gemini-web",
)

CLAUDE = ChatTarget(
    name="claude",
    label="Claude",
    url="https://claude.ai/",
    login_selector='textarea, [contenteditable="true"]',
    response_selectors=(".message-content",),
    model="claude-web",
)

TARGETS: Dict[str, ChatTarget] = {t.name: t for t in (CHATGPT, PERPLEXITY, GEMINI, CLAUDE)}

# answerProvider 名 -> 目标
_PROVIDER_TARGETS = {
    "chatgpt": "chatgpt",
    "openai": "chatgpt",
    "perplexity": "perplexity",
    "gemini": "gemini",
    "claude": "claude",
}


def resolve_target(provider: Optional[str]) -> Optional[ChatTarget]:
    key = _PROVIDER_TARGETS.get((provider or "").strip().lower())
    return TARGETS.get(key) if key else None
