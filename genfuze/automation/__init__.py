# 浏览器自动化：在聊天站点上提问并抓取回答
from genfuze.automation.extractor import (
    AUTOMATION_ERROR,
    INPUT_NOT_FOUND,
    NO_RESPONSE,
    AnswerExtractor,
    AutomationError,
)
from genfuze.automation.targets import TARGETS, ChatTarget, resolve_target
from genfuze.automation.runner import compare_answers, run_questions

__all__ = [
    "AUTOMATION_ERROR",
    "INPUT_NOT_FOUND",
    "NO_RESPONSE",
    "AnswerExtractor",
    "AutomationError",
    "TARGETS",
    "ChatTarget",
    "resolve_target",
    "compare_answers",
    "run_questions",
]
