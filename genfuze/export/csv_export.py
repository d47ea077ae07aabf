"""会话导出为 CSV：每个 QA 条目一行，文本列加引号（内部引号双写），数值列不加。"""

from __future__ import annotations

import csv
import io
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, List, Optional

from genfuze.storage.records import QASessionRecord

CSV_HEADERS = [
    "Session ID", "Name", "Type", "Timestamp", "Model", "Question Provider", "Question Model",
    "Answer Provider", "Answer Model", "Blog URL", "Source URLs", "Crawl Mode", "Crawled Pages Count",
    "Total Questions", "Total Cost", "Question", "Answer", "Accuracy", "Sentiment",
    "Input Tokens", "Output Tokens", "Cost",
]


def _text(value: Optional[Any]) -> str:
    return "" if value is None else str(value)


def _number(value: Optional[Any]) -> Any:
    """数值列：accuracy / totalCost 以字符串存储，原样保留其写法。"""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return str(value)


def _session_rows(session: QASessionRecord) -> Iterable[list]:
    head = [
        _text(session.id),
        _text(session.name),
        _text(session.type),
        _text(session.timestamp),
        _text(session.model),
        _text(session.question_provider),
        _text(session.question_model),
        _text(session.answer_provider),
        _text(session.answer_model),
        _text(session.blog_url),
        "; ".join(session.source_urls),
        _text(session.crawl_mode),
        len(session.crawled_pages),
        session.statistics.total_questions,
        _number(session.statistics.total_cost),
    ]
    for qa in session.qa_data:
        yield head + [
            _text(qa.question),
            _text(qa.answer),
            _number(qa.accuracy),
            _text(qa.sentiment),
            qa.input_tokens or 0,
            qa.output_tokens or 0,
            qa.cost or 0,
        ]


def sessions_to_csv(sessions: List[QASessionRecord]) -> str:
    buf = io.StringIO()
    csv.writer(buf, lineterminator="\n").writerow(CSV_HEADERS)
    # QUOTE_NONNUMERIC: str 列加引号，int / float / Decimal 列不加
    writer = csv.writer(buf, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    for session in sessions:
        writer.writerows(_session_rows(session))
    return buf.getvalue().rstrip("\n")


def export_filename(session_type: str, today: Optional[date] = None) -> str:
    return f"{session_type}-sessions-{(today or date.today()).isoformat()}.csv"
