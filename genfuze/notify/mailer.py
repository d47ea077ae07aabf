"""
SMTP 邮件通知：爬取完成 / 爬取失败 / 配置测试。

每个发送方法返回 {"success": True, "messageId": ...} 或 {"success": False, "error": ...}，不抛异常。
"""

from __future__ import annotations

import html
import smtplib
from datetime import datetime
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Any, Dict, Optional

from config.settings import EmailSettings, settings
from genfuze.log import get_logger

logger = get_logger(__name__)

SMTP_TIMEOUT_SECONDS = 30
FOOTER = "This email was sent automatically by your LLM Q&A Automation Tool."


class EmailNotConfiguredError(Exception):
    pass


def _fmt_time(value: Any) -> str:
    """接受毫秒时间戳或 ISO 字符串。"""
    if value in (None, ""):
        return "-"
    try:
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(value / 1000.0).strftime("%Y-%m-%d %H:%M:%S")
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).strftime("%Y-%m-%d %H:%M:%S")
    except (ValueError, OverflowError, OSError):
        return str(value)


def _num(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def _card(title: str, body: str, color: str) -> str:
    return (
        f'<div style="background: white; padding: 15px; border-radius: 8px; border-left: 4px solid {color}; '
        f'margin-bottom: 10px;"><h3 style="margin: 0 0 5px 0; color: {color}; font-size: 16px;">{title}</h3>'
        f'<p style="margin: 0; color: #666; word-break: break-all;">{body}</p></div>'
    )


def _layout(heading: str, subtitle: str, gradient: str, inner: str) -> str:
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">'
        f'<div style="background: {gradient}; color: white; padding: 20px; border-radius: 10px; text-align: center;">'
        f'<h1 style="margin: 0; font-size: 24px;">{heading}</h1>'
        f'<p style="margin: 10px 0 0 0; opacity: 0.9;">{subtitle}</p></div>'
        f'<div style="background: #f8f9fa; padding: 20px; border-radius: 10px; margin-top: 20px;">{inner}</div>'
        '<div style="text-align: center; margin-top: 20px; padding: 20px; background: #f8f9fa; border-radius: 10px;">'
        f'<p style="margin: 0; color: #666; font-size: 14px;">{FOOTER}</p></div></div>'
    )


class EmailService:

    def __init__(self, config: Optional[EmailSettings] = None):
        self.config = config or settings.email
        if self.config.configured:
            logger.info("[email] SMTP configured (%s:%s)", self.config.host, self.config.port)
        else:
            logger.info("[email] SMTP not configured; set SMTP_HOST, SMTP_USER and SMTP_PASS")

    @property
    def is_configured(self) -> bool:
        return self.config.configured

    @property
    def sender(self) -> str:
        return self.config.sender or self.config.user

    def _connect(self) -> smtplib.SMTP:
        cfg = self.config
        if cfg.secure:
            server: smtplib.SMTP = smtplib.SMTP_SSL(cfg.host, cfg.port, timeout=SMTP_TIMEOUT_SECONDS)
        else:
            server = smtplib.SMTP(cfg.host, cfg.port, timeout=SMTP_TIMEOUT_SECONDS)
            server.ehlo()
            if server.has_extn("starttls"):
                server.starttls()
                server.ehlo()
        server.login(cfg.user, cfg.password)
        return server

    def _send(self, to: str, subject: str, text: str, html_body: str) -> str:
        if not self.is_configured:
            raise EmailNotConfiguredError("Email service not configured")
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        message_id = make_msgid(domain=(self.sender.split("@")[-1] or None))
        msg["Message-ID"] = message_id
        msg.set_content(text)
        msg.add_alternative(html_body, subtype="html")
        server = self._connect()
        try:
            server.send_message(msg)
        finally:
            server.quit()
        return message_id

    def _deliver(self, kind: str, to: str, subject: str, text: str, html_body: str) -> Dict[str, Any]:
        try:
            message_id = self._send(to, subject, text, html_body)
        except EmailNotConfiguredError as e:
            logger.info("[email] %s skipped: %s", kind, e)
            return {"success": False, "error": str(e)}
        except (smtplib.SMTPException, OSError) as e:
            logger.error("[email] %s to %s failed: %s", kind, to, e)
            return {"success": False, "error": str(e)}
        logger.info("[email] %s sent to %s", kind, to)
        return {"success": True, "messageId": message_id}

    # ── 通知 ──

    def send_crawl_completion(self, to: str, crawl_data: Dict[str, Any]) -> Dict[str, Any]:
        website = str(crawl_data.get("websiteUrl") or "")
        minutes = round(_num(crawl_data.get("duration")) / 60000)
        content_kb = round(_num(crawl_data.get("totalContent")) / 1024)
        crawled = crawl_data.get("crawledPages") or 0
        failed = crawl_data.get("failedPages") or 0
        skipped = crawl_data.get("skippedPages") or 0
        started, ended = _fmt_time(crawl_data.get("startTime")), _fmt_time(crawl_data.get("endTime"))

        text = (
            f"Website Crawl Completed: {website}\n\n"
            f"Crawl Summary:\n- Website: {website}\n- Duration: {minutes} minutes\n"
            f"- Pages Crawled: {crawled}\n- Pages Failed: {failed}\n- Pages Skipped: {skipped}\n"
            f"- Content Size: {content_kb} KB\n\n"
            f"Timing Details:\n- Started: {started}\n- Completed: {ended}\n- Total Time: {minutes} minutes\n\n"
            f"{FOOTER}\n"
        )
        inner = (
            '<h2 style="color: #333; margin-top: 0;">Crawl Summary</h2>'
            + _card("Website", html.escape(website), "#28a745")
            + _card("Duration", f"{minutes} minutes", "#007bff")
            + _card("Pages Crawled", str(crawled), "#28a745")
            + _card("Pages Failed", str(failed), "#dc3545")
            + _card("Pages Skipped", str(skipped), "#ffc107")
            + _card("Content Size", f"{content_kb} KB", "#17a2b8")
            + _card("Timing Details", f"<strong>Started:</strong> {started}<br><strong>Completed:</strong> {ended}", "#2196f3")
        )
        body = _layout(
            "Website Crawl Completed",
            "Your website crawling job has finished successfully!",
            "linear-gradient(135deg, #667eea 0%, #764ba2 100%)",
            inner,
        )
        return self._deliver("crawl completion", to, f"Website Crawl Completed: {website}", text, body)

    def send_crawl_error(self, to: str, error_data: Dict[str, Any]) -> Dict[str, Any]:
        website = str(error_data.get("websiteUrl") or "")
        error = str(error_data.get("error") or "")
        crawled = error_data.get("crawledPages") or 0
        started, ended = _fmt_time(error_data.get("startTime")), _fmt_time(error_data.get("endTime"))

        text = (
            f"Website Crawl Failed: {website}\n\n"
            f"Error Details:\n- Website: {website}\n- Error: {error}\n- Pages Crawled: {crawled}\n\n"
            f"Timing Details:\n- Started: {started}\n- Failed: {ended}\n\n"
            f"{FOOTER}\n"
        )
        inner = (
            '<h2 style="color: #333; margin-top: 0;">Error Details</h2>'
            + _card("Error Message", html.escape(error), "#dc3545")
            + _card("Website", html.escape(website), "#333")
            + _card("Pages Crawled", str(crawled), "#333")
            + _card("Timing Details", f"<strong>Started:</strong> {started}<br><strong>Failed:</strong> {ended}", "#ffc107")
        )
        body = _layout(
            "Website Crawl Failed",
            "Your website crawling job encountered an error.",
            "linear-gradient(135deg, #ff6b6b 0%, #ee5a24 100%)",
            inner,
        )
        return self._deliver("crawl error", to, f"Website Crawl Failed: {website}", text, body)

    def send_test(self) -> Dict[str, Any]:
        """发给 SMTP 账号自己。"""
        stamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        text = (
            "Email Service Test - LLM Q&A Tool\n\n"
            "This is a test email to verify that your email service is properly configured and working.\n\n"
            f"Timestamp: {stamp}\n"
        )
        inner = (
            '<h2 style="color: #333; margin-top: 0;">Test Details</h2>'
            '<p style="color: #666;">This is a test email to verify that your email service is properly '
            "configured and working.</p>"
            f'<p style="color: #666;"><strong>Timestamp:</strong> {stamp}</p>'
        )
        body = _layout(
            "Email Service Test",
            "Your email service is working correctly!",
            "linear-gradient(135deg, #667eea 0%, #764ba2 100%)",
            inner,
        )
        return self._deliver("test", self.config.user, "Email Service Test - LLM Q&A Tool", text, body)


_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service


def set_email_service(service: Optional[EmailService]) -> None:
    global _email_service
    _email_service = service
