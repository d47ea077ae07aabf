"""
邮件通知 API：测试邮件、爬取完成 / 失败通知（收件人为当前用户）。
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from genfuze.api.deps import email_dep, get_current_user
from genfuze.api.schemas import CrawlCompletionRequest, CrawlErrorRequest
from genfuze.auth.tokens import CurrentUser
from genfuze.notify import EmailService

router = APIRouter(prefix="/api/email", tags=["email"])


def _reply(result: Dict[str, Any], message: str):
    if not result.get("success"):
        return JSONResponse(status_code=400, content={"success": False, "error": result.get("error")})
    return {"success": True, "message": message, "messageId": result.get("messageId")}


@router.post("/test")
def send_test_email(
    _user: CurrentUser = Depends(get_current_user),
    mailer: EmailService = Depends(email_dep),
):
    return _reply(mailer.send_test(), "Test email sent successfully")


@router.post("/crawl-completion")
def send_crawl_completion(
    body: CrawlCompletionRequest,
    user: CurrentUser = Depends(get_current_user),
    mailer: EmailService = Depends(email_dep),
):
    if not body.crawl_data:
        raise HTTPException(status_code=400, detail="Missing crawl data")
    return _reply(mailer.send_crawl_completion(user.email, body.crawl_data), "Crawl completion email sent successfully")


@router.post("/crawl-error")
def send_crawl_error(
    body: CrawlErrorRequest,
    user: CurrentUser = Depends(get_current_user),
    mailer: EmailService = Depends(email_dep),
):
    if not body.error_data:
        raise HTTPException(status_code=400, detail="Missing error data")
    return _reply(mailer.send_crawl_error(user.email, body.error_data), "Error email sent successfully")
