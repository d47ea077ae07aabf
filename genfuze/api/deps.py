"""
路由依赖：当前用户、存储与各服务单例。
"""

from fastapi import Header, HTTPException

from genfuze.auth.tokens import AuthError, CurrentUser, decode_access_token
from genfuze.llm import EmbeddingService, LLMService, get_embedding_service, get_llm_service
from genfuze.notify import EmailService, get_email_service
from genfuze.storage import SessionStore, get_store


def get_token_from_header(authorization: str | None = Header(None)) -> str | None:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[7:].strip() or None


def get_current_user(authorization: str | None = Header(None)) -> CurrentUser:
    """Dependency: require valid access token."""
    token = get_token_from_header(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Access token required")
    try:
        return decode_access_token(token)
    except AuthError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


def store_dep() -> SessionStore:
    return get_store()


def llm_dep() -> LLMService:
    return get_llm_service()


def embedding_dep() -> EmbeddingService:
    return get_embedding_service()


def email_dep() -> EmailService:
    return get_email_service()
