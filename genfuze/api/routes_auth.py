"""
认证 API：本地注册/登录、Entra ID 登录、刷新、登出、当前用户。
"""

from fastapi import APIRouter, Depends, HTTPException, Header

from config.settings import settings
from genfuze.api.deps import get_current_user, get_token_from_header, store_dep
from genfuze.api.errors import api_error
from genfuze.api.schemas import (
    AzureLoginRequest,
    LocalLoginRequest,
    LogoutRequest,
    RefreshRequest,
    RegisterRequest,
)
from genfuze.auth.accounts import issue_token_pair, new_local_user
from genfuze.auth.azure import fetch_graph_user, user_from_graph, validate_azure_token
from genfuze.auth.password import PASSWORD_RULE_MESSAGE, validate_email, validate_password, verify_password
from genfuze.auth.tokens import AuthError, CurrentUser, decode_refresh_token, revoke_token
from genfuze.log import get_logger
from genfuze.storage import SessionStore, StorageError

logger = get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def require_local_auth() -> None:
    """Dependency: 本地认证关闭时这些路由视为不存在。"""
    if not settings.auth.enable_local_auth:
        raise HTTPException(status_code=404, detail="Not found")


@router.post("/register", dependencies=[Depends(require_local_auth)])
def register(body: RegisterRequest, store: SessionStore = Depends(store_dep)) -> dict:
    """注册本地账号并直接登录。"""
    if not body.email or not body.password or not body.name:
        raise HTTPException(status_code=400, detail="Missing required fields: email, password, name")
    if not validate_email(body.email):
        raise HTTPException(status_code=400, detail="Invalid email format")
    if not validate_password(body.password):
        raise HTTPException(status_code=400, detail=PASSWORD_RULE_MESSAGE)
    if store.get_user_by_email(body.email):
        raise HTTPException(status_code=409, detail="User already exists")

    user = new_local_user(body.email, body.password, body.name, body.display_name)
    try:
        store.create_user(user)
    except StorageError as e:
        raise api_error(500, "Registration failed", str(e))
    logger.info("[auth] registered local user %s", user.email)
    return {"success": True, "user": user.to_wire(), **issue_token_pair(store, user)}


@router.post("/local-login", dependencies=[Depends(require_local_auth)])
def local_login(body: LocalLoginRequest, store: SessionStore = Depends(store_dep)) -> dict:
    if not body.email or not body.password:
        raise HTTPException(status_code=400, detail="Missing required fields: email, password")
    user = store.get_user_by_email(body.email)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account is deactivated")
    if not verify_password(body.password, user.password or ""):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    store.update_last_login(user.id)
    user = store.get_user_by_id(user.id) or user
    return {"success": True, "user": user.to_wire(), **issue_token_pair(store, user)}


@router.post("/login")
def azure_login(body: AzureLoginRequest, store: SessionStore = Depends(store_dep)) -> dict:
    """Entra ID 登录：校验 MSAL token -> 读 Graph 资料 -> upsert 用户 -> 签发本应用 token。"""
    if not body.msal_token or not body.client_id or not body.tenant_id:
        raise HTTPException(status_code=400, detail="Missing required fields: msalToken, clientId, tenantId")
    try:
        claims = validate_azure_token(body.msal_token, body.tenant_id)
        info = fetch_graph_user(body.msal_token)
        user = store.upsert_user(user_from_graph(info, claims, body.tenant_id))
    except (AuthError, StorageError, KeyError) as e:
        logger.warning("[auth] azure login failed: %s", e)
        raise api_error(401, "Authentication failed", str(e))
    return {"success": True, "user": user.to_wire(), **issue_token_pair(store, user)}


@router.post("/refresh")
def refresh(body: RefreshRequest, store: SessionStore = Depends(store_dep)) -> dict:
    """刷新 token 轮换：旧 refresh token 作废，新的入库。"""
    if not body.refresh_token:
        raise HTTPException(status_code=400, detail="Refresh token required")
    try:
        user_id = decode_refresh_token(body.refresh_token)
    except AuthError as e:
        raise api_error(401, "Token refresh failed", e.message)

    if not store.get_user_session(body.refresh_token):
        raise HTTPException(status_code=401, detail="Invalid refresh token")
    user = store.get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    store.delete_user_session(body.refresh_token)
    return {"success": True, **issue_token_pair(store, user)}


@router.post("/logout")
def logout(
    body: LogoutRequest | None = None,
    authorization: str | None = Header(None),
    user: CurrentUser = Depends(get_current_user),
    store: SessionStore = Depends(store_dep),
) -> dict:
    """作废当前 access token；带上 refreshToken 时一并删除其会话。"""
    revoke_token(get_token_from_header(authorization) or "")
    if body and body.refresh_token:
        store.delete_user_session(body.refresh_token)
    logger.info("[auth] user %s logged out", user.id)
    return {"success": True, "message": "Logged out successfully"}


@router.get("/me")
def me(user: CurrentUser = Depends(get_current_user), store: SessionStore = Depends(store_dep)) -> dict:
    stored = store.get_user_by_id(user.id)
    if not stored:
        raise HTTPException(status_code=404, detail="User not found")
    return stored.to_wire()
