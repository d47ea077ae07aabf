"""Account flows shared by the auth routes and scripts: issuing a token pair, default admin."""

from __future__ import annotations

import uuid
from typing import Any, Dict

from config.settings import settings
from genfuze.auth.password import hash_password
from genfuze.auth.tokens import create_access_token, create_refresh_token, refresh_expiry
from genfuze.log import get_logger
from genfuze.storage.base import SessionStore
from genfuze.storage.records import UserRecord

logger = get_logger(__name__)


def issue_token_pair(store: SessionStore, user: UserRecord) -> Dict[str, Any]:
    """New access + refresh token; the refresh token is recorded so it can be rotated or revoked."""
    expires = refresh_expiry()
    access = create_access_token(user)
    refresh = create_refresh_token(user.id, expires)
    expires_at = expires.isoformat()
    store.save_user_session(user.id, refresh, expires_at)
    return {"accessToken": access, "refreshToken": refresh, "expiresAt": expires_at}


def new_local_user(email: str, password: str, name: str, display_name: str | None = None,
                   roles: list[str] | None = None) -> UserRecord:
    return UserRecord(
        id=str(uuid.uuid4()),
        email=email,
        name=name,
        display_name=display_name or name,
        password=hash_password(password),
        roles=roles or ["user"],
    )


def ensure_default_admin(store: SessionStore) -> UserRecord | None:
    """Create the configured admin account when local auth is on and it does not exist yet."""
    if not settings.auth.enable_local_auth:
        return None
    email = settings.auth.admin_email
    existing = store.get_user_by_email(email)
    if existing:
        return existing
    admin = new_local_user(
        email=email,
        password=settings.auth.admin_default_password,
        name="Admin User",
        display_name="Administrator",
        roles=["admin", "user"],
    )
    store.create_user(admin)
    logger.warning("[auth] default admin %s created; change its password", email)
    return admin
