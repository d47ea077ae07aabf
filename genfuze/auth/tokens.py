"""JWT access / refresh tokens.

Access tokens are stateless HS256 JWTs carrying the user's profile claims
(1 h). Refresh tokens carry only ``userId`` and ``type: refresh`` (7 d) and
are additionally bound to a row in the user-session store, so a refresh
token that was rotated or logged out is dead even before it expires.

Logout revokes the presented access token through the ``revoked_tokens``
table, which stores SHA-256 hashes only. The hot path (decode_access_token)
touches the DB only after the signature has been verified.
"""

from __future__ import annotations

import hashlib
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import jwt
from pydantic import Field
from sqlmodel import Session, select

from config.settings import settings
from genfuze.db.engine import get_engine
from genfuze.db.models import RevokedToken
from genfuze.log import get_logger
from genfuze.storage.records import CamelModel, UserRecord

logger = get_logger(__name__)

ALGORITHM = "HS256"
REFRESH_TYPE = "refresh"


class AuthError(Exception):
    """Token could not be accepted; ``status_code`` is the HTTP status to answer with."""

    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class CurrentUser(CamelModel):
    """Identity decoded from a valid access token."""

    id: str
    email: str = ""
    name: str = ""
    display_name: str = ""
    tenant_id: Optional[str] = None
    roles: List[str] = Field(default_factory=lambda: ["user"])

    @property
    def is_admin(self) -> bool:
        return "admin" in self.roles


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _secret() -> str:
    return settings.auth.secret_key


def _token_hash(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _is_revoked(token: str) -> bool:
    try:
        with Session(get_engine()) as db:
            return db.get(RevokedToken, _token_hash(token)) is not None
    except Exception:
        # fail open
        logger.warning("[auth] revocation table unavailable; treating token as not revoked")
        return False


# ---------------------------------------------------------------------------
# Issue
# ---------------------------------------------------------------------------

def create_access_token(user: UserRecord, expire_hours: Optional[float] = None) -> str:
    hours = expire_hours if expire_hours is not None else settings.auth.access_token_expire_hours
    now = _now()
    payload: Dict[str, Any] = {
        "userId": user.id,
        "email": user.email,
        "name": user.name,
        "displayName": user.display_name,
        "tenantId": user.tenant_id,
        "roles": user.roles or ["user"],
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": now + timedelta(hours=hours),
    }
    return jwt.encode(payload, _secret(), algorithm=ALGORITHM)


def refresh_expiry() -> datetime:
    return _now() + timedelta(days=settings.auth.refresh_token_expire_days)


def create_refresh_token(user_id: str, expires_at: Optional[datetime] = None) -> str:
    now = _now()
    payload = {
        "userId": user_id,
        "type": REFRESH_TYPE,
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": expires_at or refresh_expiry(),
    }
    return jwt.encode(payload, _secret(), algorithm=ALGORITHM)


# ---------------------------------------------------------------------------
# Verify
# ---------------------------------------------------------------------------

def _decode(token: str) -> Dict[str, Any]:
    return jwt.decode(token, _secret(), algorithms=[ALGORITHM])


def decode_access_token(token: str) -> CurrentUser:
    """Signature + expiry + not-a-refresh-token + not revoked; AuthError(403) otherwise."""
    if not token:
        raise AuthError("Access token required", 401)
    try:
        payload = _decode(token)
    except jwt.InvalidTokenError as e:
        raise AuthError("Invalid or expired token", 403) from e

    if payload.get("type") == REFRESH_TYPE or not payload.get("userId"):
        raise AuthError("Invalid or expired token", 403)
    if _is_revoked(token):
        raise AuthError("Invalid or expired token", 403)

    return CurrentUser(
        id=payload["userId"],
        email=payload.get("email") or "",
        name=payload.get("name") or "",
        display_name=payload.get("displayName") or "",
        tenant_id=payload.get("tenantId"),
        roles=payload.get("roles") or ["user"],
    )


def decode_refresh_token(token: str) -> str:
    """Return the user id of a valid refresh token."""
    try:
        payload = _decode(token)
    except jwt.InvalidTokenError as e:
        raise AuthError("Invalid refresh token", 401) from e
    if payload.get("type") != REFRESH_TYPE or not payload.get("userId"):
        raise AuthError("Invalid refresh token", 401)
    return payload["userId"]


# ---------------------------------------------------------------------------
# Revocation
# ---------------------------------------------------------------------------

def revoke_token(token: str) -> bool:
    """Persist the token's hash until its own expiry. Already-expired tokens can still be revoked."""
    if not token:
        return False
    try:
        payload = jwt.decode(token, _secret(), algorithms=[ALGORITHM], options={"verify_exp": False})
    except jwt.InvalidTokenError:
        return False

    exp = payload.get("exp")
    expires_at = (
        datetime.fromtimestamp(exp, tz=timezone.utc).isoformat() if exp is not None else _now().isoformat()
    )
    h = _token_hash(token)
    try:
        with Session(get_engine()) as db:
            if db.get(RevokedToken, h) is None:
                db.add(RevokedToken(token_hash=h, expires_at=expires_at, revoked_at=_now().isoformat()))
                db.commit()
        return True
    except Exception:
        logger.exception("[auth] failed to persist token revocation")
        return False


def purge_expired_revocations() -> int:
    """Drop revocation rows whose token has expired anyway."""
    cutoff = _now().isoformat()
    try:
        with Session(get_engine()) as db:
            rows = db.exec(select(RevokedToken).where(RevokedToken.expires_at < cutoff)).all()
            for row in rows:
                db.delete(row)
            db.commit()
            return len(rows)
    except Exception:
        logger.exception("[auth] failed to purge expired token revocations")
        return 0
