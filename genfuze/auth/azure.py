"""Microsoft Entra ID (Azure AD) sign-in: validate the MSAL token, read the Graph profile."""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, Optional

import jwt
import requests

from config.settings import settings
from genfuze.auth.tokens import AuthError
from genfuze.log import get_logger
from genfuze.storage.records import UserRecord

logger = get_logger(__name__)

GRAPH_TIMEOUT_SECONDS = 15


@lru_cache(maxsize=4)
def _jwk_client(jwks_url: str) -> jwt.PyJWKClient:
    # PyJWKClient caches the key set itself; one client per URL
    return jwt.PyJWKClient(jwks_url, cache_keys=True, lifespan=600)


def validate_azure_token(token: str, tenant_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Verify an Entra ID token: RS256 signature against the Microsoft JWKS,
    audience = configured client id, issuer = the tenant's v2.0 endpoint.
    """
    if not token:
        raise AuthError("Invalid token", 401)
    tenant = settings.auth.azure_tenant_id or tenant_id or ""
    try:
        signing_key = _jwk_client(settings.auth.azure_jwks_url).get_signing_key_from_jwt(token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            audience=settings.auth.azure_client_id or None,
            issuer=f"https://login.microsoftonline.com/{tenant}/v2.0",
        )
    except jwt.PyJWTError as e:
        logger.warning("[auth] entra token rejected: %s", e)
        raise AuthError("Invalid token", 401) from e


def fetch_graph_user(token: str, session: Optional[requests.Session] = None) -> Dict[str, Any]:
    http = session or requests
    try:
        resp = http.get(
            settings.auth.graph_me_url,
            headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
            timeout=GRAPH_TIMEOUT_SECONDS,
        )
        resp.raise_for_status()
        return resp.json()
    except (requests.RequestException, ValueError) as e:
        logger.warning("[auth] graph /me failed: %s", e)
        raise AuthError("Failed to fetch user information", 401) from e


def user_from_graph(info: Dict[str, Any], claims: Dict[str, Any], tenant_id: Optional[str] = None) -> UserRecord:
    name = " ".join(p for p in (info.get("givenName"), info.get("surname")) if p)
    display = info.get("displayName") or name
    return UserRecord(
        id=str(info["id"]),
        email=info.get("mail") or info.get("userPrincipalName") or "",
        name=name or display,
        display_name=display,
        tenant_id=claims.get("tid") or tenant_id,
        roles=["user"],
    )
