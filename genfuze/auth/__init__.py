# Auth: password hashing, JWT access/refresh tokens, Entra ID sign-in
from genfuze.auth.password import hash_password, verify_password, validate_email, validate_password
from genfuze.auth.tokens import (
    AuthError,
    CurrentUser,
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    revoke_token,
    purge_expired_revocations,
)

__all__ = [
    "hash_password",
    "verify_password",
    "validate_email",
    "validate_password",
    "AuthError",
    "CurrentUser",
    "create_access_token",
    "create_refresh_token",
    "decode_access_token",
    "decode_refresh_token",
    "revoke_token",
    "purge_expired_revocations",
]
