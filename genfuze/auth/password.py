"""Password hashing (bcrypt) and the local-account credential rules."""

import re

import bcrypt

BCRYPT_ROUNDS = 12

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
# >= 8 chars from the allowed set, with a lowercase letter, an uppercase letter and a digit
_PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)[a-zA-Z\d@$!%*?&]{8,}$")

PASSWORD_RULE_MESSAGE = "Password must be at least 8 characters with uppercase, lowercase, and number"


def hash_password(plain: str) -> str:
    if not plain:
        raise ValueError("password cannot be empty")
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Never raises; a malformed stored hash simply fails verification."""
    if not plain or not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


def validate_email(email: str) -> bool:
    return bool(email) and bool(_EMAIL_RE.match(email))


def validate_password(password: str) -> bool:
    return bool(password) and bool(_PASSWORD_RE.match(password))
