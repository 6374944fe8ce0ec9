from __future__ import annotations

import re

import bcrypt
import jwt
from datetime import datetime, timedelta, timezone

from app.core.config import settings


class TokenError(Exception):
    pass


# -------------------------
# Password hashing (bcrypt)
# -------------------------
def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed hash in the row
        return False


COMMON_PASSWORDS = frozenset({
    "password", "password123", "123456", "12345678", "qwerty",
    "letmein", "welcome", "admin", "abc123", "monkey",
    "iloveyou", "sunshine", "princess", "1234567",
    "football", "baseball", "superman", "passw0rd",
})

WEAK_PATTERNS = (
    re.compile(r"^12345"),
    re.compile(r"asdf", re.IGNORECASE),
    re.compile(r"qwerty", re.IGNORECASE),
    re.compile(r"password", re.IGNORECASE),
    re.compile(r"(.)\1{3,}"),
)


def password_problems(password: str) -> list[str]:
    problems: list[str] = []
    if len(password) < 8:
        problems.append("must be at least 8 characters")
    if not re.search(r"[A-Z]", password):
        problems.append("must contain an uppercase letter")
    if not re.search(r"[a-z]", password):
        problems.append("must contain a lowercase letter")
    if not re.search(r"[0-9]", password):
        problems.append("must contain a number")
    if not re.search(r"[^A-Za-z0-9]", password):
        problems.append("must contain a special character")
    if password.lower() in COMMON_PASSWORDS:
        problems.append("is too common")
    elif any(p.search(password) for p in WEAK_PATTERNS):
        problems.append("contains a weak pattern")
    return problems


# -------------------------
# JWT tokens
# -------------------------
def create_access_token(*, user_id: int, user_type: str) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "user_type": user_type,
        "type": "access",
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=settings.JWT_ACCESS_MINUTES)).timestamp()),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def create_refresh_token(*, user_id: int) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "type": "refresh",
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(days=settings.JWT_REFRESH_DAYS)).timestamp()),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def decode_token(token: str, *, expected_type: str = "access") -> dict:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except jwt.ExpiredSignatureError as e:
        raise TokenError("Token expired") from e
    except jwt.InvalidTokenError as e:
        raise TokenError("Invalid token") from e

    if payload.get("type") != expected_type:
        raise TokenError(f"Expected {expected_type} token")
    return payload
