"""
Password hashing and token signing primitives.

Passwords are hashed with bcrypt (``settings.BCRYPT_ROUNDS`` rounds) and
verified with ``bcrypt.checkpw``, which compares in constant time.

Tokens are HS256 JWTs whose only claim is the user id under ``_id``.
No ``exp`` claim is added unless ``settings.JWT_EXPIRE_MINUTES`` is set,
so by default a token stays valid for as long as it is kept; the cookie
max-age is the only expiry the browser sees.
"""
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
import jwt
from fastapi import Response

from app.config import settings


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    """Return True when *password* matches *password_hash*."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash.
        return False


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------

class TokenError(Exception):
    """Token is missing a subject, malformed, badly signed or expired."""


def create_token(user_id: int) -> str:
    payload: dict[str, Any] = {"_id": user_id}
    if settings.JWT_EXPIRE_MINUTES is not None:
        payload["exp"] = datetime.now(timezone.utc) + timedelta(
            minutes=settings.JWT_EXPIRE_MINUTES
        )
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> int:
    """
    Verify *token* and return the user id it was issued for.

    Raises:
        TokenError: signature, expiry or payload check failed.
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except jwt.ExpiredSignatureError as exc:
        raise TokenError("Token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise TokenError(f"Invalid token: {exc}") from exc

    subject = payload.get("_id")
    if not isinstance(subject, int):
        raise TokenError("Token has no subject")
    return subject


# ---------------------------------------------------------------------------
# Cookie delivery
# ---------------------------------------------------------------------------

def set_token_cookie(response: Response, user_id: int) -> str:
    """Mint a token for *user_id* and attach it as an HTTP-only cookie."""
    token = create_token(user_id)
    response.set_cookie(
        settings.TOKEN_COOKIE_NAME,
        token,
        max_age=settings.TOKEN_COOKIE_MAX_AGE,
        httponly=True,
    )
    return token


def clear_token_cookie(response: Response) -> None:
    response.delete_cookie(settings.TOKEN_COOKIE_NAME, httponly=True)
