"""Signed worker session tokens (JWT) and the cookie that carries them."""

import uuid
from datetime import UTC, datetime, timedelta

from fastapi import Response
from jose import JWTError, jwt

from fiverrclaw.config import settings
from fiverrclaw.errors import AuthenticationError


def create_worker_token(worker_id: uuid.UUID, email: str, expires_delta: timedelta | None = None) -> str:
    now = datetime.now(UTC)
    expire = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    payload = {
        "sub": str(worker_id),
        "email": email,
        "type": "worker",
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_worker_token(token: str) -> uuid.UUID:
    """Validate a worker token and return the worker id it names."""
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise AuthenticationError("Invalid or expired token")

    if payload.get("type") != "worker":
        raise AuthenticationError("Invalid token payload")
    try:
        return uuid.UUID(payload["sub"])
    except (KeyError, ValueError, TypeError):
        raise AuthenticationError("Invalid token payload")


def set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=settings.jwt_expire_minutes * 60,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite="strict",
        path="/",
    )


def clear_auth_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.auth_cookie_name,
        path="/",
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite="strict",
    )
