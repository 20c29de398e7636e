"""JWT sign-in and verification for the task service.

A single master password (TODO_PASSWORD) protects the API. Signing in with it
yields an HS256 token that carries a hash of the password, so changing the
password invalidates every token issued before.
"""
from __future__ import annotations

import hashlib
import typing as t
from datetime import datetime, timedelta, timezone

from fastapi import HTTPException, Request
from jose import JWTError, jwt
from loguru import logger

from services.task_service.config import Settings, get_settings

ALGORITHM = "HS256"
ISSUER = "task-scheduler"
TOKEN_TTL = timedelta(hours=8)
TOKEN_COOKIE = "token"


class AuthError(Exception):
    """Raised when sign-in or token verification fails."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def password_hash(password: str) -> str:
    """Returns the SHA-256 hex digest of a password."""
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def issue_token(password: str, settings: Settings) -> str:
    """Checks the password and returns a signed token.

    Args:
        password: Password submitted by the client.
        settings: Current service settings.

    Returns:
        JWT token string

    Raises:
        AuthError: 400 for an empty password, 401 for a wrong one, 500 when
            the server has no password or secret configured.
    """
    if not password:
        raise AuthError(400, "password cannot be empty")
    if not settings.password:
        raise AuthError(500, "TODO_PASSWORD environment variable is not set")
    if password != settings.password:
        raise AuthError(401, "incorrect password")
    if not settings.jwt_secret:
        raise AuthError(500, "JWT secret not configured")

    payload = {
        "authenticated": True,
        "exp": datetime.now(timezone.utc) + TOKEN_TTL,
        "iss": ISSUER,
        "password_hash": password_hash(password),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=ALGORITHM)


def verify_token(token: str, settings: Settings) -> dict[str, t.Any]:
    """Decodes a token and checks it against the current password.

    Raises:
        AuthError: 401 if the token is invalid, expired, or was issued for a
            different password; 500 if no secret is configured.
    """
    if not settings.jwt_secret:
        raise AuthError(500, "JWT secret not configured")
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT decode failed: {e}")
        raise AuthError(401, "token expired or invalid") from e

    if claims.get("password_hash") != password_hash(settings.password):
        raise AuthError(401, "invalid token: password changed")
    return claims


def _extract_token(request: Request) -> t.Optional[str]:
    token = request.cookies.get(TOKEN_COOKIE)
    if token:
        return token
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[len("bearer "):].strip() or None
    return None


def require_auth(request: Request) -> None:
    """FastAPI dependency guarding task endpoints.

    Authentication is disabled when no password is configured.
    """
    settings = get_settings()
    if not settings.password:
        return

    token = _extract_token(request)
    if token is None:
        logger.warning(f"Unauthorized request to {request.url.path}: no token")
        raise HTTPException(status_code=401, detail="unauthorized")
    try:
        verify_token(token, settings)
    except AuthError as e:
        logger.warning(f"Unauthorized request to {request.url.path}: {e.message}")
        raise HTTPException(status_code=e.status_code, detail=e.message)
