from __future__ import annotations

from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from grantmaster.config import settings


_bearer_scheme = HTTPBearer(auto_error=False)


def _auth_unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def issue_token(user_id: str, *, expires_at: int | None = None) -> str:
    claims: dict[str, Any] = {"userId": user_id}
    if expires_at is not None:
        claims["exp"] = expires_at
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_user_id(token: str) -> str:
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise _auth_unauthorized(f"Invalid or expired token: {exc}") from exc

    user_id = claims.get("userId", claims.get("sub"))
    if user_id is None or not str(user_id).strip():
        raise _auth_unauthorized("Token does not identify a user.")
    return str(user_id).strip()


def require_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> str:
    if not settings.auth_enabled:
        return settings.demo_user_id

    if credentials is None:
        raise _auth_unauthorized("Missing bearer token.")
    if credentials.scheme.lower() != "bearer":
        raise _auth_unauthorized("Unsupported authorization scheme.")

    token = credentials.credentials.strip()
    if not token:
        raise _auth_unauthorized("Missing bearer token.")
    return decode_user_id(token)
