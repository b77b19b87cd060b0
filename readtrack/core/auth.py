"""
Authentication helpers for verifying bearer tokens and resolving the current app User.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from readtrack.core.errors import Forbidden
from readtrack.core.security import create_access_token, decode_access_token
from readtrack.database import get_db
from readtrack.models import User

logger = logging.getLogger(__name__)


def _unauthorized(detail: str = "Not authenticated") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _extract_bearer_token(request: Request) -> str:
    """
    Extract 'Bearer <token>' from Authorization header.
    """
    auth = request.headers.get("Authorization")
    if not auth:
        raise _unauthorized("Missing Authorization header")

    parts = auth.split()
    if len(parts) != 2:
        raise _unauthorized("Invalid Authorization header format. Expected 'Bearer <token>'")

    scheme, token = parts
    if scheme.lower() != "bearer":
        raise _unauthorized("Invalid auth scheme. Expected 'Bearer'")

    if not token.strip():
        raise _unauthorized("Empty bearer token")

    return token


def issue_token_for(user: User) -> str:
    """Mint an access token carrying the user id (sub) and role."""
    return create_access_token({"sub": str(user.id), "role": user.role.value})


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> User:
    """
    FastAPI dependency: returns the current authenticated User (SQLAlchemy object).

    - Reads Authorization: Bearer <token>
    - Verifies JWT
    - Loads the user named by the sub claim
    """
    token = _extract_bearer_token(request)
    payload = decode_access_token(token)
    if payload is None:
        logger.warning("JWT validation failed for %s %s", request.method, request.url.path)
        raise _unauthorized("Token invalid or expired")

    subject = payload.get("sub")
    if not subject:
        raise _unauthorized("Token missing subject (sub)")

    try:
        user_id = UUID(str(subject))
    except ValueError:
        raise _unauthorized("Token subject is not a user id")

    user = db.query(User).filter(User.id == user_id).one_or_none()
    if user is None:
        raise _unauthorized("User no longer exists")
    return user


def get_admin_user(user: User = Depends(get_current_user)) -> User:
    """FastAPI dependency: the current user, only if they hold the admin role."""
    if not user.is_admin:
        logger.warning("Admin-only route refused for user_id=%s", user.id)
        raise Forbidden("Admin only")
    return user
