# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""API dependencies for dependency injection."""

from typing import Any

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from src.config import settings
from src.database import get_db
from src.models import User
from src.rbac.result import ErrorKind, Result
from src.services import auth_service, rbac_service
from src.services.audit_service import RequestContext

ERROR_STATUS = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
}

__all__ = [
    "get_current_user",
    "get_db",
    "get_session_token",
    "request_context",
    "require_permission",
    "unwrap",
]


def get_session_token(request: Request) -> str | None:
    """Read the session token from the configured cookie."""
    return request.cookies.get(settings.session_cookie_name)


def get_current_user(
    db: Session = Depends(get_db),
    session: str | None = Depends(get_session_token),
) -> User:
    """Get current authenticated user from session cookie."""
    if not session:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    session_obj = auth_service.get_session(db, session)
    if not session_obj:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session",
        )

    user = auth_service.get_user_by_id(db, session_obj.user_id)
    if not user or not user.is_active or user.deleted_at is not None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )

    return user


def require_permission(permission_code: str):
    """Dependency for permission-based authorization."""

    def dependency(
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
    ) -> User:
        if not rbac_service.user_has_permission(db, current_user, permission_code):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: {permission_code}",
            )
        return current_user

    return dependency


def request_context(request: Request) -> RequestContext:
    """Client IP and User-Agent of the current request, for auditing.

    X-Forwarded-For is only honored when running behind a trusted proxy.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if settings.trusted_proxy and forwarded:
        ip = forwarded.split(",")[0].strip()
    else:
        ip = request.client.host if request.client else None
    return RequestContext(ip=ip, user_agent=request.headers.get("user-agent"))


def unwrap(result: Result) -> Any:
    """Return a successful result's value or raise the matching HTTP error."""
    if not result.ok:
        raise HTTPException(
            status_code=ERROR_STATUS.get(result.kind, status.HTTP_400_BAD_REQUEST),
            detail=result.message,
        )
    return result.value
