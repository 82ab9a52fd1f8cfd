# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Authentication API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from src.api.deps import (
    get_current_user,
    get_db,
    get_session_token,
    request_context,
    unwrap,
)
from src.config import settings
from src.models import User
from src.schemas.auth import AuthResponse, LoginRequest
from src.schemas.user import UserProfileUpdate, UserResponse
from src.services import auth_service, rbac_service
from src.services.geolocation_service import GeolocationService

router = APIRouter()


def build_auth_response(db: Session, user: User) -> AuthResponse:
    """Build AuthResponse with effective permissions from RBAC."""
    return AuthResponse(
        user=UserResponse.model_validate(user),
        permissions=sorted(rbac_service.get_user_permissions(db, user)),
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    data: LoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> AuthResponse:
    """Login with e-mail and password.

    Password hashing and the database work run in the threadpool; only the
    geolocation lookup is awaited on the event loop.
    """
    user = await run_in_threadpool(
        auth_service.authenticate, db, data.email, data.password
    )

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    context = request_context(request)
    geolocation = GeolocationService()
    try:
        location = await geolocation.lookup(context.ip)
    finally:
        await geolocation.close()
    user_id = user.id
    token = await run_in_threadpool(
        auth_service.create_session, db, user, context=context, location=location
    )

    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        max_age=86400 * settings.session_expiry_days,
    )

    # Re-query user after session creation commit to avoid expired object error
    user = await run_in_threadpool(auth_service.get_user_by_id, db, user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="User not found after session creation",
        )

    return await run_in_threadpool(build_auth_response, db, user)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    token: str | None = Depends(get_session_token),
    current_user: User = Depends(get_current_user),
) -> None:
    """Logout current user and end the session."""
    if token:
        auth_service.delete_session(db, token, context=request_context(request))
    response.delete_cookie(key=settings.session_cookie_name)


@router.get("/me", response_model=AuthResponse)
def get_current_user_info(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> AuthResponse:
    """Get current authenticated user."""
    return build_auth_response(db, current_user)


@router.put("/me", response_model=AuthResponse)
def update_current_user_profile(
    data: UserProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> AuthResponse:
    """Update current user's profile."""
    user = unwrap(auth_service.update_profile(db, current_user, data))
    return build_auth_response(db, user)
