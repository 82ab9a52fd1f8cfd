# src/api/v1/users.py
"""User management API endpoints."""

import uuid
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from src.api.deps import (
    get_db,
    get_session_token,
    request_context,
    require_permission,
    unwrap,
)
from src.models import AuthProvider, User, UserStatusFilter
from src.schemas.common import PaginatedResponse, PaginationMeta
from src.schemas.session import (
    SessionLocation,
    SessionResponse,
    SessionsTerminatedResponse,
)
from src.schemas.user import (
    BulkDeleteItem,
    BulkDeleteRequest,
    BulkDeleteResponse,
    SortField,
    UserCreate,
    UserCreateResponse,
    UserListFilters,
    UserResponse,
    UserRoleAssignment,
    UserStatsResponse,
    UserStatusUpdate,
    UserUpdate,
)
from src.services import session_service, user_service
from src.services.session_service import SessionView

router = APIRouter()


def _get_user_or_404(db: Session, user_id: uuid.UUID) -> User:
    user = user_service.get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _session_response(view: SessionView) -> SessionResponse:
    session = view.session
    return SessionResponse(
        id=session.id,
        ip_address=session.ip_address,
        device=session.device,
        browser=session.browser,
        platform=session.platform,
        location=SessionLocation.model_validate(session),
        last_active=session.last_active,
        created_at=session.created_at,
        is_current=view.is_current,
    )


@router.get(
    "/users",
    response_model=PaginatedResponse[UserResponse],
    summary="List users",
)
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str | None = None,
    role: str | None = None,
    status_filter: UserStatusFilter = Query(UserStatusFilter.ALL, alias="status"),
    provider: AuthProvider | None = None,
    sort_by: SortField = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("users:read")),
) -> PaginatedResponse[UserResponse]:
    """Retrieve one page of users matching every given filter.

    Requires users:read permission.
    """
    filters = UserListFilters(
        search=search,
        role=role,
        status=status_filter,
        provider=provider,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    users, total = user_service.list_users(db, filters, page=page, limit=limit)
    return PaginatedResponse[UserResponse](
        data=[UserResponse.model_validate(u) for u in users],
        meta=PaginationMeta.build(total, page, limit),
    )


@router.get(
    "/users/stats",
    response_model=UserStatsResponse,
    summary="Count users by status",
)
def get_user_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("users:read")),
) -> UserStatsResponse:
    """Requires users:read permission."""
    return UserStatsResponse(**user_service.user_stats(db))


@router.post(
    "/users",
    response_model=UserCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new user",
)
def create_user(
    user_in: UserCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("users:create")),
) -> UserCreateResponse:
    """Create a new user.

    Roles that may create employees get a generated temporary password, which
    is returned once in the response.
    Requires users:create permission.
    """
    created = unwrap(
        user_service.create_user(
            db, user_in, actor=current_user, context=request_context(request)
        )
    )
    return UserCreateResponse(
        user=UserResponse.model_validate(created.user),
        requires_verification=created.requires_verification,
        temporary_password=created.temporary_password,
    )


@router.post(
    "/users/bulk-delete",
    response_model=BulkDeleteResponse,
    summary="Soft-delete several users",
)
def bulk_delete_users(
    data: BulkDeleteRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("users:delete")),
) -> BulkDeleteResponse:
    """Soft-delete every listed user except the caller.

    Requires users:delete permission.
    """
    report = user_service.bulk_delete_users(
        db, current_user, data.user_ids, context=request_context(request)
    )
    return BulkDeleteResponse(
        success_count=report.success_count,
        failure_count=report.failure_count,
        errors=[BulkDeleteItem.model_validate(r, from_attributes=True) for r in report.errors],
        results=[BulkDeleteItem.model_validate(r, from_attributes=True) for r in report.results],
        self_excluded=report.self_excluded,
    )


@router.get(
    "/users/{user_id}",
    response_model=UserResponse,
    summary="Get a user by ID",
)
def get_user(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("users:read")),
) -> UserResponse:
    """Retrieve a specific user by ID, including soft-deleted ones.

    Requires users:read permission.
    """
    return UserResponse.model_validate(_get_user_or_404(db, user_id))


@router.put(
    "/users/{user_id}",
    response_model=UserResponse,
    summary="Update a user",
)
def update_user(
    user_id: uuid.UUID,
    user_in: UserUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("users:update")),
) -> UserResponse:
    """Update another user's information.

    Requires users:update permission.
    """
    user = unwrap(
        user_service.update_user(
            db, current_user, user_id, user_in, context=request_context(request)
        )
    )
    return UserResponse.model_validate(user)


@router.patch(
    "/users/{user_id}/status",
    response_model=UserResponse,
    summary="Activate or deactivate a user",
)
def set_user_status(
    user_id: uuid.UUID,
    data: UserStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("users:update")),
) -> UserResponse:
    """Requires users:update permission."""
    user = unwrap(
        user_service.set_user_active(
            db, current_user, user_id, data.is_active, context=request_context(request)
        )
    )
    return UserResponse.model_validate(user)


@router.put(
    "/users/{user_id}/role",
    response_model=UserResponse,
    summary="Assign a role to a user",
)
def assign_role(
    user_id: uuid.UUID,
    assignment: UserRoleAssignment,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("users:update")),
) -> UserResponse:
    """Bind a user to the named role; the name is matched ignoring case.

    Requires users:update permission.
    """
    user = unwrap(
        user_service.assign_role(
            db,
            current_user,
            user_id,
            assignment.role_name,
            context=request_context(request),
        )
    )
    return UserResponse.model_validate(user)


@router.delete(
    "/users/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Soft-delete a user",
)
def delete_user(
    user_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("users:delete")),
) -> None:
    """Requires users:delete permission."""
    unwrap(
        user_service.delete_user(
            db, current_user, user_id, context=request_context(request)
        )
    )


@router.post(
    "/users/{user_id}/restore",
    response_model=UserResponse,
    summary="Restore a soft-deleted user",
)
def restore_user(
    user_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("users:update")),
) -> UserResponse:
    """Requires users:update permission."""
    user = unwrap(
        user_service.restore_user(
            db, current_user, user_id, context=request_context(request)
        )
    )
    return UserResponse.model_validate(user)


@router.get(
    "/users/{user_id}/sessions",
    response_model=list[SessionResponse],
    summary="List a user's active sessions",
)
def list_user_sessions(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    token: str | None = Depends(get_session_token),
    current_user: User = Depends(require_permission("sessions:read")),
) -> list[SessionResponse]:
    """Requires sessions:read permission."""
    views = unwrap(session_service.list_user_sessions(db, user_id, current_token=token))
    return [_session_response(view) for view in views]


@router.delete(
    "/users/{user_id}/sessions/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Terminate a session",
)
def terminate_session(
    user_id: uuid.UUID,
    session_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("sessions:delete")),
) -> None:
    """Requires sessions:delete permission."""
    unwrap(
        session_service.terminate_session(
            db,
            user_id,
            session_id,
            actor=current_user,
            context=request_context(request),
        )
    )


@router.delete(
    "/users/{user_id}/sessions",
    response_model=SessionsTerminatedResponse,
    summary="Terminate all sessions but the current one",
)
def terminate_other_sessions(
    user_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    token: str | None = Depends(get_session_token),
    current_user: User = Depends(require_permission("sessions:delete")),
) -> SessionsTerminatedResponse:
    """Requires sessions:delete permission."""
    count = unwrap(
        session_service.terminate_all_other_sessions(
            db,
            user_id,
            current_token=token,
            actor=current_user,
            context=request_context(request),
        )
    )
    return SessionsTerminatedResponse(
        message=f"Terminated {count} session(s)", terminated_count=count
    )
