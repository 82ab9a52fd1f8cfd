# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""User management service.

Every mutation that targets a user runs the self-protection guard first, so
an administrator can never edit, deactivate or delete their own account
through this module, whichever client calls it.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.models import (
    AuditAction,
    AuditResourceType,
    AuthProvider,
    Role,
    User,
    UserStatusFilter,
)
from src.rbac import evaluator
from src.rbac.identity import assert_not_self, split_self_from_batch
from src.rbac.result import Result
from src.rbac.roles import DEFAULT_USER_ROLE
from src.schemas.user import UserCreate, UserListFilters, UserUpdate
from src.security import generate_temporary_password, get_password_hash
from src.services import audit_service, rbac_service
from src.services.audit_service import RequestContext

logger = logging.getLogger(__name__)

# Roles that may create employees get a generated credential and must verify.
AUTO_CREDENTIAL_PERMISSION = "employees:create"

DELETED_USER_MESSAGE = "User is deleted; restore it first"

AUDITED_FIELDS = (
    "email",
    "first_name",
    "last_name",
    "role_name",
    "is_active",
    "is_email_verified",
)


@dataclass
class CreatedUser:
    """A newly created user and how they will sign in."""

    user: User
    requires_verification: bool
    temporary_password: str | None = None


@dataclass
class BulkItemResult:
    """Outcome for one id of a bulk operation."""

    user_id: str
    success: bool
    message: str | None = None


@dataclass
class BulkDeleteReport:
    """Per-item report of a bulk delete; one entry per processed id."""

    results: list[BulkItemResult] = field(default_factory=list)
    self_excluded: bool = False

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failure_count(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def errors(self) -> list[BulkItemResult]:
        return [r for r in self.results if not r.success]


def _snapshot(user: User) -> dict[str, Any]:
    return {name: getattr(user, name) for name in AUDITED_FIELDS}


def get_user(db: Session, user_id: uuid.UUID) -> User | None:
    """Get a user by ID, including soft-deleted ones."""
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> User | None:
    """Get a user by e-mail address, ignoring case."""
    return db.query(User).filter(User.email == email.strip().lower()).first()


def _apply_status_filter(query, status: UserStatusFilter):
    if status == UserStatusFilter.DELETED:
        return query.filter(User.deleted_at.is_not(None))

    query = query.filter(User.deleted_at.is_(None))
    if status == UserStatusFilter.ACTIVE:
        query = query.filter(User.is_active.is_(True))
    elif status == UserStatusFilter.INACTIVE:
        query = query.filter(User.is_active.is_(False))
    elif status == UserStatusFilter.VERIFIED:
        query = query.filter(User.is_email_verified.is_(True))
    elif status == UserStatusFilter.UNVERIFIED:
        query = query.filter(User.is_email_verified.is_(False))
    return query


def list_users(
    db: Session,
    filters: UserListFilters,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[User], int]:
    """Get one page of users matching every given filter, plus the total."""
    query = _apply_status_filter(db.query(User).join(User.role), filters.status)

    if filters.search:
        pattern = f"%{filters.search.strip()}%"
        query = query.filter(
            or_(
                User.email.ilike(pattern),
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
            )
        )
    if filters.role and filters.role.lower() != "all":
        query = query.filter(func.lower(Role.name) == filters.role.strip().lower())
    if filters.provider:
        query = query.filter(User.provider == filters.provider)

    total = query.count()

    column = getattr(User, filters.sort_by)
    order = column.asc() if filters.sort_order == "asc" else column.desc()
    users = (
        query.order_by(order, User.id).offset((page - 1) * limit).limit(limit).all()
    )
    return users, total


def user_stats(db: Session) -> dict[str, int]:
    """Count users by status; soft-deleted users only count as deleted."""
    live = db.query(User).filter(User.deleted_at.is_(None))
    return {
        "total": live.count(),
        "active": live.filter(User.is_active.is_(True)).count(),
        "inactive": live.filter(User.is_active.is_(False)).count(),
        "unverified": live.filter(User.is_email_verified.is_(False)).count(),
        "deleted": db.query(User).filter(User.deleted_at.is_not(None)).count(),
    }


def create_user(
    db: Session,
    data: UserCreate,
    actor: User | None = None,
    context: RequestContext | None = None,
) -> Result:
    """Create a user with the given (or default) role.

    Roles that grant employees:create receive a generated temporary password
    and start unverified; every other role needs an explicit password.
    """
    email = data.email.strip().lower()
    if get_user_by_email(db, email):
        return Result.conflict("User already exists")

    role_name = data.role_name or DEFAULT_USER_ROLE
    role = rbac_service.get_role_by_name(db, role_name)
    if not role:
        return Result.not_found(f'Role "{role_name}" not found')

    catalog = rbac_service.list_permissions(db)
    generate_credential = evaluator.grants(
        role.permission_codes, catalog, AUTO_CREDENTIAL_PERMISSION
    )
    temporary_password = None
    if generate_credential:
        temporary_password = generate_temporary_password()
        password = temporary_password
    elif data.password:
        password = data.password
    else:
        return Result.validation(f'Password is required for role "{role.name}"')

    user = User(
        email=email,
        hashed_password=get_password_hash(password),
        first_name=data.first_name,
        last_name=data.last_name,
        role=role,
        provider=AuthProvider.LOCAL,
        is_active=True,
        is_email_verified=False,
        created_by_id=actor.id if actor else None,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return Result.conflict("User already exists")
    db.refresh(user)
    logger.info(f"Created user {user.email} with role {role.name}")

    audit_service.record(
        db,
        actor=actor,
        action=AuditAction.USER_CREATED,
        resource_type=AuditResourceType.USER,
        resource_id=user.id,
        resource_name=user.display_name,
        details={
            "created_by": actor.email if actor else None,
            "role_name": role.name,
            "is_email_verified": False,
        },
        context=context,
    )
    return Result.success(
        CreatedUser(
            user=user,
            requires_verification=generate_credential,
            temporary_password=temporary_password,
        )
    )


def update_user(
    db: Session,
    actor: User,
    user_id: uuid.UUID,
    data: UserUpdate,
    context: RequestContext | None = None,
) -> Result:
    """Apply a partial update to another user's record."""
    guard = assert_not_self(actor.id, user_id, "edit")
    if not guard:
        return guard

    user = get_user(db, user_id)
    if not user:
        return Result.not_found("User not found")
    if user.deleted_at is not None:
        return Result.validation(DELETED_USER_MESSAGE)

    role = None
    if data.role_name is not None:
        role = rbac_service.get_role_by_name(db, data.role_name)
        if not role:
            return Result.not_found(f'Role "{data.role_name}" not found')

    if data.email is not None:
        email = data.email.strip().lower()
        existing = get_user_by_email(db, email)
        if existing and existing.id != user.id:
            return Result.conflict("Email already in use")

    before = _snapshot(user)
    updated_fields = sorted(data.model_dump(exclude_unset=True, exclude_none=True))

    if data.email is not None:
        user.email = data.email.strip().lower()
    if data.first_name is not None:
        user.first_name = data.first_name or None
    if data.last_name is not None:
        user.last_name = data.last_name or None
    if role is not None:
        user.role = role
    if data.is_active is not None:
        user.is_active = data.is_active
    if data.is_email_verified is not None:
        user.is_email_verified = data.is_email_verified
    if data.password is not None:
        user.hashed_password = get_password_hash(data.password)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return Result.conflict("Email already in use")
    db.refresh(user)
    after = _snapshot(user)

    action = AuditAction.USER_UPDATED
    if before["role_name"] != after["role_name"]:
        action = AuditAction.USER_PROMOTED
    audit_service.record(
        db,
        actor=actor,
        action=action,
        resource_type=AuditResourceType.USER,
        resource_id=user.id,
        resource_name=user.display_name,
        details={"updated_fields": updated_fields},
        changes=audit_service.diff_changes(before, after),
        context=context,
    )
    return Result.success(user)


def set_user_active(
    db: Session,
    actor: User,
    user_id: uuid.UUID,
    active: bool,
    context: RequestContext | None = None,
) -> Result:
    """Activate or deactivate another user."""
    guard = assert_not_self(actor.id, user_id, "activate" if active else "deactivate")
    if not guard:
        return guard

    user = get_user(db, user_id)
    if not user:
        return Result.not_found("User not found")
    if user.deleted_at is not None:
        return Result.validation(DELETED_USER_MESSAGE)

    if user.is_active != active:
        user.is_active = active
        db.commit()
        db.refresh(user)
        audit_service.record(
            db,
            actor=actor,
            action=AuditAction.USER_ACTIVATED if active else AuditAction.USER_DEACTIVATED,
            resource_type=AuditResourceType.USER,
            resource_id=user.id,
            resource_name=user.display_name,
            changes={"is_active": {"old": not active, "new": active}},
            context=context,
        )
    return Result.success(user)


def assign_role(
    db: Session,
    actor: User,
    user_id: uuid.UUID,
    role_name: str,
    context: RequestContext | None = None,
) -> Result:
    """Bind a user to the role with the given name."""
    guard = assert_not_self(actor.id, user_id, "change the role of")
    if not guard:
        return guard

    user = get_user(db, user_id)
    if not user:
        return Result.not_found("User not found")
    if user.deleted_at is not None:
        return Result.validation(DELETED_USER_MESSAGE)
    role = rbac_service.get_role_by_name(db, role_name)
    if not role:
        return Result.not_found(f'Role "{role_name}" not found')

    old_role_name = user.role_name
    if user.role_id != role.id:
        user.role = role
        db.commit()
        db.refresh(user)
        audit_service.record(
            db,
            actor=actor,
            action=AuditAction.USER_PROMOTED,
            resource_type=AuditResourceType.USER,
            resource_id=user.id,
            resource_name=user.display_name,
            changes={"role_name": {"old": old_role_name, "new": role.name}},
            context=context,
        )
    return Result.success(user)


def delete_user(
    db: Session,
    actor: User,
    user_id: uuid.UUID,
    context: RequestContext | None = None,
) -> Result:
    """Soft-delete a user. Deleting an already deleted user is a no-op."""
    guard = assert_not_self(actor.id, user_id, "delete")
    if not guard:
        return guard

    user = get_user(db, user_id)
    if not user:
        return Result.not_found("User not found")
    if user.deleted_at is not None:
        return Result.success(user)

    user.deleted_at = datetime.utcnow()
    db.commit()

    audit_service.record(
        db,
        actor=actor,
        action=AuditAction.USER_DELETED,
        resource_type=AuditResourceType.USER,
        resource_id=user.id,
        resource_name=user.display_name,
        details={"reason": "soft_delete"},
        context=context,
    )
    return Result.success(user)


def restore_user(
    db: Session,
    actor: User | None,
    user_id: uuid.UUID,
    context: RequestContext | None = None,
) -> Result:
    """Clear a user's soft-delete marker."""
    user = get_user(db, user_id)
    if not user:
        return Result.not_found("User not found")
    if user.deleted_at is None:
        return Result.validation("User is not deleted")

    user.deleted_at = None
    db.commit()
    db.refresh(user)

    audit_service.record(
        db,
        actor=actor,
        action=AuditAction.USER_RESTORED,
        resource_type=AuditResourceType.USER,
        resource_id=user.id,
        resource_name=user.display_name,
        details={"restored_by": actor.email if actor else None},
        context=context,
    )
    return Result.success(user)


def bulk_delete_users(
    db: Session,
    actor: User,
    user_ids: list[str],
    context: RequestContext | None = None,
) -> BulkDeleteReport:
    """Soft-delete several users, each independently.

    The actor's own id is dropped from the batch rather than failing it, and
    a failure on one id never rolls back the others.
    """
    remaining, self_excluded = split_self_from_batch(actor.id, user_ids)
    report = BulkDeleteReport(self_excluded=self_excluded)

    for raw_id in remaining:
        try:
            user_id = uuid.UUID(str(raw_id).strip())
        except ValueError:
            report.results.append(
                BulkItemResult(user_id=str(raw_id), success=False, message="Invalid user id")
            )
            continue

        result = delete_user(db, actor, user_id, context=context)
        report.results.append(
            BulkItemResult(user_id=str(user_id), success=result.ok, message=result.message)
        )

    logger.info(
        f"Bulk delete by {actor.email}: {report.success_count} deleted, "
        f"{report.failure_count} failed, self excluded: {self_excluded}"
    )
    if report.success_count:
        audit_service.record(
            db,
            actor=actor,
            action=AuditAction.USERS_BULK_DELETED,
            resource_type=AuditResourceType.USER,
            resource_id="bulk",
            details={
                "success_count": report.success_count,
                "failure_count": report.failure_count,
                "self_excluded": self_excluded,
            },
            context=context,
        )
    return report
