# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Append-only audit trail for administrative actions."""

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.models import AuditAction, AuditLog, AuditResourceType, User

logger = logging.getLogger(__name__)


@dataclass
class RequestContext:
    """Client details of the request that triggered an action."""

    ip: str | None = None
    user_agent: str | None = None


def diff_changes(before: dict[str, Any], after: dict[str, Any]) -> dict[str, Any]:
    """Field-level old/new pairs for every key whose value changed."""
    changes = {}
    for key, new_value in after.items():
        old_value = before.get(key)
        if old_value != new_value:
            changes[key] = {"old": old_value, "new": new_value}
    return changes


def record(
    db: Session,
    *,
    actor: User | None,
    action: AuditAction,
    resource_type: AuditResourceType,
    resource_id: Any,
    resource_name: str | None = None,
    details: dict[str, Any] | None = None,
    changes: dict[str, Any] | None = None,
    context: RequestContext | None = None,
) -> AuditLog | None:
    """Append an audit entry.

    Must be called after the audited change is committed. Failures are logged
    and rolled back but never raised, so auditing cannot undo or block the
    action itself.
    """
    payload = dict(details or {})
    if changes:
        payload["changes"] = changes
    context = context or RequestContext()

    try:
        entry = AuditLog(
            actor_id=str(actor.id) if actor else None,
            actor_email=actor.email if actor else None,
            actor_name=(actor.full_name or None) if actor else None,
            action=action.value,
            resource_type=resource_type.value,
            resource_id=str(resource_id),
            resource_name=resource_name,
            details=payload or None,
            ip=context.ip,
            user_agent=context.user_agent,
        )
        db.add(entry)
        db.commit()
        return entry
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Failed to write audit log for {action.value}: {e}")
        return None


def list_audit_logs(
    db: Session,
    page: int = 1,
    limit: int = 20,
    action: str | None = None,
    resource_type: AuditResourceType | None = None,
    actor_email: str | None = None,
) -> tuple[list[AuditLog], int]:
    """Newest-first page of audit entries plus the total matching count."""
    query = db.query(AuditLog)
    if action:
        query = query.filter(AuditLog.action == action)
    if resource_type:
        query = query.filter(AuditLog.resource_type == resource_type.value)
    if actor_email:
        query = query.filter(AuditLog.actor_email.ilike(f"%{actor_email}%"))

    total = query.count()
    entries = (
        query.order_by(AuditLog.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return entries, total
