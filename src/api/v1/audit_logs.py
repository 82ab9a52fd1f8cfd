# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Audit log API endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from src.api.deps import get_db, require_permission
from src.models import AuditResourceType, User
from src.schemas.audit import AuditLogResponse
from src.schemas.common import PaginatedResponse, PaginationMeta
from src.services import audit_service

router = APIRouter()


@router.get("", response_model=PaginatedResponse[AuditLogResponse])
def list_audit_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    action: str | None = None,
    resource_type: AuditResourceType | None = None,
    actor_email: str | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("audit_logs:read")),
) -> PaginatedResponse[AuditLogResponse]:
    """List audit entries, newest first."""
    entries, total = audit_service.list_audit_logs(
        db,
        page=page,
        limit=limit,
        action=action,
        resource_type=resource_type,
        actor_email=actor_email,
    )
    return PaginatedResponse[AuditLogResponse](
        data=[AuditLogResponse.model_validate(e) for e in entries],
        meta=PaginationMeta.build(total, page, limit),
    )
