# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Audit log schemas."""
import datetime
import uuid
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class AuditLogResponse(BaseModel):
    """Schema for an audit log entry."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    actor_id: Optional[str] = None
    actor_email: Optional[str] = None
    actor_name: Optional[str] = None
    action: str
    resource_type: str
    resource_id: str
    resource_name: Optional[str] = None
    details: Optional[dict[str, Any]] = None
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime.datetime
