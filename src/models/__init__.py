# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Database models package."""

from src.models.audit_log import AuditLog
from src.models.base import Base, TimestampMixin
from src.models.enums import (
    AuditAction,
    AuditResourceType,
    AuthProvider,
    PermissionAction,
    UserStatusFilter,
)
from src.models.permission import Permission
from src.models.role import Role
from src.models.role_permission import role_permissions
from src.models.session import Session
from src.models.user import User

__all__ = [
    "AuditAction",
    "AuditLog",
    "AuditResourceType",
    "AuthProvider",
    "Base",
    "Permission",
    "PermissionAction",
    "Role",
    "Session",
    "TimestampMixin",
    "User",
    "UserStatusFilter",
    "role_permissions",
]
