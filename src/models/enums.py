# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Enumeration types for database models."""

from enum import Enum


class PermissionAction(str, Enum):
    """Action half of a (resource, action) permission.

    MANAGE is an aggregate meaning "every CRUD action on the resource".
    """

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    MANAGE = "manage"


class AuthProvider(str, Enum):
    """Where a user's credentials come from."""

    LOCAL = "local"
    GOOGLE = "google"


class UserStatusFilter(str, Enum):
    """Status filter for user listings.

    ALL and every other value except DELETED exclude soft-deleted users.
    """

    ALL = "all"
    ACTIVE = "active"
    INACTIVE = "inactive"
    VERIFIED = "verified"
    UNVERIFIED = "unverified"
    DELETED = "deleted"


class AuditResourceType(str, Enum):
    """Kind of entity an audit entry refers to."""

    USER = "user"
    ROLE = "role"
    SESSION = "session"
    AUTH = "auth"
    SYSTEM = "system"


class AuditAction(str, Enum):
    """Audit log action names."""

    USER_CREATED = "USER_CREATED"
    USER_UPDATED = "USER_UPDATED"
    USER_PROMOTED = "USER_PROMOTED"
    USER_ACTIVATED = "USER_ACTIVATED"
    USER_DEACTIVATED = "USER_DEACTIVATED"
    USER_DELETED = "USER_DELETED"
    USER_RESTORED = "USER_RESTORED"
    USERS_BULK_DELETED = "USERS_BULK_DELETED"
    ROLE_CREATED = "ROLE_CREATED"
    ROLE_UPDATED = "ROLE_UPDATED"
    ROLE_DELETED = "ROLE_DELETED"
    ROLE_PERMISSIONS_UPDATED = "ROLE_PERMISSIONS_UPDATED"
    SESSION_TERMINATED = "SESSION_TERMINATED"
    SESSIONS_TERMINATED = "SESSIONS_TERMINATED"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
