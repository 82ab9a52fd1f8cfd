# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""User schemas."""
import datetime
import uuid
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field

from src.models.enums import AuthProvider, UserStatusFilter

SortField = Literal["created_at", "email", "first_name", "last_name", "last_login"]


class UserCreate(BaseModel):
    """Schema for creating a user.

    The password may be omitted when the chosen role gets a generated one.
    """

    email: EmailStr
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    password: Optional[str] = Field(None, min_length=6)
    role_name: Optional[str] = None


class UserUpdate(BaseModel):
    """Schema for updating a user (admin use)."""

    email: Optional[EmailStr] = None
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    password: Optional[str] = Field(None, min_length=6)
    role_name: Optional[str] = None
    is_active: Optional[bool] = None
    is_email_verified: Optional[bool] = None


class UserProfileUpdate(BaseModel):
    """Schema for updating user's own profile."""

    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    current_password: Optional[str] = None
    new_password: Optional[str] = Field(None, min_length=6)


class UserStatusUpdate(BaseModel):
    """Activate or deactivate a user."""

    is_active: bool


class UserRoleAssignment(BaseModel):
    """Schema for assigning a role to a user."""

    role_name: str


class UserListFilters(BaseModel):
    """Query filters for the user listing; all of them AND together."""

    search: Optional[str] = None
    role: Optional[str] = None
    status: UserStatusFilter = UserStatusFilter.ALL
    provider: Optional[AuthProvider] = None
    sort_by: SortField = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"


class UserResponse(BaseModel):
    """Schema for user response."""

    id: uuid.UUID
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role_name: str
    is_active: bool
    is_email_verified: bool
    provider: AuthProvider
    last_login: Optional[datetime.datetime] = None
    deleted_at: Optional[datetime.datetime] = None
    created_at: datetime.datetime
    updated_at: datetime.datetime

    model_config = {"from_attributes": True}


class UserCreateResponse(BaseModel):
    """Created user plus the one-off credential, when one was generated."""

    user: UserResponse
    requires_verification: bool
    temporary_password: Optional[str] = None


class UserStatsResponse(BaseModel):
    """User counters; soft-deleted users only appear in ``deleted``."""

    total: int
    active: int
    inactive: int
    unverified: int
    deleted: int


class BulkDeleteRequest(BaseModel):
    """Batch of user ids to soft-delete."""

    user_ids: list[str] = Field(..., min_length=1)


class BulkDeleteItem(BaseModel):
    """Outcome for one id of a bulk delete."""

    user_id: str
    success: bool
    message: Optional[str] = None


class BulkDeleteResponse(BaseModel):
    """Per-item report of a bulk delete."""

    success_count: int
    failure_count: int
    errors: list[BulkDeleteItem]
    results: list[BulkDeleteItem]
    self_excluded: bool
