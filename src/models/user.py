# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""User model for authentication."""

from __future__ import annotations

import uuid as uuid_lib
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Uuid
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, TimestampMixin
from src.models.enums import AuthProvider

if TYPE_CHECKING:
    from src.models.role import Role
    from src.models.session import Session


class User(Base, TimestampMixin):
    """User model for authentication and authorization.

    Every user holds exactly one role. The foreign key is RESTRICT so the
    database refuses to delete a role that is still referenced.
    """

    __tablename__ = "users"

    id: Mapped[uuid_lib.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid_lib.uuid4,
    )
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    role_id: Mapped[uuid_lib.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("roles.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_email_verified: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    provider: Mapped[AuthProvider] = mapped_column(
        SAEnum(AuthProvider, native_enum=False, length=20),
        default=AuthProvider.LOCAL,
        nullable=False,
    )
    created_by_id: Mapped[uuid_lib.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    last_login: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True, index=True
    )

    # Relationships
    role: Mapped[Role] = relationship("Role", back_populates="users")
    sessions: Mapped[list[Session]] = relationship(
        "Session",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    @property
    def role_name(self) -> str:
        """Name of the assigned role."""
        return self.role.name

    @property
    def full_name(self) -> str:
        """First and last name joined, empty when neither is set."""
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @property
    def display_name(self) -> str:
        """Full name, falling back to the e-mail address."""
        return self.full_name or self.email

    @property
    def is_deleted(self) -> bool:
        """Whether the user has been soft-deleted."""
        return self.deleted_at is not None
