# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Permission catalog model."""

import uuid as uuid_lib

from sqlalchemy import Enum as SAEnum
from sqlalchemy import String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, TimestampMixin
from src.models.enums import PermissionAction


class Permission(Base, TimestampMixin):
    """A single (resource, action) grant such as ``users:create``.

    Rows are seeded at start-up and never modified afterwards.
    """

    __tablename__ = "permissions"

    id: Mapped[uuid_lib.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid_lib.uuid4,
    )
    code: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    resource: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    action: Mapped[PermissionAction] = mapped_column(
        SAEnum(PermissionAction, native_enum=False, length=20), nullable=False
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("resource", "action", name="_permission_resource_action_uc"),
    )

    @property
    def is_manage(self) -> bool:
        """Whether this is the aggregate ``manage`` permission of its resource."""
        return self.action == PermissionAction.MANAGE

    def __repr__(self) -> str:
        return f"<Permission {self.code}>"
