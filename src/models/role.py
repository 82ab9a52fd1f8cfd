import uuid as uuid_lib
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Index, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from src.models.permission import Permission
    from src.models.user import User


class Role(Base, TimestampMixin):
    """Model representing a role with its metadata and relationships.

    ``is_system`` is written once by the seeder and never derived from the name.
    """

    __tablename__ = "roles"

    id: Mapped[uuid_lib.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid_lib.uuid4,
    )
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    is_system: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    permissions: Mapped[list["Permission"]] = relationship(
        "Permission", secondary="role_permissions", order_by="Permission.code"
    )
    users: Mapped[list["User"]] = relationship(
        "User", back_populates="role", passive_deletes="all"
    )

    @property
    def permission_codes(self) -> set[str]:
        """Codes of every permission currently held by the role."""
        return {p.code for p in self.permissions}


# Role names are unique regardless of case.
Index("ix_roles_name_lower", func.lower(Role.name), unique=True)
