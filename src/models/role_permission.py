from sqlalchemy import Column, ForeignKey, PrimaryKeyConstraint, Table, Uuid

from src.models.base import Base

# Association table mapping roles to their granted permissions.
role_permissions = Table(
    "role_permissions",
    Base.metadata,
    Column(
        "role_id",
        Uuid(as_uuid=True),
        ForeignKey("roles.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "permission_id",
        Uuid(as_uuid=True),
        ForeignKey("permissions.id", ondelete="CASCADE"),
        nullable=False,
    ),
    PrimaryKeyConstraint("role_id", "permission_id"),
)
