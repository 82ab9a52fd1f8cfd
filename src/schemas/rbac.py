import uuid

from pydantic import BaseModel, ConfigDict, Field

from src.models.enums import PermissionAction


class PermissionSchema(BaseModel):
    """Schema representing a permission."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    code: str
    resource: str
    action: PermissionAction
    description: str | None


class PermissionGroupSchema(BaseModel):
    """Permissions of one resource, in display order."""

    resource: str
    permissions: list[PermissionSchema]


class RoleSchema(BaseModel):
    """Schema representing a role."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    is_system: bool
    description: str | None
    user_count: int = 0


class RoleWithPermissionsSchema(RoleSchema):
    """Schema representing a role along with its permissions."""

    permissions: list[PermissionSchema]


class RoleCreateSchema(BaseModel):
    """Schema for creating a new role."""

    name: str = Field(..., max_length=100)
    description: str | None = None


class RoleUpdateSchema(BaseModel):
    """Schema for updating a role."""

    name: str | None = Field(None, max_length=100)
    description: str | None = None


class RolePermissionsUpdateSchema(BaseModel):
    """Full replacement of a role's permission set."""

    permission_ids: list[uuid.UUID]


class PermissionToggleSchema(BaseModel):
    """Turn a single permission or a whole resource on or off."""

    enable: bool


class ResourceRowSchema(BaseModel):
    """One resource row of the permission matrix."""

    model_config = ConfigDict(from_attributes=True)

    resource: str
    actions: dict[str, bool]
    fully_selected: bool
    partially_selected: bool


class RoleMatrixSchema(BaseModel):
    """Checkbox state of every resource for a role."""

    role: RoleSchema
    rows: list[ResourceRowSchema]


class RoleStatsSchema(BaseModel):
    """Role counters for the roles overview."""

    total: int
    system_roles: int
    custom_roles: int


class UserPermissionsSchema(BaseModel):
    """Schema representing a user's permissions."""

    role_name: str
    permissions: list[str]
