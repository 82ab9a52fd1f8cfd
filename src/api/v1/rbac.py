# src/api/v1/rbac.py
import uuid

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from src.api.deps import (
    get_current_user,
    get_db,
    request_context,
    require_permission,
    unwrap,
)
from src.models import Role, User
from src.schemas.rbac import (
    PermissionGroupSchema,
    PermissionSchema,
    PermissionToggleSchema,
    ResourceRowSchema,
    RoleCreateSchema,
    RoleMatrixSchema,
    RolePermissionsUpdateSchema,
    RoleSchema,
    RoleStatsSchema,
    RoleUpdateSchema,
    RoleWithPermissionsSchema,
    UserPermissionsSchema,
)
from src.services import rbac_service

router = APIRouter()


def _role_schema(role: Role, user_count: int) -> RoleSchema:
    return RoleSchema(
        id=role.id,
        name=role.name,
        is_system=role.is_system,
        description=role.description,
        user_count=user_count,
    )


def _role_with_permissions(db: Session, role: Role) -> RoleWithPermissionsSchema:
    return RoleWithPermissionsSchema(
        **_role_schema(role, rbac_service.count_users_for_role(db, role.id)).model_dump(),
        permissions=[PermissionSchema.model_validate(p) for p in role.permissions],
    )


def _get_role_or_404(db: Session, role_id: uuid.UUID) -> Role:
    role = rbac_service.get_role(db, role_id)
    if not role:
        raise HTTPException(status_code=404, detail="Role not found")
    return role


@router.get("/rbac/permissions", response_model=list[PermissionGroupSchema], summary="List all available permissions")
def list_permissions(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("roles:read")),
):
    """Retrieve the permission catalog, grouped by resource.
    Requires roles:read permission.
    """
    return [
        PermissionGroupSchema(
            resource=resource,
            permissions=[PermissionSchema.model_validate(p) for p in permissions],
        )
        for resource, permissions in rbac_service.group_permissions(db).items()
    ]

@router.get("/rbac/roles", response_model=list[RoleSchema], summary="List all roles")
def list_roles(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("roles:read")),
):
    """Retrieve all roles with the number of users holding each.
    Requires roles:read permission.
    """
    return [_role_schema(role, count) for role, count in rbac_service.list_roles_with_counts(db)]

@router.get("/rbac/roles/stats", response_model=RoleStatsSchema, summary="Count system and custom roles")
def get_role_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("roles:read")),
):
    """Requires roles:read permission."""
    return RoleStatsSchema(**rbac_service.role_stats(db))

@router.get("/rbac/roles/{role_id}", response_model=RoleWithPermissionsSchema, summary="Get a role by ID with its permissions")
def get_role(
    role_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("roles:read")),
):
    """Retrieve a specific role by its ID, including all associated permissions.
    Requires roles:read permission.
    """
    return _role_with_permissions(db, _get_role_or_404(db, role_id))

@router.get("/rbac/roles/{role_id}/matrix", response_model=RoleMatrixSchema, summary="Get the permission matrix of a role")
def get_role_matrix(
    role_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("roles:read")),
):
    """Retrieve the per-resource checkbox state of a role.
    Requires roles:read permission.
    """
    role = _get_role_or_404(db, role_id)
    return RoleMatrixSchema(
        role=_role_schema(role, rbac_service.count_users_for_role(db, role.id)),
        rows=[ResourceRowSchema.model_validate(row) for row in rbac_service.role_matrix(db, role)],
    )


@router.post("/rbac/roles", response_model=RoleSchema, status_code=status.HTTP_201_CREATED, summary="Create a new custom role")
def create_role(
    role_in: RoleCreateSchema,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("roles:create")),
):
    """Create a new custom role without permissions.
    Requires roles:create permission.
    """
    role = unwrap(
        rbac_service.create_role(
            db,
            role_in.name,
            role_in.description,
            actor=current_user,
            context=request_context(request),
        )
    )
    return _role_schema(role, 0)

@router.put("/rbac/roles/{role_id}", response_model=RoleSchema, summary="Update an existing role")
def update_role(
    role_id: uuid.UUID,
    role_in: RoleUpdateSchema,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("roles:update")),
):
    """Update a custom role's name and description.
    System roles cannot be modified, except for the Admin role's description.
    Requires roles:update permission.
    """
    role = unwrap(
        rbac_service.update_role(
            db,
            role_id,
            name=role_in.name,
            description=role_in.description,
            actor=current_user,
            context=request_context(request),
        )
    )
    return _role_schema(role, rbac_service.count_users_for_role(db, role.id))

@router.delete("/rbac/roles/{role_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a custom role")
def delete_role(
    role_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("roles:delete")),
):
    """Delete a custom role that no user holds. System roles cannot be deleted.
    Requires roles:delete permission.
    """
    unwrap(
        rbac_service.delete_role(
            db, role_id, actor=current_user, context=request_context(request)
        )
    )
    return

@router.put("/rbac/roles/{role_id}/permissions", response_model=RoleWithPermissionsSchema, summary="Replace a role's permissions")
def set_role_permissions(
    role_id: uuid.UUID,
    data: RolePermissionsUpdateSchema,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("roles:update")),
):
    """Replace the full permission set of a custom role.
    Requires roles:update permission.
    """
    role = unwrap(
        rbac_service.set_role_permissions(
            db,
            role_id,
            data.permission_ids,
            actor=current_user,
            context=request_context(request),
        )
    )
    return _role_with_permissions(db, role)

@router.patch("/rbac/roles/{role_id}/permissions/{permission_id}", response_model=RoleWithPermissionsSchema, summary="Toggle one permission of a role")
def toggle_permission(
    role_id: uuid.UUID,
    permission_id: uuid.UUID,
    data: PermissionToggleSchema,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("roles:update")),
):
    """Switch a single matrix cell on or off.
    Requires roles:update permission.
    """
    role = unwrap(
        rbac_service.toggle_permission(
            db,
            role_id,
            permission_id,
            data.enable,
            actor=current_user,
            context=request_context(request),
        )
    )
    return _role_with_permissions(db, role)

@router.patch("/rbac/roles/{role_id}/resources/{resource}", response_model=RoleWithPermissionsSchema, summary="Toggle every action of a resource")
def toggle_resource(
    role_id: uuid.UUID,
    resource: str,
    data: PermissionToggleSchema,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("roles:update")),
):
    """Grant or revoke all create/read/update/delete permissions of a resource.
    Requires roles:update permission.
    """
    role = unwrap(
        rbac_service.toggle_resource_all(
            db,
            role_id,
            resource,
            data.enable,
            actor=current_user,
            context=request_context(request),
        )
    )
    return _role_with_permissions(db, role)

@router.get("/rbac/me/permissions", response_model=UserPermissionsSchema, summary="Get current user's effective permissions")
def get_my_permissions(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Retrieve the current authenticated user's effective permissions,
    including the manage permission of every fully granted resource.
    """
    return UserPermissionsSchema(
        role_name=current_user.role_name,
        permissions=sorted(rbac_service.get_user_permissions(db, current_user)),
    )
