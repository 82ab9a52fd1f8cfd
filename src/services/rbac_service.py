import logging
import uuid
from collections.abc import Iterable

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from src.models import AuditAction, AuditResourceType, Permission, Role, User
from src.models.enums import PermissionAction
from src.rbac import evaluator
from src.rbac.evaluator import ResourceRow
from src.rbac.permissions import ACTION_ORDER, permission_code
from src.rbac.result import Result
from src.services import audit_service
from src.services.audit_service import RequestContext

logger = logging.getLogger(__name__)


def list_permissions(db: Session) -> list[Permission]:
    """Get the whole catalog, sorted by resource then action."""
    permissions = db.query(Permission).all()
    return sorted(
        permissions,
        key=lambda p: (p.resource, ACTION_ORDER.index(PermissionAction(p.action))),
    )


def group_permissions(db: Session) -> dict[str, list[Permission]]:
    """Get the catalog grouped by resource for matrix display."""
    return evaluator.group_by_resource(list_permissions(db))


def register_permission(
    db: Session, resource: str, action: str, description: str | None = None
) -> Permission:
    """Register a new permission if it does not already exist."""
    code = permission_code(resource, action)
    permission = db.query(Permission).filter(Permission.code == code).first()
    if not permission:
        permission = Permission(
            code=code,
            resource=resource,
            action=PermissionAction(action),
            description=description,
        )
        db.add(permission)
        db.commit()
    return permission


def get_role(db: Session, role_id: uuid.UUID) -> Role | None:
    """Get a role by its ID."""
    return db.get(Role, role_id)


def get_role_by_name(db: Session, name: str) -> Role | None:
    """Get a role by its name, ignoring case."""
    return (
        db.query(Role).filter(func.lower(Role.name) == name.strip().lower()).first()
    )


def count_users_for_role(
    db: Session, role_id: uuid.UUID, include_deleted: bool = False
) -> int:
    """Count users assigned to a role.

    Soft-deleted users are skipped unless include_deleted is set.
    """
    query = db.query(func.count(User.id)).filter(User.role_id == role_id)
    if not include_deleted:
        query = query.filter(User.deleted_at.is_(None))
    return query.scalar() or 0


def list_roles_with_counts(db: Session) -> list[tuple[Role, int]]:
    """Get all roles with their number of (non-deleted) users."""
    counts = dict(
        db.query(User.role_id, func.count(User.id))
        .filter(User.deleted_at.is_(None))
        .group_by(User.role_id)
        .all()
    )
    roles = db.query(Role).order_by(Role.is_system.desc(), Role.name).all()
    return [(role, counts.get(role.id, 0)) for role in roles]


def role_stats(db: Session) -> dict[str, int]:
    """Count total, system and custom roles."""
    roles = db.query(Role).all()
    system_roles = sum(1 for role in roles if evaluator.is_system_role(role))
    return {
        "total": len(roles),
        "system_roles": system_roles,
        "custom_roles": len(roles) - system_roles,
    }


def create_role(
    db: Session,
    name: str,
    description: str | None = None,
    actor: User | None = None,
    context: RequestContext | None = None,
) -> Result:
    """Create a custom role with no permissions."""
    normalized_name = (name or "").strip()
    if not normalized_name:
        return Result.validation("Role name is required")
    if evaluator.is_reserved_role_name(normalized_name):
        return Result.validation(
            f'Role name "{normalized_name}" is reserved for a system role'
        )
    if get_role_by_name(db, normalized_name):
        return Result.conflict(f'Role with name "{normalized_name}" already exists')

    role = Role(
        name=normalized_name,
        description=(description or "").strip(),
        is_system=False,
    )
    db.add(role)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return Result.conflict(f'Role with name "{normalized_name}" already exists')
    db.refresh(role)
    logger.info(f"Created role {role.name}")

    audit_service.record(
        db,
        actor=actor,
        action=AuditAction.ROLE_CREATED,
        resource_type=AuditResourceType.ROLE,
        resource_id=role.id,
        resource_name=role.name,
        details={"description": role.description},
        context=context,
    )
    return Result.success(role)


def update_role(
    db: Session,
    role_id: uuid.UUID,
    name: str | None = None,
    description: str | None = None,
    actor: User | None = None,
    context: RequestContext | None = None,
) -> Result:
    """Rename or re-describe a role.

    System roles cannot be modified, except that the Admin role's description
    stays editable. Its name never is.
    """
    role = get_role(db, role_id)
    if not role:
        return Result.not_found("Role not found")

    new_name = name.strip() if name is not None else None
    renaming = new_name is not None and new_name != role.name

    if evaluator.is_system_role(role):
        if not evaluator.is_describable_system_role(role):
            return Result.forbidden("System roles cannot be modified")
        if renaming:
            return Result.forbidden(f'System role "{role.name}" cannot be renamed')

    if renaming:
        if not new_name:
            return Result.validation("Role name is required")
        if evaluator.is_reserved_role_name(new_name):
            return Result.validation(
                f'Role name "{new_name}" is reserved for a system role'
            )
        existing = get_role_by_name(db, new_name)
        if existing and existing.id != role.id:
            return Result.conflict(f'Role with name "{new_name}" already exists')

    before = {"name": role.name, "description": role.description}
    if renaming:
        role.name = new_name
    if description is not None:
        role.description = description.strip()
    after = {"name": role.name, "description": role.description}

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return Result.conflict(f'Role with name "{new_name}" already exists')
    db.refresh(role)

    changes = audit_service.diff_changes(before, after)
    if changes:
        audit_service.record(
            db,
            actor=actor,
            action=AuditAction.ROLE_UPDATED,
            resource_type=AuditResourceType.ROLE,
            resource_id=role.id,
            resource_name=role.name,
            details={"updated_fields": sorted(changes)},
            changes=changes,
            context=context,
        )
    return Result.success(role)


def delete_role(
    db: Session,
    role_id: uuid.UUID,
    actor: User | None = None,
    context: RequestContext | None = None,
) -> Result:
    """Delete a custom role that no user references.

    Soft-deleted users still count since they may be restored. The RESTRICT
    foreign key on users.role_id is the final word if a user is assigned
    between the count and the delete.
    """
    role = get_role(db, role_id)
    if not role:
        return Result.not_found("Role not found")
    if evaluator.is_system_role(role):
        return Result.forbidden("System roles cannot be deleted")

    user_count = count_users_for_role(db, role.id, include_deleted=True)
    if user_count > 0:
        return Result.conflict(
            f"Cannot delete role. {user_count} user(s) are assigned to this role. "
            "Please reassign users before deleting."
        )

    role_name = role.name
    description = role.description
    db.delete(role)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return Result.conflict(
            "Cannot delete role while users are assigned to it. "
            "Please reassign users before deleting."
        )
    logger.info(f"Deleted role {role_name}")

    audit_service.record(
        db,
        actor=actor,
        action=AuditAction.ROLE_DELETED,
        resource_type=AuditResourceType.ROLE,
        resource_id=role_id,
        resource_name=role_name,
        details={"description": description},
        context=context,
    )
    return Result.success()


def get_role_permissions(db: Session, role_id: uuid.UUID) -> set[uuid.UUID] | None:
    """Get the permission IDs held by a role, or None if the role is unknown."""
    role = get_role(db, role_id)
    if not role:
        return None
    return {p.id for p in role.permissions}


def set_role_permissions(
    db: Session,
    role_id: uuid.UUID,
    permission_ids: Iterable[uuid.UUID],
    actor: User | None = None,
    context: RequestContext | None = None,
) -> Result:
    """Replace a custom role's permission set in a single transaction."""
    role = get_role(db, role_id)
    if not role:
        return Result.not_found("Role not found")
    if evaluator.is_system_role(role):
        return Result.forbidden("System roles cannot be modified")

    unique_ids = list(dict.fromkeys(permission_ids))
    permissions = (
        db.query(Permission).filter(Permission.id.in_(unique_ids)).all()
        if unique_ids
        else []
    )
    if len(permissions) != len(unique_ids):
        return Result.validation("One or more permission IDs are invalid")

    manage = sorted(p.code for p in permissions if p.is_manage)
    if manage:
        return Result.validation(
            f"{', '.join(manage)} cannot be granted directly; "
            "select every action of the resource instead"
        )

    before = sorted(role.permission_codes)
    try:
        role.permissions = permissions
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(role)
    after = sorted(role.permission_codes)
    logger.info(f"Role {role.name} now holds {len(after)} permission(s)")

    if before != after:
        audit_service.record(
            db,
            actor=actor,
            action=AuditAction.ROLE_PERMISSIONS_UPDATED,
            resource_type=AuditResourceType.ROLE,
            resource_id=role.id,
            resource_name=role.name,
            details={
                "added": sorted(set(after) - set(before)),
                "removed": sorted(set(before) - set(after)),
            },
            changes={"permissions": {"old": before, "new": after}},
            context=context,
        )
    return Result.success(role)


def toggle_permission(
    db: Session,
    role_id: uuid.UUID,
    permission_id: uuid.UUID,
    enable: bool,
    actor: User | None = None,
    context: RequestContext | None = None,
) -> Result:
    """Switch one matrix cell on or off."""
    role = get_role(db, role_id)
    if not role:
        return Result.not_found("Role not found")
    if evaluator.is_system_role(role):
        return Result.forbidden("System roles cannot be modified")

    permission = db.get(Permission, permission_id)
    if not permission:
        return Result.not_found("Permission not found")
    if permission.is_manage:
        return Result.validation(
            f"{permission.code} cannot be granted directly; "
            "toggle the whole resource instead"
        )

    current = {p.id for p in role.permissions}
    if enable:
        new_ids = current | {permission.id}
    else:
        new_ids = current - {permission.id}
    return set_role_permissions(db, role.id, new_ids, actor=actor, context=context)


def toggle_resource_all(
    db: Session,
    role_id: uuid.UUID,
    resource: str,
    enable: bool,
    actor: User | None = None,
    context: RequestContext | None = None,
) -> Result:
    """Add or remove every CRUD permission of a resource at once."""
    role = get_role(db, role_id)
    if not role:
        return Result.not_found("Role not found")
    if evaluator.is_system_role(role):
        return Result.forbidden("System roles cannot be modified")

    catalog = list_permissions(db)
    if not evaluator.crud_permissions(catalog, resource):
        return Result.not_found(f'Unknown resource "{resource}"')

    new_codes = evaluator.toggle_resource(
        role.permission_codes, catalog, resource, enable
    )
    new_ids = [p.id for p in catalog if p.code in new_codes]
    return set_role_permissions(db, role.id, new_ids, actor=actor, context=context)


def is_resource_fully_selected(db: Session, role: Role, resource: str) -> bool:
    """Check whether the role holds every CRUD permission of a resource."""
    return evaluator.is_resource_fully_selected(
        role.permission_codes, list_permissions(db), resource
    )


def is_resource_partially_selected(db: Session, role: Role, resource: str) -> bool:
    """Check whether the role holds some, but not all, CRUD permissions of a resource."""
    return evaluator.is_resource_partially_selected(
        role.permission_codes, list_permissions(db), resource
    )


def role_matrix(db: Session, role: Role) -> list[ResourceRow]:
    """Per-resource checkbox state of a role."""
    return evaluator.build_matrix(role.permission_codes, list_permissions(db))


def get_user_permissions(db: Session, user: User) -> set[str]:
    """Get the effective permission codes of a user.

    Includes ``<resource>:manage`` for every resource whose CRUD actions are
    all held. Inactive and soft-deleted users have none.
    """
    if not user.is_active or user.deleted_at is not None:
        return set()

    catalog = list_permissions(db)
    held = user.role.permission_codes
    effective = set(held)
    for permission in catalog:
        if permission.is_manage and evaluator.is_resource_fully_selected(
            held, catalog, permission.resource
        ):
            effective.add(permission.code)
    return effective


def user_has_permission(db: Session, user: User, code: str) -> bool:
    """Check if a user has a specific permission."""
    if not user.is_active or user.deleted_at is not None:
        return False
    return evaluator.grants(user.role.permission_codes, list_permissions(db), code)
