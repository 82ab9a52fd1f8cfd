import logging

from sqlalchemy.orm import Session

from src.models import Permission, Role
from src.rbac.evaluator import is_reserved_role_name
from src.rbac.permissions import CORE_PERMISSIONS
from src.rbac.roles import DEFAULT_ROLES

from . import rbac_service

logger = logging.getLogger(__name__)


def seed_rbac_data(db: Session) -> None:
    """Seeds the database with the permission catalog and the system roles.

    This function is idempotent. Existing roles are left untouched, so a
    system role's permission set is only ever written here, on first run.
    @param db: SQLAlchemy Session object
    """
    # Seed permissions
    for perm_data in CORE_PERMISSIONS:
        rbac_service.register_permission(db, **perm_data)

    # Seed roles and role-permissions
    created = 0
    for role_data in DEFAULT_ROLES:
        role = rbac_service.get_role_by_name(db, role_data["name"])
        if role:
            continue

        permissions = (
            db.query(Permission)
            .filter(Permission.code.in_(role_data["permissions"]))
            .all()
        )
        role = Role(
            name=role_data["name"],
            is_system=is_reserved_role_name(role_data["name"]),
            description=role_data["description"],
            permissions=permissions,
        )
        db.add(role)
        created += 1
    db.commit()

    if created:
        logger.info(f"Seeded {created} system role(s)")
