from src.models.enums import PermissionAction

# Display order of actions inside a resource row.
ACTION_ORDER = [
    PermissionAction.READ,
    PermissionAction.CREATE,
    PermissionAction.UPDATE,
    PermissionAction.DELETE,
    PermissionAction.MANAGE,
]

CRUD_ACTIONS = frozenset(
    {
        PermissionAction.CREATE,
        PermissionAction.READ,
        PermissionAction.UPDATE,
        PermissionAction.DELETE,
    }
)


def permission_code(resource: str, action: PermissionAction | str) -> str:
    """Build the ``resource:action`` code of a permission."""
    return f"{resource}:{PermissionAction(action).value}"


def parse_permission_code(code: str) -> tuple[str, PermissionAction]:
    """Split a ``resource:action`` code. Raises ValueError when malformed."""
    resource, sep, action = code.partition(":")
    if not sep or not resource:
        raise ValueError(f"Invalid permission code: {code!r}")
    return resource, PermissionAction(action)


CORE_PERMISSIONS = [
    # User management
    {"resource": "users", "action": "create", "description": "Create users"},
    {"resource": "users", "action": "read", "description": "Read users"},
    {"resource": "users", "action": "update", "description": "Update users"},
    {"resource": "users", "action": "delete", "description": "Delete users"},
    {"resource": "users", "action": "manage", "description": "Manage all users"},
    # Employee management
    {"resource": "employees", "action": "create", "description": "Create employees"},
    {"resource": "employees", "action": "read", "description": "Read employees"},
    {"resource": "employees", "action": "update", "description": "Update employees"},
    {"resource": "employees", "action": "delete", "description": "Delete employees"},
    # Role management
    {"resource": "roles", "action": "create", "description": "Create roles"},
    {"resource": "roles", "action": "read", "description": "Read roles"},
    {"resource": "roles", "action": "update", "description": "Update roles"},
    {"resource": "roles", "action": "delete", "description": "Delete roles"},
    {"resource": "roles", "action": "manage", "description": "Manage all roles"},
    # Sessions
    {"resource": "sessions", "action": "read", "description": "View user sessions"},
    {
        "resource": "sessions",
        "action": "delete",
        "description": "Terminate user sessions",
    },
    # Audit trail
    {"resource": "audit_logs", "action": "read", "description": "View audit logs"},
    # Billing
    {
        "resource": "billing",
        "action": "read",
        "description": "View billing information",
    },
    {
        "resource": "billing",
        "action": "update",
        "description": "Update billing settings",
    },
    # System
    {"resource": "system", "action": "read", "description": "View system logs"},
    {
        "resource": "system",
        "action": "manage",
        "description": "Manage system settings",
    },
]

ALL_CRUD_PERMISSION_CODES = [
    permission_code(p["resource"], p["action"])
    for p in CORE_PERMISSIONS
    if p["action"] != PermissionAction.MANAGE.value
]
