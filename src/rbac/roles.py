from .permissions import ALL_CRUD_PERMISSION_CODES

# Lower-cased names reserved for the seeded system roles.
SYSTEM_ROLE_NAMES = frozenset({"admin", "user", "super admin", "employee"})

# The one system role whose description (never its name) may be edited.
DESCRIBABLE_SYSTEM_ROLE = "admin"

DEFAULT_USER_ROLE = "Employee"

# System roles are seeded once with is_system=True. Their permission sets only
# change through this file, never through the API.
DEFAULT_ROLES = [
    {
        "name": "Super Admin",
        "description": "Full access to every resource.",
        "permissions": ALL_CRUD_PERMISSION_CODES,
    },
    {
        "name": "Admin",
        "description": "Manages users, employees and sessions.",
        "permissions": [
            "users:create",
            "users:read",
            "users:update",
            "users:delete",
            "employees:create",
            "employees:read",
            "employees:update",
            "employees:delete",
            "roles:read",
            "sessions:read",
            "sessions:delete",
            "audit_logs:read",
        ],
    },
    {
        "name": "Employee",
        "description": "Read access to employee records.",
        "permissions": [
            "employees:read",
        ],
    },
    {
        "name": "User",
        "description": "Can only manage their own profile.",
        "permissions": [],
    },
]
