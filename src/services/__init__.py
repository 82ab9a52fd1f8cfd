"""Services package."""
from src.services import (
    audit_service,
    auth_service,
    rbac_service,
    session_service,
    user_service,
)

__all__ = [
    "audit_service",
    "auth_service",
    "rbac_service",
    "session_service",
    "user_service",
]
