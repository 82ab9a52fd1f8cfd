"""Pydantic schemas package."""
from src.schemas.audit import AuditLogResponse
from src.schemas.auth import AuthResponse, LoginRequest
from src.schemas.common import (
    HealthResponse,
    PaginatedResponse,
    PaginationMeta,
)
from src.schemas.session import (
    SessionLocation,
    SessionResponse,
    SessionsTerminatedResponse,
)
from src.schemas.user import (
    BulkDeleteRequest,
    BulkDeleteResponse,
    UserCreate,
    UserCreateResponse,
    UserResponse,
    UserUpdate,
)

__all__ = [
    # Audit
    "AuditLogResponse",
    # Auth
    "LoginRequest",
    "AuthResponse",
    # Common
    "PaginatedResponse",
    "PaginationMeta",
    "HealthResponse",
    # Session
    "SessionLocation",
    "SessionResponse",
    "SessionsTerminatedResponse",
    # User
    "BulkDeleteRequest",
    "BulkDeleteResponse",
    "UserCreate",
    "UserCreateResponse",
    "UserUpdate",
    "UserResponse",
]
