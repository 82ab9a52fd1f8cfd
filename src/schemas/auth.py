# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Authentication schemas."""
from pydantic import BaseModel, EmailStr

from src.schemas.user import UserResponse


class LoginRequest(BaseModel):
    """Login credentials."""

    email: EmailStr
    password: str


class AuthResponse(BaseModel):
    """Authenticated user with effective permissions."""

    user: UserResponse
    permissions: list[str]
