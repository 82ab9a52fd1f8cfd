# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Tests for auth_service."""

from datetime import datetime

from src.rbac.result import ErrorKind
from src.schemas.user import UserProfileUpdate
from src.security import verify_password
from src.services import auth_service


def test_authenticate_success_and_failures(seeded_db, make_user):
    user = make_user("auth@example.com")
    assert auth_service.authenticate(seeded_db, "AUTH@example.com", "Secret123!") == user
    assert auth_service.authenticate(seeded_db, "auth@example.com", "wrong") is None
    assert auth_service.authenticate(seeded_db, "nobody@example.com", "Secret123!") is None

    user.is_active = False
    seeded_db.commit()
    assert auth_service.authenticate(seeded_db, "auth@example.com", "Secret123!") is None


def test_soft_deleted_user_cannot_sign_in(seeded_db, make_user):
    user = make_user("gone@example.com")
    user.deleted_at = datetime.utcnow()
    seeded_db.commit()
    assert auth_service.authenticate(seeded_db, "gone@example.com", "Secret123!") is None


def test_update_profile_name(seeded_db, employee_user):
    result = auth_service.update_profile(
        seeded_db, employee_user, UserProfileUpdate(first_name="Evelyn", last_name="")
    )
    assert result.ok
    assert result.value.first_name == "Evelyn"
    assert result.value.last_name is None


def test_update_profile_password_requires_current(seeded_db, employee_user):
    result = auth_service.update_profile(
        seeded_db, employee_user, UserProfileUpdate(new_password="newpass1")
    )
    assert result.kind == ErrorKind.VALIDATION

    result = auth_service.update_profile(
        seeded_db,
        employee_user,
        UserProfileUpdate(current_password="wrong", new_password="newpass1"),
    )
    assert result.kind == ErrorKind.VALIDATION

    result = auth_service.update_profile(
        seeded_db,
        employee_user,
        UserProfileUpdate(current_password="Secret123!", new_password="newpass1"),
    )
    assert result.ok
    assert verify_password("newpass1", employee_user.hashed_password)
