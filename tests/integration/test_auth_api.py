# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Integration tests for authentication endpoints."""

import asyncio

from src.config import settings
from src.services import auth_service

LOGIN_URL = "/api/v1/auth/login"
ME_URL = "/api/v1/auth/me"


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


class TestLogin:
    def test_login_sets_session_cookie(self, client, admin_user):
        response = client.post(
            LOGIN_URL, json={"email": "admin@example.com", "password": "Secret123!"}
        )
        assert response.status_code == 200
        assert settings.session_cookie_name in response.cookies
        data = response.json()
        assert data["user"]["email"] == "admin@example.com"
        assert data["user"]["last_login"] is not None
        assert "users:manage" in data["permissions"]
        assert data["permissions"] == sorted(data["permissions"])

    def test_wrong_password(self, client, admin_user):
        response = client.post(
            LOGIN_URL, json={"email": "admin@example.com", "password": "nope"}
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid credentials"

    def test_inactive_user_cannot_login(self, client, make_user):
        make_user("idle@example.com", is_active=False)
        response = client.post(
            LOGIN_URL, json={"email": "idle@example.com", "password": "Secret123!"}
        )
        assert response.status_code == 401

    def test_password_check_runs_off_the_event_loop(
        self, client, admin_user, monkeypatch
    ):
        calls = []
        authenticate = auth_service.authenticate

        def recording_authenticate(*args, **kwargs):
            try:
                asyncio.get_running_loop()
                calls.append("event loop")
            except RuntimeError:
                calls.append("worker thread")
            return authenticate(*args, **kwargs)

        monkeypatch.setattr(auth_service, "authenticate", recording_authenticate)
        response = client.post(
            LOGIN_URL, json={"email": "admin@example.com", "password": "Secret123!"}
        )
        assert response.status_code == 200
        assert calls == ["worker thread"]


class TestCurrentUser:
    def test_me_requires_session(self, client):
        assert client.get(ME_URL).status_code == 401

    def test_me(self, employee_client):
        response = employee_client.get(ME_URL)
        assert response.status_code == 200
        data = response.json()
        assert data["user"]["role_name"] == "Employee"
        assert data["permissions"] == ["employees:read"]

    def test_update_profile(self, employee_client):
        response = employee_client.put(ME_URL, json={"first_name": "Evelyn"})
        assert response.status_code == 200
        assert response.json()["user"]["first_name"] == "Evelyn"

    def test_change_password_needs_current(self, employee_client):
        response = employee_client.put(ME_URL, json={"new_password": "another1"})
        assert response.status_code == 400

    def test_deactivated_user_loses_access(
        self, employee_client, employee_user, db_session
    ):
        employee_user.is_active = False
        db_session.commit()
        response = employee_client.get(ME_URL)
        assert response.status_code == 401
        assert response.json()["detail"] == "User not found or inactive"


def test_logout_invalidates_session(employee_client):
    response = employee_client.post("/api/v1/auth/logout")
    assert response.status_code == 204
    assert employee_client.get(ME_URL).status_code == 401
