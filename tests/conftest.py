# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Set test environment before importing app
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["GEOLOCATION_ENABLED"] = "false"

from src.database import get_db
from src.main import app
from src.models import User
from src.models.base import Base
from src.security import get_password_hash
from src.services import rbac_service
from src.services.rbac_seed_service import seed_rbac_data

# Test database setup
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

DEFAULT_PASSWORD = "Secret123!"


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def seeded_db(db_session):
    """Database with the permission catalog and system roles in place."""
    seed_rbac_data(db_session)
    return db_session


@pytest.fixture(scope="function")
def client(db_session):
    """Create a test client with database override."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _make_user(
    db_session,
    email: str,
    role_name: str = "Employee",
    password: str = DEFAULT_PASSWORD,
    **fields,
) -> User:
    """Helper to create a persisted user holding the named role."""
    role = rbac_service.get_role_by_name(db_session, role_name)
    assert role is not None, f"role {role_name} missing, seed first"
    user = User(
        email=email,
        hashed_password=get_password_hash(password),
        role=role,
        is_active=fields.pop("is_active", True),
        is_email_verified=fields.pop("is_email_verified", True),
        **fields,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


def _login(client, email: str, password: str = DEFAULT_PASSWORD):
    """Log the test client in; the session cookie stays on the client."""
    response = client.post(
        "/api/v1/auth/login", json={"email": email, "password": password}
    )
    assert response.status_code == 200, response.text
    return response


@pytest.fixture
def super_admin_user(seeded_db) -> User:
    """User holding the Super Admin system role."""
    return _make_user(
        seeded_db, "root@example.com", "Super Admin", first_name="Root", last_name="Admin"
    )


@pytest.fixture
def admin_user(seeded_db) -> User:
    """User holding the Admin system role."""
    return _make_user(
        seeded_db, "admin@example.com", "Admin", first_name="Ada", last_name="Admin"
    )


@pytest.fixture
def employee_user(seeded_db) -> User:
    """User holding the Employee system role."""
    return _make_user(
        seeded_db, "employee@example.com", "Employee", first_name="Eve", last_name="Worker"
    )


@pytest.fixture
def super_admin_client(client, super_admin_user):
    """Create an authenticated Super Admin test client."""
    _login(client, super_admin_user.email)
    return client


@pytest.fixture
def admin_client(client, admin_user):
    """Create an authenticated Admin test client."""
    _login(client, admin_user.email)
    return client


@pytest.fixture
def employee_client(client, employee_user):
    """Create an authenticated Employee test client."""
    _login(client, employee_user.email)
    return client


@pytest.fixture
def make_user(seeded_db):
    """Factory fixture creating users with a given role."""

    def factory(email: str, role_name: str = "Employee", **fields) -> User:
        return _make_user(seeded_db, email, role_name, **fields)

    return factory


@pytest.fixture
def login(client):
    """Log the shared test client in as the given user."""

    def do_login(email: str, password: str = DEFAULT_PASSWORD):
        return _login(client, email, password)

    return do_login
