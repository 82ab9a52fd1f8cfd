"""Tests for user_service."""

import uuid
from types import SimpleNamespace

import pytest

from src.models import AuditLog, UserStatusFilter
from src.rbac.result import ErrorKind
from src.schemas.user import UserCreate, UserListFilters, UserUpdate
from src.security import verify_password
from src.services import rbac_service, user_service


def audit_actions(db):
    return [e.action for e in db.query(AuditLog).order_by(AuditLog.created_at).all()]


class TestCreateUser:
    def test_default_role_requires_password(self, seeded_db, admin_user):
        result = user_service.create_user(
            seeded_db, UserCreate(email="new@example.com"), actor=admin_user
        )
        assert result.kind == ErrorKind.VALIDATION

    def test_create_with_password(self, seeded_db, admin_user):
        result = user_service.create_user(
            seeded_db,
            UserCreate(email="New@Example.com", password="hunter22", first_name="New"),
            actor=admin_user,
        )
        assert result.ok
        created = result.value
        assert created.user.email == "new@example.com"
        assert created.user.role_name == "Employee"
        assert created.user.created_by_id == admin_user.id
        assert created.requires_verification is False
        assert created.temporary_password is None
        assert verify_password("hunter22", created.user.hashed_password)
        assert "USER_CREATED" in audit_actions(seeded_db)

    def test_privileged_role_gets_temporary_password(self, seeded_db, admin_user):
        result = user_service.create_user(
            seeded_db, UserCreate(email="boss@example.com", role_name="admin"), actor=admin_user
        )
        assert result.ok
        created = result.value
        assert created.requires_verification is True
        assert len(created.temporary_password) == 16
        assert verify_password(created.temporary_password, created.user.hashed_password)
        assert created.user.is_email_verified is False

    def test_duplicate_email_is_conflict(self, seeded_db, admin_user):
        result = user_service.create_user(
            seeded_db, UserCreate(email="ADMIN@example.com", password="hunter22")
        )
        assert result.kind == ErrorKind.CONFLICT

    def test_unknown_role_is_not_found(self, seeded_db):
        result = user_service.create_user(
            seeded_db,
            UserCreate(email="x@example.com", password="hunter22", role_name="Pilot"),
        )
        assert result.kind == ErrorKind.NOT_FOUND


class TestSelfProtection:
    def test_cannot_edit_self(self, seeded_db, admin_user):
        result = user_service.update_user(
            seeded_db, admin_user, admin_user.id, UserUpdate(first_name="Me")
        )
        assert result.kind == ErrorKind.FORBIDDEN
        assert result.message == "You cannot edit your own account"

    def test_cannot_deactivate_self_with_string_id(self, seeded_db, admin_user):
        result = user_service.set_user_active(
            seeded_db, admin_user, str(admin_user.id).upper(), False
        )
        assert result.kind == ErrorKind.FORBIDDEN
        seeded_db.refresh(admin_user)
        assert admin_user.is_active is True

    def test_cannot_delete_self(self, seeded_db, admin_user):
        result = user_service.delete_user(seeded_db, admin_user, admin_user.id)
        assert result.kind == ErrorKind.FORBIDDEN
        assert admin_user.deleted_at is None

    def test_cannot_change_own_role(self, seeded_db, admin_user):
        result = user_service.assign_role(seeded_db, admin_user, admin_user.id, "User")
        assert result.kind == ErrorKind.FORBIDDEN
        assert admin_user.role_name == "Admin"

    def test_self_check_precedes_existence_check(self, seeded_db):
        actor = SimpleNamespace(id=uuid.uuid4(), email="ghost@example.com")
        result = user_service.delete_user(seeded_db, actor, actor.id)
        assert result.kind == ErrorKind.FORBIDDEN


class TestUpdateUser:
    def test_partial_update_with_diff(self, seeded_db, admin_user, employee_user):
        result = user_service.update_user(
            seeded_db, admin_user, employee_user.id, UserUpdate(last_name="Smith")
        )
        assert result.ok
        assert result.value.last_name == "Smith"
        assert result.value.first_name == "Eve"
        entry = seeded_db.query(AuditLog).filter(AuditLog.action == "USER_UPDATED").one()
        assert entry.details["changes"] == {"last_name": {"old": "Worker", "new": "Smith"}}
        assert entry.details["updated_fields"] == ["last_name"]

    def test_role_change_is_promotion(self, seeded_db, admin_user, employee_user):
        result = user_service.update_user(
            seeded_db, admin_user, employee_user.id, UserUpdate(role_name="user")
        )
        assert result.ok
        assert result.value.role_name == "User"
        assert "USER_PROMOTED" in audit_actions(seeded_db)

    def test_email_taken(self, seeded_db, admin_user, employee_user, make_user):
        make_user("taken@example.com")
        result = user_service.update_user(
            seeded_db, admin_user, employee_user.id, UserUpdate(email="taken@example.com")
        )
        assert result.kind == ErrorKind.CONFLICT

    def test_unknown_user(self, seeded_db, admin_user):
        result = user_service.update_user(
            seeded_db, admin_user, uuid.uuid4(), UserUpdate(first_name="X")
        )
        assert result.kind == ErrorKind.NOT_FOUND


class TestAssignRole:
    def test_assign_is_case_insensitive(self, seeded_db, admin_user, employee_user):
        result = user_service.assign_role(seeded_db, admin_user, employee_user.id, "ADMIN")
        assert result.ok
        assert result.value.role_name == "Admin"

    def test_unknown_role(self, seeded_db, admin_user, employee_user):
        result = user_service.assign_role(seeded_db, admin_user, employee_user.id, "Pilot")
        assert result.kind == ErrorKind.NOT_FOUND
        assert employee_user.role_name == "Employee"

    def test_unknown_user(self, seeded_db, admin_user):
        result = user_service.assign_role(seeded_db, admin_user, uuid.uuid4(), "User")
        assert result.kind == ErrorKind.NOT_FOUND

    def test_assigned_role_counts(self, seeded_db, admin_user, employee_user):
        role = rbac_service.create_role(seeded_db, "Support Staff").value
        user_service.assign_role(seeded_db, admin_user, employee_user.id, "support staff")
        assert rbac_service.count_users_for_role(seeded_db, role.id) == 1


class TestSoftDelete:
    def test_delete_is_idempotent(self, seeded_db, admin_user, employee_user):
        first = user_service.delete_user(seeded_db, admin_user, employee_user.id)
        assert first.ok
        deleted_at = employee_user.deleted_at
        assert deleted_at is not None

        second = user_service.delete_user(seeded_db, admin_user, employee_user.id)
        assert second.ok
        assert employee_user.deleted_at == deleted_at
        assert audit_actions(seeded_db).count("USER_DELETED") == 1

    def test_restore(self, seeded_db, admin_user, employee_user):
        user_service.delete_user(seeded_db, admin_user, employee_user.id)
        result = user_service.restore_user(seeded_db, admin_user, employee_user.id)
        assert result.ok
        assert result.value.deleted_at is None

    def test_restore_live_user_is_validation(self, seeded_db, admin_user, employee_user):
        result = user_service.restore_user(seeded_db, admin_user, employee_user.id)
        assert result.kind == ErrorKind.VALIDATION

    def test_deleted_user_cannot_be_changed(
        self, seeded_db, admin_user, employee_user
    ):
        user_service.delete_user(seeded_db, admin_user, employee_user.id)
        results = [
            user_service.update_user(
                seeded_db, admin_user, employee_user.id, UserUpdate(first_name="X")
            ),
            user_service.set_user_active(seeded_db, admin_user, employee_user.id, False),
            user_service.assign_role(seeded_db, admin_user, employee_user.id, "User"),
        ]
        assert [r.kind for r in results] == [ErrorKind.VALIDATION] * 3
        assert employee_user.first_name == "Eve"
        assert employee_user.is_active is True
        assert employee_user.role_name == "Employee"

    def test_delete_unknown_user(self, seeded_db, admin_user):
        result = user_service.delete_user(seeded_db, admin_user, uuid.uuid4())
        assert result.kind == ErrorKind.NOT_FOUND


class TestBulkDelete:
    def test_self_is_excluded(self, seeded_db, admin_user, make_user):
        a = make_user("a@example.com")
        b = make_user("b@example.com")
        report = user_service.bulk_delete_users(
            seeded_db, admin_user, [str(a.id), str(admin_user.id), str(b.id)]
        )
        assert report.self_excluded is True
        assert report.success_count == 2
        assert report.failure_count == 0
        assert admin_user.deleted_at is None
        assert a.deleted_at is not None and b.deleted_at is not None

    def test_failures_are_reported_per_item(self, seeded_db, admin_user, make_user):
        a = make_user("a@example.com")
        missing = str(uuid.uuid4())
        report = user_service.bulk_delete_users(
            seeded_db, admin_user, [str(a.id), missing, "not-a-uuid", str(a.id).upper()]
        )
        assert report.success_count == 1
        assert report.failure_count == 2
        assert {e.user_id for e in report.errors} == {missing, "not-a-uuid"}
        assert len(report.results) == 3
        assert report.self_excluded is False

    def test_id_spellings_are_canonical(self, seeded_db, admin_user, make_user):
        a = make_user("a@example.com")
        report = user_service.bulk_delete_users(
            seeded_db,
            admin_user,
            [str(a.id), admin_user.id.hex, a.id.hex, f"{{{admin_user.id}}}"],
        )
        assert report.self_excluded is True
        assert report.success_count == 1
        assert report.failure_count == 0
        assert len(report.results) == 1
        assert admin_user.deleted_at is None

    def test_only_self(self, seeded_db, admin_user):
        report = user_service.bulk_delete_users(seeded_db, admin_user, [str(admin_user.id)])
        assert report.results == []
        assert report.self_excluded is True
        assert "USERS_BULK_DELETED" not in audit_actions(seeded_db)


class TestListingAndStats:
    @pytest.fixture
    def population(self, seeded_db, admin_user, make_user):
        make_user("alice@example.com", "Employee", first_name="Alice")
        make_user("bob@example.com", "User", first_name="Bob", is_active=False)
        make_user("carol@example.com", "Employee", is_email_verified=False)
        gone = make_user("dave@example.com", "Employee")
        user_service.delete_user(seeded_db, admin_user, gone.id)
        return seeded_db

    def emails(self, db, **filters):
        users, total = user_service.list_users(
            db, UserListFilters(**filters), page=1, limit=50
        )
        assert total == len(users)
        return {u.email for u in users}

    def test_all_excludes_deleted(self, population):
        assert self.emails(population) == {
            "admin@example.com",
            "alice@example.com",
            "bob@example.com",
            "carol@example.com",
        }

    def test_deleted_only(self, population):
        assert self.emails(population, status=UserStatusFilter.DELETED) == {
            "dave@example.com"
        }

    def test_status_filters(self, population):
        assert self.emails(population, status=UserStatusFilter.INACTIVE) == {
            "bob@example.com"
        }
        assert self.emails(population, status=UserStatusFilter.UNVERIFIED) == {
            "carol@example.com"
        }

    def test_filters_combine(self, population):
        assert self.emails(population, role="employee", search="ali") == {
            "alice@example.com"
        }
        assert self.emails(population, role="all", search="bob") == {"bob@example.com"}
        assert self.emails(population, role="User", status=UserStatusFilter.ACTIVE) == set()

    def test_pagination_and_sort(self, population):
        users, total = user_service.list_users(
            population, UserListFilters(sort_by="email", sort_order="asc"), page=2, limit=2
        )
        assert total == 4
        assert [u.email for u in users] == ["bob@example.com", "carol@example.com"]

    def test_stats(self, population):
        assert user_service.user_stats(population) == {
            "total": 4,
            "active": 3,
            "inactive": 1,
            "unverified": 1,
            "deleted": 1,
        }
