"""Tests for session_service and auth_service session handling."""

import uuid
from datetime import datetime, timedelta

import pytest

from src.models import AuditLog
from src.models.session import Session as SessionModel
from src.rbac.result import ErrorKind
from src.services import auth_service, session_service
from src.services.audit_service import RequestContext
from src.services.geolocation_service import LOCAL_LOCATION

CHROME_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
SAFARI_IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
EDGE_MAC = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 Edg/120.0.0.0"
)
FIREFOX_ANDROID_TABLET = (
    "Mozilla/5.0 (Android 13; Tablet; rv:120.0) Gecko/120.0 Firefox/120.0"
)


class TestParseUserAgent:
    @pytest.mark.parametrize(
        ("user_agent", "device", "browser", "platform"),
        [
            (CHROME_WINDOWS, "Desktop", "Chrome", "Windows"),
            (SAFARI_IPHONE, "Mobile", "Safari", "iOS"),
            (EDGE_MAC, "Desktop", "Edge", "macOS"),
            (FIREFOX_ANDROID_TABLET, "Tablet", "Firefox", "Android"),
            (None, "Unknown", "Unknown", "Unknown"),
        ],
    )
    def test_parse(self, user_agent, device, browser, platform):
        info = session_service.parse_user_agent(user_agent)
        assert (info.device, info.browser, info.platform) == (device, browser, platform)


def open_session(db, user, user_agent=CHROME_WINDOWS, ip="10.0.0.5"):
    token = auth_service.create_session(
        db,
        user,
        context=RequestContext(ip=ip, user_agent=user_agent),
        location=LOCAL_LOCATION,
    )
    return token, db.query(SessionModel).filter(SessionModel.token == token).one()


class TestAuthSessions:
    def test_create_session_records_device_and_location(self, seeded_db, employee_user):
        token, session = open_session(seeded_db, employee_user)
        assert session.user_id == employee_user.id
        assert session.browser == "Chrome"
        assert session.city == "Localhost"
        assert session.expires_at > datetime.utcnow() + timedelta(days=6)
        assert employee_user.last_login is not None
        assert seeded_db.query(AuditLog).filter(AuditLog.action == "LOGIN").count() == 1

    def test_get_session_lifecycle(self, seeded_db, employee_user):
        token, session = open_session(seeded_db, employee_user)
        assert auth_service.get_session(seeded_db, token) is session

        session.expires_at = datetime.utcnow() - timedelta(days=1)
        seeded_db.commit()
        assert auth_service.get_session(seeded_db, token) is None
        assert auth_service.delete_session(seeded_db, token) is False

    def test_terminated_session_is_invalid(self, seeded_db, employee_user):
        token, session = open_session(seeded_db, employee_user)
        session.is_active = False
        seeded_db.commit()
        assert auth_service.get_session(seeded_db, token) is None

    def test_delete_session_returns_true(self, seeded_db, employee_user):
        token, _ = open_session(seeded_db, employee_user)
        assert auth_service.delete_session(seeded_db, token) is True
        assert seeded_db.query(AuditLog).filter(AuditLog.action == "LOGOUT").count() == 1

    def test_cleanup_expired_sessions(self, seeded_db, employee_user):
        _, old = open_session(seeded_db, employee_user)
        open_session(seeded_db, employee_user)
        old.expires_at = datetime.utcnow() - timedelta(minutes=1)
        seeded_db.commit()
        assert auth_service.cleanup_expired_sessions(seeded_db) == 1
        assert seeded_db.query(SessionModel).count() == 1


class TestSessionManagement:
    def test_list_marks_current_session(self, seeded_db, employee_user):
        first, _ = open_session(seeded_db, employee_user)
        second, _ = open_session(seeded_db, employee_user, user_agent=SAFARI_IPHONE)

        result = session_service.list_user_sessions(seeded_db, employee_user.id, second)
        assert result.ok
        current = {v.session.token: v.is_current for v in result.value}
        assert current == {first: False, second: True}

    def test_list_unknown_user(self, seeded_db):
        result = session_service.list_user_sessions(seeded_db, uuid.uuid4())
        assert result.kind == ErrorKind.NOT_FOUND

    def test_terminate_session(self, seeded_db, admin_user, employee_user):
        token, session = open_session(seeded_db, employee_user)
        result = session_service.terminate_session(
            seeded_db, employee_user.id, session.id, actor=admin_user
        )
        assert result.ok
        assert auth_service.get_session(seeded_db, token) is None
        assert session_service.list_user_sessions(seeded_db, employee_user.id).value == []

    def test_terminate_session_of_other_user_is_not_found(
        self, seeded_db, admin_user, employee_user
    ):
        _, session = open_session(seeded_db, employee_user)
        result = session_service.terminate_session(seeded_db, admin_user.id, session.id)
        assert result.kind == ErrorKind.NOT_FOUND

    def test_terminate_all_others_keeps_current(self, seeded_db, employee_user):
        keep, _ = open_session(seeded_db, employee_user)
        open_session(seeded_db, employee_user)
        open_session(seeded_db, employee_user)

        result = session_service.terminate_all_other_sessions(
            seeded_db, employee_user.id, current_token=keep
        )
        assert result.value == 2
        remaining = session_service.list_user_sessions(seeded_db, employee_user.id, keep)
        assert [v.session.token for v in remaining.value] == [keep]
        assert (
            seeded_db.query(AuditLog)
            .filter(AuditLog.action == "SESSIONS_TERMINATED")
            .one()
            .details["terminated_count"]
            == 2
        )
