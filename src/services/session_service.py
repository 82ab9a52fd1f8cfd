# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Listing and terminating a user's login sessions."""

import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from src.models import AuditAction, AuditResourceType, User
from src.models.session import Session as SessionModel
from src.rbac.result import Result
from src.services import audit_service
from src.services.audit_service import RequestContext

logger = logging.getLogger(__name__)

# Checked in order; the first match wins (Edge and Opera also claim Chrome).
BROWSER_PATTERNS = [
    ("Edge", re.compile(r"Edg(e|A|iOS)?/")),
    ("Opera", re.compile(r"(OPR|Opera)/")),
    ("Firefox", re.compile(r"(Firefox|FxiOS)/")),
    ("Chrome", re.compile(r"(Chrome|CriOS)/")),
    ("Safari", re.compile(r"Version/.*Safari/")),
]

PLATFORM_PATTERNS = [
    ("iOS", re.compile(r"iPhone|iPad|iPod")),
    ("Android", re.compile(r"Android")),
    ("Windows", re.compile(r"Windows")),
    ("macOS", re.compile(r"Mac OS X|Macintosh")),
    ("Linux", re.compile(r"Linux|X11")),
]


@dataclass
class DeviceInfo:
    """Device, browser and platform derived from a User-Agent header."""

    device: str
    browser: str
    platform: str


@dataclass
class SessionView:
    """A session together with whether it belongs to the caller."""

    session: SessionModel
    is_current: bool


def parse_user_agent(user_agent: str | None) -> DeviceInfo:
    """Derive coarse device information from a User-Agent string."""
    ua = user_agent or ""
    browser = next((name for name, rx in BROWSER_PATTERNS if rx.search(ua)), "Unknown")
    platform = next(
        (name for name, rx in PLATFORM_PATTERNS if rx.search(ua)), "Unknown"
    )

    if re.search(r"iPad|Tablet", ua) or ("Android" in ua and "Mobile" not in ua):
        device = "Tablet"
    elif re.search(r"Mobi|iPhone|iPod", ua):
        device = "Mobile"
    elif ua:
        device = "Desktop"
    else:
        device = "Unknown"
    return DeviceInfo(device=device, browser=browser, platform=platform)


def _active_sessions_query(db: Session, user_id: uuid.UUID):
    return db.query(SessionModel).filter(
        SessionModel.user_id == user_id,
        SessionModel.is_active.is_(True),
        SessionModel.expires_at > datetime.utcnow(),
    )


def list_user_sessions(
    db: Session, user_id: uuid.UUID, current_token: str | None = None
) -> Result:
    """Get a user's active sessions, most recently used first."""
    if not db.get(User, user_id):
        return Result.not_found("User not found")

    sessions = (
        _active_sessions_query(db, user_id)
        .order_by(SessionModel.last_active.desc())
        .all()
    )
    return Result.success(
        [
            SessionView(session=s, is_current=bool(current_token) and s.token == current_token)
            for s in sessions
        ]
    )


def terminate_session(
    db: Session,
    user_id: uuid.UUID,
    session_id: uuid.UUID,
    actor: User | None = None,
    context: RequestContext | None = None,
) -> Result:
    """Terminate one session of a user."""
    session = (
        _active_sessions_query(db, user_id)
        .filter(SessionModel.id == session_id)
        .first()
    )
    if not session:
        return Result.not_found("Session not found")

    session.is_active = False
    db.commit()

    audit_service.record(
        db,
        actor=actor,
        action=AuditAction.SESSION_TERMINATED,
        resource_type=AuditResourceType.SESSION,
        resource_id=session_id,
        details={"user_id": str(user_id), "ip_address": session.ip_address},
        context=context,
    )
    return Result.success()


def terminate_all_other_sessions(
    db: Session,
    user_id: uuid.UUID,
    current_token: str | None = None,
    actor: User | None = None,
    context: RequestContext | None = None,
) -> Result:
    """Terminate every active session of a user except the caller's own."""
    if not db.get(User, user_id):
        return Result.not_found("User not found")

    query = _active_sessions_query(db, user_id)
    if current_token:
        query = query.filter(SessionModel.token != current_token)
    count = query.update({SessionModel.is_active: False}, synchronize_session=False)
    db.commit()
    logger.info(f"Terminated {count} session(s) for user {user_id}")

    if count:
        audit_service.record(
            db,
            actor=actor,
            action=AuditAction.SESSIONS_TERMINATED,
            resource_type=AuditResourceType.SESSION,
            resource_id=user_id,
            details={"terminated_count": count},
            context=context,
        )
    return Result.success(count)
