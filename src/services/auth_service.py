# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Authentication service."""

import logging
import uuid
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from src.config import settings
from src.models import AuditAction, AuditResourceType, User
from src.models.session import Session as SessionModel
from src.rbac.result import Result
from src.schemas.user import UserProfileUpdate
from src.security import get_password_hash, verify_password
from src.services import audit_service
from src.services.audit_service import RequestContext
from src.services.geolocation_service import UNKNOWN_LOCATION, GeoLocation
from src.services.session_service import parse_user_agent

logger = logging.getLogger(__name__)

# Sessions are touched at most this often to keep reads cheap.
LAST_ACTIVE_RESOLUTION = timedelta(minutes=1)


def authenticate(db: Session, email: str, password: str) -> User | None:
    """Authenticate a user by e-mail and password.

    Inactive and soft-deleted users cannot sign in.
    """
    user = db.query(User).filter(User.email == email.strip().lower()).first()
    if not user:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    if not user.is_active or user.deleted_at is not None:
        return None
    return user


def create_session(
    db: Session,
    user: User,
    context: RequestContext | None = None,
    location: GeoLocation | None = None,
) -> str:
    """Create a new session for a user and return its token."""
    context = context or RequestContext()
    location = location or UNKNOWN_LOCATION
    device = parse_user_agent(context.user_agent)
    now = datetime.utcnow()
    token = uuid.uuid4().hex

    session = SessionModel(
        user_id=user.id,
        token=token,
        ip_address=context.ip or "unknown",
        user_agent=(context.user_agent or "")[:500] or None,
        device=device.device,
        browser=device.browser,
        platform=device.platform,
        country=location.country,
        region=location.region,
        city=location.city,
        latitude=location.latitude,
        longitude=location.longitude,
        timezone=location.timezone,
        isp=location.isp,
        last_active=now,
        expires_at=now + timedelta(days=settings.session_expiry_days),
    )
    db.add(session)
    user.last_login = now
    db.commit()
    logger.info(f"User {user.email} signed in from {session.ip_address}")

    audit_service.record(
        db,
        actor=user,
        action=AuditAction.LOGIN,
        resource_type=AuditResourceType.AUTH,
        resource_id=user.id,
        resource_name=user.display_name,
        details={"device": device.device, "browser": device.browser},
        context=context,
    )
    return token


def get_session(db: Session, token: str) -> SessionModel | None:
    """Get a valid session by token, refreshing its last activity."""
    session = db.query(SessionModel).filter(SessionModel.token == token).first()
    if not session or not session.is_active:
        return None

    now = datetime.utcnow()
    if session.is_expired(now):
        db.delete(session)
        db.commit()
        return None

    if now - session.last_active > LAST_ACTIVE_RESOLUTION:
        session.last_active = now
        db.commit()
    return session


def delete_session(db: Session, token: str, context: RequestContext | None = None) -> bool:
    """Delete a session by token."""
    session = db.query(SessionModel).filter(SessionModel.token == token).first()
    if not session:
        return False

    user = session.user
    db.delete(session)
    db.commit()

    audit_service.record(
        db,
        actor=user,
        action=AuditAction.LOGOUT,
        resource_type=AuditResourceType.AUTH,
        resource_id=user.id,
        resource_name=user.display_name,
        context=context,
    )
    return True


def get_user_by_id(db: Session, user_id: uuid.UUID) -> User | None:
    """Get a user by ID."""
    return db.get(User, user_id)


def update_profile(db: Session, user: User, data: UserProfileUpdate) -> Result:
    """Update the signed-in user's own name or password.

    Changing the password requires the current one.
    """
    if data.new_password:
        if not data.current_password:
            return Result.validation("Current password is required to change password")
        if not verify_password(data.current_password, user.hashed_password):
            return Result.validation("Current password is incorrect")
        user.hashed_password = get_password_hash(data.new_password)

    if data.first_name is not None:
        user.first_name = data.first_name or None
    if data.last_name is not None:
        user.last_name = data.last_name or None

    db.commit()
    db.refresh(user)
    return Result.success(user)


def cleanup_expired_sessions(db: Session) -> int:
    """Delete all expired sessions. Returns count of deleted sessions."""
    count = (
        db.query(SessionModel)
        .filter(SessionModel.expires_at < datetime.utcnow())
        .delete()
    )
    db.commit()
    return count
