"""
Server-side login sessions.

A student account may be signed in on one device at a time: logging in stores a fresh
`session_id` on the user row and that id travels inside the JWT (`sid` claim). Teachers
and admins may keep several devices signed in, so their token is not matched against
the stored id.
"""
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from lms_backend.core.config import settings
from lms_backend.core.database import utcnow
from lms_backend.models.user_model import User

logger = logging.getLogger(__name__)

def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)

def _grace_period() -> timedelta:
    return timedelta(minutes=settings.SESSION_LOGOUT_GRACE_MINUTES)

def generate_session_id() -> str:
    return secrets.token_hex(32)

def create_session(db: Session, user: User) -> str:
    session_id = generate_session_id()
    user.is_active = True
    user.session_id = session_id
    user.last_login_at = utcnow()
    user.logout_scheduled_at = None
    db.commit()
    db.refresh(user)
    logger.info(f"Session created for user {user.id}")
    return session_id

def end_session(db: Session, user: User) -> None:
    user.is_active = False
    user.session_id = None
    user.logout_scheduled_at = None
    db.commit()
    logger.info(f"Session ended for user {user.id}")

def schedule_delayed_logout(db: Session, user: User) -> None:
    """Marks the session for logout; it is ended by the next cleanup after the grace period."""
    user.logout_scheduled_at = utcnow()
    db.commit()
    logger.info(f"Logout scheduled for user {user.id}")

def cancel_scheduled_logout(db: Session, user: User) -> None:
    if user.logout_scheduled_at is not None:
        user.logout_scheduled_at = None
        db.commit()
        logger.debug(f"Scheduled logout cancelled for user {user.id}")

def is_logout_due(user: User, now: Optional[datetime] = None) -> bool:
    scheduled = _as_utc(user.logout_scheduled_at)
    if scheduled is None:
        return False
    now = now or utcnow()
    return now - scheduled >= _grace_period()

def cleanup_scheduled_logouts(db: Session) -> int:
    cutoff = utcnow() - _grace_period()
    users = (
        db.query(User)
        .filter(User.logout_scheduled_at.isnot(None), User.logout_scheduled_at <= cutoff)
        .all()
    )
    for user in users:
        user.is_active = False
        user.session_id = None
        user.logout_scheduled_at = None
    db.commit()
    logger.info(f"Cleaned up {len(users)} scheduled logouts")
    return len(users)

def validate_session(db: Session, user: Optional[User], session_id: Optional[str]) -> bool:
    if user is None:
        return False
    if not user.is_active:
        logger.debug(f"Session rejected for user {user.id}: not active")
        return False
    if is_logout_due(user):
        logger.info(f"Session of user {user.id} expired after scheduled logout")
        end_session(db, user)
        return False
    if user.is_staff:
        return True
    if not session_id or user.session_id != session_id:
        logger.warning(f"Session id mismatch for user {user.id}")
        return False
    return True

def reset_all_sessions(db: Session) -> int:
    updated = (
        db.query(User)
        .filter(User.is_active.is_(True))
        .update(
            {User.is_active: False, User.session_id: None, User.logout_scheduled_at: None},
            synchronize_session=False,
        )
    )
    db.commit()
    logger.info(f"Reset {updated} active sessions")
    return updated
