from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import List, Optional
import logging

from lms_backend.models.notification_model import Notification

logger = logging.getLogger(__name__)

def get_notifications(db: Session, user_id: str, limit: int = 50) -> List[Notification]:
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc())
        .limit(limit)
        .all()
    )

def count_unread(db: Session, user_id: str) -> int:
    return db.query(func.count(Notification.id)).filter(
        Notification.user_id == user_id,
        Notification.is_read.is_(False)
    ).scalar() or 0

def mark_all_as_read(db: Session, user_id: str) -> int:
    updated = (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .update({Notification.is_read: True}, synchronize_session=False)
    )
    db.commit()
    logger.info(f"Marked {updated} notifications as read for user {user_id}")
    return updated

def mark_as_read(db: Session, user_id: str, notification_id: str) -> Optional[Notification]:
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == user_id
    ).first()
    if notification is None:
        return None
    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return notification
