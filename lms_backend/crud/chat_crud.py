from sqlalchemy.orm import Session, selectinload
from typing import List
import logging

from lms_backend.core.config import settings
from lms_backend.models.chat_model import CourseMessage

logger = logging.getLogger(__name__)

def get_course_messages(db: Session, course_id: str, limit: int = None) -> List[CourseMessage]:
    """
    The newest `limit` messages of a course, returned oldest first.
    """
    limit = limit or settings.CHAT_MESSAGE_LIMIT
    newest = (
        db.query(CourseMessage)
        .options(selectinload(CourseMessage.user))
        .filter(CourseMessage.course_id == course_id)
        .order_by(CourseMessage.created_at.desc(), CourseMessage.id.desc())
        .limit(limit)
        .all()
    )
    newest.reverse()
    return newest

def create_course_message(db: Session, course_id: str, user_id: str, message: str) -> CourseMessage:
    text = (message or "").strip()
    if not text:
        raise ValueError("Message cannot be empty")
    if len(text) > settings.CHAT_MESSAGE_MAX_LENGTH:
        raise ValueError(f"Message is too long (max {settings.CHAT_MESSAGE_MAX_LENGTH} characters)")

    db_message = CourseMessage(course_id=course_id, user_id=user_id, message=text)
    db.add(db_message)
    db.commit()
    db.refresh(db_message)
    logger.debug(f"Message {db_message.id} posted to course {course_id} by {user_id}")
    return db_message
