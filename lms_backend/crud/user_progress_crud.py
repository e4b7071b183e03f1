from sqlalchemy.orm import Session
from typing import List, Optional, Dict
import logging

from lms_backend.models.user_progress_model import UserProgress
from lms_backend.schemas import user_progress_schema as schemas

logger = logging.getLogger(__name__)

def set_chapter_progress(
    db: Session,
    user_id: str,
    chapter_id: str,
    progress_in: schemas.UserProgressUpdate
) -> UserProgress:
    """
    Creates or updates a user's completion flag for one chapter.
    """
    logger.debug(f"Updating progress for user_id {user_id}, chapter_id {chapter_id}")

    progress = get_chapter_progress(db, user_id, chapter_id)
    if not progress:
        logger.info(f"No existing progress for user {user_id} on chapter {chapter_id}. Creating new entry.")
        progress = UserProgress(user_id=user_id, chapter_id=chapter_id, is_completed=progress_in.is_completed)
        db.add(progress)
    else:
        progress.is_completed = progress_in.is_completed

    try:
        db.commit()
        db.refresh(progress)
        logger.info(f"Progress for user {user_id}, chapter {chapter_id} saved (completed={progress.is_completed}).")
    except Exception as e:
        db.rollback()
        logger.error(f"Error saving user progress for user {user_id}, chapter {chapter_id}: {e}", exc_info=True)
        raise

    return progress

def get_chapter_progress(db: Session, user_id: str, chapter_id: str) -> Optional[UserProgress]:
    """Fetches a specific progress entry for a user and chapter."""
    return db.query(UserProgress).filter(
        UserProgress.user_id == user_id,
        UserProgress.chapter_id == chapter_id
    ).first()

def get_progress_map(db: Session, user_id: str, chapter_ids: List[str]) -> Dict[str, UserProgress]:
    """Progress rows for many chapters at once, keyed by chapter id."""
    if not chapter_ids:
        return {}
    rows = db.query(UserProgress).filter(
        UserProgress.user_id == user_id,
        UserProgress.chapter_id.in_(chapter_ids)
    ).all()
    return {row.chapter_id: row for row in rows}

def clear_chapter_progress(db: Session, user_id: str, chapter_id: str) -> bool:
    progress = get_chapter_progress(db, user_id, chapter_id)
    if not progress:
        return False
    db.delete(progress)
    db.commit()
    logger.info(f"Progress for user {user_id} on chapter {chapter_id} cleared.")
    return True
