from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import List, Optional
import logging

from lms_backend.core.config import settings
from lms_backend.models.enums import VideoType, PurchaseStatus, NotificationType
from lms_backend.models.course_model import Course, Chapter, ChapterAttachment
from lms_backend.models.payment_model import Purchase
from lms_backend.models.notification_model import Notification
from lms_backend.models.user_model import User
from lms_backend.schemas import course_schema as schemas
from lms_backend.crud.course_crud import update_db_object
from lms_backend.services import email_service

logger = logging.getLogger(__name__)

# --- Chapter CRUD ---
def create_chapter(db: Session, course_id: str, chapter_in: schemas.ChapterCreate) -> Chapter:
    last_position = db.query(func.max(Chapter.position)).filter(Chapter.course_id == course_id).scalar()
    position = (last_position or 0) + 1
    logger.debug(f"Creating chapter '{chapter_in.title}' for course {course_id} at position {position}")

    db_chapter = Chapter(course_id=course_id, position=position, **chapter_in.model_dump())
    db.add(db_chapter)
    db.commit()
    db.refresh(db_chapter)
    logger.info(f"Chapter '{db_chapter.title}' (ID: {db_chapter.id}) created for course {course_id}.")
    return db_chapter

def get_chapter(db: Session, course_id: str, chapter_id: str) -> Optional[Chapter]:
    logger.debug(f"Fetching chapter {chapter_id} of course {course_id}")
    return db.query(Chapter).filter(Chapter.id == chapter_id, Chapter.course_id == course_id).first()

def get_chapters_for_course(db: Session, course_id: str, published_only: bool = False) -> List[Chapter]:
    query = db.query(Chapter).filter(Chapter.course_id == course_id)
    if published_only:
        query = query.filter(Chapter.is_published.is_(True))
    return query.order_by(Chapter.position.asc()).all()

def get_next_chapter(db: Session, chapter: Chapter) -> Optional[Chapter]:
    return (
        db.query(Chapter)
        .filter(
            Chapter.course_id == chapter.course_id,
            Chapter.is_published.is_(True),
            Chapter.position > chapter.position,
        )
        .order_by(Chapter.position.asc())
        .first()
    )

def update_chapter(db: Session, db_chapter: Chapter, chapter_in: schemas.ChapterUpdate) -> Chapter:
    logger.debug(f"Updating chapter {db_chapter.id} with data: {chapter_in.model_dump(exclude_unset=True)}")
    db_chapter = update_db_object(db_chapter, chapter_in)
    db.commit()
    db.refresh(db_chapter)
    logger.info(f"Chapter {db_chapter.id} updated successfully.")
    return db_chapter

def delete_chapter(db: Session, db_chapter: Chapter) -> None:
    """
    Deletes a chapter. A published course left without published chapters is unpublished.
    """
    course = db_chapter.course
    chapter_id = db_chapter.id
    logger.debug(f"Deleting chapter {chapter_id} from course {course.id}")
    db.delete(db_chapter)
    db.flush()

    remaining_published = db.query(func.count(Chapter.id)).filter(
        Chapter.course_id == course.id, Chapter.is_published.is_(True)
    ).scalar()
    if course.is_published and not remaining_published:
        course.is_published = False
        logger.info(f"Course {course.id} unpublished: its last published chapter was deleted.")

    db.commit()
    logger.info(f"Chapter {chapter_id} deleted.")

def toggle_chapter_publish(db: Session, db_chapter: Chapter) -> Chapter:
    """
    Flips the publish flag. Going live notifies every active purchaser of the course.
    """
    was_published = db_chapter.is_published
    db_chapter.is_published = not was_published

    recipients: List[User] = []
    if not was_published:
        recipients = _notify_purchasers_of_new_chapter(db, db_chapter)
    elif not any(c.is_published for c in db_chapter.course.chapters if c.id != db_chapter.id):
        db_chapter.course.is_published = False
        logger.info(f"Course {db_chapter.course_id} unpublished: no published chapters remain.")

    db.commit()
    db.refresh(db_chapter)
    logger.info(f"Chapter {db_chapter.id} is_published set to {db_chapter.is_published}.")

    for user in recipients:
        try:
            email_service.send_templated_email(
                to_email=user.email,
                subject=f"New chapter: {db_chapter.title}",
                html_template_name="new_chapter.html",
                context={
                    "user_name": user.full_name,
                    "course_title": db_chapter.course.title,
                    "chapter_title": db_chapter.title,
                    "course_url": f"{settings.APP_FRONTEND_URL}/courses/{db_chapter.course_id}",
                },
            )
        except Exception as e:
            logger.error(f"Failed to send new-chapter email to {user.email}: {e}", exc_info=True)
    return db_chapter

def _notify_purchasers_of_new_chapter(db: Session, chapter: Chapter) -> List[User]:
    course: Course = chapter.course
    purchasers = (
        db.query(User)
        .join(Purchase, Purchase.user_id == User.id)
        .filter(Purchase.course_id == course.id, Purchase.status == PurchaseStatus.ACTIVE)
        .all()
    )
    for user in purchasers:
        db.add(Notification(
            user_id=user.id,
            course_id=course.id,
            chapter_id=chapter.id,
            type=NotificationType.NEW_CHAPTER,
            title="New chapter available",
            message=f"A new chapter \"{chapter.title}\" was added to {course.title}.",
        ))
    logger.info(f"Queued NEW_CHAPTER notifications for {len(purchasers)} purchasers of course {course.id}")
    return purchasers

# --- Video and document ---
def set_youtube_video(db: Session, db_chapter: Chapter, youtube_url: str, video_id: str) -> Chapter:
    db_chapter.video_url = youtube_url
    db_chapter.video_type = VideoType.YOUTUBE
    db_chapter.youtube_video_id = video_id
    db.commit()
    db.refresh(db_chapter)
    logger.info(f"Chapter {db_chapter.id} now plays YouTube video {video_id}")
    return db_chapter

def set_uploaded_video(db: Session, db_chapter: Chapter, video_url: str) -> Chapter:
    db_chapter.video_url = video_url
    db_chapter.video_type = VideoType.UPLOAD
    db_chapter.youtube_video_id = None
    db.commit()
    db.refresh(db_chapter)
    logger.info(f"Chapter {db_chapter.id} now plays uploaded video")
    return db_chapter

def set_chapter_document(db: Session, db_chapter: Chapter, document_in: schemas.ChapterDocumentUpdate) -> Chapter:
    db_chapter.document_url = document_in.document_url
    db_chapter.document_name = document_in.document_name or document_in.document_url.rstrip("/").split("/")[-1]
    db.commit()
    db.refresh(db_chapter)
    return db_chapter

def clear_chapter_document(db: Session, db_chapter: Chapter) -> Chapter:
    db_chapter.document_url = None
    db_chapter.document_name = None
    db.commit()
    db.refresh(db_chapter)
    return db_chapter

# --- Chapter attachments ---
def get_chapter_attachments(db: Session, chapter_id: str) -> List[ChapterAttachment]:
    return (
        db.query(ChapterAttachment)
        .filter(ChapterAttachment.chapter_id == chapter_id)
        .order_by(ChapterAttachment.position.asc())
        .all()
    )

def get_chapter_attachment(db: Session, chapter_id: str, attachment_id: str) -> Optional[ChapterAttachment]:
    return db.query(ChapterAttachment).filter(
        ChapterAttachment.id == attachment_id,
        ChapterAttachment.chapter_id == chapter_id
    ).first()

def create_chapter_attachment(db: Session, chapter_id: str, attachment_in: schemas.AttachmentCreate) -> ChapterAttachment:
    last_position = db.query(func.max(ChapterAttachment.position)).filter(ChapterAttachment.chapter_id == chapter_id).scalar()
    position = 0 if last_position is None else last_position + 1

    db_attachment = ChapterAttachment(
        chapter_id=chapter_id,
        url=attachment_in.url,
        name=attachment_in.name or "Attachment",
        position=position,
    )
    db.add(db_attachment)
    db.commit()
    db.refresh(db_attachment)
    logger.info(f"Attachment {db_attachment.id} added to chapter {chapter_id} at position {position}")
    return db_attachment

def delete_chapter_attachment(db: Session, db_attachment: ChapterAttachment) -> None:
    attachment_id = db_attachment.id
    db.delete(db_attachment)
    db.commit()
    logger.info(f"Chapter attachment {attachment_id} deleted.")
