from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
import logging

from lms_backend.core.database import get_db
from lms_backend.core.dependencies import (
    get_current_active_user,
    get_published_course_or_404,
    get_course_editor,
)
from lms_backend.models.user_model import User
from lms_backend.models.course_model import Course, Chapter
from lms_backend.schemas import course_schema as schemas
from lms_backend.schemas import user_progress_schema as up_schemas
from lms_backend.crud import chapter_crud as crud
from lms_backend.crud import course_crud
from lms_backend.crud import user_progress_crud as up_crud
from lms_backend.services.youtube import extract_youtube_video_id

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/courses/{course_id}/chapters", tags=["Chapters"])

def _chapter_or_404(db: Session, course: Course, chapter_id: str) -> Chapter:
    chapter = crud.get_chapter(db, course.id, chapter_id)
    if chapter is None:
        logger.warning(f"Chapter {chapter_id} not found in course {course.id}.")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Chapter not found")
    return chapter

def _visible_chapter_or_404(db: Session, course: Course, chapter_id: str, user: User) -> Chapter:
    chapter = _chapter_or_404(db, course, chapter_id)
    if not chapter.is_published and not course_crud.can_edit_course(db, course, user):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Chapter not found")
    return chapter

# --- Chapter Endpoints ---
@router.get("/", response_model=List[schemas.ChapterWithProgress])
def read_chapters(
    course: Course = Depends(get_published_course_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    is_editor = course_crud.can_edit_course(db, course, current_user)
    chapters = crud.get_chapters_for_course(db, course.id, published_only=not is_editor)
    progress = up_crud.get_progress_map(db, current_user.id, [c.id for c in chapters])

    response = []
    for chapter in chapters:
        item = schemas.ChapterWithProgress.model_validate(chapter)
        if chapter.id in progress:
            item.user_progress = up_schemas.UserProgressDisplay.model_validate(progress[chapter.id])
        response.append(item)
    return response

@router.post("/", response_model=schemas.ChapterDisplay, status_code=status.HTTP_201_CREATED)
def create_new_chapter(
    chapter_in: schemas.ChapterCreate,
    course: Course = Depends(get_course_editor),
    db: Session = Depends(get_db)
):
    return crud.create_chapter(db, course.id, chapter_in)

@router.get("/{chapter_id}", response_model=schemas.ChapterDetail)
def read_chapter(
    chapter_id: str,
    course: Course = Depends(get_published_course_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """
    A chapter with its attachments and the caller's progress. `can_view` tells the
    client whether the video and documents may be shown.
    """
    chapter = _visible_chapter_or_404(db, course, chapter_id, current_user)
    can_view = chapter.is_free or course_crud.user_has_course_access(db, course, current_user)
    next_chapter = crud.get_next_chapter(db, chapter)

    detail = schemas.ChapterDetail.model_validate(chapter)
    progress = up_crud.get_chapter_progress(db, current_user.id, chapter.id)
    detail.user_progress = up_schemas.UserProgressDisplay.model_validate(progress) if progress else None
    if can_view:
        detail.attachments = [
            schemas.ChapterAttachmentDisplay.model_validate(a) for a in crud.get_chapter_attachments(db, chapter.id)
        ]
    detail.can_view = can_view
    detail.next_chapter_id = next_chapter.id if next_chapter else None
    if not can_view:
        detail.video_url = None
        detail.youtube_video_id = None
        detail.document_url = None
    return detail

@router.patch("/{chapter_id}", response_model=schemas.ChapterDisplay)
def update_existing_chapter(
    chapter_id: str,
    chapter_in: schemas.ChapterUpdate,
    course: Course = Depends(get_course_editor),
    db: Session = Depends(get_db)
):
    chapter = _chapter_or_404(db, course, chapter_id)
    return crud.update_chapter(db, chapter, chapter_in)

@router.delete("/{chapter_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_existing_chapter(
    chapter_id: str,
    course: Course = Depends(get_course_editor),
    db: Session = Depends(get_db)
):
    chapter = _chapter_or_404(db, course, chapter_id)
    crud.delete_chapter(db, chapter)
    return None

@router.patch("/{chapter_id}/publish", response_model=schemas.ChapterDisplay)
def toggle_chapter_publication(
    chapter_id: str,
    course: Course = Depends(get_course_editor),
    db: Session = Depends(get_db)
):
    chapter = _chapter_or_404(db, course, chapter_id)
    return crud.toggle_chapter_publish(db, chapter)

# --- Attachments ---
@router.get("/{chapter_id}/attachments", response_model=List[schemas.ChapterAttachmentDisplay])
def read_chapter_attachments(
    chapter_id: str,
    course: Course = Depends(get_published_course_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    chapter = _visible_chapter_or_404(db, course, chapter_id, current_user)
    if not (chapter.is_free or course_crud.user_has_course_access(db, course, current_user)):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Purchase the course to access its attachments")
    return crud.get_chapter_attachments(db, chapter.id)

@router.post("/{chapter_id}/attachments", response_model=schemas.ChapterAttachmentDisplay, status_code=status.HTTP_201_CREATED)
def add_chapter_attachment(
    chapter_id: str,
    attachment_in: schemas.AttachmentCreate,
    course: Course = Depends(get_course_editor),
    db: Session = Depends(get_db)
):
    chapter = _chapter_or_404(db, course, chapter_id)
    return crud.create_chapter_attachment(db, chapter.id, attachment_in)

@router.delete("/{chapter_id}/attachments/{attachment_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_chapter_attachment(
    chapter_id: str,
    attachment_id: str,
    course: Course = Depends(get_course_editor),
    db: Session = Depends(get_db)
):
    chapter = _chapter_or_404(db, course, chapter_id)
    attachment = crud.get_chapter_attachment(db, chapter.id, attachment_id)
    if attachment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attachment not found")
    crud.delete_chapter_attachment(db, attachment)
    return None

# --- Document ---
@router.post("/{chapter_id}/document", response_model=schemas.ChapterDisplay)
def set_chapter_document(
    chapter_id: str,
    document_in: schemas.ChapterDocumentUpdate,
    course: Course = Depends(get_course_editor),
    db: Session = Depends(get_db)
):
    chapter = _chapter_or_404(db, course, chapter_id)
    return crud.set_chapter_document(db, chapter, document_in)

@router.delete("/{chapter_id}/document", response_model=schemas.ChapterDisplay)
def remove_chapter_document(
    chapter_id: str,
    course: Course = Depends(get_course_editor),
    db: Session = Depends(get_db)
):
    chapter = _chapter_or_404(db, course, chapter_id)
    return crud.clear_chapter_document(db, chapter)

# --- Video ---
@router.post("/{chapter_id}/youtube", response_model=schemas.ChapterDisplay)
def set_youtube_video(
    chapter_id: str,
    video_in: schemas.YoutubeVideoRequest,
    course: Course = Depends(get_course_editor),
    db: Session = Depends(get_db)
):
    chapter = _chapter_or_404(db, course, chapter_id)
    video_id = extract_youtube_video_id(video_in.youtube_url)
    if video_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid YouTube URL")
    return crud.set_youtube_video(db, chapter, video_in.youtube_url.strip(), video_id)

@router.post("/{chapter_id}/upload-video", response_model=schemas.ChapterDisplay)
def set_uploaded_video(
    chapter_id: str,
    video_in: schemas.UploadedVideoRequest,
    course: Course = Depends(get_course_editor),
    db: Session = Depends(get_db)
):
    chapter = _chapter_or_404(db, course, chapter_id)
    return crud.set_uploaded_video(db, chapter, video_in.video_url)

# --- Progress ---
@router.put("/{chapter_id}/progress", response_model=up_schemas.UserProgressDisplay)
def update_chapter_progress(
    chapter_id: str,
    progress_in: up_schemas.UserProgressUpdate,
    course: Course = Depends(get_published_course_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    chapter = _visible_chapter_or_404(db, course, chapter_id, current_user)
    return up_crud.set_chapter_progress(db, current_user.id, chapter.id, progress_in)

@router.delete("/{chapter_id}/progress", status_code=status.HTTP_204_NO_CONTENT)
def reset_chapter_progress(
    chapter_id: str,
    course: Course = Depends(get_published_course_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    chapter = _chapter_or_404(db, course, chapter_id)
    up_crud.clear_chapter_progress(db, current_user.id, chapter.id)
    return None
