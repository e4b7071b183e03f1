from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
import logging

from lms_backend.core.database import get_db
from lms_backend.core.dependencies import get_current_active_user, get_course_or_404
from lms_backend.models.user_model import User
from lms_backend.models.course_model import Course
from lms_backend.schemas import chat_schema as schemas
from lms_backend.crud import chat_crud as crud
from lms_backend.crud import course_crud

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/courses/{course_id}/chat", tags=["Course Chat"])

async def get_chat_course(
    course: Course = Depends(get_course_or_404),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
) -> Course:
    """Course editors and active purchasers may read and post."""
    if course_crud.can_edit_course(db, course, current_user) or course_crud.has_active_purchase(db, current_user.id, course.id):
        return course
    logger.warning(f"User {current_user.id} denied chat access to course {course.id}")
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You do not have access to this course chat")

@router.get("", response_model=List[schemas.CourseMessageDisplay])
def read_messages(
    course: Course = Depends(get_chat_course),
    db: Session = Depends(get_db)
):
    # Polled by the client every few seconds
    return crud.get_course_messages(db, course.id)

@router.post("", response_model=schemas.CourseMessageDisplay, status_code=status.HTTP_201_CREATED)
def post_message(
    message_in: schemas.CourseMessageCreate,
    course: Course = Depends(get_chat_course),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    try:
        return crud.create_course_message(db, course.id, current_user.id, message_in.message)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
