from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List
import logging

from lms_backend.core.database import get_db
from lms_backend.core.dependencies import (
    get_current_active_user,
    get_current_staff_user,
    get_current_admin_user,
    get_course_or_404,
    get_published_course_or_404,
    get_course_editor,
    get_course_owner_or_admin,
)
from lms_backend.models.user_model import User
from lms_backend.models.course_model import Course
from lms_backend.schemas import course_schema as schemas
from lms_backend.schemas import payment_schema as pay_schemas
from lms_backend.crud import course_crud as crud
from lms_backend.crud import payment_crud as pay_crud

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/courses", tags=["Courses"])

# --- Course Endpoints ---
@router.post("/", response_model=schemas.CourseDisplay, status_code=status.HTTP_201_CREATED)
def create_new_course(
    course_in: schemas.CourseCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user)
):
    """
    Create a new draft course owned by the caller. (Teacher or admin)
    """
    logger.info(f"User {current_user.id} creating course: {course_in.title}")
    return crud.create_course(db=db, course_in=course_in, owner_id=current_user.id)

@router.get("/", response_model=List[schemas.CourseListItem])
def read_courses_list(
    include_progress: bool = Query(False, alias="includeProgress"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """
    Published courses, newest first. With includeProgress the caller's progress is
    added for courses they purchased.
    """
    return crud.build_course_catalogue(db, current_user, include_progress=include_progress)

@router.get("/mine", response_model=List[schemas.CourseDisplay])
def read_my_courses(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user)
):
    return crud.get_courses_for_editor(db, current_user)

@router.get("/{course_id}", response_model=schemas.CourseDetail)
def read_single_course(
    course: Course = Depends(get_published_course_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    detail = schemas.CourseDisplay.model_validate(course).model_dump()
    detail["chapters"] = [c for c in course.chapters if c.is_published]
    detail["attachments"] = course.attachments
    purchase = crud.get_purchase(db, current_user.id, course.id)
    detail["purchases"] = [purchase] if purchase else []
    return detail

@router.patch("/{course_id}", response_model=schemas.CourseDisplay)
def update_existing_course(
    course_in: schemas.CourseUpdate,
    course: Course = Depends(get_course_editor),
    db: Session = Depends(get_db)
):
    return crud.update_course(db=db, db_course=course, course_in=course_in)

@router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_existing_course(
    course: Course = Depends(get_course_owner_or_admin),
    db: Session = Depends(get_db)
):
    crud.delete_course(db=db, db_course=course)
    return None

@router.patch("/{course_id}/publish", response_model=schemas.CourseDisplay)
def publish_existing_course(
    course: Course = Depends(get_course_editor),
    db: Session = Depends(get_db)
):
    try:
        return crud.publish_course(db, course)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

@router.patch("/{course_id}/unpublish", response_model=schemas.CourseDisplay)
def unpublish_existing_course(
    course: Course = Depends(get_course_owner_or_admin),
    db: Session = Depends(get_db)
):
    return crud.unpublish_course(db, course)

@router.put("/{course_id}/reorder")
def reorder_course_content(
    reorder_in: schemas.ReorderRequest,
    course: Course = Depends(get_course_editor),
    db: Session = Depends(get_db)
):
    try:
        crud.reorder_course_items(db, course.id, reorder_in.items)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"message": "Success"}

# --- Learner views ---
@router.get("/{course_id}/content", response_model=List[schemas.CourseContentItem])
def read_course_content(
    course: Course = Depends(get_published_course_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return crud.get_course_content(db, course, current_user.id)

@router.get("/{course_id}/progress", response_model=schemas.CourseProgressResponse)
def read_course_progress(
    course: Course = Depends(get_course_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return crud.calculate_course_progress(db, current_user.id, course)

@router.get("/{course_id}/access", response_model=schemas.CourseAccessResponse)
def read_course_access(
    course: Course = Depends(get_course_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return schemas.CourseAccessResponse(has_access=crud.user_has_course_access(db, course, current_user))

@router.post("/{course_id}/enroll", response_model=schemas.EnrollResponse, status_code=status.HTTP_201_CREATED)
def enroll_in_course(
    course: Course = Depends(get_course_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    try:
        purchase = pay_crud.enroll_in_free_course(db, current_user.id, course)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return schemas.EnrollResponse(message="Enrolled successfully", purchase_id=purchase.id)

# --- Allowed teachers (admin) ---
@router.get("/{course_id}/allowed-teachers", response_model=List[schemas.AllowedTeacherDisplay])
def read_allowed_teachers(
    course: Course = Depends(get_course_or_404),
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin_user)
):
    return crud.get_allowed_teachers_overview(db, course)

@router.put("/{course_id}/allowed-teachers", response_model=List[schemas.AllowedTeacherDisplay])
def replace_allowed_teachers(
    update_in: schemas.AllowedTeachersUpdate,
    course: Course = Depends(get_course_or_404),
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin_user)
):
    logger.info(f"Admin {current_admin.id} updating allowed teachers of course {course.id}")
    try:
        return crud.set_allowed_teachers(db, course, update_in.teacher_ids)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

@router.get("/{course_id}/financial-report", response_model=pay_schemas.FinancialReport)
def read_financial_report(
    course: Course = Depends(get_course_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user)
):
    return pay_crud.build_financial_report(db, course)

# --- Course attachments ---
@router.post("/{course_id}/attachments", response_model=schemas.AttachmentDisplay, status_code=status.HTTP_201_CREATED)
def add_course_attachment(
    attachment_in: schemas.AttachmentCreate,
    course: Course = Depends(get_course_editor),
    db: Session = Depends(get_db)
):
    return crud.create_attachment(db, course.id, attachment_in)

@router.delete("/{course_id}/attachments/{attachment_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_course_attachment(
    attachment_id: str,
    course: Course = Depends(get_course_editor),
    db: Session = Depends(get_db)
):
    attachment = crud.get_attachment(db, course.id, attachment_id)
    if attachment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attachment not found")
    crud.delete_attachment(db, attachment)
    return None
