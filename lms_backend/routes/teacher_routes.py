from fastapi import APIRouter, Depends, HTTPException, status, Query, Response
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import List, Optional, Dict, Any
import logging

from lms_backend.core.database import get_db
from lms_backend.core.dependencies import get_current_staff_user, get_user_or_404, get_course_or_404
from lms_backend.models.enums import UserRole
from lms_backend.models.user_model import User
from lms_backend.models.course_model import Course
from lms_backend.schemas import user_schema as schemas
from lms_backend.schemas import course_schema as course_schemas
from lms_backend.schemas import payment_schema as pay_schemas
from lms_backend.crud import user_crud as crud
from lms_backend.crud import course_crud
from lms_backend.crud import payment_crud as pay_crud
from lms_backend.services.excel_export import build_excel_response

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/teacher", tags=["Teacher Dashboard"])

STUDENT_EXPORT_HEADERS = [
    ("full_name", "Full Name"),
    ("phone_number", "Phone Number"),
    ("parent_phone_number", "Parent Phone Number"),
    ("email", "Email"),
    ("college", "College"),
    ("faculty", "Faculty"),
    ("level", "Level"),
    ("balance", "Balance (EGP)"),
    ("active_course_count", "Active Courses"),
    ("created_at", "Registered At"),
]

# --- Helpers shared with the admin router ---
def users_with_course_counts(db: Session, filters: Dict[str, Any]) -> List[schemas.UserWithCourseCount]:
    rows = crud.get_users_with_active_course_counts(db, filters=filters)
    users = []
    for user, count in rows:
        item = schemas.UserWithCourseCount.model_validate(user)
        item.active_course_count = count or 0
        users.append(item)
    return users

def export_users(db: Session, filters: Dict[str, Any], filename: str) -> Response:
    rows = [u.model_dump() for u in users_with_course_counts(db, filters)]
    logger.info(f"Exporting {len(rows)} users to Excel")
    return build_excel_response(rows, STUDENT_EXPORT_HEADERS, filename)

def apply_balance(db: Session, user: User, balance_in: schemas.BalanceUpdateRequest, role_label: str) -> User:
    try:
        return crud.set_user_balance(db, user, balance_in.new_balance, updated_by_role=role_label)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

def apply_add_course(db: Session, user: User, add_in: pay_schemas.AddCourseRequest) -> Dict[str, Any]:
    course = course_crud.get_course(db, add_in.course_id)
    if course is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")
    try:
        purchase, created = pay_crud.add_course_to_student(db, user, course)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    message = "Course added successfully" if created else "Course access restored"
    return {"message": message, "purchase_id": purchase.id}

def create_account(db: Session, account_in: schemas.AccountCreateRequest, role: UserRole) -> User:
    try:
        return crud.create_user(db, account_in, role=role)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except IntegrityError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Account could not be created: duplicate data")

def update_account(db: Session, user: User, update_in) -> User:
    try:
        return crud.update_user(db, user, update_in)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except IntegrityError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Phone number or email already in use")

def _student_or_403(user: User) -> User:
    if user.role != UserRole.USER:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Teachers can only manage student accounts")
    return user

# --- Student accounts ---
@router.get("/users", response_model=List[schemas.UserWithCourseCount])
def list_students(
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user)
):
    filters = {"role": UserRole.USER, "search": search}
    return users_with_course_counts(db, filters)

@router.get("/users/export")
def export_students(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user)
):
    return export_users(db, {"role": UserRole.USER}, "students")

@router.post("/create-account", response_model=schemas.UserDisplay, status_code=status.HTTP_201_CREATED)
def create_student_account(
    account_in: schemas.AccountCreateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user)
):
    logger.info(f"Staff {current_user.id} creating student account {account_in.phone_number}")
    return create_account(db, account_in, UserRole.USER)

@router.patch("/users/{user_id}", response_model=schemas.UserDisplay)
def update_student(
    update_in: schemas.StaffUserUpdate,
    user: User = Depends(get_user_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user)
):
    return update_account(db, _student_or_403(user), update_in)

@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_student(
    user: User = Depends(get_user_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user)
):
    crud.delete_user(db, _student_or_403(user))
    return None

@router.patch("/users/{user_id}/balance", response_model=schemas.UserDisplay)
def update_student_balance(
    balance_in: schemas.BalanceUpdateRequest,
    user: User = Depends(get_user_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user)
):
    return apply_balance(db, _student_or_403(user), balance_in, "teacher")

@router.patch("/users/{user_id}/password")
def update_student_password(
    password_in: schemas.PasswordUpdateRequest,
    user: User = Depends(get_user_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user)
):
    crud.set_user_password(db, _student_or_403(user), password_in.new_password)
    return {"message": "Password updated successfully"}

# --- Student courses ---
@router.post("/users/{user_id}/add-course", status_code=status.HTTP_201_CREATED)
def add_course_to_student(
    add_in: pay_schemas.AddCourseRequest,
    user: User = Depends(get_user_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user)
):
    return apply_add_course(db, user, add_in)

@router.delete("/users/{user_id}/courses/{course_id}")
def remove_course_from_student(
    course_id: str,
    user: User = Depends(get_user_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user)
):
    purchase = pay_crud.cancel_purchase(db, user.id, course_id)
    if purchase is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Purchase not found")
    return {"message": "Course removed successfully"}

@router.get("/users/{user_id}/courses", response_model=List[course_schemas.CourseSummary])
def list_student_courses(
    user: User = Depends(get_user_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user)
):
    return pay_crud.get_active_courses_for_user(db, user.id)

@router.get("/courses/{course_id}/students", response_model=List[pay_schemas.CourseStudentDisplay])
def list_course_students(
    course: Course = Depends(get_course_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user)
):
    return pay_crud.get_course_students(db, course.id)
