from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from lms_backend.core.database import get_db
from lms_backend.core.dependencies import get_current_admin_user, get_user_or_404
from lms_backend.models.enums import UserRole
from lms_backend.models.user_model import User
from lms_backend.schemas import user_schema as schemas
from lms_backend.schemas import course_schema as course_schemas
from lms_backend.schemas import payment_schema as pay_schemas
from lms_backend.schemas import quiz_schema as quiz_schemas
from lms_backend.crud import user_crud as crud
from lms_backend.crud import course_crud
from lms_backend.crud import quiz_crud
from lms_backend.crud import payment_crud as pay_crud
from lms_backend.routes.teacher_routes import (
    users_with_course_counts,
    export_users,
    apply_balance,
    apply_add_course,
    create_account,
    update_account,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["Admin Panel"])

# --- User Management by Admin ---
@router.get("/users", response_model=List[schemas.UserWithCourseCount])
def admin_list_users(
    role: Optional[UserRole] = Query(None),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin_user)
):
    """
    Admin: every account, optionally filtered by role or a name/phone/email search.
    """
    logger.info(f"Admin {current_admin.id} listing users. role={role}, search={search}")
    return users_with_course_counts(db, {"role": role, "search": search})

@router.get("/users/export")
def admin_export_users(
    role: Optional[UserRole] = Query(None),
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin_user)
):
    return export_users(db, {"role": role}, "users")

@router.patch("/users/{user_id}", response_model=schemas.UserDisplay)
def admin_update_user(
    update_in: schemas.AdminUserUpdate,
    user: User = Depends(get_user_or_404),
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin_user)
):
    logger.info(f"Admin {current_admin.id} updating user {user.id}: {update_in.model_dump(exclude_unset=True, exclude={'email'})}")
    return update_account(db, user, update_in)

@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def admin_delete_user(
    user: User = Depends(get_user_or_404),
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin_user)
):
    if user.id == current_admin.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot delete your own account")
    crud.delete_user(db, user)
    return None

@router.post("/create-account", response_model=schemas.UserDisplay, status_code=status.HTTP_201_CREATED)
def admin_create_account(
    account_in: schemas.AccountCreateRequest,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin_user)
):
    role = account_in.role or UserRole.USER
    logger.info(f"Admin {current_admin.id} creating {role.value} account {account_in.phone_number}")
    return create_account(db, account_in, role)

@router.patch("/users/{user_id}/balance", response_model=schemas.UserDisplay)
def admin_update_balance(
    balance_in: schemas.BalanceUpdateRequest,
    user: User = Depends(get_user_or_404),
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin_user)
):
    return apply_balance(db, user, balance_in, "admin")

@router.post("/users/{user_id}/add-course", status_code=status.HTTP_201_CREATED)
def admin_add_course(
    add_in: pay_schemas.AddCourseRequest,
    user: User = Depends(get_user_or_404),
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin_user)
):
    return apply_add_course(db, user, add_in)

@router.get("/users/{user_id}/courses", response_model=List[course_schemas.CourseSummary])
def admin_list_user_courses(
    user: User = Depends(get_user_or_404),
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin_user)
):
    return pay_crud.get_active_courses_for_user(db, user.id)

# --- Content overview ---
@router.get("/courses", response_model=List[course_schemas.CourseSummary])
def admin_list_courses(
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin_user)
):
    return course_crud.get_all_courses(db)

@router.get("/quizzes", response_model=List[quiz_schemas.QuizDisplay])
def admin_list_quizzes(
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin_user)
):
    return quiz_crud.get_quizzes_for_user(db, current_admin)
