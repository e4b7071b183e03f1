from fastapi import Depends, HTTPException, status, Request
from fastapi.security.utils import get_authorization_scheme_param
from sqlalchemy.orm import Session
import logging

from lms_backend.core.database import get_db
from lms_backend.core.security import decode_access_token
from lms_backend.crud.user_crud import get_user_by_id
from lms_backend.crud.course_crud import get_course, can_edit_course
from lms_backend.models.enums import UserRole
from lms_backend.models.user_model import User
from lms_backend.models.course_model import Course
from lms_backend.services import session_manager

logger = logging.getLogger(__name__)

def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )

# Dependency to get the current user from a session JWT
async def get_current_user(
    request: Request, db: Session = Depends(get_db)
) -> User:
    """
    Reads the Bearer token, decodes it and checks that the session it carries
    is still the user's live session.
    """
    authorization: str = request.headers.get("Authorization")
    scheme, param = get_authorization_scheme_param(authorization)

    if not authorization or scheme.lower() != "bearer" or not param:
        logger.warning("Missing or invalid Bearer token in Authorization header.")
        raise _unauthorized("Not authenticated. Bearer token required.")

    token_data = decode_access_token(param)

    user = get_user_by_id(db, token_data.sub)
    if user is None:
        logger.warning(f"Token subject {token_data.sub} does not match any user.")
        raise _unauthorized("User account not found.")

    if not session_manager.validate_session(db, user, token_data.sid):
        logger.warning(f"Rejected stale session for user {user.id}")
        raise _unauthorized("Session is no longer valid. Please log in again.")

    logger.debug(f"Authenticated user {user.id} ({user.role.value})")
    return user


# --- User Role Dependencies ---
async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    return current_user

async def get_current_staff_user(current_user: User = Depends(get_current_active_user)) -> User:
    """TEACHER or ADMIN."""
    if not current_user.is_staff:
        logger.warning(f"Staff access denied for user {current_user.id} (Role: {current_user.role})")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Operation not permitted: Requires teacher or admin privileges.",
        )
    return current_user

async def get_current_admin_user(current_user: User = Depends(get_current_active_user)) -> User:
    if current_user.role != UserRole.ADMIN:
        logger.warning(f"Admin access denied for user {current_user.id} (Role: {current_user.role})")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Operation not permitted: Requires admin privileges.",
        )
    return current_user


# --- Resource Fetching and Authorization Dependencies ---
def get_course_or_404(course_id: str, db: Session = Depends(get_db)) -> Course:
    course = get_course(db, course_id)
    if not course:
        logger.warning(f"Course with ID {course_id} not found.")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")
    return course

async def get_published_course_or_404(
    course: Course = Depends(get_course_or_404),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
) -> Course:
    """Published courses for everyone; unpublished ones only for their editors."""
    if course.is_published or can_edit_course(db, course, current_user):
        return course
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")

async def get_course_editor(
    course: Course = Depends(get_course_or_404),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
) -> Course:
    """Admin, course owner, or a teacher allowed on the course."""
    if can_edit_course(db, course, current_user):
        return course

    logger.warning(f"User {current_user.id} may not edit course {course.id}.")
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Not authorized to edit this course.",
    )

async def get_course_owner_or_admin(
    course: Course = Depends(get_course_or_404),
    current_user: User = Depends(get_current_active_user)
) -> Course:
    if current_user.role == UserRole.ADMIN or course.user_id == current_user.id:
        return course

    logger.warning(f"User {current_user.id} not authorized for course {course.id}. Not admin or owner.")
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Not authorized to perform this action on the specified course.",
    )

def get_user_or_404(user_id: str, db: Session = Depends(get_db)) -> User:
    user = get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user
