from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
import logging

from lms_backend.core.database import get_db
from lms_backend.core.dependencies import (
    get_current_active_user,
    get_current_staff_user,
    get_published_course_or_404,
)
from lms_backend.models.user_model import User
from lms_backend.models.course_model import Course, Quiz
from lms_backend.schemas import quiz_schema as schemas
from lms_backend.crud import quiz_crud as crud
from lms_backend.crud import course_crud

logger = logging.getLogger(__name__)

# Students take quizzes inside a course
router = APIRouter(prefix="/courses/{course_id}/quizzes", tags=["Quizzes"])
# Teachers and admins author them
teacher_router = APIRouter(prefix="/teacher", tags=["Teacher Quizzes"])

def _quiz_for_student(db: Session, course: Course, quiz_id: str, user: User) -> Quiz:
    """Published quiz of a published course that the user is entitled to."""
    is_editor = course_crud.can_edit_course(db, course, user)
    if not course.is_published and not is_editor:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")
    if not course_crud.user_has_course_access(db, course, user):
        logger.warning(f"User {user.id} denied access to quizzes of course {course.id}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Purchase the course to take its quizzes")

    quiz = crud.get_quiz_in_course(db, course.id, quiz_id)
    if quiz is None or (not quiz.is_published and not is_editor):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quiz not found")
    return quiz

# --- Student Endpoints ---
@router.get("/", response_model=List[schemas.QuizStudentDisplay])
def read_course_quizzes(
    course: Course = Depends(get_published_course_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    if not course_crud.user_has_course_access(db, course, current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Purchase the course to take its quizzes")
    return [q for q in course.quizzes if q.is_published]

@router.get("/{quiz_id}", response_model=schemas.QuizStudentDisplay)
def read_quiz_for_taking(
    quiz_id: str,
    course: Course = Depends(get_published_course_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """The quiz with its questions. Correct answers are never sent to students."""
    return _quiz_for_student(db, course, quiz_id, current_user)

@router.get("/{quiz_id}/info", response_model=schemas.QuizInfo)
def read_quiz_info(
    quiz_id: str,
    course: Course = Depends(get_published_course_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    quiz = _quiz_for_student(db, course, quiz_id, current_user)
    attempts = crud.count_attempts(db, current_user.id, quiz.id)
    return schemas.QuizInfo(
        id=quiz.id,
        title=quiz.title,
        description=quiz.description,
        max_attempts=quiz.max_attempts,
        timer=quiz.timer,
        current_attempt=attempts + 1,
        previous_attempts=attempts,
        can_attempt=attempts < quiz.max_attempts,
    )

@router.post("/{quiz_id}/submit", response_model=schemas.QuizResultDisplay, status_code=status.HTTP_201_CREATED)
def submit_quiz_answers(
    quiz_id: str,
    submission: schemas.QuizSubmission,
    course: Course = Depends(get_published_course_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    quiz = _quiz_for_student(db, course, quiz_id, current_user)
    try:
        result = crud.submit_quiz(db, quiz, current_user.id, submission)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    response = schemas.QuizResultDisplay.model_validate(result)
    response.answers = [schemas.QuizAnswerDisplay.model_validate(a) for a in crud.sorted_answers(result)]
    return response

@router.get("/{quiz_id}/result", response_model=schemas.QuizResultDisplay)
def read_latest_result(
    quiz_id: str,
    course: Course = Depends(get_published_course_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    quiz = _quiz_for_student(db, course, quiz_id, current_user)
    result = crud.get_latest_result(db, current_user.id, quiz.id)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No result found for this quiz")
    response = schemas.QuizResultDisplay.model_validate(result)
    response.answers = [schemas.QuizAnswerDisplay.model_validate(a) for a in crud.sorted_answers(result)]
    return response

# --- Teacher Endpoints ---
def _editable_quiz_or_404(db: Session, quiz_id: str, user: User) -> Quiz:
    quiz = crud.get_quiz(db, quiz_id)
    if quiz is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quiz not found")
    if not course_crud.can_edit_course(db, quiz.course, user):
        logger.warning(f"User {user.id} may not edit quiz {quiz.id}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to edit this quiz.")
    return quiz

def _editable_course_or_error(db: Session, course_id: str, user: User):
    course = course_crud.get_course(db, course_id)
    if course is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")
    if not course_crud.can_edit_course(db, course, user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to edit this course.")
    return course

@teacher_router.get("/quizzes", response_model=List[schemas.QuizDisplay])
def list_teacher_quizzes(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user)
):
    return crud.get_quizzes_for_user(db, current_user)

@teacher_router.post("/quizzes", response_model=schemas.QuizDisplay, status_code=status.HTTP_201_CREATED)
def create_teacher_quiz(
    quiz_in: schemas.QuizCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user)
):
    _editable_course_or_error(db, quiz_in.course_id, current_user)
    try:
        return crud.create_quiz(db, quiz_in)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

@teacher_router.get("/quizzes/{quiz_id}", response_model=schemas.QuizDisplay)
def read_teacher_quiz(
    quiz_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user)
):
    return _editable_quiz_or_404(db, quiz_id, current_user)

@teacher_router.patch("/quizzes/{quiz_id}", response_model=schemas.QuizDisplay)
def update_teacher_quiz(
    quiz_id: str,
    quiz_in: schemas.QuizUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user)
):
    quiz = _editable_quiz_or_404(db, quiz_id, current_user)
    if quiz_in.course_id and quiz_in.course_id != quiz.course_id:
        _editable_course_or_error(db, quiz_in.course_id, current_user)
    try:
        return crud.update_quiz(db, quiz, quiz_in)
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

@teacher_router.delete("/quizzes/{quiz_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_teacher_quiz(
    quiz_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user)
):
    quiz = _editable_quiz_or_404(db, quiz_id, current_user)
    crud.delete_quiz(db, quiz)
    return None

@teacher_router.patch("/quizzes/{quiz_id}/publish", response_model=schemas.QuizDisplay)
def publish_teacher_quiz(
    quiz_id: str,
    publish_in: schemas.QuizPublishRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user)
):
    quiz = _editable_quiz_or_404(db, quiz_id, current_user)
    return crud.set_quiz_published(db, quiz, publish_in.is_published)

@teacher_router.get("/quiz-results", response_model=List[schemas.QuizResultWithContext])
def list_quiz_results(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff_user)
):
    """Every graded attempt on quizzes the caller can edit, newest first."""
    results = crud.get_results_for_user(db, current_user)
    response = []
    for result in results:
        item = schemas.QuizResultWithContext.model_validate(result)
        item.answers = [schemas.QuizAnswerDisplay.model_validate(a) for a in crud.sorted_answers(result)]
        response.append(item)
    return response
