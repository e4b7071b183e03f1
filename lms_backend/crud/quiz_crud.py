from sqlalchemy.orm import Session, selectinload
from sqlalchemy import func
from typing import Dict, List, Optional, Union, Any
import logging

from lms_backend.models.enums import QuestionType, UserRole
from lms_backend.models.user_model import User
from lms_backend.models.course_model import Course, CourseTeacher, Chapter, Quiz, Question
from lms_backend.models.user_progress_model import QuizResult, QuizAnswer
from lms_backend.schemas import quiz_schema as schemas

logger = logging.getLogger(__name__)

# --- Question helpers ---
def normalize_correct_answer(question_in: schemas.QuestionCreate) -> str:
    """
    Stores multiple-choice answers as option text. Index answers are resolved
    against the option list; anything else is kept as a trimmed string.
    """
    answer = question_in.correct_answer
    if question_in.type == QuestionType.MULTIPLE_CHOICE:
        options = [o for o in (question_in.options or []) if o and o.strip()]
        if not options:
            raise ValueError("Multiple choice questions need at least one option")
        if isinstance(answer, int) and not isinstance(answer, bool):
            if answer < 0 or answer >= len(options):
                raise ValueError(f"Correct answer index {answer} is out of range")
            return options[answer]
        if str(answer).strip() not in [o.strip() for o in options]:
            raise ValueError("Correct answer must be one of the options")
        return str(answer).strip()
    if question_in.type == QuestionType.TRUE_FALSE:
        value = str(answer).strip().lower()
        if value not in ("true", "false"):
            raise ValueError("True/false questions need 'true' or 'false' as the correct answer")
        return value
    return str(answer).strip()

def _build_questions(questions_in: List[schemas.QuestionCreate]) -> List[Question]:
    questions = []
    for index, question_in in enumerate(questions_in, start=1):
        options = None
        if question_in.type == QuestionType.MULTIPLE_CHOICE:
            options = [o for o in (question_in.options or []) if o and o.strip()]
        questions.append(Question(
            text=question_in.text,
            image_url=question_in.image_url,
            type=question_in.type,
            options=options,
            correct_answer=normalize_correct_answer(question_in),
            points=question_in.points,
            position=index,
        ))
    return questions

def _next_course_item_position(db: Session, course_id: str) -> int:
    last_chapter = db.query(func.max(Chapter.position)).filter(Chapter.course_id == course_id).scalar() or 0
    last_quiz = db.query(func.max(Quiz.position)).filter(Quiz.course_id == course_id).scalar() or 0
    return max(last_chapter, last_quiz) + 1

# --- Quiz CRUD ---
def create_quiz(db: Session, quiz_in: schemas.QuizCreate) -> Quiz:
    logger.debug(f"Creating quiz '{quiz_in.title}' in course {quiz_in.course_id}")
    position = quiz_in.position if quiz_in.position is not None else _next_course_item_position(db, quiz_in.course_id)

    db_quiz = Quiz(
        course_id=quiz_in.course_id,
        title=quiz_in.title,
        description=quiz_in.description,
        position=position,
        timer=quiz_in.timer,
        max_attempts=quiz_in.max_attempts,
    )
    db_quiz.questions = _build_questions(quiz_in.questions)
    db.add(db_quiz)
    db.commit()
    db.refresh(db_quiz)
    logger.info(f"Quiz '{db_quiz.title}' (ID: {db_quiz.id}) created with {len(db_quiz.questions)} questions.")
    return db_quiz

def get_quiz(db: Session, quiz_id: str) -> Optional[Quiz]:
    return (
        db.query(Quiz)
        .options(selectinload(Quiz.questions))
        .filter(Quiz.id == quiz_id)
        .first()
    )

def get_quiz_in_course(db: Session, course_id: str, quiz_id: str) -> Optional[Quiz]:
    return db.query(Quiz).filter(Quiz.id == quiz_id, Quiz.course_id == course_id).first()

def get_quizzes_for_user(db: Session, user: User) -> List[Quiz]:
    """Quizzes of every course the user can edit (all courses for admins)."""
    query = db.query(Quiz).options(selectinload(Quiz.questions), selectinload(Quiz.course))
    if user.role != UserRole.ADMIN:
        assigned_ids = db.query(CourseTeacher.course_id).filter(CourseTeacher.teacher_id == user.id)
        owned_ids = db.query(Course.id).filter(Course.user_id == user.id)
        query = query.filter(Quiz.course_id.in_(owned_ids) | Quiz.course_id.in_(assigned_ids))
    return query.order_by(Quiz.created_at.desc()).all()

def update_quiz(db: Session, db_quiz: Quiz, quiz_in: schemas.QuizUpdate) -> Quiz:
    update_data = quiz_in.model_dump(exclude_unset=True, exclude={"questions"})
    logger.debug(f"Updating quiz {db_quiz.id} with data: {update_data}")
    for field, value in update_data.items():
        if field in ("title", "course_id", "max_attempts") and value is None:
            continue
        setattr(db_quiz, field, value)

    if quiz_in.questions is not None:
        # delete-orphan removes the old questions together with their recorded answers
        db_quiz.questions = _build_questions(quiz_in.questions)

    db.commit()
    db.refresh(db_quiz)
    logger.info(f"Quiz {db_quiz.id} updated successfully.")
    return db_quiz

def delete_quiz(db: Session, db_quiz: Quiz) -> None:
    quiz_id = db_quiz.id
    db.delete(db_quiz)
    db.commit()
    logger.info(f"Quiz {quiz_id} deleted.")

def set_quiz_published(db: Session, db_quiz: Quiz, is_published: bool) -> Quiz:
    db_quiz.is_published = is_published
    db.commit()
    db.refresh(db_quiz)
    logger.info(f"Quiz {db_quiz.id} is_published set to {is_published}.")
    return db_quiz

# --- Attempts and grading ---
def count_attempts(db: Session, student_id: str, quiz_id: str) -> int:
    return db.query(func.count(QuizResult.id)).filter(
        QuizResult.student_id == student_id,
        QuizResult.quiz_id == quiz_id
    ).scalar() or 0

def _answer_to_text(question: Question, answer: Union[str, int, bool, None]) -> Optional[str]:
    if answer is None:
        return None
    if isinstance(answer, bool):
        return "true" if answer else "false"
    if question.type == QuestionType.MULTIPLE_CHOICE and isinstance(answer, int):
        options = question.options or []
        return options[answer] if 0 <= answer < len(options) else str(answer)
    return str(answer)

def is_answer_correct(question: Question, answer_text: Optional[str]) -> bool:
    if answer_text is None:
        return False
    given = answer_text.strip()
    expected = (question.correct_answer or "").strip()
    if question.type == QuestionType.SHORT_ANSWER:
        return given.lower() == expected.lower()
    return given == expected

def grade_answers(questions: List[Question], answers: Dict[str, Any]) -> Dict[str, Any]:
    """
    Scores a submission. `answers` maps question id -> raw answer.
    Score is the sum of points of correctly answered questions.
    """
    graded = []
    score = 0
    total_points = 0
    for question in questions:
        total_points += question.points
        answer_text = _answer_to_text(question, answers.get(question.id))
        correct = is_answer_correct(question, answer_text)
        earned = question.points if correct else 0
        score += earned
        graded.append({
            "question_id": question.id,
            "student_answer": answer_text,
            "correct_answer": question.correct_answer,
            "is_correct": correct,
            "points_earned": earned,
        })
    percentage = (score / total_points * 100) if total_points else 0.0
    return {"score": score, "total_points": total_points, "percentage": round(percentage, 2), "answers": graded}

def submit_quiz(db: Session, quiz: Quiz, student_id: str, submission: schemas.QuizSubmission) -> QuizResult:
    attempts = count_attempts(db, student_id, quiz.id)
    if attempts >= quiz.max_attempts:
        logger.warning(f"Student {student_id} exceeded max attempts ({quiz.max_attempts}) for quiz {quiz.id}")
        raise ValueError("Maximum attempts reached for this quiz")

    answers: Dict[str, Any] = {a.question_id: a.answer for a in submission.answers}
    graded = grade_answers(list(quiz.questions), answers)

    result = QuizResult(
        student_id=student_id,
        quiz_id=quiz.id,
        score=graded["score"],
        total_points=graded["total_points"],
        percentage=graded["percentage"],
        attempt_number=attempts + 1,
    )
    result.answers = [QuizAnswer(**answer) for answer in graded["answers"]]
    db.add(result)
    db.commit()
    db.refresh(result)
    logger.info(f"Quiz {quiz.id} attempt {result.attempt_number} by {student_id}: {result.score}/{result.total_points}")
    return result

def get_latest_result(db: Session, student_id: str, quiz_id: str) -> Optional[QuizResult]:
    return (
        db.query(QuizResult)
        .filter(QuizResult.student_id == student_id, QuizResult.quiz_id == quiz_id)
        .order_by(QuizResult.attempt_number.desc())
        .first()
    )

def sorted_answers(result: QuizResult) -> List[QuizAnswer]:
    return sorted(result.answers, key=lambda a: a.question.position if a.question else 0)

def get_results_for_user(db: Session, user: User) -> List[QuizResult]:
    """Every graded attempt on quizzes the user can edit, newest first."""
    query = db.query(QuizResult).join(Quiz, QuizResult.quiz_id == Quiz.id)
    if user.role != UserRole.ADMIN:
        assigned_ids = db.query(CourseTeacher.course_id).filter(CourseTeacher.teacher_id == user.id)
        owned_ids = db.query(Course.id).filter(Course.user_id == user.id)
        query = query.filter(Quiz.course_id.in_(owned_ids) | Quiz.course_id.in_(assigned_ids))
    return query.order_by(QuizResult.submitted_at.desc()).all()
