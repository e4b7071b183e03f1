from sqlalchemy.orm import Session, selectinload
from sqlalchemy import func
from typing import List, Optional, Dict
import logging

from lms_backend.models.enums import UserRole, PurchaseStatus, CourseItemType
from lms_backend.models.user_model import User
from lms_backend.models.course_model import Course, CourseTeacher, Attachment, Chapter, Quiz
from lms_backend.models.payment_model import Purchase
from lms_backend.models.user_progress_model import UserProgress, QuizResult
from lms_backend.schemas import course_schema as schemas

logger = logging.getLogger(__name__)

# Helper function for updating entities
def update_db_object(db_obj, update_data: schemas.BaseModel):
    for field, value in update_data.model_dump(exclude_unset=True).items():
        setattr(db_obj, field, value)
    return db_obj

# --- Course CRUD ---
def create_course(db: Session, course_in: schemas.CourseCreate, owner_id: str) -> Course:
    logger.debug(f"Creating course titled '{course_in.title}' for owner_id {owner_id}")
    db_course = Course(
        **course_in.model_dump(),
        user_id=owner_id
    )
    db.add(db_course)
    db.commit()
    db.refresh(db_course)
    logger.info(f"Course '{db_course.title}' (ID: {db_course.id}) created successfully.")
    return db_course

def get_course(db: Session, course_id: str) -> Optional[Course]:
    logger.debug(f"Fetching course with ID: {course_id}")
    return db.query(Course).filter(Course.id == course_id).first()

def get_published_courses(db: Session) -> List[Course]:
    """Catalogue query: published courses, newest first, with chapters and quizzes preloaded."""
    return (
        db.query(Course)
        .options(selectinload(Course.chapters), selectinload(Course.quizzes))
        .filter(Course.is_published.is_(True))
        .order_by(Course.created_at.desc())
        .all()
    )

def get_courses_for_editor(db: Session, user: User) -> List[Course]:
    """Courses the user can edit: all for admins, owned or assigned for teachers."""
    query = db.query(Course)
    if user.role != UserRole.ADMIN:
        assigned_ids = db.query(CourseTeacher.course_id).filter(CourseTeacher.teacher_id == user.id)
        query = query.filter((Course.user_id == user.id) | (Course.id.in_(assigned_ids)))
    return query.order_by(Course.created_at.desc()).all()

def get_all_courses(db: Session) -> List[Course]:
    return db.query(Course).order_by(Course.created_at.desc()).all()

def update_course(db: Session, db_course: Course, course_in: schemas.CourseUpdate) -> Course:
    update_data = course_in.model_dump(exclude_unset=True)
    logger.debug(f"Updating course ID: {db_course.id} with data: {update_data}")

    # Blank targeting fields mean "everyone"
    for field in ("target_college", "target_faculty", "target_level"):
        if field in update_data and update_data[field] is not None and update_data[field].strip() == "":
            update_data[field] = None

    for field, value in update_data.items():
        if field == "title" and value is None:
            continue
        setattr(db_course, field, value)

    db.commit()
    db.refresh(db_course)
    logger.info(f"Course '{db_course.title}' (ID: {db_course.id}) updated successfully.")
    return db_course

def delete_course(db: Session, db_course: Course) -> None:
    course_id = db_course.id
    logger.debug(f"Deleting course ID: {course_id} ('{db_course.title}')")
    db.delete(db_course)
    db.commit()
    logger.info(f"Course ID: {course_id} deleted successfully.")

# --- Publishing ---
def get_publish_blockers(course: Course) -> List[str]:
    """Names of the requirements a course still misses before it can be published."""
    missing = []
    if not course.title or not course.title.strip():
        missing.append("title")
    if not course.description or not course.description.strip():
        missing.append("description")
    if not course.image_url:
        missing.append("image")
    if course.price is None:
        missing.append("price")
    if not any(chapter.is_published for chapter in course.chapters):
        missing.append("published chapter")
    return missing

def publish_course(db: Session, db_course: Course) -> Course:
    missing = get_publish_blockers(db_course)
    if missing:
        logger.warning(f"Course {db_course.id} cannot be published, missing: {missing}")
        raise ValueError(f"Missing required fields: {', '.join(missing)}")

    db_course.is_published = True
    db.commit()
    db.refresh(db_course)
    logger.info(f"Course {db_course.id} published.")
    return db_course

def unpublish_course(db: Session, db_course: Course) -> Course:
    db_course.is_published = False
    db.commit()
    db.refresh(db_course)
    logger.info(f"Course {db_course.id} unpublished.")
    return db_course

# --- Allowed teachers ---
def is_allowed_teacher(db: Session, course_id: str, teacher_id: str) -> bool:
    return db.query(CourseTeacher).filter(
        CourseTeacher.course_id == course_id,
        CourseTeacher.teacher_id == teacher_id
    ).first() is not None

def can_edit_course(db: Session, course: Course, user: User) -> bool:
    if user.role == UserRole.ADMIN or course.user_id == user.id:
        return True
    return user.role == UserRole.TEACHER and is_allowed_teacher(db, course.id, user.id)

def get_allowed_teachers_overview(db: Session, course: Course) -> List[Dict]:
    """Every teacher with flags telling whether they may edit this course."""
    teachers = db.query(User).filter(User.role == UserRole.TEACHER).order_by(User.full_name).all()
    allowed_ids = {ct.teacher_id for ct in course.allowed_teachers}
    overview = []
    for teacher in teachers:
        is_creator = teacher.id == course.user_id
        overview.append({
            "id": teacher.id,
            "full_name": teacher.full_name,
            "email": teacher.email,
            "phone_number": teacher.phone_number,
            "is_allowed": is_creator or teacher.id in allowed_ids,
            "is_creator": is_creator,
        })
    return overview

def set_allowed_teachers(db: Session, course: Course, teacher_ids: List[str]) -> List[Dict]:
    """
    Replaces the set of teachers allowed to edit the course.
    The creator stays allowed when they are a teacher. Unknown ids raise ValueError.
    """
    wanted = set(teacher_ids)
    creator = db.query(User).filter(User.id == course.user_id).first() if course.user_id else None
    if creator is not None and creator.role == UserRole.TEACHER:
        wanted.add(creator.id)

    if wanted:
        found = db.query(func.count(User.id)).filter(User.id.in_(list(wanted)), User.role == UserRole.TEACHER).scalar()
        if found != len(wanted):
            logger.warning(f"Rejected allowed-teachers update for course {course.id}: {wanted}")
            raise ValueError("Invalid teacher IDs")

    db.query(CourseTeacher).filter(CourseTeacher.course_id == course.id).delete(synchronize_session=False)
    for teacher_id in wanted:
        db.add(CourseTeacher(course_id=course.id, teacher_id=teacher_id))
    db.commit()
    db.refresh(course)
    logger.info(f"Allowed teachers for course {course.id} set to {sorted(wanted)}")
    return get_allowed_teachers_overview(db, course)

# --- Course-level attachments ---
def create_attachment(db: Session, course_id: str, attachment_in: schemas.AttachmentCreate) -> Attachment:
    name = attachment_in.name or attachment_in.url.rstrip("/").split("/")[-1] or "Attachment"
    db_attachment = Attachment(course_id=course_id, url=attachment_in.url, name=name)
    db.add(db_attachment)
    db.commit()
    db.refresh(db_attachment)
    logger.info(f"Attachment {db_attachment.id} added to course {course_id}")
    return db_attachment

def get_attachment(db: Session, course_id: str, attachment_id: str) -> Optional[Attachment]:
    return db.query(Attachment).filter(Attachment.id == attachment_id, Attachment.course_id == course_id).first()

def delete_attachment(db: Session, db_attachment: Attachment) -> None:
    attachment_id = db_attachment.id
    db.delete(db_attachment)
    db.commit()
    logger.info(f"Attachment {attachment_id} deleted.")

# --- Ordering of mixed chapter/quiz content ---
def reorder_course_items(db: Session, course_id: str, items: List[schemas.ReorderItem]) -> None:
    chapters = {c.id: c for c in db.query(Chapter).filter(Chapter.course_id == course_id).all()}
    quizzes = {q.id: q for q in db.query(Quiz).filter(Quiz.course_id == course_id).all()}

    for item in items:
        target = chapters.get(item.id) if item.type == CourseItemType.CHAPTER else quizzes.get(item.id)
        if target is None:
            raise ValueError(f"{item.type.value.capitalize()} {item.id} does not belong to this course")
        target.position = item.position

    db.commit()
    logger.info(f"Reordered {len(items)} items in course {course_id}")

# --- Access and progress ---
def get_purchase(db: Session, user_id: str, course_id: str) -> Optional[Purchase]:
    return db.query(Purchase).filter(Purchase.user_id == user_id, Purchase.course_id == course_id).first()

def has_active_purchase(db: Session, user_id: str, course_id: str) -> bool:
    purchase = get_purchase(db, user_id, course_id)
    return purchase is not None and purchase.status == PurchaseStatus.ACTIVE

def user_has_course_access(db: Session, course: Course, user: User) -> bool:
    """Free courses, active purchasers, and anyone who can edit the course."""
    if course.is_free or can_edit_course(db, course, user):
        return True
    return has_active_purchase(db, user.id, course.id)

def calculate_course_progress(db: Session, user_id: str, course: Course) -> Dict:
    """
    Progress over published chapters and quizzes:
    (completed chapters + quizzes with at least one result) / total published items * 100.
    """
    published_chapter_ids = [c.id for c in course.chapters if c.is_published]
    published_quiz_ids = [q.id for q in course.quizzes if q.is_published]
    total = len(published_chapter_ids) + len(published_quiz_ids)

    completed_chapters = 0
    completed_quizzes = 0
    if published_chapter_ids:
        completed_chapters = db.query(func.count(UserProgress.id)).filter(
            UserProgress.user_id == user_id,
            UserProgress.chapter_id.in_(published_chapter_ids),
            UserProgress.is_completed.is_(True),
        ).scalar() or 0
    if published_quiz_ids:
        completed_quizzes = db.query(func.count(func.distinct(QuizResult.quiz_id))).filter(
            QuizResult.student_id == user_id,
            QuizResult.quiz_id.in_(published_quiz_ids),
        ).scalar() or 0

    progress = ((completed_chapters + completed_quizzes) / total * 100) if total else 0.0
    return {
        "course_id": course.id,
        "progress": round(progress, 2),
        "completed_chapters": completed_chapters,
        "completed_quizzes": completed_quizzes,
        "total_items": total,
    }

def build_course_catalogue(db: Session, user: Optional[User], include_progress: bool = False) -> List[Dict]:
    courses = get_published_courses(db)
    purchased_ids = set()
    if user is not None:
        purchased_ids = {
            course_id for (course_id,) in db.query(Purchase.course_id).filter(
                Purchase.user_id == user.id, Purchase.status == PurchaseStatus.ACTIVE
            )
        }

    catalogue = []
    for course in courses:
        entry = schemas.CourseDisplay.model_validate(course).model_dump()
        entry["chapters"] = [{"id": c.id} for c in course.chapters if c.is_published]
        entry["quizzes"] = [{"id": q.id} for q in course.quizzes if q.is_published]
        entry["is_purchased"] = course.id in purchased_ids
        if include_progress and user is not None:
            if course.id in purchased_ids:
                entry["progress"] = calculate_course_progress(db, user.id, course)["progress"]
            else:
                entry["progress"] = 0.0
        catalogue.append(entry)
    return catalogue

def get_course_content(db: Session, course: Course, user_id: str) -> List[Dict]:
    """Published chapters and quizzes merged into one list ordered by position."""
    chapter_ids = [c.id for c in course.chapters if c.is_published]
    completed = set()
    if chapter_ids:
        completed = {
            chapter_id for (chapter_id,) in db.query(UserProgress.chapter_id).filter(
                UserProgress.user_id == user_id,
                UserProgress.chapter_id.in_(chapter_ids),
                UserProgress.is_completed.is_(True),
            )
        }

    items = []
    for chapter in course.chapters:
        if not chapter.is_published:
            continue
        items.append({
            "id": chapter.id,
            "type": CourseItemType.CHAPTER,
            "title": chapter.title,
            "position": chapter.position,
            "is_free": chapter.is_free,
            "is_completed": chapter.id in completed,
            "quiz_results": [],
        })
    for quiz in course.quizzes:
        if not quiz.is_published:
            continue
        results = (
            db.query(QuizResult)
            .filter(QuizResult.quiz_id == quiz.id, QuizResult.student_id == user_id)
            .order_by(QuizResult.attempt_number.asc())
            .all()
        )
        items.append({
            "id": quiz.id,
            "type": CourseItemType.QUIZ,
            "title": quiz.title,
            "position": quiz.position,
            "is_free": False,
            "is_completed": bool(results),
            "quiz_results": results,
        })

    # Chapters sort ahead of quizzes sharing a position
    items.sort(key=lambda item: (item["position"], 0 if item["type"] == CourseItemType.CHAPTER else 1))
    return items
