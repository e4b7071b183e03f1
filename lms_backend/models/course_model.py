from sqlalchemy import (
    Column, Integer, String, Text, Boolean, Float, ForeignKey, TIMESTAMP, JSON,
    Enum as SAEnum, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from lms_backend.core.database import Base, generate_uuid
from lms_backend.models.enums import VideoType, QuestionType

class Course(Base):
    __tablename__ = "courses"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True) # Creator
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    image_url = Column(String(1024), nullable=True)
    price = Column(Float, nullable=True)
    is_free = Column(Boolean, nullable=False, default=False)
    is_published = Column(Boolean, nullable=False, default=False, index=True)

    # Audience targeting, free-form strings chosen in the dashboard
    target_college = Column(String(255), nullable=True)
    target_faculty = Column(String(255), nullable=True)
    target_level = Column(String(64), nullable=True)

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), default=func.now(), onupdate=func.now())

    # Relationships
    owner = relationship("User", back_populates="courses_owned")
    chapters = relationship("Chapter", back_populates="course", cascade="all, delete-orphan", order_by="Chapter.position")
    quizzes = relationship("Quiz", back_populates="course", cascade="all, delete-orphan", order_by="Quiz.position")
    attachments = relationship("Attachment", back_populates="course", cascade="all, delete-orphan", order_by="Attachment.created_at")
    purchases = relationship("Purchase", back_populates="course", cascade="all, delete-orphan")
    allowed_teachers = relationship("CourseTeacher", back_populates="course", cascade="all, delete-orphan")
    messages = relationship("CourseMessage", back_populates="course", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Course(id={self.id}, title='{self.title}', published={self.is_published})>"


class CourseTeacher(Base):
    """Teachers other than the creator who may edit a course."""
    __tablename__ = "course_teachers"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    course_id = Column(String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    teacher_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    course = relationship("Course", back_populates="allowed_teachers")
    teacher = relationship("User", back_populates="teaching_assignments")

    __table_args__ = (UniqueConstraint('course_id', 'teacher_id', name='uq_course_teacher'),)

    def __repr__(self):
        return f"<CourseTeacher(course_id={self.course_id}, teacher_id={self.teacher_id})>"


class Attachment(Base):
    __tablename__ = "attachments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    course_id = Column(String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    url = Column(Text, nullable=False)

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), default=func.now(), onupdate=func.now())

    course = relationship("Course", back_populates="attachments")

    def __repr__(self):
        return f"<Attachment(id={self.id}, name='{self.name}', course_id={self.course_id})>"


class Chapter(Base):
    __tablename__ = "chapters"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    course_id = Column(String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    video_url = Column(Text, nullable=True)
    video_type = Column(SAEnum(VideoType, name="video_type_enum", values_callable=lambda obj: [e.value for e in obj]), nullable=True)
    youtube_video_id = Column(String(32), nullable=True)

    document_url = Column(Text, nullable=True)
    document_name = Column(String(255), nullable=True)

    position = Column(Integer, nullable=False, default=1)
    is_published = Column(Boolean, nullable=False, default=False)
    is_free = Column(Boolean, nullable=False, default=False)

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), default=func.now(), onupdate=func.now())

    # Relationships
    course = relationship("Course", back_populates="chapters")
    attachments = relationship("ChapterAttachment", back_populates="chapter", cascade="all, delete-orphan", order_by="ChapterAttachment.position")
    progress_entries = relationship("UserProgress", back_populates="chapter", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Chapter(id={self.id}, title='{self.title}', position={self.position})>"


class ChapterAttachment(Base):
    __tablename__ = "chapter_attachments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    chapter_id = Column(String(36), ForeignKey("chapters.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    url = Column(Text, nullable=False)
    position = Column(Integer, nullable=False, default=0)

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), default=func.now(), onupdate=func.now())

    chapter = relationship("Chapter", back_populates="attachments")

    def __repr__(self):
        return f"<ChapterAttachment(id={self.id}, name='{self.name}', chapter_id={self.chapter_id})>"


class Quiz(Base):
    __tablename__ = "quizzes"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    course_id = Column(String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    position = Column(Integer, nullable=False, default=1)
    is_published = Column(Boolean, nullable=False, default=False)
    timer = Column(Integer, nullable=True) # Minutes; null means untimed
    max_attempts = Column(Integer, nullable=False, default=1)

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), default=func.now(), onupdate=func.now())

    # Relationships
    course = relationship("Course", back_populates="quizzes")
    questions = relationship("Question", back_populates="quiz", cascade="all, delete-orphan", order_by="Question.position")
    results = relationship("QuizResult", back_populates="quiz", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Quiz(id={self.id}, title='{self.title}', course_id={self.course_id})>"


class Question(Base):
    __tablename__ = "questions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    quiz_id = Column(String(36), ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(Text, nullable=False)
    image_url = Column(Text, nullable=True)
    type = Column(SAEnum(QuestionType, name="question_type_enum", values_callable=lambda obj: [e.value for e in obj]), nullable=False)
    options = Column(JSON, nullable=True) # List of option strings for MULTIPLE_CHOICE
    correct_answer = Column(Text, nullable=False)
    points = Column(Integer, nullable=False, default=1)
    position = Column(Integer, nullable=False, default=1)

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), default=func.now(), onupdate=func.now())

    quiz = relationship("Quiz", back_populates="questions")
    answers = relationship("QuizAnswer", back_populates="question", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Question(id={self.id}, type='{self.type}', quiz_id={self.quiz_id})>"
