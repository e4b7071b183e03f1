from sqlalchemy import Column, Integer, String, Text, Boolean, Float, ForeignKey, TIMESTAMP, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from lms_backend.core.database import Base, generate_uuid, utcnow

class UserProgress(Base):
    __tablename__ = "user_progress"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    chapter_id = Column(String(36), ForeignKey("chapters.id", ondelete="CASCADE"), nullable=False, index=True)
    is_completed = Column(Boolean, nullable=False, default=False)

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="progress_entries")
    chapter = relationship("Chapter", back_populates="progress_entries")

    __table_args__ = (UniqueConstraint('user_id', 'chapter_id', name='uq_user_chapter_progress'),)

    def __repr__(self):
        return f"<UserProgress(user_id={self.user_id}, chapter_id={self.chapter_id}, completed={self.is_completed})>"


class QuizResult(Base):
    """One graded attempt of a quiz by a student."""
    __tablename__ = "quiz_results"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    student_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    quiz_id = Column(String(36), ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    score = Column(Integer, nullable=False, default=0)
    total_points = Column(Integer, nullable=False, default=0)
    percentage = Column(Float, nullable=False, default=0)
    attempt_number = Column(Integer, nullable=False, default=1)
    submitted_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), default=func.now(), onupdate=func.now())

    student = relationship("User", back_populates="quiz_results")
    quiz = relationship("Quiz", back_populates="results")
    answers = relationship("QuizAnswer", back_populates="result", cascade="all, delete-orphan")

    __table_args__ = (UniqueConstraint('student_id', 'quiz_id', 'attempt_number', name='uq_quiz_result_attempt'),)

    def __repr__(self):
        return f"<QuizResult(id={self.id}, quiz_id={self.quiz_id}, attempt={self.attempt_number}, score={self.score}/{self.total_points})>"


class QuizAnswer(Base):
    __tablename__ = "quiz_answers"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    result_id = Column(String(36), ForeignKey("quiz_results.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(String(36), ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    student_answer = Column(Text, nullable=True)
    correct_answer = Column(Text, nullable=False)
    is_correct = Column(Boolean, nullable=False, default=False)
    points_earned = Column(Integer, nullable=False, default=0)

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    result = relationship("QuizResult", back_populates="answers")
    question = relationship("Question", back_populates="answers")

    def __repr__(self):
        return f"<QuizAnswer(question_id={self.question_id}, correct={self.is_correct})>"
