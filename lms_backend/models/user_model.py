from sqlalchemy import Column, String, Float, Boolean, TIMESTAMP, ForeignKey, UniqueConstraint, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from lms_backend.core.database import Base, generate_uuid
from lms_backend.models.enums import UserRole, BalanceTransactionType

class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    full_name = Column(String(255), nullable=False)
    phone_number = Column(String(32), nullable=False, index=True)
    parent_phone_number = Column(String(32), nullable=True)
    email = Column(String(255), nullable=False, index=True)
    hashed_password = Column(String(255), nullable=True) # Null for accounts that only sign in with Google

    college = Column(String(255), nullable=True)
    faculty = Column(String(255), nullable=True)
    level = Column(String(64), nullable=True)
    image_url = Column(String(1024), nullable=True)

    role = Column(SAEnum(UserRole, name="user_role_enum", values_callable=lambda obj: [e.value for e in obj]),
                  nullable=False, default=UserRole.USER)
    balance = Column(Float, nullable=False, default=0)

    firebase_uid = Column(String(255), nullable=True, index=True)

    # Session state: one active device per student account
    is_active = Column(Boolean, nullable=False, default=False)
    session_id = Column(String(128), nullable=True)
    last_login_at = Column(TIMESTAMP(timezone=True), nullable=True)
    logout_scheduled_at = Column(TIMESTAMP(timezone=True), nullable=True)

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), default=func.now(), onupdate=func.now())

    # Relationships
    courses_owned = relationship("Course", back_populates="owner")
    purchases = relationship("Purchase", back_populates="user", cascade="all, delete-orphan")
    progress_entries = relationship("UserProgress", back_populates="user", cascade="all, delete-orphan")
    quiz_results = relationship("QuizResult", back_populates="student", cascade="all, delete-orphan")
    balance_transactions = relationship("BalanceTransaction", back_populates="user", cascade="all, delete-orphan")
    saved_documents = relationship("SavedDocument", back_populates="user", cascade="all, delete-orphan")
    course_messages = relationship("CourseMessage", back_populates="user", cascade="all, delete-orphan")
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")
    teaching_assignments = relationship("CourseTeacher", back_populates="teacher", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint('email', name='uq_user_email'),
        UniqueConstraint('phone_number', name='uq_user_phone_number'),
    )

    @property
    def is_staff(self) -> bool:
        return self.role in (UserRole.TEACHER, UserRole.ADMIN)

    def __repr__(self):
        return f"<User(id={self.id}, phone='{self.phone_number}', role='{self.role}')>"


class BalanceTransaction(Base):
    __tablename__ = "balance_transactions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    type = Column(SAEnum(BalanceTransactionType, name="balance_transaction_type_enum", values_callable=lambda obj: [e.value for e in obj]),
                  nullable=False)
    description = Column(String(500), nullable=True)

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="balance_transactions")

    def __repr__(self):
        return f"<BalanceTransaction(id={self.id}, user_id={self.user_id}, type='{self.type}', amount={self.amount})>"
