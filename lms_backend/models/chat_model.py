from sqlalchemy import Column, String, Text, ForeignKey, TIMESTAMP
from sqlalchemy.orm import relationship

from lms_backend.core.database import Base, generate_uuid, utcnow

class CourseMessage(Base):
    __tablename__ = "course_messages"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    course_id = Column(String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    message = Column(Text, nullable=False)

    # Set in Python so ordering keeps sub-second precision on every backend
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow, index=True)

    course = relationship("Course", back_populates="messages")
    user = relationship("User", back_populates="course_messages")

    def __repr__(self):
        return f"<CourseMessage(id={self.id}, course_id={self.course_id}, user_id={self.user_id})>"
