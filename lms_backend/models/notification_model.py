from sqlalchemy import Column, String, Text, Boolean, ForeignKey, TIMESTAMP, Enum as SAEnum
from sqlalchemy.orm import relationship

from lms_backend.core.database import Base, generate_uuid, utcnow
from lms_backend.models.enums import NotificationType

class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=True)
    chapter_id = Column(String(36), ForeignKey("chapters.id", ondelete="CASCADE"), nullable=True)
    type = Column(SAEnum(NotificationType, name="notification_type_enum", values_callable=lambda obj: [e.value for e in obj]),
                  nullable=False, default=NotificationType.NEW_CHAPTER)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False, index=True)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)

    user = relationship("User", back_populates="notifications")
    course = relationship("Course")
    chapter = relationship("Chapter")

    def __repr__(self):
        return f"<Notification(id={self.id}, user_id={self.user_id}, type='{self.type}', read={self.is_read})>"
