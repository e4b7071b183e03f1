from sqlalchemy import Column, String, Text, ForeignKey, TIMESTAMP, UniqueConstraint
from sqlalchemy.orm import relationship

from lms_backend.core.database import Base, generate_uuid, utcnow

class SavedDocument(Base):
    __tablename__ = "saved_documents"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # Denormalised so a saved copy survives edits to the chapter it came from
    attachment_id = Column(String(36), nullable=False)
    course_id = Column(String(36), nullable=False)
    chapter_id = Column(String(36), nullable=False)
    attachment_name = Column(String(255), nullable=False)
    attachment_url = Column(Text, nullable=False)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)

    user = relationship("User", back_populates="saved_documents")

    __table_args__ = (UniqueConstraint('user_id', 'attachment_id', name='uq_saved_document_user_attachment'),)

    def __repr__(self):
        return f"<SavedDocument(id={self.id}, user_id={self.user_id}, attachment_id={self.attachment_id})>"
