from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import List, Optional
import logging

from lms_backend.models.saved_document_model import SavedDocument
from lms_backend.schemas import saved_document_schema as schemas

logger = logging.getLogger(__name__)

def get_saved_documents(db: Session, user_id: str) -> List[SavedDocument]:
    return (
        db.query(SavedDocument)
        .filter(SavedDocument.user_id == user_id)
        .order_by(SavedDocument.created_at.desc())
        .all()
    )

def get_saved_document(db: Session, saved_id: str) -> Optional[SavedDocument]:
    return db.query(SavedDocument).filter(SavedDocument.id == saved_id).first()

def get_saved_document_by_attachment(db: Session, user_id: str, attachment_id: str) -> Optional[SavedDocument]:
    return db.query(SavedDocument).filter(
        SavedDocument.user_id == user_id,
        SavedDocument.attachment_id == attachment_id
    ).first()

def save_document(db: Session, user_id: str, document_in: schemas.SavedDocumentCreate) -> SavedDocument:
    if get_saved_document_by_attachment(db, user_id, document_in.attachment_id):
        raise ValueError("Document already saved")

    db_document = SavedDocument(user_id=user_id, **document_in.model_dump())
    db.add(db_document)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning(f"Concurrent save of attachment {document_in.attachment_id} by user {user_id}")
        raise ValueError("Document already saved")
    db.refresh(db_document)
    logger.info(f"User {user_id} saved attachment {document_in.attachment_id}")
    return db_document

def delete_saved_document(db: Session, db_document: SavedDocument) -> None:
    saved_id = db_document.id
    db.delete(db_document)
    db.commit()
    logger.info(f"Saved document {saved_id} deleted.")
