from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
import logging

from lms_backend.core.database import get_db
from lms_backend.core.dependencies import get_current_active_user
from lms_backend.models.user_model import User
from lms_backend.schemas import saved_document_schema as schemas
from lms_backend.crud import saved_document_crud as crud

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/saved-documents", tags=["Saved Documents"])

@router.get("/", response_model=List[schemas.SavedDocumentDisplay])
def list_saved_documents(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return crud.get_saved_documents(db, current_user.id)

@router.post("/", response_model=schemas.SavedDocumentDisplay, status_code=status.HTTP_201_CREATED)
def save_document(
    document_in: schemas.SavedDocumentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    try:
        return crud.save_document(db, current_user.id, document_in)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

@router.get("/by-attachment/{attachment_id}", response_model=schemas.SavedDocumentStatus)
def read_saved_status(
    attachment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    document = crud.get_saved_document_by_attachment(db, current_user.id, attachment_id)
    return schemas.SavedDocumentStatus(
        is_saved=document is not None,
        saved_document=schemas.SavedDocumentDisplay.model_validate(document) if document else None,
    )

@router.delete("/by-attachment/{attachment_id}", status_code=status.HTTP_204_NO_CONTENT)
def unsave_by_attachment(
    attachment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    document = crud.get_saved_document_by_attachment(db, current_user.id, attachment_id)
    if document is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Saved document not found")
    crud.delete_saved_document(db, document)
    return None

@router.delete("/{saved_id}", status_code=status.HTTP_204_NO_CONTENT)
def unsave_document(
    saved_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    document = crud.get_saved_document(db, saved_id)
    if document is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Saved document not found")
    if document.user_id != current_user.id:
        logger.warning(f"User {current_user.id} tried to delete saved document {saved_id} of another user")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to delete this document")
    crud.delete_saved_document(db, document)
    return None
