from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class SavedDocumentCreate(BaseModel):
    attachment_id: str = Field(..., min_length=1)
    course_id: str = Field(..., min_length=1)
    chapter_id: str = Field(..., min_length=1)
    attachment_name: str = Field(..., min_length=1, max_length=255)
    attachment_url: str = Field(..., min_length=1)

class SavedDocumentDisplay(SavedDocumentCreate):
    id: str
    user_id: str
    created_at: datetime

    class Config:
        from_attributes = True

class SavedDocumentStatus(BaseModel):
    is_saved: bool
    saved_document: Optional[SavedDocumentDisplay] = None
