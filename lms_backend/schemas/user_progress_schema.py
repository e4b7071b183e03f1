from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class UserProgressUpdate(BaseModel):
    is_completed: bool = Field(..., description="Whether the chapter has been completed")

class UserProgressDisplay(BaseModel):
    id: str
    user_id: str
    chapter_id: str
    is_completed: bool
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
