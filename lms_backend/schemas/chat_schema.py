from pydantic import BaseModel
from datetime import datetime

from lms_backend.schemas.user_schema import UserSummary

class CourseMessageCreate(BaseModel):
    # Length rules are checked after trimming, in the route
    message: str

class CourseMessageDisplay(BaseModel):
    id: str
    course_id: str
    message: str
    created_at: datetime
    user: UserSummary

    class Config:
        from_attributes = True
