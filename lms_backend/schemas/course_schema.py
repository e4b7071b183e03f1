from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from lms_backend.models.enums import VideoType, CourseItemType, PurchaseStatus
from lms_backend.schemas.user_progress_schema import UserProgressDisplay
from lms_backend.schemas.quiz_schema import QuizResultSummary

# --- Attachment Schemas ---
class AttachmentCreate(BaseModel):
    url: str = Field(..., min_length=1)
    name: Optional[str] = Field(None, max_length=255)

class AttachmentDisplay(BaseModel):
    id: str
    name: str
    url: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ChapterAttachmentDisplay(AttachmentDisplay):
    chapter_id: str
    position: int

# --- Chapter Schemas ---
class ChapterBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255, description="Title of the chapter")

class ChapterCreate(ChapterBase):
    is_free: bool = False

class ChapterUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    is_free: Optional[bool] = None
    video_url: Optional[str] = None

class ChapterDisplay(ChapterBase):
    id: str
    course_id: str
    description: Optional[str] = None
    video_url: Optional[str] = None
    video_type: Optional[VideoType] = None
    youtube_video_id: Optional[str] = None
    document_url: Optional[str] = None
    document_name: Optional[str] = None
    position: int
    is_published: bool
    is_free: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ChapterWithProgress(ChapterDisplay):
    user_progress: Optional[UserProgressDisplay] = None

class ChapterDetail(ChapterWithProgress):
    attachments: List[ChapterAttachmentDisplay] = []
    can_view: bool = False
    next_chapter_id: Optional[str] = None

class ChapterDocumentUpdate(BaseModel):
    document_url: str = Field(..., min_length=1)
    document_name: Optional[str] = Field(None, max_length=255)

class YoutubeVideoRequest(BaseModel):
    youtube_url: str = Field(..., min_length=1)

class UploadedVideoRequest(BaseModel):
    video_url: str = Field(..., min_length=1)

# --- Course Schemas ---
class CourseBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255, description="Title of the course")

class CourseCreate(CourseBase):
    is_free: bool = False

class CourseUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    image_url: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    is_free: Optional[bool] = None
    target_college: Optional[str] = None
    target_faculty: Optional[str] = None
    target_level: Optional[str] = None

class CourseDisplay(CourseBase):
    id: str
    user_id: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    price: Optional[float] = None
    is_free: bool
    is_published: bool
    target_college: Optional[str] = None
    target_faculty: Optional[str] = None
    target_level: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ItemId(BaseModel):
    id: str

    class Config:
        from_attributes = True

class CourseListItem(CourseDisplay):
    """Catalogue entry: published chapter and quiz ids plus the caller's progress."""
    chapters: List[ItemId] = []
    quizzes: List[ItemId] = []
    progress: Optional[float] = None
    is_purchased: bool = False

class CoursePurchaseSummary(BaseModel):
    id: str
    status: PurchaseStatus
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class CourseDetail(CourseDisplay):
    chapters: List[ChapterDisplay] = []
    attachments: List[AttachmentDisplay] = []
    purchases: List[CoursePurchaseSummary] = []

class CourseSummary(BaseModel):
    id: str
    title: str
    price: Optional[float] = None

    class Config:
        from_attributes = True

# --- Mixed chapter/quiz ordering ---
class ReorderItem(BaseModel):
    id: str
    type: CourseItemType = CourseItemType.CHAPTER
    position: int = Field(..., ge=0)

class ReorderRequest(BaseModel):
    items: List[ReorderItem]

class CourseContentItem(BaseModel):
    id: str
    type: CourseItemType
    title: str
    position: int
    is_free: bool = False
    is_completed: bool = False
    quiz_results: List[QuizResultSummary] = []

class CourseProgressResponse(BaseModel):
    course_id: str
    progress: float
    completed_chapters: int
    completed_quizzes: int
    total_items: int

class CourseAccessResponse(BaseModel):
    has_access: bool

# --- Allowed teachers ---
class AllowedTeacherDisplay(BaseModel):
    id: str
    full_name: str
    email: str
    phone_number: str
    is_allowed: bool
    is_creator: bool

class AllowedTeachersUpdate(BaseModel):
    teacher_ids: List[str] = []

# --- Enrolment ---
class EnrollResponse(BaseModel):
    message: str
    purchase_id: str
