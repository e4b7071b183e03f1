from pydantic import BaseModel, Field
from typing import List, Optional, Union
from datetime import datetime

from lms_backend.models.enums import QuestionType
from lms_backend.schemas.user_schema import UserSummary

# --- Question Schemas ---
class QuestionBase(BaseModel):
    text: str = Field(..., min_length=1, description="The text of the question")
    type: QuestionType = Field(..., description="MULTIPLE_CHOICE, TRUE_FALSE or SHORT_ANSWER")
    image_url: Optional[str] = None
    options: Optional[List[str]] = Field(None, description="Answer choices for MULTIPLE_CHOICE")
    points: int = Field(1, ge=0)

class QuestionCreate(QuestionBase):
    # Multiple choice accepts either the option index or the option text
    correct_answer: Union[int, str]

class QuestionStudentDisplay(QuestionBase):
    """Question as shown to a student taking the quiz: no correct answer."""
    id: str
    position: int

    class Config:
        from_attributes = True

class QuestionDisplay(QuestionStudentDisplay):
    correct_answer: str

# --- Quiz Schemas ---
class QuizBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255, description="Title of the quiz")
    description: Optional[str] = Field(None, max_length=2000)
    timer: Optional[int] = Field(None, gt=0, description="Time limit in minutes")
    max_attempts: int = Field(1, ge=1)

class QuizCreate(QuizBase):
    course_id: str
    position: Optional[int] = Field(None, ge=0, description="Defaults to the end of the course")
    questions: List[QuestionCreate] = Field(default_factory=list)

class QuizUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    course_id: Optional[str] = None
    position: Optional[int] = Field(None, ge=0)
    timer: Optional[int] = Field(None, gt=0)
    max_attempts: Optional[int] = Field(None, ge=1)
    questions: Optional[List[QuestionCreate]] = None # Replaces the full question set when given

class QuizPublishRequest(BaseModel):
    is_published: bool

class QuizCourseInfo(BaseModel):
    id: str
    title: str

    class Config:
        from_attributes = True

class QuizDisplay(QuizBase):
    id: str
    course_id: str
    position: int
    is_published: bool
    course: Optional[QuizCourseInfo] = None
    questions: List[QuestionDisplay] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class QuizStudentDisplay(QuizBase):
    id: str
    course_id: str
    position: int
    questions: List[QuestionStudentDisplay] = []

    class Config:
        from_attributes = True

# --- Submission and results ---
class AnswerSubmission(BaseModel):
    question_id: str
    answer: Optional[Union[str, int, bool]] = None

class QuizSubmission(BaseModel):
    answers: List[AnswerSubmission] = Field(default_factory=list)

class QuizAnswerDisplay(BaseModel):
    id: str
    question_id: str
    student_answer: Optional[str] = None
    correct_answer: str
    is_correct: bool
    points_earned: int
    question: Optional[QuestionDisplay] = None

    class Config:
        from_attributes = True

class QuizResultSummary(BaseModel):
    id: str
    quiz_id: str
    score: int
    total_points: int
    percentage: float
    attempt_number: int
    submitted_at: datetime

    class Config:
        from_attributes = True

class QuizResultDisplay(QuizResultSummary):
    answers: List[QuizAnswerDisplay] = []

class QuizResultWithContext(QuizResultDisplay):
    """Result row on the grades page: who took which quiz of which course."""
    student: UserSummary
    quiz: QuizDisplay

class QuizInfo(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    max_attempts: int
    timer: Optional[int] = None
    current_attempt: int
    previous_attempts: int
    can_attempt: bool
