# This file makes the 'models' directory a Python package.

from lms_backend.core.database import Base # Base must be imported before models that use it

from .enums import (
    UserRole, VideoType, PurchaseStatus, BalanceTransactionType,
    QuestionType, NotificationType, CourseItemType
)

from .user_model import User, BalanceTransaction
from .course_model import (
    Course,
    CourseTeacher,
    Attachment,
    Chapter,
    ChapterAttachment,
    Quiz,
    Question
)
from .user_progress_model import UserProgress, QuizResult, QuizAnswer
from .payment_model import Purchase, Payment
from .saved_document_model import SavedDocument
from .chat_model import CourseMessage
from .notification_model import Notification

__all__ = [
    "Base",
    # Models
    "User",
    "BalanceTransaction",
    "Course",
    "CourseTeacher",
    "Attachment",
    "Chapter",
    "ChapterAttachment",
    "Quiz",
    "Question",
    "UserProgress",
    "QuizResult",
    "QuizAnswer",
    "Purchase",
    "Payment",
    "SavedDocument",
    "CourseMessage",
    "Notification",
    # Enums
    "UserRole",
    "VideoType",
    "PurchaseStatus",
    "BalanceTransactionType",
    "QuestionType",
    "NotificationType",
    "CourseItemType",
]
