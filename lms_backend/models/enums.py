import enum

class UserRole(str, enum.Enum):
    USER = "USER"
    TEACHER = "TEACHER"
    ADMIN = "ADMIN"

class VideoType(str, enum.Enum):
    UPLOAD = "UPLOAD"
    YOUTUBE = "YOUTUBE"

class PurchaseStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    CANCELLED = "CANCELLED"

class BalanceTransactionType(str, enum.Enum):
    DEPOSIT = "DEPOSIT"
    PURCHASE = "PURCHASE"

class QuestionType(str, enum.Enum):
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    TRUE_FALSE = "TRUE_FALSE"
    SHORT_ANSWER = "SHORT_ANSWER"

class NotificationType(str, enum.Enum):
    NEW_CHAPTER = "NEW_CHAPTER"

class CourseItemType(str, enum.Enum):
    # Used when reordering the mixed chapter/quiz list of a course
    CHAPTER = "chapter"
    QUIZ = "quiz"

# Columns use SAEnum(..., values_callable=...) so the stored value is the enum value.
