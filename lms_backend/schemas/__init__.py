# This file makes the 'schemas' directory a Python package.

from .user_schema import (
    UserBase, UserRegisterRequest, AccountCreateRequest, UserDisplay, UserSummary,
    UserWithCourseCount, UserLoginRequest, GoogleLoginRequest, CheckUserStatusRequest,
    UserStatusResponse, RecaptchaRequest, AuthResponse, TokenData, SessionTokenPayload,
    UserProfileUpdate, StaffUserUpdate, AdminUserUpdate, BalanceUpdateRequest,
    PasswordUpdateRequest, SessionResetResponse
)

from .user_progress_schema import UserProgressUpdate, UserProgressDisplay

from .quiz_schema import (
    QuestionBase, QuestionCreate, QuestionStudentDisplay, QuestionDisplay,
    QuizBase, QuizCreate, QuizUpdate, QuizPublishRequest, QuizDisplay, QuizStudentDisplay,
    AnswerSubmission, QuizSubmission, QuizAnswerDisplay, QuizResultSummary,
    QuizResultDisplay, QuizResultWithContext, QuizInfo
)

from .course_schema import (
    AttachmentCreate, AttachmentDisplay, ChapterAttachmentDisplay,
    ChapterBase, ChapterCreate, ChapterUpdate, ChapterDisplay, ChapterWithProgress, ChapterDetail,
    ChapterDocumentUpdate, YoutubeVideoRequest, UploadedVideoRequest,
    CourseBase, CourseCreate, CourseUpdate, CourseDisplay, CourseListItem, CourseDetail,
    CourseSummary, ReorderItem, ReorderRequest, CourseContentItem, CourseProgressResponse,
    CourseAccessResponse, AllowedTeacherDisplay, AllowedTeachersUpdate, EnrollResponse
)

from .payment_schema import (
    PaymentCreate, PaymentDisplay, PaymentRecordedResponse, PurchaseDisplay,
    PurchaseWithDetails, CoursePriceUpdate, FinancialReportRow, FinancialReportSummary,
    FinancialReport
)

from .saved_document_schema import SavedDocumentCreate, SavedDocumentDisplay, SavedDocumentStatus
from .chat_schema import CourseMessageCreate, CourseMessageDisplay
from .notification_schema import NotificationDisplay, NotificationList, NotificationMarkRequest
