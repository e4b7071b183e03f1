from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from lms_backend.models.enums import PurchaseStatus, UserRole
from lms_backend.schemas.user_schema import UserSummary
from lms_backend.schemas.course_schema import CourseSummary

# --- Payment Schemas ---
class PaymentCreate(BaseModel):
    purchase_id: str
    amount: float = Field(..., description="Installment amount, must be positive")
    notes: Optional[str] = Field(None, max_length=1000)

class PaymentDisplay(BaseModel):
    id: str
    purchase_id: str
    amount: float
    payment_number: int
    notes: Optional[str] = None
    recorded_by: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True

class PaymentRecordedResponse(BaseModel):
    payment: PaymentDisplay
    total_paid: float
    remaining: float

# --- Purchase Schemas ---
class PurchaseDisplay(BaseModel):
    id: str
    user_id: str
    course_id: str
    status: PurchaseStatus
    course_price: Optional[float] = None
    total_paid: float
    created_at: datetime

    class Config:
        from_attributes = True

class PurchaseWithDetails(PurchaseDisplay):
    user: UserSummary
    course: CourseSummary
    payments: List[PaymentDisplay] = []

class CoursePriceUpdate(BaseModel):
    course_price: Optional[float] = None

# --- Financial report ---
class FinancialReportRow(BaseModel):
    purchase_id: str
    user: UserSummary
    course_price: float
    student_total_paid: float
    remaining: float
    is_fully_paid: bool
    payments: List[PaymentDisplay] = []

class FinancialReportSummary(BaseModel):
    total_students: int
    total_paid: float
    total_remaining: float
    total_expected: float

class FinancialReport(BaseModel):
    course: CourseSummary
    purchases: List[FinancialReportRow]
    summary: FinancialReportSummary

class AddCourseRequest(BaseModel):
    course_id: str

class CourseStudentDisplay(BaseModel):
    id: str
    full_name: str
    phone_number: str
    email: str
    role: UserRole
    enrolled_at: datetime
