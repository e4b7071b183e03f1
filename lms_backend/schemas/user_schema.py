from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime

from lms_backend.models.enums import UserRole

# Fields shared by self-registration and staff-created accounts
class UserBase(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=255)
    phone_number: str = Field(..., min_length=6, max_length=32)
    parent_phone_number: Optional[str] = Field(None, max_length=32)
    email: EmailStr
    college: str = Field(..., min_length=1, max_length=255)
    faculty: str = Field(..., min_length=1, max_length=255)
    level: Optional[str] = Field(None, max_length=64)

class UserRegisterRequest(UserBase):
    password: str = Field(..., min_length=6, max_length=128)
    confirm_password: str

class AccountCreateRequest(UserRegisterRequest):
    """Account created from the teacher or admin dashboard. Role is only honoured for admins."""
    role: Optional[UserRole] = None

class UserDisplay(BaseModel):
    id: str
    full_name: str
    phone_number: str
    parent_phone_number: Optional[str] = None
    email: str
    college: Optional[str] = None
    faculty: Optional[str] = None
    level: Optional[str] = None
    image_url: Optional[str] = None
    role: UserRole
    balance: float = 0
    is_active: bool = False
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class UserSummary(BaseModel):
    """Minimal user shape embedded in other payloads (chat, purchases, results)."""
    id: str
    full_name: str
    phone_number: Optional[str] = None
    email: Optional[str] = None
    role: UserRole

    class Config:
        from_attributes = True

class UserWithCourseCount(UserDisplay):
    active_course_count: int = 0

# --- Auth requests/responses ---
class UserLoginRequest(BaseModel):
    phone_number: str
    password: str

class GoogleLoginRequest(BaseModel):
    firebase_id_token: str

class CheckUserStatusRequest(BaseModel):
    phone_number: str

class UserStatusResponse(BaseModel):
    is_active: bool
    role: UserRole

class RecaptchaRequest(BaseModel):
    token: Optional[str] = None

class AuthResponse(BaseModel):
    message: str
    access_token: Optional[str] = None
    token_type: str = "bearer"
    user: Optional[UserDisplay] = None

# Schema representing the data decoded from a Firebase ID token
class TokenData(BaseModel):
    firebase_uid: str
    email: EmailStr

# Claims carried by our own session JWT
class SessionTokenPayload(BaseModel):
    sub: str
    sid: str

# --- Profile and management updates ---
class UserProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    parent_phone_number: Optional[str] = Field(None, max_length=32)
    college: Optional[str] = Field(None, max_length=255)
    faculty: Optional[str] = Field(None, max_length=255)
    level: Optional[str] = Field(None, max_length=64)
    image_url: Optional[str] = None

class StaffUserUpdate(UserProfileUpdate):
    """Fields a teacher may edit on a student account."""
    phone_number: Optional[str] = Field(None, min_length=6, max_length=32)
    email: Optional[EmailStr] = None

class AdminUserUpdate(StaffUserUpdate):
    """Schema for data an Admin can update on a user."""
    role: Optional[UserRole] = None

class BalanceUpdateRequest(BaseModel):
    new_balance: float = Field(..., ge=0, description="Balance to set, in EGP")

class PasswordUpdateRequest(BaseModel):
    new_password: str = Field(..., min_length=6, max_length=128)

class SessionResetResponse(BaseModel):
    message: str
    cleaned_up_count: int = 0
    reset_count: int = 0
