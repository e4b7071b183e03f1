from fastapi import APIRouter, Depends, HTTPException, status, Body, Request
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
import logging

from lms_backend.core.database import get_db
from lms_backend.core.dependencies import get_current_active_user
from lms_backend.core.security import create_access_token, verify_password, verify_firebase_id_token
from lms_backend.core.recaptcha import verify_recaptcha_token
from lms_backend.crud import user_crud as crud
from lms_backend.models.enums import UserRole
from lms_backend.models.user_model import User
from lms_backend.services import session_manager
from lms_backend.schemas.user_schema import (
    UserRegisterRequest,
    UserLoginRequest,
    GoogleLoginRequest,
    CheckUserStatusRequest,
    UserStatusResponse,
    RecaptchaRequest,
    UserDisplay,
    UserProfileUpdate,
    AuthResponse,
    TokenData,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["Authentication"])

def _authenticate(db: Session, phone_number: str, password: str) -> User:
    user = crud.get_user_by_phone(db, phone_number.strip())
    if user is None or not verify_password(password, user.hashed_password):
        logger.warning(f"Failed login attempt for phone {phone_number}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid phone number or password")
    return user

def _ensure_single_device(db: Session, user: User) -> None:
    """Students hold one live session; a second login is refused until it ends."""
    if user.role != UserRole.USER or not user.is_active:
        return
    if session_manager.is_logout_due(user):
        session_manager.end_session(db, user)
        return
    logger.warning(f"Login refused for user {user.id}: already logged in on another device")
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="UserAlreadyLoggedIn")

def _start_session(db: Session, user: User, message: str) -> AuthResponse:
    session_id = session_manager.create_session(db, user)
    token = create_access_token(user_id=user.id, session_id=session_id)
    return AuthResponse(message=message, access_token=token, user=UserDisplay.model_validate(user))

@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register_user(
    payload: UserRegisterRequest = Body(...),
    db: Session = Depends(get_db)
):
    """
    Self-registration of a student account with phone number and password.
    """
    logger.info(f"Registration attempt for phone {payload.phone_number}")
    try:
        db_user = crud.create_user(db, payload)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except IntegrityError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Account could not be created: duplicate data")

    return AuthResponse(message="User registered successfully.", user=UserDisplay.model_validate(db_user))

@router.post("/login", response_model=AuthResponse)
def login_user(
    payload: UserLoginRequest = Body(...),
    db: Session = Depends(get_db)
):
    user = _authenticate(db, payload.phone_number, payload.password)
    _ensure_single_device(db, user)
    logger.info(f"User {user.id} logged in.")
    return _start_session(db, user, "Login successful.")

@router.post("/google", response_model=AuthResponse)
def login_with_google(
    payload: GoogleLoginRequest = Body(...),
    db: Session = Depends(get_db)
):
    """
    Google sign-in through Firebase. The Google account must belong to an existing user.
    """
    token_data: TokenData = verify_firebase_id_token(payload.firebase_id_token)

    user = crud.get_user_by_firebase_uid(db, token_data.firebase_uid)
    if user is None:
        user = crud.get_user_by_email(db, token_data.email)
    if user is None:
        logger.warning(f"Google sign-in for unknown email {token_data.email}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No account is registered with this email")

    crud.link_firebase_uid(db, user, token_data.firebase_uid)
    _ensure_single_device(db, user)
    return _start_session(db, user, "Login successful.")

@router.post("/force-login")
def force_login(
    payload: UserLoginRequest = Body(...),
    db: Session = Depends(get_db)
):
    """
    Ends the session held on another device so the account can log in again.
    """
    user = _authenticate(db, payload.phone_number, payload.password)
    if user.role == UserRole.USER and not user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No active session found")

    session_manager.end_session(db, user)
    logger.info(f"Forced logout of user {user.id} from other devices")
    return {"message": "Previous session ended. You can log in now."}

@router.post("/logout")
def logout(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    session_manager.end_session(db, current_user)
    return {"message": "Logged out successfully."}

@router.post("/logout/scheduled")
def schedule_logout(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Sent when the browser tab closes; the session ends unless the user returns within the grace period."""
    session_manager.schedule_delayed_logout(db, current_user)
    return {"message": "Logout scheduled."}

@router.post("/check-user-status", response_model=UserStatusResponse)
def check_user_status(
    payload: CheckUserStatusRequest = Body(...),
    db: Session = Depends(get_db)
):
    user = crud.get_user_by_phone(db, payload.phone_number.strip())
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserStatusResponse(is_active=user.is_active, role=user.role)

@router.get("/session", response_model=UserDisplay)
def read_session(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    # A returning user cancels a logout scheduled when their tab closed
    session_manager.cancel_scheduled_logout(db, current_user)
    return current_user

@router.post("/verify-recaptcha-gate")
async def verify_recaptcha_gate(request: Request, payload: RecaptchaRequest = Body(...)):
    if not payload.token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="reCaptcha token is required")

    client_ip = request.client.host if request.client else None
    if not await verify_recaptcha_token(payload.token, client_ip):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="reCaptcha verification failed")
    return {"success": True}

@router.get("/me", response_model=UserDisplay)
def read_users_me(current_user: User = Depends(get_current_active_user)):
    logger.debug(f"Fetching profile for user {current_user.id}")
    return current_user

@router.patch("/me", response_model=UserDisplay)
def update_users_me(
    payload: UserProfileUpdate = Body(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    try:
        return crud.update_user(db, current_user, payload)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
