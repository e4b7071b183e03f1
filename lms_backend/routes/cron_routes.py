from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session
import logging
import secrets

from lms_backend.core.config import settings
from lms_backend.core.database import get_db
from lms_backend.schemas.user_schema import SessionResetResponse
from lms_backend.services import session_manager

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/cron", tags=["Scheduled Jobs"])

def verify_cron_secret(request: Request) -> None:
    """When CRON_SECRET is set, callers must send `Authorization: Bearer <secret>`."""
    if not settings.CRON_SECRET:
        return
    expected = f"Bearer {settings.CRON_SECRET}"
    provided = request.headers.get("Authorization") or ""
    if not secrets.compare_digest(provided, expected):
        logger.warning("Cron endpoint called with an invalid secret.")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

@router.post("/daily-reset", response_model=SessionResetResponse, dependencies=[Depends(verify_cron_secret)])
def daily_reset(db: Session = Depends(get_db)):
    cleaned_up = session_manager.cleanup_scheduled_logouts(db)
    reset = session_manager.reset_all_sessions(db)
    return SessionResetResponse(message="Daily reset completed", cleaned_up_count=cleaned_up, reset_count=reset)

@router.post("/reset-sessions", response_model=SessionResetResponse, dependencies=[Depends(verify_cron_secret)])
def reset_sessions(db: Session = Depends(get_db)):
    cleaned_up = session_manager.cleanup_scheduled_logouts(db)
    reset = session_manager.reset_all_sessions(db)
    return SessionResetResponse(message="All sessions reset", cleaned_up_count=cleaned_up, reset_count=reset)
