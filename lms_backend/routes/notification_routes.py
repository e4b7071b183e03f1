from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
import logging

from lms_backend.core.database import get_db
from lms_backend.core.dependencies import get_current_active_user
from lms_backend.models.user_model import User
from lms_backend.schemas import notification_schema as schemas
from lms_backend.crud import notification_crud as crud

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/notifications", tags=["Notifications"])

@router.get("", response_model=schemas.NotificationList)
def read_notifications(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return schemas.NotificationList(
        notifications=[schemas.NotificationDisplay.model_validate(n) for n in crud.get_notifications(db, current_user.id)],
        unread_count=crud.count_unread(db, current_user.id),
    )

@router.patch("")
def mark_notifications(
    mark_in: schemas.NotificationMarkRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    if mark_in.mark_all_as_read:
        updated = crud.mark_all_as_read(db, current_user.id)
        return {"message": "All notifications marked as read", "updated": updated}

    if not mark_in.notification_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="notification_id or mark_all_as_read is required")
    if crud.mark_as_read(db, current_user.id, mark_in.notification_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return {"message": "Notification marked as read", "updated": 1}
