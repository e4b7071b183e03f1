from fastapi import APIRouter, Depends, HTTPException, status, File, Form, UploadFile
import logging

from lms_backend.core.dependencies import get_current_staff_user
from lms_backend.models.user_model import User
from lms_backend.services import storage

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/uploads", tags=["Uploads"])

@router.post("/", status_code=status.HTTP_201_CREATED)
def upload_file(
    file: UploadFile = File(...),
    type: str = Form("document"),
    current_user: User = Depends(get_current_staff_user)
):
    """
    Stores a course file in R2 and returns its public URL.
    `type` is one of video, image, audio or document and picks the folder.
    """
    if not storage.is_storage_configured():
        logger.error("Upload attempted but R2 storage is not configured.")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="File storage is not configured")

    data = file.file.read()
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty")

    key = storage.generate_r2_key(file.filename, storage.get_folder_by_type(type))
    url = storage.upload_to_r2(data, key, file.content_type or None)
    logger.info(f"User {current_user.id} uploaded {file.filename} ({len(data)} bytes) as {key}")
    return {"url": url, "key": key}
