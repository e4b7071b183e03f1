import logging
import os
import re
import secrets
import time
from typing import Optional

import boto3
from botocore.exceptions import ClientError

from lms_backend.core.config import settings

logger = logging.getLogger(__name__)

MIME_TYPES = {
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".mov": "video/quicktime",
    ".mkv": "video/x-matroska",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".m4a": "audio/mp4",
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".ppt": "application/vnd.ms-powerpoint",
    ".pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    ".xls": "application/vnd.ms-excel",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".txt": "text/plain",
    ".zip": "application/zip",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"
CACHE_CONTROL = "public, max-age=31536000, immutable"

UPLOAD_FOLDERS = {
    "video": "videos",
    "image": "images",
    "audio": "audio",
    "document": "documents",
}

_client = None

def is_storage_configured() -> bool:
    return all([
        settings.R2_ACCOUNT_ID,
        settings.R2_ACCESS_KEY_ID,
        settings.R2_SECRET_ACCESS_KEY,
        settings.R2_BUCKET_NAME,
    ])

def get_r2_client():
    """S3 client pointed at the Cloudflare R2 endpoint, created on first use."""
    global _client
    if _client is None:
        if not is_storage_configured():
            raise ValueError("R2 storage is not configured. Set the R2_* environment variables.")
        _client = boto3.client(
            "s3",
            endpoint_url=settings.R2_ENDPOINT_URL,
            aws_access_key_id=settings.R2_ACCESS_KEY_ID,
            aws_secret_access_key=settings.R2_SECRET_ACCESS_KEY,
            region_name="auto",
        )
        logger.info(f"R2 client initialised for bucket {settings.R2_BUCKET_NAME}")
    return _client

def guess_content_type(key: str) -> str:
    return MIME_TYPES.get(os.path.splitext(key)[1].lower(), DEFAULT_CONTENT_TYPE)

def public_url_for(key: str) -> str:
    base = (settings.R2_PUBLIC_URL or "").rstrip("/")
    return f"{base}/{key.lstrip('/')}"

def upload_to_r2(data: bytes, key: str, content_type: Optional[str] = None) -> str:
    """Uploads bytes under `key` and returns the public URL of the object."""
    content_type = content_type or guess_content_type(key)
    logger.info(f"Uploading {len(data)} bytes to R2 key {key} ({content_type})")
    get_r2_client().put_object(
        Bucket=settings.R2_BUCKET_NAME,
        Key=key,
        Body=data,
        ContentType=content_type,
        CacheControl=CACHE_CONTROL,
    )
    return public_url_for(key)

def delete_from_r2(key: str) -> None:
    get_r2_client().delete_object(Bucket=settings.R2_BUCKET_NAME, Key=key)
    logger.info(f"Deleted R2 object {key}")

def file_exists_in_r2(key: str) -> bool:
    try:
        get_r2_client().head_object(Bucket=settings.R2_BUCKET_NAME, Key=key)
        return True
    except ClientError as e:
        code = str(e.response.get("Error", {}).get("Code", ""))
        status_code = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        if code in ("404", "NoSuchKey", "NotFound") or status_code == 404:
            return False
        raise

def sanitize_filename(filename: str) -> str:
    name = os.path.basename(filename or "").strip() or "file"
    return re.sub(r"[^A-Za-z0-9._-]", "_", name)

def generate_r2_key(filename: str, folder: str) -> str:
    timestamp = int(time.time() * 1000)
    return f"{folder}/{timestamp}-{secrets.token_hex(4)}-{sanitize_filename(filename)}"

def get_folder_by_type(upload_type: Optional[str]) -> str:
    return UPLOAD_FOLDERS.get((upload_type or "").lower(), "misc")
