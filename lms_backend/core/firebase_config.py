import firebase_admin
from firebase_admin import credentials
import os
import logging

from lms_backend.core.config import settings

logger = logging.getLogger(__name__)

_firebase_app_initialized = False

def is_firebase_configured() -> bool:
    return bool(settings.GOOGLE_APPLICATION_CREDENTIALS)

def initialize_firebase_app():
    """
    Initializes the Firebase Admin SDK used for Google sign-in.
    The path to the service account JSON file comes from GOOGLE_APPLICATION_CREDENTIALS.
    """
    global _firebase_app_initialized
    if _firebase_app_initialized:
        return firebase_admin.get_app()

    cred_path = settings.GOOGLE_APPLICATION_CREDENTIALS
    if not cred_path:
        logger.error("GOOGLE_APPLICATION_CREDENTIALS environment variable is not set.")
        raise ValueError("GOOGLE_APPLICATION_CREDENTIALS environment variable is not set.")

    if not os.path.exists(cred_path):
        logger.error(f"Firebase service account key file not found at path: {cred_path}")
        raise FileNotFoundError(f"Firebase service account key file not found at path: {cred_path}")

    try:
        cred = credentials.Certificate(cred_path)
        firebase_admin.initialize_app(cred)
        _firebase_app_initialized = True
        logger.info("Firebase Admin SDK initialized successfully.")
        return firebase_admin.get_app()
    except Exception as e:
        logger.error(f"Error initializing Firebase Admin SDK: {e}", exc_info=True)
        raise

def get_firebase_app():
    """
    Returns the initialized Firebase app, initializing it on first use.
    """
    if not _firebase_app_initialized:
        return initialize_firebase_app()
    return firebase_admin.get_app()
