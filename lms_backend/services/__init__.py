# This package contains the business logic services.

from . import email_service
from . import session_manager
from . import storage
from . import excel_export
from . import youtube

__all__ = [
    "email_service",
    "session_manager",
    "storage",
    "excel_export",
    "youtube",
]
