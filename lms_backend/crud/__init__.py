# This file makes the 'crud' directory a Python package.
# Routes import the individual modules, e.g. `from lms_backend.crud import course_crud as crud`.

from . import (
    user_crud,
    course_crud,
    chapter_crud,
    user_progress_crud,
    quiz_crud,
    payment_crud,
    saved_document_crud,
    chat_crud,
    notification_crud,
)

__all__ = [
    "user_crud",
    "course_crud",
    "chapter_crud",
    "user_progress_crud",
    "quiz_crud",
    "payment_crud",
    "saved_document_crud",
    "chat_crud",
    "notification_crud",
]
