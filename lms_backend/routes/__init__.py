# This file makes the 'routes' directory a Python package.

from fastapi import APIRouter

from .auth_routes import router as auth_router
from .course_routes import router as course_router
from .chapter_routes import router as chapter_router
from .quiz_routes import router as quiz_router, teacher_router as teacher_quiz_router
from .chat_routes import router as chat_router
from .payment_routes import router as payment_router
from .saved_document_routes import router as saved_document_router
from .notification_routes import router as notification_router
from .upload_routes import router as upload_router
from .teacher_routes import router as teacher_router
from .admin_routes import router as admin_router
from .cron_routes import router as cron_router

api_router_v1 = APIRouter(prefix="/api/v1")

# Student-facing routes
api_router_v1.include_router(auth_router)
api_router_v1.include_router(course_router)
api_router_v1.include_router(chapter_router)
api_router_v1.include_router(quiz_router)
api_router_v1.include_router(chat_router)
api_router_v1.include_router(saved_document_router)
api_router_v1.include_router(notification_router)

# Staff routes
api_router_v1.include_router(teacher_quiz_router)
api_router_v1.include_router(teacher_router)
api_router_v1.include_router(payment_router)
api_router_v1.include_router(upload_router)
api_router_v1.include_router(admin_router)

# Called by the external scheduler
api_router_v1.include_router(cron_router)

__all__ = [
    "api_router_v1"
]
