# ==============================================================================
# API V1 ENDPOINTS PACKAGE
# ==============================================================================

from agricsmart.api.v1.admin import router as admin_router
from agricsmart.api.v1.ai import router as ai_router
from agricsmart.api.v1.auth import router as auth_router
from agricsmart.api.v1.chat import router as chat_router
from agricsmart.api.v1.education import router as education_router
from agricsmart.api.v1.market import router as market_router
from agricsmart.api.v1.notifications import router as notifications_router
from agricsmart.api.v1.payments import router as payments_router

__all__ = [
    "admin_router",
    "ai_router",
    "auth_router",
    "chat_router",
    "education_router",
    "market_router",
    "notifications_router",
    "payments_router",
]
