# ==============================================================================
# MAIN API ROUTER - Route Aggregation
# ==============================================================================
# Combines all API version routers
# ==============================================================================

from __future__ import annotations

from fastapi import APIRouter

from agricsmart.api.v1 import (
    admin_router,
    ai_router,
    auth_router,
    chat_router,
    education_router,
    market_router,
    notifications_router,
    payments_router,
)
from agricsmart.core.settings import settings

api_router = APIRouter()

for router in (
    auth_router,
    market_router,
    payments_router,
    notifications_router,
    chat_router,
    education_router,
    admin_router,
    ai_router,
):
    api_router.include_router(router, prefix=settings.API_V1_PREFIX)
