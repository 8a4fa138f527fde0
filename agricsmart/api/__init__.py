# ==============================================================================
# API PACKAGE INITIALIZATION
# ==============================================================================

from agricsmart.api.router import api_router

__all__ = ["api_router"]
