# ==============================================================================
# MIDDLEWARE PACKAGE INITIALIZATION
# ==============================================================================

from agricsmart.middleware.request_logger import RequestLoggerMiddleware

__all__ = ["RequestLoggerMiddleware"]
