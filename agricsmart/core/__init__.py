# ==============================================================================
# CORE PACKAGE INITIALIZATION
# ==============================================================================
# Core utilities: Settings, Logging, Security, Exceptions, Constants
# ==============================================================================

"""
Core Module
===========

Contains core utilities and configurations for the application:
- settings: Environment configuration management
- logging: Root logger configuration (text or JSON)
- security: JWT authentication and password hashing
- exceptions: Custom exception classes
- constants: Roles, statuses and transition tables
"""

from agricsmart.core.settings import settings, get_settings
from agricsmart.core.exceptions import (
    AppException,
    DatabaseError,
    NotFoundError,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    BusinessRuleError,
    InsufficientStockError,
    ServiceUnavailableError,
)

__all__ = [
    "settings",
    "get_settings",
    "AppException",
    "DatabaseError",
    "NotFoundError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "BusinessRuleError",
    "InsufficientStockError",
    "ServiceUnavailableError",
]
