# ==============================================================================
# API DEPENDENCIES - Dependency Injection
# ==============================================================================
# FastAPI dependencies for authentication, roles and service wiring.
# Shared resources live on app.state and are created by the lifespan.
# ==============================================================================

from __future__ import annotations

from typing import Annotated, Any, Callable, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from agricsmart.core.constants import ErrorMessages, UserRoles
from agricsmart.core.exceptions import AuthenticationError, AuthorizationError
from agricsmart.core.security import verify_access_token
from agricsmart.core.settings import settings
from agricsmart.database.adapters.base_adapter import BaseDatabaseAdapter
from agricsmart.realtime.manager import ConnectionManager
from agricsmart.services.admin_service import AdminService
from agricsmart.services.advisory_service import AdvisoryService
from agricsmart.services.chat_service import ChatService
from agricsmart.services.education_service import EducationService
from agricsmart.services.notification_service import NotificationService
from agricsmart.services.order_service import OrderService
from agricsmart.services.outbox import OutboxService
from agricsmart.services.payment_service import PaymentService
from agricsmart.services.product_service import ProductService
from agricsmart.services.user_service import UserService

# OAuth2 scheme for JWT tokens
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_PREFIX}/auth/login",
    auto_error=False,
)


# ==============================================================================
# APPLICATION STATE
# ==============================================================================

async def get_adapter(request: Request) -> BaseDatabaseAdapter:
    """Database adapter opened by the application lifespan."""
    return request.app.state.database


async def get_realtime(request: Request) -> ConnectionManager:
    return request.app.state.realtime


DatabaseDep = Annotated[BaseDatabaseAdapter, Depends(get_adapter)]
RealtimeDep = Annotated[ConnectionManager, Depends(get_realtime)]


# ==============================================================================
# AUTHENTICATION DEPENDENCIES
# ==============================================================================

async def get_current_user(
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    adapter: DatabaseDep,
) -> Dict[str, Any]:
    """
    Resolve the bearer token to an active user document.

    Raises:
        AuthenticationError: Missing, expired or invalid token, or a
            deleted or deactivated account
    """
    if not token:
        raise AuthenticationError(message=ErrorMessages.UNAUTHORIZED)
    payload = verify_access_token(token)
    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError(message="Invalid token payload")
    return await UserService(adapter).get_active_user(user_id)


async def get_optional_user(
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    adapter: DatabaseDep,
) -> Optional[Dict[str, Any]]:
    """The authenticated user when a token is sent, otherwise None."""
    if not token:
        return None
    return await get_current_user(token, adapter)


CurrentUser = Annotated[Dict[str, Any], Depends(get_current_user)]
OptionalUser = Annotated[Optional[Dict[str, Any]], Depends(get_optional_user)]


def require_roles(*roles: str) -> Callable:
    """
    Dependency factory restricting an endpoint to the given roles.

    Example:
        >>> SellerUser = Annotated[dict, Depends(require_roles(UserRoles.SELLER))]
    """

    async def checker(user: CurrentUser) -> Dict[str, Any]:
        if user.get("role") not in roles:
            raise AuthorizationError(
                message=ErrorMessages.PERMISSION_DENIED,
                required_permission=" or ".join(roles),
            )
        return user

    return checker


AdminUser = Annotated[Dict[str, Any], Depends(require_roles(UserRoles.ADMIN))]
SellerUser = Annotated[Dict[str, Any], Depends(require_roles(UserRoles.SELLER))]
EducatorUser = Annotated[
    Dict[str, Any],
    Depends(require_roles(UserRoles.EDUCATOR, UserRoles.ADMIN)),
]


# ==============================================================================
# SERVICE DEPENDENCIES
# ==============================================================================

async def get_user_service(adapter: DatabaseDep) -> UserService:
    return UserService(adapter)


async def get_product_service(adapter: DatabaseDep) -> ProductService:
    return ProductService(adapter)


async def get_order_service(adapter: DatabaseDep) -> OrderService:
    return OrderService(adapter, ProductService(adapter), OutboxService(adapter))


async def get_payment_service(adapter: DatabaseDep) -> PaymentService:
    return PaymentService(adapter, OutboxService(adapter))


async def get_notification_service(
    request: Request,
    adapter: DatabaseDep,
) -> NotificationService:
    return NotificationService(adapter, request.app.state.email)


async def get_chat_service(adapter: DatabaseDep, realtime: RealtimeDep) -> ChatService:
    return ChatService(adapter, realtime)


async def get_education_service(adapter: DatabaseDep) -> EducationService:
    return EducationService(adapter, OutboxService(adapter))


async def get_admin_service(adapter: DatabaseDep) -> AdminService:
    return AdminService(adapter)


async def get_advisory_service(request: Request) -> AdvisoryService:
    return request.app.state.advisory


UserServiceDep = Annotated[UserService, Depends(get_user_service)]
ProductServiceDep = Annotated[ProductService, Depends(get_product_service)]
OrderServiceDep = Annotated[OrderService, Depends(get_order_service)]
PaymentServiceDep = Annotated[PaymentService, Depends(get_payment_service)]
NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]
ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]
EducationServiceDep = Annotated[EducationService, Depends(get_education_service)]
AdminServiceDep = Annotated[AdminService, Depends(get_admin_service)]
AdvisoryServiceDep = Annotated[AdvisoryService, Depends(get_advisory_service)]
