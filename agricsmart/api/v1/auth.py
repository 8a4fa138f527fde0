# ==============================================================================
# AUTH ENDPOINTS - Authentication Routes
# ==============================================================================
# Register, login, token refresh and own-profile endpoints
# ==============================================================================

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm

from agricsmart.api.dependencies import CurrentUser, UserServiceDep
from agricsmart.core.constants import SuccessMessages
from agricsmart.schemas.base import APIResponse
from agricsmart.schemas.user import (
    RefreshTokenRequest,
    TokenResponse,
    UserCreate,
    UserLogin,
    UserResponse,
    UserUpdate,
)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/register",
    response_model=APIResponse[UserResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Register new user",
    description="Create a Buyer, Seller or Educator account.",
)
async def register(
    schema: UserCreate,
    service: UserServiceDep,
) -> APIResponse[UserResponse]:
    user = await service.register(schema)
    return APIResponse.ok(data=user, message=SuccessMessages.USER_REGISTERED)


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="User login (form)",
    description="OAuth2 password flow; the username field carries the email.",
)
async def login(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    service: UserServiceDep,
) -> TokenResponse:
    return await service.authenticate(email=form_data.username, password=form_data.password)


@router.post(
    "/login/json",
    response_model=APIResponse[TokenResponse],
    summary="User login (JSON)",
    description="Authenticate with a JSON payload and receive a token pair.",
)
async def login_json(
    credentials: UserLogin,
    service: UserServiceDep,
) -> APIResponse[TokenResponse]:
    tokens = await service.authenticate(email=credentials.email, password=credentials.password)
    return APIResponse.ok(data=tokens, message=SuccessMessages.LOGIN_SUCCESS)


@router.post(
    "/refresh",
    response_model=APIResponse[TokenResponse],
    summary="Refresh tokens",
    description="Exchange a refresh token for a new token pair.",
)
async def refresh(
    schema: RefreshTokenRequest,
    service: UserServiceDep,
) -> APIResponse[TokenResponse]:
    tokens = await service.refresh(schema.refresh_token)
    return APIResponse.ok(data=tokens)


@router.get(
    "/me",
    response_model=APIResponse[UserResponse],
    summary="Current user",
)
async def get_me(
    user: CurrentUser,
    service: UserServiceDep,
) -> APIResponse[UserResponse]:
    return APIResponse.ok(data=UserResponse.model_validate(user))


@router.patch(
    "/me",
    response_model=APIResponse[UserResponse],
    summary="Update profile",
    description="Update the current user's profile fields.",
)
async def update_me(
    schema: UserUpdate,
    user: CurrentUser,
    service: UserServiceDep,
) -> APIResponse[UserResponse]:
    updated = await service.update_profile(user["id"], schema)
    return APIResponse.ok(data=updated, message=SuccessMessages.UPDATED)
