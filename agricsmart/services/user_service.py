# ==============================================================================
# USER SERVICE - Authentication & User Management
# ==============================================================================
# Business logic for registration, login, profiles and role changes
# ==============================================================================

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pymongo.errors import DuplicateKeyError

from agricsmart.core.constants import Collections, ErrorMessages, UserRoles
from agricsmart.core.exceptions import (
    AlreadyExistsError,
    AuthenticationError,
    NotFoundError,
    ValidationError,
)
from agricsmart.core.security import (
    create_token_pair,
    hash_password,
    verify_password,
    verify_refresh_token,
)
from agricsmart.core.settings import settings
from agricsmart.database.adapters.base_adapter import BaseDatabaseAdapter
from agricsmart.schemas.user import (
    TokenResponse,
    UserCreate,
    UserResponse,
    UserUpdate,
)
from agricsmart.services.base_service import BaseService

logger = logging.getLogger(__name__)


class UserService(BaseService[UserResponse]):
    """
    User service for authentication and profile management.

    Passwords are stored as bcrypt hashes; access tokens carry the
    user's role as an extra claim.
    """

    response_schema = UserResponse
    not_found_message = ErrorMessages.USER_NOT_FOUND

    def __init__(self, adapter: BaseDatabaseAdapter) -> None:
        super().__init__(adapter, Collections.USERS)

    # ==========================================================================
    # AUTHENTICATION
    # ==========================================================================

    async def register(self, schema: UserCreate) -> UserResponse:
        """
        Register a new user.

        Raises:
            AlreadyExistsError: If email already registered
        """
        email = schema.email.lower()
        if await self._adapter.exists(self._collection_name, {"email": email}):
            raise AlreadyExistsError(
                message="Email already registered",
                resource_type="user",
            )

        data = schema.model_dump(exclude={"password"})
        data["email"] = email
        data["hashed_password"] = hash_password(schema.password)
        data["is_active"] = True

        try:
            result = await self._adapter.create(self._collection_name, data)
        except DuplicateKeyError:
            raise AlreadyExistsError(
                message="Email already registered",
                resource_type="user",
            )

        logger.info(f"Registered user {result['id']} as {schema.role}")
        return self._to_response(result)

    def _issue_tokens(self, user: Dict[str, Any]) -> TokenResponse:
        tokens = create_token_pair(
            subject=user["id"],
            additional_claims={"role": user.get("role")},
        )
        return TokenResponse(
            access_token=tokens["access_token"],
            refresh_token=tokens["refresh_token"],
            token_type=tokens["token_type"],
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            user=self._to_response(user),
        )

    async def authenticate(self, email: str, password: str) -> TokenResponse:
        """
        Check credentials and issue a token pair.

        Raises:
            AuthenticationError: If credentials are invalid or the account
                is deactivated
        """
        user = await self._adapter.find_one(
            self._collection_name,
            {"email": email.lower()},
        )

        if not user or not verify_password(password, user.get("hashed_password", "")):
            raise AuthenticationError(message=ErrorMessages.INVALID_CREDENTIALS)

        if not user.get("is_active", True):
            raise AuthenticationError(message=ErrorMessages.ACCOUNT_DISABLED)

        return self._issue_tokens(user)

    async def refresh(self, refresh_token: str) -> TokenResponse:
        """Exchange a refresh token for a new token pair."""
        payload = verify_refresh_token(refresh_token)
        user = await self._adapter.get_by_id(self._collection_name, payload.get("sub"))
        if not user or not user.get("is_active", True):
            raise AuthenticationError(message=ErrorMessages.UNAUTHORIZED)
        return self._issue_tokens(user)

    # ==========================================================================
    # PROFILE
    # ==========================================================================

    async def get_active_user(self, user_id: str) -> Dict[str, Any]:
        """Load the raw user document behind a token."""
        user = await self._adapter.get_by_id(self._collection_name, user_id)
        if not user:
            raise AuthenticationError(message=ErrorMessages.UNAUTHORIZED)
        if not user.get("is_active", True):
            raise AuthenticationError(message=ErrorMessages.ACCOUNT_DISABLED)
        return user

    async def update_profile(self, user_id: str, schema: UserUpdate) -> UserResponse:
        data = schema.model_dump(exclude_unset=True)
        if not data:
            return await self.get_by_id(user_id)
        result = await self._adapter.update(self._collection_name, user_id, data)
        if not result:
            raise NotFoundError(
                message=ErrorMessages.USER_NOT_FOUND,
                resource_type="user",
                resource_id=user_id,
            )
        return self._to_response(result)

    # ==========================================================================
    # ADMINISTRATION
    # ==========================================================================

    async def list_users(
        self,
        role: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[UserResponse]:
        filters = {"role": role} if role else None
        return await self.get_all(
            skip=skip,
            limit=limit,
            filters=filters,
            sort=[("created_at", -1)],
        )

    async def set_role(self, user_id: str, role: str) -> UserResponse:
        if role not in UserRoles.ALL:
            raise ValidationError(message=f"Invalid role: {role}")
        await self._get_document(user_id)
        result = await self._adapter.update(self._collection_name, user_id, {"role": role})
        logger.info(f"User {user_id} role changed to {role}")
        return self._to_response(result)

    async def set_active(self, user_id: str, is_active: bool) -> UserResponse:
        """Activate or deactivate an account. Users are never hard-deleted."""
        await self._get_document(user_id)
        result = await self._adapter.update(
            self._collection_name,
            user_id,
            {"is_active": is_active},
        )
        logger.info(f"User {user_id} {'activated' if is_active else 'deactivated'}")
        return self._to_response(result)
