# ==============================================================================
# ADMIN ENDPOINTS - Users, Roles & Platform Statistics
# ==============================================================================
# Every route here requires the Admin role.
# ==============================================================================

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Query

from agricsmart.api.dependencies import (
    AdminServiceDep,
    AdminUser,
    EducationServiceDep,
    UserServiceDep,
)
from agricsmart.core.constants import SuccessMessages
from agricsmart.schemas.base import APIResponse
from agricsmart.schemas.user import (
    PlatformStats,
    RoleName,
    RoleUpdate,
    UserResponse,
    UserStatusUpdate,
)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get(
    "/users",
    response_model=APIResponse[List[UserResponse]],
    summary="List users",
)
async def list_users(
    admin: AdminUser,
    service: UserServiceDep,
    role: Optional[RoleName] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
) -> APIResponse[List[UserResponse]]:
    users = await service.list_users(role=role, skip=skip, limit=limit)
    return APIResponse.ok(data=users)


@router.patch(
    "/users/{user_id}/role",
    response_model=APIResponse[UserResponse],
    summary="Change role",
)
async def change_role(
    user_id: str,
    schema: RoleUpdate,
    admin: AdminUser,
    service: UserServiceDep,
) -> APIResponse[UserResponse]:
    user = await service.set_role(user_id, schema.role)
    return APIResponse.ok(data=user, message=SuccessMessages.UPDATED)


@router.patch(
    "/users/{user_id}/status",
    response_model=APIResponse[UserResponse],
    summary="Activate or deactivate user",
)
async def change_status(
    user_id: str,
    schema: UserStatusUpdate,
    admin: AdminUser,
    service: UserServiceDep,
) -> APIResponse[UserResponse]:
    user = await service.set_active(user_id, schema.is_active)
    return APIResponse.ok(data=user, message=SuccessMessages.UPDATED)


@router.get(
    "/stats",
    response_model=APIResponse[PlatformStats],
    summary="Platform statistics",
)
async def platform_stats(
    admin: AdminUser,
    service: AdminServiceDep,
) -> APIResponse[PlatformStats]:
    stats = await service.get_platform_stats()
    return APIResponse.ok(data=stats)


@router.post(
    "/education/seed",
    response_model=APIResponse[int],
    summary="Seed education categories",
    description="Create the built-in education categories that are missing.",
)
async def seed_education(
    admin: AdminUser,
    service: EducationServiceDep,
) -> APIResponse[int]:
    created = await service.seed_default_categories()
    return APIResponse.ok(data=created, message=f"{created} categories created")
