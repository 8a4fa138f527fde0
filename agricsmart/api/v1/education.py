# ==============================================================================
# EDUCATION ENDPOINTS - Courses, Progress & Certificates
# ==============================================================================

from __future__ import annotations

from typing import Annotated, Dict, List

from fastapi import APIRouter, Query, status

from agricsmart.api.dependencies import (
    CurrentUser,
    EducationServiceDep,
    EducatorUser,
    OptionalUser,
)
from agricsmart.core.constants import SuccessMessages
from agricsmart.schemas.base import APIResponse, PaginatedResponse
from agricsmart.schemas.course import (
    CategoryCreate,
    CategoryResponse,
    CertificateResponse,
    CertificateVerification,
    CourseCreate,
    CourseResponse,
    CourseSearchParams,
    CourseUpdate,
    LessonCompletionResponse,
    ProgressResponse,
)

router = APIRouter(prefix="/education", tags=["Education"])


# ==============================================================================
# CATEGORIES
# ==============================================================================

@router.get(
    "/categories",
    response_model=APIResponse[List[CategoryResponse]],
    summary="List categories",
)
async def list_categories(service: EducationServiceDep) -> APIResponse[List[CategoryResponse]]:
    categories = await service.list_categories()
    return APIResponse.ok(data=categories)


@router.post(
    "/categories",
    response_model=APIResponse[CategoryResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create category",
    description="Educators and admins only. Names are unique.",
)
async def create_category(
    schema: CategoryCreate,
    user: EducatorUser,
    service: EducationServiceDep,
) -> APIResponse[CategoryResponse]:
    category = await service.create_category(schema)
    return APIResponse.ok(data=category, message=SuccessMessages.CREATED)


# ==============================================================================
# COURSES
# ==============================================================================

@router.get(
    "/courses",
    response_model=APIResponse[PaginatedResponse[CourseResponse]],
    summary="Search courses",
    description="Published courses filtered by text, category slug and level.",
)
async def search_courses(
    params: Annotated[CourseSearchParams, Query()],
    service: EducationServiceDep,
) -> APIResponse[PaginatedResponse[CourseResponse]]:
    result = await service.search_courses(params)
    return APIResponse.ok(data=result)


@router.post(
    "/courses",
    response_model=APIResponse[CourseResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create course",
)
async def create_course(
    schema: CourseCreate,
    user: EducatorUser,
    service: EducationServiceDep,
) -> APIResponse[CourseResponse]:
    course = await service.create_course(user["id"], schema)
    return APIResponse.ok(data=course, message=SuccessMessages.CREATED)


@router.get(
    "/courses/{course_ref}",
    response_model=APIResponse[CourseResponse],
    summary="Get course",
    description="Look up a course by id or slug.",
)
async def get_course(
    course_ref: str,
    user: OptionalUser,
    service: EducationServiceDep,
) -> APIResponse[CourseResponse]:
    course = await service.get_course(course_ref, viewer=user)
    return APIResponse.ok(data=course)


@router.patch(
    "/courses/{course_id}",
    response_model=APIResponse[CourseResponse],
    summary="Update course",
)
async def update_course(
    course_id: str,
    schema: CourseUpdate,
    user: EducatorUser,
    service: EducationServiceDep,
) -> APIResponse[CourseResponse]:
    course = await service.update_course(course_id, user, schema)
    return APIResponse.ok(data=course, message=SuccessMessages.UPDATED)


@router.post(
    "/courses/{course_id}/publish",
    response_model=APIResponse[CourseResponse],
    summary="Publish course",
)
async def publish_course(
    course_id: str,
    user: EducatorUser,
    service: EducationServiceDep,
    publish: bool = Query(True),
) -> APIResponse[CourseResponse]:
    course = await service.set_published(course_id, user, publish)
    return APIResponse.ok(data=course, message=SuccessMessages.UPDATED)


# ==============================================================================
# ENROLLMENT & PROGRESS
# ==============================================================================

@router.post(
    "/courses/{course_id}/enroll",
    response_model=APIResponse[ProgressResponse],
    summary="Enroll",
    description="Enroll the current user. Enrolling again returns the existing progress.",
)
async def enroll(
    course_id: str,
    user: CurrentUser,
    service: EducationServiceDep,
) -> APIResponse[ProgressResponse]:
    progress = await service.enroll(user["id"], course_id)
    return APIResponse.ok(data=progress, message=SuccessMessages.ENROLLED)


@router.post(
    "/courses/{course_id}/lessons/{lesson_id}/complete",
    response_model=APIResponse[LessonCompletionResponse],
    summary="Complete lesson",
    description="Record a finished lesson. Finishing the last one issues the certificate.",
)
async def complete_lesson(
    course_id: str,
    lesson_id: str,
    user: CurrentUser,
    service: EducationServiceDep,
) -> APIResponse[LessonCompletionResponse]:
    result = await service.complete_lesson(user["id"], course_id, lesson_id)
    return APIResponse.ok(data=result)


@router.get(
    "/courses/{course_id}/progress",
    response_model=APIResponse[ProgressResponse],
    summary="Course progress",
)
async def get_progress(
    course_id: str,
    user: CurrentUser,
    service: EducationServiceDep,
) -> APIResponse[ProgressResponse]:
    progress = await service.get_progress(user["id"], course_id)
    return APIResponse.ok(data=progress)


@router.get(
    "/progress",
    response_model=APIResponse[List[ProgressResponse]],
    summary="My learning progress",
)
async def my_progress(
    user: CurrentUser,
    service: EducationServiceDep,
) -> APIResponse[List[ProgressResponse]]:
    progress = await service.get_user_progress(user["id"])
    return APIResponse.ok(data=progress)


# ==============================================================================
# CERTIFICATES
# ==============================================================================

@router.get(
    "/certificates",
    response_model=APIResponse[List[CertificateResponse]],
    summary="My certificates",
)
async def my_certificates(
    user: CurrentUser,
    service: EducationServiceDep,
) -> APIResponse[List[CertificateResponse]]:
    certificates = await service.get_user_certificates(user["id"])
    return APIResponse.ok(data=certificates)


@router.get(
    "/certificates/verify/{certificate_id}",
    response_model=APIResponse[CertificateVerification],
    summary="Verify certificate",
    description="Public check that a certificate id was issued.",
)
async def verify_certificate(
    certificate_id: str,
    service: EducationServiceDep,
) -> APIResponse[CertificateVerification]:
    result = await service.verify_certificate(certificate_id)
    return APIResponse.ok(data=result)


@router.get(
    "/stats",
    response_model=APIResponse[Dict[str, int]],
    summary="Education statistics",
)
async def education_stats(service: EducationServiceDep) -> APIResponse[Dict[str, int]]:
    stats = await service.get_education_stats()
    return APIResponse.ok(data=stats)
