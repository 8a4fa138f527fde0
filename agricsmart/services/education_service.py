# ==============================================================================
# EDUCATION SERVICE - Courses, Progress & Certificates
# ==============================================================================
# Course catalog, enrollment, lesson completion and certificate issuance
# ==============================================================================

from __future__ import annotations

import logging
import math
import re
from typing import Any, Dict, List, Optional, Set

from agricsmart.core.constants import (
    DEFAULT_EDUCATION_CATEGORIES,
    Collections,
    CourseSort,
    ErrorMessages,
    EventType,
    UserRoles,
)
from agricsmart.core.exceptions import (
    AlreadyExistsError,
    AuthorizationError,
    BusinessRuleError,
    NotFoundError,
)
from agricsmart.core.settings import settings
from agricsmart.database.adapters.base_adapter import BaseDatabaseAdapter
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
    ModuleCreate,
    ProgressResponse,
)
from agricsmart.services.base_service import BaseService
from agricsmart.services.outbox import OutboxService
from agricsmart.utils.helpers import (
    calculate_offset,
    generate_certificate_id,
    generate_uuid,
    paginate_results,
    slugify,
    utc_now,
)

logger = logging.getLogger(__name__)

SORT_OPTIONS = {
    CourseSort.NEWEST: [("created_at", -1)],
    CourseSort.OLDEST: [("created_at", 1)],
    CourseSort.POPULAR: [("enrolled_students", -1), ("created_at", -1)],
}


def build_modules(modules: List[ModuleCreate]) -> List[Dict[str, Any]]:
    """Give every module and lesson a stable generated id."""
    return [
        {
            "id": generate_uuid(),
            "title": module.title,
            "description": module.description,
            "lessons": [
                {"id": generate_uuid(), **lesson.model_dump()}
                for lesson in module.lessons
            ],
        }
        for module in modules
    ]


def lesson_ids(course: Dict[str, Any]) -> Set[str]:
    return {
        lesson["id"]
        for module in course.get("modules", [])
        for lesson in module.get("lessons", [])
    }


def progress_percentage(completed: int, total: int) -> int:
    """Rounded completion percentage; a course without lessons is at 0."""
    if total <= 0:
        return 0
    return min(100, math.floor(completed / total * 100 + 0.5))


class EducationService(BaseService[CourseResponse]):
    """
    Learning content and learner progress.

    Progress only moves forward: lesson ids are added with ``$addToSet``
    and the percentage with ``$max``, so concurrent completions never
    lower it. Each (user, course) gets at most one certificate.
    """

    response_schema = CourseResponse
    not_found_message = ErrorMessages.COURSE_NOT_FOUND

    def __init__(
        self,
        adapter: BaseDatabaseAdapter,
        outbox: Optional[OutboxService] = None,
    ) -> None:
        super().__init__(adapter, Collections.COURSES)
        self._outbox = outbox or OutboxService(adapter)

    async def _emit(self, event_type: str, payload: Dict[str, Any], dedupe_key: str) -> None:
        try:
            await self._outbox.enqueue(event_type, payload, dedupe_key)
        except Exception as e:
            logger.error(f"Failed to queue {event_type} ({dedupe_key}): {e}")

    # ==========================================================================
    # CATEGORIES
    # ==========================================================================

    async def create_category(self, schema: CategoryCreate) -> CategoryResponse:
        slug = slugify(schema.name)
        data = {**schema.model_dump(), "slug": slug}
        created = await self._adapter.insert_if_absent(Collections.CATEGORIES, {"slug": slug}, data)
        if not created:
            raise AlreadyExistsError(
                message=f"Category '{schema.name}' already exists",
                resource_type="category",
            )
        category = await self._adapter.find_one(Collections.CATEGORIES, {"slug": slug})
        return CategoryResponse.model_validate(category)

    async def list_categories(self) -> List[CategoryResponse]:
        categories = await self._adapter.get_all(
            Collections.CATEGORIES,
            limit=500,
            sort=[("name", 1)],
        )
        return [CategoryResponse.model_validate(c) for c in categories]

    async def seed_default_categories(self) -> int:
        """Create the built-in categories that are missing. Returns how many."""
        created = 0
        for name, description, icon in DEFAULT_EDUCATION_CATEGORIES:
            slug = slugify(name)
            if await self._adapter.insert_if_absent(
                Collections.CATEGORIES,
                {"slug": slug},
                {"name": name, "slug": slug, "description": description, "icon": icon},
            ):
                created += 1
        logger.info(f"Seeded {created} education categories")
        return created

    # ==========================================================================
    # COURSES
    # ==========================================================================

    async def _unique_slug(self, title: str, exclude_id: Optional[str] = None) -> str:
        base = slugify(title) or "course"
        slug, suffix = base, 2
        while True:
            existing = await self._adapter.find_one(self._collection_name, {"slug": slug})
            if not existing or existing["id"] == exclude_id:
                return slug
            slug = f"{base}-{suffix}"
            suffix += 1

    async def _require_category(self, category_id: str) -> None:
        if not await self._adapter.get_by_id(Collections.CATEGORIES, category_id):
            raise NotFoundError(
                message=ErrorMessages.CATEGORY_NOT_FOUND,
                resource_type="category",
                resource_id=category_id,
            )

    async def create_course(self, instructor_id: str, schema: CourseCreate) -> CourseResponse:
        await self._require_category(schema.category_id)

        data = schema.model_dump(exclude={"modules"})
        data["modules"] = build_modules(schema.modules)
        data["slug"] = await self._unique_slug(schema.title)
        data["instructor_id"] = instructor_id
        data["enrolled_students"] = 0

        course = await self._adapter.create(self._collection_name, data)
        logger.info(f"Course {course['id']} ({course['slug']}) created by {instructor_id}")
        return self._to_response(course)

    async def _get_editable(self, course_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
        course = await self._get_document(course_id)
        if user.get("role") != UserRoles.ADMIN and course.get("instructor_id") != user["id"]:
            raise AuthorizationError(message="Only the course instructor can modify this course")
        return course

    async def update_course(
        self,
        course_id: str,
        user: Dict[str, Any],
        schema: CourseUpdate,
    ) -> CourseResponse:
        """
        Partial update. Replacing ``modules`` regenerates lesson ids, so
        earlier completions of removed lessons stop counting.
        """
        await self._get_editable(course_id, user)

        data = schema.model_dump(exclude_unset=True, exclude={"modules"})
        if schema.modules is not None:
            data["modules"] = build_modules(schema.modules)
        if "category_id" in data:
            await self._require_category(data["category_id"])
        if "title" in data:
            data["slug"] = await self._unique_slug(data["title"], exclude_id=course_id)

        if not data:
            return await self.get_by_id(course_id)
        course = await self._adapter.update(self._collection_name, course_id, data)
        return self._to_response(course)

    async def set_published(
        self,
        course_id: str,
        user: Dict[str, Any],
        is_published: bool = True,
    ) -> CourseResponse:
        await self._get_editable(course_id, user)
        course = await self._adapter.update(
            self._collection_name,
            course_id,
            {"is_published": is_published},
        )
        return self._to_response(course)

    async def get_course(
        self,
        id_or_slug: str,
        viewer: Optional[Dict[str, Any]] = None,
    ) -> CourseResponse:
        """Fetch by id or slug. Drafts are visible to their instructor and admins."""
        course = await self._adapter.get_by_id(self._collection_name, id_or_slug)
        if not course:
            course = await self._adapter.find_one(self._collection_name, {"slug": id_or_slug})
        if not course:
            raise NotFoundError(message=ErrorMessages.COURSE_NOT_FOUND, resource_type="course")

        if not course.get("is_published"):
            can_see_draft = viewer is not None and (
                viewer.get("role") == UserRoles.ADMIN
                or viewer["id"] == course.get("instructor_id")
            )
            if not can_see_draft:
                raise NotFoundError(message=ErrorMessages.COURSE_NOT_FOUND, resource_type="course")

        return self._to_response(course)

    async def search_courses(self, params: CourseSearchParams) -> Dict[str, Any]:
        """Published courses matching text, category slug and level."""
        query: Dict[str, Any] = {"is_published": True}

        if params.query:
            pattern = {"$regex": re.escape(params.query), "$options": "i"}
            query["$or"] = [{"title": pattern}, {"description": pattern}, {"tags": pattern}]

        if params.category:
            category = await self._adapter.find_one(
                Collections.CATEGORIES,
                {"slug": params.category},
            )
            if not category:
                return paginate_results([], params.page, params.page_size, 0)
            query["category_id"] = category["id"]

        if params.level:
            query["level"] = params.level

        total = await self._adapter.count(self._collection_name, query)
        items = await self.get_all(
            skip=calculate_offset(params.page, params.page_size),
            limit=params.page_size,
            filters=query,
            sort=SORT_OPTIONS[params.sort],
        )
        return paginate_results(items, params.page, params.page_size, total)

    async def get_education_stats(self) -> Dict[str, int]:
        return {
            "total_courses": await self._adapter.count(self._collection_name, {"is_published": True}),
            "total_categories": await self._adapter.count(Collections.CATEGORIES),
            "total_enrollments": await self._adapter.count(Collections.PROGRESS),
            "total_completions": await self._adapter.count(Collections.CERTIFICATES),
        }

    # ==========================================================================
    # ENROLLMENT & PROGRESS
    # ==========================================================================

    async def enroll(self, user_id: str, course_id: str) -> ProgressResponse:
        """
        Enroll a user. Enrolling twice returns the existing progress and
        counts the student once.
        """
        course = await self._get_document(course_id)
        if not course.get("is_published"):
            raise BusinessRuleError(message="Course is not open for enrollment", rule="course_published")

        now = utc_now()
        created = await self._adapter.insert_if_absent(
            Collections.PROGRESS,
            {"user_id": user_id, "course_id": course_id},
            {
                "user_id": user_id,
                "course_id": course_id,
                "completed_lessons": [],
                "progress": 0,
                "is_completed": False,
                "started_at": now,
                "last_accessed_at": now,
                "completed_at": None,
            },
        )
        if created:
            await self._adapter.update_one(
                self._collection_name,
                {"id": course_id},
                {"$inc": {"enrolled_students": 1}},
            )
            logger.info(f"User {user_id} enrolled in course {course_id}")
            await self._emit(
                EventType.COURSE_ENROLLMENT,
                {"user_id": user_id, "course_id": course_id},
                f"{EventType.COURSE_ENROLLMENT}:{user_id}:{course_id}",
            )

        return await self.get_progress(user_id, course_id)

    async def get_progress(self, user_id: str, course_id: str) -> ProgressResponse:
        progress = await self._adapter.find_one(
            Collections.PROGRESS,
            {"user_id": user_id, "course_id": course_id},
        )
        if not progress:
            raise NotFoundError(message=ErrorMessages.NOT_ENROLLED, resource_type="progress")
        return ProgressResponse.model_validate(progress)

    async def get_user_progress(self, user_id: str) -> List[ProgressResponse]:
        records = await self._adapter.get_all(
            Collections.PROGRESS,
            limit=500,
            filters={"user_id": user_id},
            sort=[("last_accessed_at", -1)],
        )
        return [ProgressResponse.model_validate(r) for r in records]

    async def complete_lesson(
        self,
        user_id: str,
        course_id: str,
        lesson_id: str,
    ) -> LessonCompletionResponse:
        """
        Record a completed lesson and recompute progress.

        Reaching 100% marks the course completed and issues the
        certificate.

        Raises:
            NotFoundError: Course or lesson missing, or user not enrolled
        """
        course = await self._get_document(course_id)
        all_lessons = lesson_ids(course)
        if lesson_id not in all_lessons:
            raise NotFoundError(
                message=ErrorMessages.LESSON_NOT_FOUND,
                resource_type="lesson",
                resource_id=lesson_id,
            )

        progress = await self._adapter.find_one_and_update(
            Collections.PROGRESS,
            {"user_id": user_id, "course_id": course_id},
            {
                "$addToSet": {"completed_lessons": lesson_id},
                "$set": {"last_accessed_at": utc_now()},
            },
        )
        if progress is None:
            raise NotFoundError(message=ErrorMessages.NOT_ENROLLED, resource_type="progress")

        done = len(all_lessons.intersection(progress["completed_lessons"]))
        percentage = progress_percentage(done, len(all_lessons))

        progress = await self._adapter.find_one_and_update(
            Collections.PROGRESS,
            {"id": progress["id"]},
            {"$max": {"progress": percentage}},
        )

        certificate = None
        if percentage >= 100:
            newly_completed = await self._adapter.find_one_and_update(
                Collections.PROGRESS,
                {"id": progress["id"], "is_completed": False},
                {"$set": {"is_completed": True, "completed_at": utc_now()}},
            )
            if newly_completed is not None:
                progress = newly_completed
                logger.info(f"User {user_id} completed course {course_id}")
            certificate = await self.generate_certificate(user_id, course_id)
            if newly_completed is not None:
                await self._emit(
                    EventType.COURSE_COMPLETED,
                    {
                        "user_id": user_id,
                        "course_id": course_id,
                        "certificate_id": certificate.certificate_id,
                    },
                    f"{EventType.COURSE_COMPLETED}:{user_id}:{course_id}",
                )

        return LessonCompletionResponse(
            progress=ProgressResponse.model_validate(progress),
            certificate=certificate,
        )

    # ==========================================================================
    # CERTIFICATES
    # ==========================================================================

    async def generate_certificate(self, user_id: str, course_id: str) -> CertificateResponse:
        """
        Issue (or return the already issued) certificate for a completed course.

        Raises:
            BusinessRuleError: If the course is not completed
        """
        progress = await self._adapter.find_one(
            Collections.PROGRESS,
            {"user_id": user_id, "course_id": course_id},
        )
        if not progress or not progress.get("is_completed"):
            raise BusinessRuleError(message="Course not completed yet", rule="course_completed")

        certificate_id = generate_certificate_id()
        await self._adapter.insert_if_absent(
            Collections.CERTIFICATES,
            {"user_id": user_id, "course_id": course_id},
            {
                "user_id": user_id,
                "course_id": course_id,
                "certificate_id": certificate_id,
                "issue_date": utc_now(),
                "verification_link": f"{settings.CERTIFICATE_VERIFY_URL}/{certificate_id}",
            },
        )
        certificate = await self._adapter.find_one(
            Collections.CERTIFICATES,
            {"user_id": user_id, "course_id": course_id},
        )
        return await self._certificate_response(certificate)

    async def _certificate_response(self, certificate: Dict[str, Any]) -> CertificateResponse:
        course = await self._adapter.get_by_id(self._collection_name, certificate["course_id"])
        return CertificateResponse.model_validate(
            {**certificate, "course_title": course.get("title") if course else None}
        )

    async def get_user_certificates(self, user_id: str) -> List[CertificateResponse]:
        certificates = await self._adapter.get_all(
            Collections.CERTIFICATES,
            limit=500,
            filters={"user_id": user_id},
            sort=[("issue_date", -1)],
        )
        return [await self._certificate_response(c) for c in certificates]

    async def verify_certificate(self, certificate_id: str) -> CertificateVerification:
        certificate = await self._adapter.find_one(
            Collections.CERTIFICATES,
            {"certificate_id": certificate_id},
        )
        if not certificate:
            return CertificateVerification(valid=False)
        return CertificateVerification(
            valid=True,
            certificate=await self._certificate_response(certificate),
        )
