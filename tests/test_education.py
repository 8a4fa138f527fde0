# ==============================================================================
# EDUCATION TESTS
# ==============================================================================
# Categories, courses, enrollment, progress and certificates
# ==============================================================================

import pytest
from httpx import AsyncClient

from agricsmart.core.constants import Collections
from agricsmart.services.education_service import progress_percentage
from agricsmart.services.event_handlers import create_dispatcher
from agricsmart.utils.helpers import slugify


def course_payload(category_id: str, **overrides) -> dict:
    data = {
        "title": "Soil Health Basics",
        "description": "Understand soil structure, nutrients and testing.",
        "category_id": category_id,
        "level": "Beginner",
        "tags": ["soil", "compost"],
        "modules": [
            {
                "title": "Foundations",
                "lessons": [
                    {"title": "What is soil?", "duration": 10},
                    {"title": "Soil nutrients", "duration": 15},
                ],
            },
            {
                "title": "Practice",
                "lessons": [{"title": "Taking a sample", "duration": 20}],
            },
        ],
        "is_published": True,
    }
    data.update(overrides)
    return data


@pytest.fixture
def create_category(client: AsyncClient):
    async def factory(user: dict, name: str = "Organic Farming") -> dict:
        response = await client.post(
            "/api/v1/education/categories",
            json={"name": name, "description": "Growing without synthetic inputs"},
            headers=user["headers"],
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return factory


@pytest.fixture
def create_course(client: AsyncClient, create_category):
    async def factory(educator: dict, category: dict = None, **overrides) -> dict:
        category = category or await create_category(educator)
        response = await client.post(
            "/api/v1/education/courses",
            json=course_payload(category["id"], **overrides),
            headers=educator["headers"],
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return factory


def _lessons(course: dict) -> list:
    return [lesson["id"] for module in course["modules"] for lesson in module["lessons"]]


class TestHelpers:
    def test_progress_percentage(self):
        assert progress_percentage(0, 0) == 0
        assert progress_percentage(1, 3) == 33
        assert progress_percentage(2, 3) == 67
        assert progress_percentage(5, 3) == 100

    def test_progress_half_rounds_up(self):
        assert progress_percentage(1, 8) == 13
        assert progress_percentage(5, 8) == 63

    def test_slugify(self):
        assert slugify("Soil Health 101: Basics") == "soil-health-101-basics"


class TestCategories:
    """Tests for education categories."""

    @pytest.mark.asyncio
    async def test_create_and_list(self, client: AsyncClient, educator: dict, create_category):
        category = await create_category(educator)
        assert category["slug"] == "organic-farming"

        response = await client.get("/api/v1/education/categories")
        assert [c["name"] for c in response.json()["data"]] == ["Organic Farming"]

    @pytest.mark.asyncio
    async def test_duplicate_name(self, client: AsyncClient, educator: dict, create_category):
        await create_category(educator)

        response = await client.post(
            "/api/v1/education/categories",
            json={"name": "organic farming"},
            headers=educator["headers"],
        )
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_buyer_cannot_create(self, client: AsyncClient, buyer: dict):
        response = await client.post(
            "/api/v1/education/categories",
            json={"name": "Beekeeping"},
            headers=buyer["headers"],
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_seeds_defaults(self, client: AsyncClient, admin: dict, create_category):
        await create_category(admin, name="Organic Farming")

        response = await client.post("/api/v1/admin/education/seed", headers=admin["headers"])
        assert response.json()["data"] == 3

        response = await client.post("/api/v1/admin/education/seed", headers=admin["headers"])
        assert response.json()["data"] == 0

        response = await client.get("/api/v1/education/categories")
        assert len(response.json()["data"]) == 4


class TestCourses:
    """Tests for course management and discovery."""

    @pytest.mark.asyncio
    async def test_create_course(self, educator: dict, create_course):
        course = await create_course(educator)

        assert course["slug"] == "soil-health-basics"
        assert course["instructor_id"] == educator["id"]
        assert course["enrolled_students"] == 0
        assert len(course["modules"]) == 2
        assert len(set(_lessons(course))) == 3

    @pytest.mark.asyncio
    async def test_slug_is_unique(self, educator: dict, create_course, create_category):
        category = await create_category(educator)
        first = await create_course(educator, category)
        second = await create_course(educator, category)

        assert first["slug"] == "soil-health-basics"
        assert second["slug"] == "soil-health-basics-2"

    @pytest.mark.asyncio
    async def test_unknown_category(self, client: AsyncClient, educator: dict):
        response = await client.post(
            "/api/v1/education/courses",
            json=course_payload("64b7f0c2a1b2c3d4e5f60718"),
            headers=educator["headers"],
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_buyer_cannot_create(self, client: AsyncClient, buyer: dict):
        response = await client.post(
            "/api/v1/education/courses",
            json=course_payload("whatever"),
            headers=buyer["headers"],
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_get_by_slug(self, client: AsyncClient, educator: dict, create_course):
        course = await create_course(educator)

        response = await client.get(f"/api/v1/education/courses/{course['slug']}")
        assert response.status_code == 200
        assert response.json()["data"]["id"] == course["id"]

    @pytest.mark.asyncio
    async def test_draft_visibility(self, client: AsyncClient, educator: dict, buyer: dict, create_course):
        course = await create_course(educator, is_published=False)
        url = f"/api/v1/education/courses/{course['id']}"

        assert (await client.get(url)).status_code == 404
        assert (await client.get(url, headers=buyer["headers"])).status_code == 404
        assert (await client.get(url, headers=educator["headers"])).status_code == 200

    @pytest.mark.asyncio
    async def test_update_by_instructor_only(
        self, client: AsyncClient, educator: dict, make_user, create_course
    ):
        course = await create_course(educator)
        other = await make_user("Educator")

        response = await client.patch(
            f"/api/v1/education/courses/{course['id']}",
            json={"level": "Advanced"},
            headers=other["headers"],
        )
        assert response.status_code == 403

        response = await client.patch(
            f"/api/v1/education/courses/{course['id']}",
            json={"level": "Advanced", "title": "Soil Health Deep Dive"},
            headers=educator["headers"],
        )
        data = response.json()["data"]
        assert data["level"] == "Advanced"
        assert data["slug"] == "soil-health-deep-dive"

    @pytest.mark.asyncio
    async def test_publish_toggle(self, client: AsyncClient, educator: dict, create_course):
        course = await create_course(educator, is_published=False)

        response = await client.post(
            f"/api/v1/education/courses/{course['id']}/publish",
            headers=educator["headers"],
        )
        assert response.json()["data"]["is_published"] is True

        response = await client.post(
            f"/api/v1/education/courses/{course['id']}/publish",
            params={"publish": False},
            headers=educator["headers"],
        )
        assert response.json()["data"]["is_published"] is False

    @pytest.mark.asyncio
    async def test_search(
        self, client: AsyncClient, educator: dict, create_course, create_category
    ):
        organic = await create_category(educator, "Organic Farming")
        animals = await create_category(educator, "Animal Care Skills")
        await create_course(educator, organic)
        await create_course(
            educator,
            animals,
            title="Poultry Management",
            description="Raising healthy layers and broilers.",
            tags=["poultry"],
            level="Intermediate",
        )
        await create_course(educator, organic, title="Unpublished Draft", is_published=False)

        response = await client.get("/api/v1/education/courses")
        assert response.json()["data"]["total"] == 2

        response = await client.get("/api/v1/education/courses", params={"query": "compost"})
        assert [c["title"] for c in response.json()["data"]["items"]] == ["Soil Health Basics"]

        response = await client.get(
            "/api/v1/education/courses",
            params={"category": "animal-care-skills"},
        )
        assert [c["title"] for c in response.json()["data"]["items"]] == ["Poultry Management"]

        response = await client.get("/api/v1/education/courses", params={"level": "Intermediate"})
        assert response.json()["data"]["total"] == 1

        response = await client.get("/api/v1/education/courses", params={"category": "no-such"})
        assert response.json()["data"]["total"] == 0


class TestEnrollmentAndProgress:
    """Tests for enrollment, lesson completion and certificates."""

    @pytest.mark.asyncio
    async def test_enroll_is_idempotent(
        self, client: AsyncClient, adapter, educator: dict, buyer: dict, create_course
    ):
        course = await create_course(educator)
        url = f"/api/v1/education/courses/{course['id']}/enroll"

        first = await client.post(url, headers=buyer["headers"])
        second = await client.post(url, headers=buyer["headers"])

        assert first.status_code == 200
        assert first.json()["data"]["id"] == second.json()["data"]["id"]
        assert first.json()["data"]["progress"] == 0

        stored = await adapter.get_by_id(Collections.COURSES, course["id"])
        assert stored["enrolled_students"] == 1
        assert await adapter.count(
            Collections.OUTBOX,
            {"dedupe_key": f"course-enrollment:{buyer['id']}:{course['id']}"},
        ) == 1

    @pytest.mark.asyncio
    async def test_cannot_enroll_in_draft(
        self, client: AsyncClient, educator: dict, buyer: dict, create_course
    ):
        course = await create_course(educator, is_published=False)

        response = await client.post(
            f"/api/v1/education/courses/{course['id']}/enroll",
            headers=buyer["headers"],
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_complete_course_issues_certificate(
        self, client: AsyncClient, adapter, educator: dict, buyer: dict, create_course
    ):
        course = await create_course(educator)
        lessons = _lessons(course)
        base = f"/api/v1/education/courses/{course['id']}"
        await client.post(f"{base}/enroll", headers=buyer["headers"])

        response = await client.post(f"{base}/lessons/{lessons[0]}/complete", headers=buyer["headers"])
        data = response.json()["data"]
        assert data["progress"]["progress"] == 33
        assert data["certificate"] is None

        # Completing the same lesson again changes nothing
        response = await client.post(f"{base}/lessons/{lessons[0]}/complete", headers=buyer["headers"])
        assert response.json()["data"]["progress"]["completed_lessons"] == [lessons[0]]

        await client.post(f"{base}/lessons/{lessons[1]}/complete", headers=buyer["headers"])
        response = await client.post(f"{base}/lessons/{lessons[2]}/complete", headers=buyer["headers"])
        data = response.json()["data"]
        assert data["progress"]["progress"] == 100
        assert data["progress"]["is_completed"] is True
        assert data["progress"]["completed_at"] is not None

        certificate = data["certificate"]
        assert certificate["certificate_id"].startswith("CERT-")
        assert certificate["course_title"] == "Soil Health Basics"
        assert certificate["verification_link"].endswith(certificate["certificate_id"])

        # A repeated completion returns the same certificate
        response = await client.post(f"{base}/lessons/{lessons[2]}/complete", headers=buyer["headers"])
        assert response.json()["data"]["certificate"]["certificate_id"] == certificate["certificate_id"]
        assert await adapter.count(Collections.CERTIFICATES, {"user_id": buyer["id"]}) == 1
        assert await adapter.count(
            Collections.OUTBOX,
            {"dedupe_key": f"course-completed:{buyer['id']}:{course['id']}"},
        ) == 1

        response = await client.get("/api/v1/education/certificates", headers=buyer["headers"])
        assert [c["certificate_id"] for c in response.json()["data"]] == [certificate["certificate_id"]]

        response = await client.get(
            f"/api/v1/education/certificates/verify/{certificate['certificate_id']}"
        )
        verification = response.json()["data"]
        assert verification["valid"] is True
        assert verification["certificate"]["user_id"] == buyer["id"]

    @pytest.mark.asyncio
    async def test_verify_unknown_certificate(self, client: AsyncClient):
        response = await client.get("/api/v1/education/certificates/verify/CERT-NOPE")

        assert response.status_code == 200
        assert response.json()["data"] == {"valid": False, "certificate": None}

    @pytest.mark.asyncio
    async def test_unknown_lesson(self, client: AsyncClient, educator: dict, buyer: dict, create_course):
        course = await create_course(educator)
        base = f"/api/v1/education/courses/{course['id']}"
        await client.post(f"{base}/enroll", headers=buyer["headers"])

        response = await client.post(f"{base}/lessons/missing/complete", headers=buyer["headers"])
        assert response.status_code == 404
        assert response.json()["error"] == "Lesson not found in this course"

    @pytest.mark.asyncio
    async def test_not_enrolled(self, client: AsyncClient, educator: dict, buyer: dict, create_course):
        course = await create_course(educator)
        base = f"/api/v1/education/courses/{course['id']}"

        response = await client.post(
            f"{base}/lessons/{_lessons(course)[0]}/complete",
            headers=buyer["headers"],
        )
        assert response.status_code == 404
        assert response.json()["error"] == "You are not enrolled in this course"

        response = await client.get(f"{base}/progress", headers=buyer["headers"])
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_my_progress_and_stats(
        self, client: AsyncClient, educator: dict, buyer: dict, create_course, create_category
    ):
        category = await create_category(educator)
        first = await create_course(educator, category)
        second = await create_course(educator, category, title="Composting")
        for course in (first, second):
            await client.post(
                f"/api/v1/education/courses/{course['id']}/enroll",
                headers=buyer["headers"],
            )

        response = await client.get("/api/v1/education/progress", headers=buyer["headers"])
        assert {p["course_id"] for p in response.json()["data"]} == {first["id"], second["id"]}

        response = await client.get("/api/v1/education/stats")
        assert response.json()["data"] == {
            "total_courses": 2,
            "total_categories": 1,
            "total_enrollments": 2,
            "total_completions": 0,
        }

    @pytest.mark.asyncio
    async def test_course_notifications_delivered(
        self, client: AsyncClient, adapter, educator: dict, buyer: dict, create_course
    ):
        course = await create_course(educator)
        await client.post(
            f"/api/v1/education/courses/{course['id']}/enroll",
            headers=buyer["headers"],
        )

        assert await create_dispatcher(adapter).dispatch_pending() == 1

        notification = await adapter.find_one(Collections.NOTIFICATIONS, {"user_id": buyer["id"]})
        assert notification["type"] == "system"
        assert notification["content"] == "You are now enrolled in Soil Health Basics"
