# ==============================================================================
# COURSE SCHEMAS - Education Catalog, Progress & Certificates
# ==============================================================================
# Request/Response schemas for courses and learner progress
# ==============================================================================

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from agricsmart.schemas.base import BaseSchema, TimestampSchema

CourseLevelName = Literal["Beginner", "Intermediate", "Advanced"]


# ==============================================================================
# CATEGORIES
# ==============================================================================

class CategoryCreate(BaseSchema):
    name: str = Field(..., min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    icon: Optional[str] = Field(None, max_length=200)


class CategoryResponse(TimestampSchema):
    name: str
    slug: str
    description: Optional[str] = None
    icon: Optional[str] = None


# ==============================================================================
# COURSE CONTENT
# ==============================================================================

class LessonCreate(BaseSchema):
    title: str = Field(..., min_length=1, max_length=200)
    content: Optional[str] = Field(None, description="Lesson body (markdown)")
    video_url: Optional[str] = Field(None, max_length=500)
    duration: int = Field(0, ge=0, description="Minutes")


class ModuleCreate(BaseSchema):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    lessons: List[LessonCreate] = Field(default_factory=list)


class Lesson(LessonCreate):
    id: str


class Module(BaseSchema):
    id: str
    title: str
    description: Optional[str] = None
    lessons: List[Lesson] = Field(default_factory=list)


class CourseCreate(BaseSchema):
    """Schema for creating a course."""

    title: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=10, max_length=5000)
    category_id: str = Field(..., description="Education category")
    thumbnail: Optional[str] = Field(None, max_length=500)
    duration: int = Field(0, ge=0, description="Total minutes")
    level: CourseLevelName = "Beginner"
    modules: List[ModuleCreate] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    price: float = Field(0, ge=0)
    is_published: bool = False


class CourseUpdate(BaseSchema):
    """Schema for updating a course. Omitted fields are left untouched."""

    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, min_length=10, max_length=5000)
    category_id: Optional[str] = None
    thumbnail: Optional[str] = Field(None, max_length=500)
    duration: Optional[int] = Field(None, ge=0)
    level: Optional[CourseLevelName] = None
    modules: Optional[List[ModuleCreate]] = None
    tags: Optional[List[str]] = None
    price: Optional[float] = Field(None, ge=0)
    is_published: Optional[bool] = None


class CourseResponse(TimestampSchema):
    title: str
    slug: str
    description: str
    category_id: str
    instructor_id: str
    thumbnail: Optional[str] = None
    duration: int = 0
    level: CourseLevelName
    modules: List[Module] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    price: float = 0
    is_published: bool = False
    enrolled_students: int = 0


class CourseSearchParams(BaseSchema):
    query: Optional[str] = Field(None, max_length=200)
    category: Optional[str] = Field(None, description="Category slug")
    level: Optional[CourseLevelName] = None
    sort: Literal["newest", "oldest", "popular"] = "newest"
    page: int = Field(1, ge=1)
    page_size: int = Field(10, ge=1, le=100)


# ==============================================================================
# PROGRESS & CERTIFICATES
# ==============================================================================

class ProgressResponse(TimestampSchema):
    user_id: str
    course_id: str
    completed_lessons: List[str] = Field(default_factory=list)
    progress: int = Field(0, ge=0, le=100, description="Percent complete")
    is_completed: bool = False
    started_at: Optional[datetime] = None
    last_accessed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class CertificateResponse(TimestampSchema):
    user_id: str
    course_id: str
    certificate_id: str
    issue_date: datetime
    verification_link: str
    course_title: Optional[str] = None


class LessonCompletionResponse(BaseSchema):
    progress: ProgressResponse
    certificate: Optional[CertificateResponse] = None


class CertificateVerification(BaseSchema):
    valid: bool
    certificate: Optional[CertificateResponse] = None
