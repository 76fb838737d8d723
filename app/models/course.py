"""Course models and schemas."""
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from beanie import Document, Indexed
from pydantic import BaseModel, Field, field_validator

from .base import utc_now


class CourseCategory(str, Enum):
    GUITAR = "guitar"
    PIANO = "piano"
    DRUMS = "drums"
    VOCALS = "vocals"
    BASS = "bass"
    VIOLIN = "violin"
    MUSIC_THEORY = "music-theory"
    COMPOSITION = "composition"
    PRODUCTION = "production"
    OTHER = "other"


class CourseLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


def _check_tags(tags: Optional[list[str]]) -> Optional[list[str]]:
    if tags is None:
        return None
    cleaned = [t.strip() for t in tags if t.strip()]
    for tag in cleaned:
        if len(tag) > 30:
            raise ValueError("Tag cannot exceed 30 characters")
    return cleaned


class CourseBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=1000)
    thumbnail: str = Field(..., min_length=1, max_length=500)
    price: float = Field(..., ge=0)
    category: CourseCategory
    level: CourseLevel
    tags: list[str] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def _strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Course title is required")
        return v

    @field_validator("tags")
    @classmethod
    def _validate_tags(cls, v: list[str]) -> list[str]:
        return _check_tags(v)


class CourseCreate(CourseBase):
    is_published: bool = False


class CourseUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, min_length=1, max_length=1000)
    thumbnail: Optional[str] = Field(default=None, min_length=1, max_length=500)
    price: Optional[float] = Field(default=None, ge=0)
    category: Optional[CourseCategory] = None
    level: Optional[CourseLevel] = None
    tags: Optional[list[str]] = None
    is_published: Optional[bool] = None

    @field_validator("tags")
    @classmethod
    def _validate_tags(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        return _check_tags(v)


class CoursePublish(BaseModel):
    is_published: bool


class Course(Document, CourseBase):
    """A course owned by one instructor, holding ordered video and assignment ids."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), alias="_id")
    instructor_id: Indexed(str)  # type: ignore
    video_ids: list[str] = Field(default_factory=list)
    assignment_ids: list[str] = Field(default_factory=list)
    is_published: bool = False
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "courses"
        use_state_management = True
        validate_on_save = True

    @property
    def total_videos(self) -> int:
        return len(self.video_ids)

    @property
    def total_assignments(self) -> int:
        return len(self.assignment_ids)


class InstructorSummary(BaseModel):
    id: str
    first_name: str
    last_name: str
    avatar_url: str = ""


class CoursePublic(CourseBase):
    id: str
    instructor_id: str
    instructor: Optional[InstructorSummary] = None
    video_ids: list[str]
    assignment_ids: list[str]
    is_published: bool
    total_videos: int
    total_assignments: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_course(
        cls, course: Course, instructor: Optional[InstructorSummary] = None
    ) -> "CoursePublic":
        return cls(
            **course.model_dump(exclude={"id"}),
            id=course.id,
            instructor=instructor,
            total_videos=course.total_videos,
            total_assignments=course.total_assignments,
        )
