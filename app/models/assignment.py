"""Assignment models and schemas."""
import math
import uuid
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from beanie import Document, Indexed
from pydantic import BaseModel, Field, field_validator

from .base import ensure_utc, utc_now


class AssignmentType(str, Enum):
    QUIZ = "quiz"
    PROJECT = "project"
    ESSAY = "essay"
    PERFORMANCE = "performance"
    RECORDING = "recording"
    OTHER = "other"


class AssignmentStatus(str, Enum):
    UPCOMING = "upcoming"
    DUE_SOON = "due_soon"
    OVERDUE = "overdue"


DUE_SOON_WINDOW = timedelta(hours=24)


class Attachment(BaseModel):
    file_name: str = Field(..., max_length=255)
    file_url: str = Field(..., max_length=1000)
    file_size: Optional[int] = Field(default=None, ge=0)
    file_type: Optional[str] = Field(default=None, max_length=100)


def _require_future(v: Optional[datetime]) -> Optional[datetime]:
    if v is None:
        return v
    if ensure_utc(v) <= utc_now():
        raise ValueError("Due date must be in the future")
    return v


class AssignmentBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=1000)
    instructions: str = Field(..., min_length=1, max_length=2000)
    due_date: datetime
    max_points: int = Field(..., ge=1, le=1000)
    assignment_type: AssignmentType
    attachments: list[Attachment] = Field(default_factory=list)
    allow_late_submission: bool = False
    late_penalty: float = Field(default=0, ge=0, le=100)


class AssignmentCreate(AssignmentBase):
    course_id: str = Field(..., min_length=1)
    is_published: bool = False

    @field_validator("due_date")
    @classmethod
    def _future_due_date(cls, v: datetime) -> datetime:
        return _require_future(v)


class AssignmentUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, min_length=1, max_length=1000)
    instructions: Optional[str] = Field(default=None, min_length=1, max_length=2000)
    due_date: Optional[datetime] = None
    max_points: Optional[int] = Field(default=None, ge=1, le=1000)
    assignment_type: Optional[AssignmentType] = None
    attachments: Optional[list[Attachment]] = None
    is_published: Optional[bool] = None
    allow_late_submission: Optional[bool] = None
    late_penalty: Optional[float] = Field(default=None, ge=0, le=100)

    @field_validator("due_date")
    @classmethod
    def _future_due_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _require_future(v)


class AssignmentPublish(BaseModel):
    is_published: bool


class Assignment(Document, AssignmentBase):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), alias="_id")
    course_id: Indexed(str)  # type: ignore
    is_published: bool = False
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "assignments"
        use_state_management = True
        validate_on_save = True

    def _time_left(self, now: Optional[datetime] = None) -> timedelta:
        return ensure_utc(self.due_date) - (now or utc_now())

    def days_until_due(self, now: Optional[datetime] = None) -> int:
        return math.ceil(self._time_left(now).total_seconds() / 86400)

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        return self._time_left(now) < timedelta(0)

    def is_due_soon(self, now: Optional[datetime] = None) -> bool:
        left = self._time_left(now)
        return timedelta(0) < left <= DUE_SOON_WINDOW

    def status(self, now: Optional[datetime] = None) -> AssignmentStatus:
        if self.is_overdue(now):
            return AssignmentStatus.OVERDUE
        if self._time_left(now) <= DUE_SOON_WINDOW:
            return AssignmentStatus.DUE_SOON
        return AssignmentStatus.UPCOMING


class AssignmentPublic(AssignmentBase):
    id: str
    course_id: str
    is_published: bool
    days_until_due: int
    status: AssignmentStatus
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_assignment(cls, assignment: Assignment) -> "AssignmentPublic":
        now = utc_now()
        return cls(
            **assignment.model_dump(exclude={"id"}),
            id=assignment.id,
            days_until_due=assignment.days_until_due(now),
            status=assignment.status(now),
        )
