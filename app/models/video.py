"""Video models and schemas for the provider ingest pipeline."""
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from beanie import Document
from pydantic import BaseModel, Field, model_validator
from typing_extensions import Self

from app.core.config import settings

from .base import UserRole, utc_now


class VideoStatus(str, Enum):
    """Provider processing status of a video."""
    WAITING = "waiting"      # Upload session created, nothing received yet
    PREPARING = "preparing"  # Provider has the file and is processing it
    READY = "ready"          # Playback ready (terminal)
    ERRORED = "errored"      # Processing failed (terminal)


TERMINAL_STATUSES = frozenset({VideoStatus.READY, VideoStatus.ERRORED})


def format_duration(seconds: float) -> str:
    """Render seconds as H:MM:SS, or M:SS under an hour."""
    total = int(seconds or 0)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


class Video(Document):
    """
    A lesson video belonging to one course.

    Provider-backed videos start in ``waiting`` with only an upload id and
    receive their asset id, playback id, duration and thumbnail as the
    provider reports progress. Legacy videos carry a direct URL instead and
    must provide duration and thumbnail up front.
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), alias="_id")
    course_id: str
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    order: int = Field(..., ge=1)
    is_preview: bool = False

    legacy_video_url: Optional[str] = None
    provider_upload_id: Optional[str] = None
    provider_asset_id: Optional[str] = None
    provider_playback_id: Optional[str] = None
    status: VideoStatus = VideoStatus.WAITING

    duration: Optional[float] = Field(default=None, ge=0)  # seconds
    thumbnail_url: Optional[str] = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "videos"
        use_state_management = True
        validate_on_save = True
        indexes = [
            "course_id",
            "provider_upload_id",
            "provider_asset_id",
            "status",
            [("course_id", 1), ("order", 1)],
        ]

    @model_validator(mode="after")
    def _check_source(self) -> Self:
        if not self.has_provider_pipeline:
            if not self.legacy_video_url:
                raise ValueError(
                    "legacy_video_url is required when no provider upload or asset is set"
                )
            if self.duration is None or self.thumbnail_url is None:
                raise ValueError(
                    "duration and thumbnail_url are required for legacy videos"
                )
        return self

    @property
    def has_provider_pipeline(self) -> bool:
        return bool(self.provider_upload_id or self.provider_asset_id)

    @property
    def formatted_duration(self) -> str:
        return format_duration(self.duration or 0)

    @property
    def playback_url(self) -> Optional[str]:
        if self.provider_playback_id:
            return f"{settings.MUX_STREAM_BASE_URL}/{self.provider_playback_id}.m3u8"
        return self.legacy_video_url

    @property
    def is_ready(self) -> bool:
        return self.status == VideoStatus.READY or bool(self.legacy_video_url)

    def can_user_access(self, user, instructor_id: Optional[str] = None) -> bool:
        """Admins and the course instructor always; preview videos for any
        signed-in user; everything else needs an active subscription."""
        if user.role == UserRole.ADMIN:
            return True
        if instructor_id is not None and user.id == instructor_id:
            return True
        if self.is_preview:
            return True
        return user.has_active_subscription()


# =============================================================================
# Request schemas
# =============================================================================

class UploadUrlRequest(BaseModel):
    """Request a direct-upload session for a new provider-backed video."""
    course_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    order: Optional[int] = Field(default=None, ge=1)
    is_preview: bool = False


class VideoCreate(BaseModel):
    """Create a video from an already-hosted file."""
    course_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    legacy_video_url: str = Field(..., min_length=1)
    thumbnail_url: str = Field(..., min_length=1)
    duration: float = Field(..., ge=0)
    order: Optional[int] = Field(default=None, ge=1)
    is_preview: bool = False


class VideoUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    order: Optional[int] = Field(default=None, ge=1)
    is_preview: Optional[bool] = None
    legacy_video_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    duration: Optional[float] = Field(default=None, ge=0)


class VideoOrderItem(BaseModel):
    video_id: str
    order: int = Field(..., ge=1)


class VideoReorderRequest(BaseModel):
    course_id: str
    video_orders: list[VideoOrderItem] = Field(..., min_length=1)


# =============================================================================
# Response schemas
# =============================================================================

class VideoPublic(BaseModel):
    """Public video response schema."""
    id: str
    course_id: str
    title: str
    description: Optional[str] = None
    order: int
    is_preview: bool
    status: VideoStatus
    legacy_video_url: Optional[str] = None
    provider_upload_id: Optional[str] = None
    provider_asset_id: Optional[str] = None
    provider_playback_id: Optional[str] = None
    duration: Optional[float] = None
    formatted_duration: str
    thumbnail_url: Optional[str] = None
    playback_url: Optional[str] = None
    is_ready: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_video(cls, video: Video) -> "VideoPublic":
        return cls(
            **video.model_dump(exclude={"id"}),
            id=video.id,
            formatted_duration=video.formatted_duration,
            playback_url=video.playback_url,
            is_ready=video.is_ready,
        )


class UploadSessionVideo(BaseModel):
    id: str
    title: str
    provider_upload_id: Optional[str]
    status: VideoStatus


class UploadUrlResponse(BaseModel):
    video: UploadSessionVideo
    upload_url: str
    upload_id: str


class VideoSyncResponse(BaseModel):
    """Outcome of a manual sync. ``status`` is ``processing`` when the
    provider has not attached an asset to the upload yet."""
    status: str
    provider_upload_id: Optional[str] = None
    provider_asset_id: Optional[str] = None
    provider_playback_id: Optional[str] = None
    duration: Optional[float] = None
    thumbnail_url: Optional[str] = None


class VideoStatusResponse(BaseModel):
    id: str
    status: VideoStatus
    is_ready: bool
    playback_url: Optional[str] = None
    duration: Optional[float] = None
    formatted_duration: str
    thumbnail_url: Optional[str] = None
