"""
Video ingest service.

Owns the lifecycle of provider-backed videos:

- ``create_upload_session`` opens a direct-upload session with the provider
  and stores a ``waiting`` video for it.
- ``handle_event`` applies a decoded webhook event.
- ``sync_video`` and ``refresh_status`` pull the current state from the
  provider for when webhooks were missed.

Every path that learns an asset's state goes through ``reconcile_asset`` and
``next_status``, so a push and a pull of the same asset give the same record.
"""

from dataclasses import dataclass
from typing import Optional

from app.core.config import Settings, settings as default_settings
from app.core.exceptions import (
    BaseAppException,
    InvalidStateException,
    NotFoundException,
)
from app.core.logger import get_logger, log_business_error, log_exception
from app.models import Course, Video, VideoStatus, utc_now
from app.services.video_events import (
    AssetErroredEvent,
    AssetReadyEvent,
    UploadAssetCreatedEvent,
    VideoWebhookEvent,
)
from app.services.video_provider import ProviderAsset, VideoProvider
from app.services.video_state import VideoEvent, event_for_asset_status, next_status

logger = get_logger(__name__)


@dataclass
class UploadSessionResult:
    video: Video
    upload_url: str
    upload_id: str


@dataclass
class SyncResult:
    video: Video
    # True while the provider has not attached an asset to the upload
    processing: bool = False

    @property
    def status(self) -> str:
        return "processing" if self.processing else self.video.status.value


class VideoIngestService:
    def __init__(self, provider: VideoProvider, settings: Settings = default_settings):
        self.provider = provider
        self.settings = settings

    # =========================================================================
    # Lookups
    # =========================================================================

    async def get_course(self, course_id: str) -> Course:
        course = await Course.get(course_id)
        if not course:
            raise NotFoundException(
                error_code="COURSE_NOT_FOUND",
                message="Course not found",
                resource_type="course",
                resource_id=course_id,
            )
        return course

    async def get_video(self, video_id: str) -> Video:
        video = await Video.get(video_id)
        if not video:
            raise NotFoundException(
                error_code="VIDEO_NOT_FOUND",
                message="Video not found",
                resource_type="video",
                resource_id=video_id,
            )
        return video

    async def ensure_order_available(
        self,
        course_id: str,
        order: int,
        exclude_id: Optional[str] = None,
    ) -> None:
        """Reject an ``order`` already used by another video of the course.

        This is a read-then-write check; two concurrent writers can still
        both pass it.
        """
        query = {"course_id": course_id, "order": order}
        if exclude_id:
            query["_id"] = {"$ne": exclude_id}
        clash = await Video.find_one(query)
        if clash:
            raise InvalidStateException(
                error_code="DUPLICATE_VIDEO_ORDER",
                message=f"A video with order {order} already exists in this course",
                metadata={"course_id": course_id, "order": order, "video_id": clash.id},
            )

    async def next_order(self, course_id: str) -> int:
        last = (
            await Video.find(Video.course_id == course_id)
            .sort(-Video.order)
            .limit(1)
            .to_list()
        )
        return last[0].order + 1 if last else 1

    # =========================================================================
    # Upload sessions
    # =========================================================================

    async def create_upload_session(
        self,
        course_id: str,
        title: str,
        description: Optional[str] = None,
        order: Optional[int] = None,
        is_preview: bool = False,
    ) -> UploadSessionResult:
        course = await self.get_course(course_id)

        if order is not None:
            await self.ensure_order_available(course.id, order)
        else:
            order = await self.next_order(course.id)

        upload = await self.provider.create_upload(
            cors_origin=self.settings.FRONTEND_HOST,
            playback_policy="public",
        )

        video = Video(
            course_id=course.id,
            title=title,
            description=description,
            order=order,
            is_preview=is_preview,
            provider_upload_id=upload.id,
            status=VideoStatus.WAITING,
            duration=0,
            thumbnail_url="",
        )
        await video.insert()

        course.video_ids.append(video.id)
        course.updated_at = utc_now()
        await course.save()

        logger.info(
            f"Upload session created for video {video.id}",
            extra={"extra_data": {
                "video_id": video.id,
                "course_id": course.id,
                "upload_id": upload.id,
                "order": order,
            }},
        )
        return UploadSessionResult(video=video, upload_url=upload.url, upload_id=upload.id)

    # =========================================================================
    # Reconciliation
    # =========================================================================

    def thumbnail_url_for(self, playback_id: Optional[str]) -> str:
        if not playback_id:
            return ""
        return f"{self.settings.MUX_IMAGE_BASE_URL}/{playback_id}/thumbnail.jpg?time=0"

    @staticmethod
    def _provider_fields(video: Video) -> tuple:
        return (
            video.provider_asset_id,
            video.status,
            video.provider_playback_id,
            video.duration,
            video.thumbnail_url,
        )

    async def reconcile_asset(self, video: Video, asset: ProviderAsset) -> Video:
        """Merge provider asset detail into the video and save it.

        Nothing is written when the asset adds nothing new.
        """
        previous = video.status
        before = self._provider_fields(video)
        video.provider_asset_id = asset.id
        video.status = next_status(video.status, event_for_asset_status(asset.status))

        if video.status == VideoStatus.READY:
            playback_id = asset.first_playback_id
            video.provider_playback_id = playback_id
            video.duration = asset.duration or 0
            video.thumbnail_url = self.thumbnail_url_for(playback_id)

        if self._provider_fields(video) == before:
            return video

        video.updated_at = utc_now()
        await video.save()

        logger.info(
            f"Video {video.id} reconciled: {previous.value} -> {video.status.value}",
            extra={"extra_data": {
                "video_id": video.id,
                "asset_id": asset.id,
                "asset_status": asset.status,
            }},
        )
        return video

    async def handle_event(self, event: VideoWebhookEvent) -> Optional[Video]:
        """
        Apply a decoded webhook event.

        Returns the updated video, or None when the event was ignored or
        did not match any video.

        Raises:
            NotFoundException: ``asset.ready`` for an asset no video knows.
            UpstreamServiceException: Fetching the asset detail failed.
        """
        if isinstance(event, AssetReadyEvent):
            return await self._on_asset_ready(event)
        if isinstance(event, AssetErroredEvent):
            return await self._on_asset_errored(event)
        if isinstance(event, UploadAssetCreatedEvent):
            return await self._on_upload_asset_created(event)

        logger.debug(f"Ignoring webhook event '{event.event_type}'")
        return None

    async def _on_asset_ready(self, event: AssetReadyEvent) -> Video:
        video = await Video.find_one(Video.provider_asset_id == event.asset_id)
        if not video:
            raise NotFoundException(
                error_code="VIDEO_NOT_FOUND",
                message="No video found for asset",
                resource_type="video",
                metadata={"asset_id": event.asset_id},
            )
        asset = await self.provider.get_asset(event.asset_id)
        return await self.reconcile_asset(video, asset)

    async def _on_asset_errored(self, event: AssetErroredEvent) -> Optional[Video]:
        video = await Video.find_one(Video.provider_asset_id == event.asset_id)
        if not video:
            log_business_error(
                logger,
                "VIDEO_NOT_FOUND",
                "Errored asset does not match any video",
                {"asset_id": event.asset_id},
            )
            return None

        video.status = next_status(video.status, VideoEvent.ERRORED)
        video.updated_at = utc_now()
        await video.save()
        logger.warning(
            f"Video {video.id} processing failed",
            extra={"extra_data": {
                "video_id": video.id,
                "asset_id": event.asset_id,
                "errors": event.errors,
                "status": video.status.value,
            }},
        )
        return video

    async def _on_upload_asset_created(
        self, event: UploadAssetCreatedEvent
    ) -> Optional[Video]:
        video = await Video.find_one(Video.provider_upload_id == event.upload_id)
        if not video:
            log_business_error(
                logger,
                "VIDEO_NOT_FOUND",
                "Upload does not match any video",
                {"upload_id": event.upload_id, "asset_id": event.asset_id},
            )
            return None

        video.provider_asset_id = event.asset_id
        video.status = next_status(video.status, VideoEvent.CREATED)
        video.updated_at = utc_now()
        await video.save()
        logger.info(
            f"Asset {event.asset_id} linked to video {video.id}",
            extra={"extra_data": {"video_id": video.id, "upload_id": event.upload_id}},
        )
        return video

    # =========================================================================
    # Pull-based sync
    # =========================================================================

    async def sync_video(self, video: Video) -> SyncResult:
        """
        Pull the video's state from the provider.

        Raises:
            InvalidStateException: The video never went through the provider.
        """
        if not video.has_provider_pipeline:
            raise InvalidStateException(
                error_code="NO_PROVIDER_UPLOAD",
                message="Video has no provider upload or asset to sync",
                metadata={"video_id": video.id},
            )

        asset_id = video.provider_asset_id
        if video.provider_upload_id:
            upload = await self.provider.get_upload(video.provider_upload_id)
            asset_id = upload.asset_id or asset_id

        if not asset_id:
            logger.info(
                f"Video {video.id} still waiting for the provider to create an asset",
                extra={"extra_data": {"upload_id": video.provider_upload_id}},
            )
            return SyncResult(video=video, processing=True)

        asset = await self.provider.get_asset(asset_id)
        video = await self.reconcile_asset(video, asset)
        return SyncResult(video=video)

    async def refresh_status(self, video: Video) -> Video:
        """Best-effort refresh for status reads. Provider errors are logged
        and the stored state is returned."""
        if not video.provider_asset_id:
            return video
        try:
            asset = await self.provider.get_asset(video.provider_asset_id)
        except BaseAppException as e:
            log_exception(logger, e, {"video_id": video.id, "operation": "refresh_status"})
            return video
        return await self.reconcile_asset(video, asset)

    async def delete_provider_asset(self, video: Video) -> bool:
        """Remove the video's asset from the provider. Failures are logged."""
        if not video.provider_asset_id or not self.provider.is_configured:
            return False
        try:
            await self.provider.delete_asset(video.provider_asset_id)
        except BaseAppException as e:
            log_exception(logger, e, {"video_id": video.id, "operation": "delete_asset"})
            return False
        return True
