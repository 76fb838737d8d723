"""Video API routes.

Provides endpoints for:
- Requesting direct-upload URLs from the video provider
- Receiving provider webhooks
- Manual sync and status polling
- Course video CRUD and reordering
"""

import json
import uuid
from typing import Optional

from fastapi import APIRouter, Header, Query, Request
from pydantic import ValidationError

from app.api.deps import (
    CurrentUser,
    TeacherUser,
    VideoIngestDep,
    WebhookVerifierDep,
    ensure_course_owner,
)
from app.core.exceptions import (
    BaseAppException,
    ForbiddenException,
    InternalServerException,
    UnauthorizedException,
    ValidationException,
)
from app.core.http_utils import success_response
from app.core.logger import get_logger, log_exception
from app.models import (
    Course,
    UploadSessionVideo,
    UploadUrlRequest,
    UploadUrlResponse,
    Video,
    VideoCreate,
    VideoPublic,
    VideoReorderRequest,
    VideoStatusResponse,
    VideoSyncResponse,
    VideoUpdate,
    utc_now,
)
from app.services.video_events import IgnoredEvent, decode_event
from app.services.video_ingest import VideoIngestService
from app.services.webhook_signature import SIGNATURE_HEADER

logger = get_logger(__name__)

router = APIRouter(prefix="/videos", tags=["videos"])


async def _video_and_course(
    service: VideoIngestService, video_id: uuid.UUID
) -> tuple[Video, Course]:
    video = await service.get_video(str(video_id))
    course = await service.get_course(video.course_id)
    return video, course


# ============== PROVIDER PIPELINE ==============

@router.post("/webhook")
async def video_webhook(
    request: Request,
    verifier: WebhookVerifierDep,
    service: VideoIngestDep,
    mux_signature: Optional[str] = Header(default=None, alias=SIGNATURE_HEADER),
):
    """
    Receive a signed webhook from the video provider.

    The raw body is verified before it is parsed. 4xx answers are final;
    a 5xx makes the provider redeliver.
    """
    raw_body = await request.body()

    if not verifier.verify(raw_body, mux_signature):
        raise UnauthorizedException(
            error_code="INVALID_WEBHOOK_SIGNATURE",
            message="Invalid webhook signature",
        )

    try:
        payload = json.loads(raw_body)
    except ValueError:
        raise ValidationException(
            error_code="INVALID_WEBHOOK_PAYLOAD",
            message="Webhook body is not valid JSON",
        )

    event = decode_event(payload)
    if isinstance(event, IgnoredEvent):
        logger.info(f"Webhook '{event.event_type}' ignored")
        return success_response(message="Webhook ignored")

    try:
        await service.handle_event(event)
    except BaseAppException:
        raise
    except Exception as e:
        log_exception(logger, e, {"event": type(event).__name__})
        raise InternalServerException(
            error_code="WEBHOOK_PROCESSING_FAILED",
            message="Failed to process webhook",
            debug_message=str(e),
        )

    return success_response(message="Webhook processed successfully")


@router.post("/upload-url", status_code=201)
async def create_upload_url(
    body: UploadUrlRequest,
    current_user: TeacherUser,
    service: VideoIngestDep,
):
    """Open a direct-upload session and create a waiting video for it."""
    course = await service.get_course(body.course_id)
    ensure_course_owner(course, current_user, "upload videos to")

    result = await service.create_upload_session(
        course_id=course.id,
        title=body.title,
        description=body.description,
        order=body.order,
        is_preview=body.is_preview,
    )

    response = UploadUrlResponse(
        video=UploadSessionVideo(
            id=result.video.id,
            title=result.video.title,
            provider_upload_id=result.video.provider_upload_id,
            status=result.video.status,
        ),
        upload_url=result.upload_url,
        upload_id=result.upload_id,
    )
    return success_response(response, "Upload URL created successfully", 201)


@router.post("/{video_id}/sync")
async def sync_video(
    video_id: uuid.UUID,
    current_user: CurrentUser,
    service: VideoIngestDep,
):
    """Pull the video's state from the provider."""
    video, course = await _video_and_course(service, video_id)
    ensure_course_owner(course, current_user, "sync videos in")

    result = await service.sync_video(video)
    video = result.video

    if result.processing:
        data = VideoSyncResponse(
            status=result.status,
            provider_upload_id=video.provider_upload_id,
        )
        return success_response(data, "Video is still being processed by the provider")

    data = VideoSyncResponse(
        status=result.status,
        provider_upload_id=video.provider_upload_id,
        provider_asset_id=video.provider_asset_id,
        provider_playback_id=video.provider_playback_id,
        duration=video.duration,
        thumbnail_url=video.thumbnail_url,
    )
    return success_response(data, "Video synced successfully")


@router.get("/{video_id}/status")
async def get_video_status(
    video_id: uuid.UUID,
    current_user: CurrentUser,
    service: VideoIngestDep,
):
    """Current processing status, refreshed from the provider when possible."""
    video, course = await _video_and_course(service, video_id)
    ensure_course_owner(course, current_user, "view status for videos in")

    video = await service.refresh_status(video)

    data = VideoStatusResponse(
        id=video.id,
        status=video.status,
        is_ready=video.is_ready,
        playback_url=video.playback_url,
        duration=video.duration,
        formatted_duration=video.formatted_duration,
        thumbnail_url=video.thumbnail_url,
    )
    return success_response({"video": data}, "Video status retrieved successfully")


# ============== COURSE VIDEOS ==============

@router.get("/course/{course_id}")
async def get_course_videos(
    course_id: uuid.UUID,
    service: VideoIngestDep,
    include_preview: bool = Query(True),
):
    """List a course's videos in order. Public."""
    course = await service.get_course(str(course_id))

    query = Video.find(Video.course_id == course.id)
    if not include_preview:
        query = query.find(Video.is_preview == False)  # noqa: E712
    videos = await query.sort(+Video.order).to_list()

    return success_response(
        {
            "course": {
                "id": course.id,
                "title": course.title,
                "is_published": course.is_published,
            },
            "videos": [VideoPublic.from_video(v) for v in videos],
        },
        "Course videos retrieved successfully",
    )


@router.patch("/reorder")
async def reorder_videos(
    body: VideoReorderRequest,
    current_user: TeacherUser,
    service: VideoIngestDep,
):
    """
    Assign new orders to videos of one course.

    The resulting orders across the whole course must stay unique, so
    swapping two videos has to list both of them.
    """
    course = await service.get_course(body.course_id)
    ensure_course_owner(course, current_user, "reorder videos in")

    videos = {v.id: v for v in await Video.find(Video.course_id == course.id).to_list()}

    requested: dict[str, int] = {}
    for item in body.video_orders:
        if item.video_id not in videos:
            raise ValidationException(
                error_code="VIDEO_NOT_IN_COURSE",
                message="Video does not belong to this course",
                metadata={"video_id": item.video_id, "course_id": course.id},
            )
        requested[item.video_id] = item.order

    final_orders = [requested.get(vid, v.order) for vid, v in videos.items()]
    if len(final_orders) != len(set(final_orders)):
        raise ValidationException(
            error_code="DUPLICATE_VIDEO_ORDER",
            message="Video orders must be unique within a course",
        )

    now = utc_now()
    for vid, order in requested.items():
        video = videos[vid]
        if video.order != order:
            video.order = order
            video.updated_at = now
            await video.save()

    logger.info(
        f"Reordered {len(requested)} videos in course {course.id}",
        extra={"extra_data": {"course_id": course.id, "orders": requested}},
    )
    ordered = sorted(videos.values(), key=lambda v: v.order)
    return success_response(
        {"videos": [VideoPublic.from_video(v) for v in ordered]},
        "Videos reordered successfully",
    )


# ============== VIDEO CRUD ==============

@router.post("", status_code=201)
async def create_video(
    body: VideoCreate,
    current_user: TeacherUser,
    service: VideoIngestDep,
):
    """Create a video from an already-hosted file."""
    course = await service.get_course(body.course_id)
    ensure_course_owner(course, current_user, "add videos to")

    if body.order is not None:
        await service.ensure_order_available(course.id, body.order)
        order = body.order
    else:
        order = await service.next_order(course.id)

    video = Video(
        course_id=course.id,
        title=body.title,
        description=body.description,
        order=order,
        is_preview=body.is_preview,
        legacy_video_url=body.legacy_video_url,
        thumbnail_url=body.thumbnail_url,
        duration=body.duration,
    )
    await video.insert()

    course.video_ids.append(video.id)
    course.updated_at = utc_now()
    await course.save()

    logger.info(f"Video {video.id} created in course {course.id}")
    return success_response(
        {"video": VideoPublic.from_video(video)}, "Video created successfully", 201
    )


@router.get("/{video_id}")
async def get_video(
    video_id: uuid.UUID,
    current_user: CurrentUser,
    service: VideoIngestDep,
):
    """Get one video. Non-preview videos need an active subscription."""
    video, course = await _video_and_course(service, video_id)

    if not video.can_user_access(current_user, course.instructor_id):
        raise ForbiddenException(
            error_code="SUBSCRIPTION_REQUIRED",
            message="An active subscription is required to watch this video",
        )

    return success_response(
        {"video": VideoPublic.from_video(video)}, "Video retrieved successfully"
    )


@router.get("/{video_id}/stats")
async def get_video_stats(
    video_id: uuid.UUID,
    current_user: CurrentUser,
    service: VideoIngestDep,
):
    video, course = await _video_and_course(service, video_id)
    ensure_course_owner(course, current_user, "view stats for videos in")

    stats = {
        "title": video.title,
        "duration": video.duration,
        "formatted_duration": video.formatted_duration,
        "order": video.order,
        "is_preview": video.is_preview,
        "status": video.status,
        "created_at": video.created_at,
        "updated_at": video.updated_at,
    }
    return success_response({"stats": stats}, "Video statistics retrieved successfully")


@router.put("/{video_id}")
async def update_video(
    video_id: uuid.UUID,
    body: VideoUpdate,
    current_user: CurrentUser,
    service: VideoIngestDep,
):
    video, course = await _video_and_course(service, video_id)
    ensure_course_owner(course, current_user, "update videos in")

    updates = body.model_dump(exclude_unset=True)
    if "order" in updates and updates["order"] is not None and updates["order"] != video.order:
        await service.ensure_order_available(course.id, updates["order"], exclude_id=video.id)

    for field, value in updates.items():
        if value is None and field in ("title", "order", "is_preview"):
            continue
        setattr(video, field, value)
    video.updated_at = utc_now()

    try:
        await video.save()
    except ValidationError as e:
        raise ValidationException(message="Invalid video update", debug_message=str(e))

    return success_response(
        {"video": VideoPublic.from_video(video)}, "Video updated successfully"
    )


@router.delete("/{video_id}")
async def delete_video(
    video_id: uuid.UUID,
    current_user: CurrentUser,
    service: VideoIngestDep,
):
    """Delete a video, detach it from its course and drop the provider asset."""
    video, course = await _video_and_course(service, video_id)
    ensure_course_owner(course, current_user, "delete videos from")

    if video.id in course.video_ids:
        course.video_ids.remove(video.id)
        course.updated_at = utc_now()
        await course.save()

    await service.delete_provider_asset(video)
    await video.delete()

    logger.info(f"Video {video.id} deleted by {current_user.id}")
    return success_response(message="Video deleted successfully")

