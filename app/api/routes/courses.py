"""Course catalog API routes."""

import re
import uuid
from typing import Literal, Optional

from fastapi import APIRouter, Query

from app.api.deps import (
    CurrentUser,
    PaginationDep,
    TeacherUser,
    VideoIngestDep,
    ensure_course_owner,
)
from app.core.exceptions import NotFoundException
from app.core.http_utils import pagination_meta, success_response
from app.core.logger import get_logger
from app.models import (
    Assignment,
    Course,
    CourseCategory,
    CourseCreate,
    CourseLevel,
    CoursePublic,
    CoursePublish,
    CourseUpdate,
    InstructorSummary,
    User,
    Video,
    format_duration,
    utc_now,
)
from app.services.video_ingest import VideoIngestService

logger = get_logger(__name__)

router = APIRouter(prefix="/courses", tags=["courses"])

SortField = Literal["created_at", "updated_at", "title", "price"]


def format_total_duration(seconds: float) -> str:
    """Course-level duration as ``Xh Ym`` or ``Ym``."""
    total = int(seconds or 0)
    hours, rest = divmod(total, 3600)
    minutes = rest // 60
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


async def _instructors_for(courses: list[Course]) -> dict[str, InstructorSummary]:
    ids = list({c.instructor_id for c in courses})
    if not ids:
        return {}
    users = await User.find({"_id": {"$in": ids}}).to_list()
    return {
        u.id: InstructorSummary(
            id=u.id,
            first_name=u.first_name,
            last_name=u.last_name,
            avatar_url=u.avatar_url,
        )
        for u in users
    }


async def _public(courses: list[Course]) -> list[CoursePublic]:
    instructors = await _instructors_for(courses)
    return [CoursePublic.from_course(c, instructors.get(c.instructor_id)) for c in courses]


async def _get_course(course_id: uuid.UUID) -> Course:
    course = await Course.get(str(course_id))
    if not course:
        raise NotFoundException(
            error_code="COURSE_NOT_FOUND",
            message="Course not found",
            resource_type="course",
            resource_id=str(course_id),
        )
    return course


@router.get("")
async def list_courses(
    pagination: PaginationDep,
    category: Optional[CourseCategory] = None,
    level: Optional[CourseLevel] = None,
    instructor: Optional[str] = None,
    search: Optional[str] = Query(None, max_length=100),
    is_published: bool = True,
    sort: SortField = "created_at",
    order: Literal["asc", "desc"] = "desc",
):
    """Browse the catalog with filters, sorting and pagination. Public."""
    query = Course.find(Course.is_published == is_published)

    if category:
        query = query.find(Course.category == category)
    if level:
        query = query.find(Course.level == level)
    if instructor:
        query = query.find(Course.instructor_id == instructor)
    if search:
        pattern = re.escape(search)
        query = query.find({
            "$or": [
                {"title": {"$regex": pattern, "$options": "i"}},
                {"description": {"$regex": pattern, "$options": "i"}},
                {"tags": {"$regex": pattern, "$options": "i"}},
            ]
        })

    total = await query.count()
    sort_key = f"{'-' if order == 'desc' else '+'}{sort}"
    courses = await query.sort(sort_key).skip(pagination.skip).limit(pagination.limit).to_list()

    return success_response(
        {
            "courses": await _public(courses),
            "pagination": pagination_meta(pagination.page, pagination.limit, total),
        },
        "Courses retrieved successfully",
    )


@router.get("/instructor/{instructor_id}")
async def list_instructor_courses(
    instructor_id: uuid.UUID,
    pagination: PaginationDep,
    is_published: Optional[bool] = None,
):
    instructor = await User.get(str(instructor_id))
    if not instructor:
        raise NotFoundException(
            error_code="INSTRUCTOR_NOT_FOUND",
            message="Instructor not found",
            resource_type="user",
            resource_id=str(instructor_id),
        )

    query = Course.find(Course.instructor_id == instructor.id)
    if is_published is not None:
        query = query.find(Course.is_published == is_published)

    total = await query.count()
    courses = await query.sort(-Course.created_at).skip(pagination.skip).limit(pagination.limit).to_list()
    summary = InstructorSummary(
        id=instructor.id,
        first_name=instructor.first_name,
        last_name=instructor.last_name,
        avatar_url=instructor.avatar_url,
    )

    return success_response(
        {
            "instructor": {**summary.model_dump(), "bio": instructor.bio},
            "courses": [CoursePublic.from_course(c, summary) for c in courses],
            "pagination": pagination_meta(pagination.page, pagination.limit, total),
        },
        "Instructor courses retrieved successfully",
    )


@router.get("/{course_id}")
async def get_course(course_id: uuid.UUID):
    """Course detail with its videos and assignments in order. Public."""
    course = await _get_course(course_id)

    videos = await Video.find(Video.course_id == course.id).sort(+Video.order).to_list()
    assignments = (
        await Assignment.find(Assignment.course_id == course.id)
        .sort(+Assignment.due_date)
        .to_list()
    )
    public = (await _public([course]))[0]

    return success_response(
        {
            "course": public,
            "videos": [
                {
                    "id": v.id,
                    "title": v.title,
                    "description": v.description,
                    "thumbnail_url": v.thumbnail_url,
                    "duration": v.duration,
                    "order": v.order,
                    "is_preview": v.is_preview,
                    "status": v.status,
                }
                for v in videos
            ],
            "assignments": [
                {
                    "id": a.id,
                    "title": a.title,
                    "description": a.description,
                    "due_date": a.due_date,
                    "max_points": a.max_points,
                }
                for a in assignments
            ],
        },
        "Course retrieved successfully",
    )


@router.get("/{course_id}/stats")
async def get_course_stats(course_id: uuid.UUID, current_user: CurrentUser):
    course = await _get_course(course_id)
    ensure_course_owner(course, current_user, "view stats for")

    videos = await Video.find(Video.course_id == course.id).to_list()
    total_duration = sum(v.duration or 0 for v in videos)
    ready_videos = sum(1 for v in videos if v.is_ready)

    stats = {
        "total_videos": len(videos),
        "ready_videos": ready_videos,
        "total_assignments": await Assignment.find(Assignment.course_id == course.id).count(),
        "total_duration": total_duration,
        "total_duration_formatted": format_total_duration(total_duration),
        "average_video_duration": format_duration(total_duration / len(videos)) if videos else "0:00",
        "is_published": course.is_published,
        "created_at": course.created_at,
        "updated_at": course.updated_at,
    }
    return success_response({"stats": stats}, "Course statistics retrieved successfully")


@router.post("", status_code=201)
async def create_course(body: CourseCreate, current_user: TeacherUser):
    """Create a course owned by the caller. Teacher or admin."""
    course = Course(**body.model_dump(), instructor_id=current_user.id)
    await course.insert()

    logger.info(f"Course {course.id} created by {current_user.id}")
    public = (await _public([course]))[0]
    return success_response({"course": public}, "Course created successfully", 201)


@router.put("/{course_id}")
async def update_course(
    course_id: uuid.UUID,
    body: CourseUpdate,
    current_user: CurrentUser,
):
    course = await _get_course(course_id)
    ensure_course_owner(course, current_user, "update")

    for field, value in body.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(course, field, value)
    course.updated_at = utc_now()
    await course.save()

    public = (await _public([course]))[0]
    return success_response({"course": public}, "Course updated successfully")


@router.patch("/{course_id}/publish")
async def publish_course(
    course_id: uuid.UUID,
    body: CoursePublish,
    current_user: CurrentUser,
):
    course = await _get_course(course_id)
    ensure_course_owner(course, current_user, "modify")

    course.is_published = body.is_published
    course.updated_at = utc_now()
    await course.save()

    state = "published" if course.is_published else "unpublished"
    logger.info(f"Course {course.id} {state} by {current_user.id}")
    public = (await _public([course]))[0]
    return success_response({"course": public}, f"Course {state} successfully")


@router.delete("/{course_id}")
async def delete_course(
    course_id: uuid.UUID,
    current_user: CurrentUser,
    service: VideoIngestDep,
):
    """Delete a course together with its videos and assignments."""
    course = await _get_course(course_id)
    ensure_course_owner(course, current_user, "delete")

    deleted_videos = await _delete_course_videos(service, course)
    deleted_assignments = await Assignment.find(Assignment.course_id == course.id).delete()
    await course.delete()

    logger.info(
        f"Course {course.id} deleted by {current_user.id}",
        extra={"extra_data": {
            "videos": deleted_videos,
            "assignments": deleted_assignments.deleted_count if deleted_assignments else 0,
        }},
    )
    return success_response(message="Course deleted successfully")


async def _delete_course_videos(service: VideoIngestService, course: Course) -> int:
    videos = await Video.find(Video.course_id == course.id).to_list()
    for video in videos:
        await service.delete_provider_asset(video)
        await video.delete()
    return len(videos)
