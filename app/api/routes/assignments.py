"""Assignment API routes."""

import uuid

from fastapi import APIRouter

from app.api.deps import (
    CurrentUser,
    OptionalUser,
    PaginationDep,
    TeacherUser,
    ensure_course_owner,
    is_course_owner,
)
from app.core.exceptions import NotFoundException
from app.core.http_utils import pagination_meta, success_response
from app.core.logger import get_logger
from app.models import (
    Assignment,
    AssignmentCreate,
    AssignmentPublic,
    AssignmentPublish,
    AssignmentUpdate,
    Course,
    utc_now,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/assignments", tags=["assignments"])


async def _get_course(course_id: str) -> Course:
    course = await Course.get(course_id)
    if not course:
        raise NotFoundException(
            error_code="COURSE_NOT_FOUND",
            message="Course not found",
            resource_type="course",
            resource_id=course_id,
        )
    return course


async def _assignment_and_course(assignment_id: uuid.UUID) -> tuple[Assignment, Course]:
    assignment = await Assignment.get(str(assignment_id))
    if not assignment:
        raise NotFoundException(
            error_code="ASSIGNMENT_NOT_FOUND",
            message="Assignment not found",
            resource_type="assignment",
            resource_id=str(assignment_id),
        )
    return assignment, await _get_course(assignment.course_id)


@router.get("")
async def list_assignments(pagination: PaginationDep):
    """Published assignments across all courses, soonest due first."""
    query = Assignment.find(Assignment.is_published == True)  # noqa: E712
    total = await query.count()
    assignments = (
        await query.sort(+Assignment.due_date)
        .skip(pagination.skip)
        .limit(pagination.limit)
        .to_list()
    )
    return success_response(
        {
            "assignments": [AssignmentPublic.from_assignment(a) for a in assignments],
            "pagination": pagination_meta(pagination.page, pagination.limit, total),
        },
        "Assignments retrieved successfully",
    )


@router.get("/course/{course_id}")
async def list_course_assignments(
    course_id: uuid.UUID,
    current_user: OptionalUser,
    include_unpublished: bool = False,
):
    """A course's assignments. Drafts are listed only for the course owner."""
    course = await _get_course(str(course_id))

    query = Assignment.find(Assignment.course_id == course.id)
    show_drafts = (
        include_unpublished
        and current_user is not None
        and is_course_owner(course, current_user)
    )
    if not show_drafts:
        query = query.find(Assignment.is_published == True)  # noqa: E712

    assignments = await query.sort(+Assignment.due_date).to_list()
    return success_response(
        {
            "course": {"id": course.id, "title": course.title},
            "assignments": [AssignmentPublic.from_assignment(a) for a in assignments],
        },
        "Course assignments retrieved successfully",
    )


@router.get("/{assignment_id}")
async def get_assignment(assignment_id: uuid.UUID, current_user: CurrentUser):
    assignment, course = await _assignment_and_course(assignment_id)
    if not assignment.is_published and not is_course_owner(course, current_user):
        raise NotFoundException(
            error_code="ASSIGNMENT_NOT_FOUND",
            message="Assignment not found",
            resource_type="assignment",
            resource_id=assignment.id,
        )
    return success_response(
        {
            "assignment": AssignmentPublic.from_assignment(assignment),
            "course": {"id": course.id, "title": course.title},
        },
        "Assignment retrieved successfully",
    )


@router.get("/{assignment_id}/stats")
async def get_assignment_stats(assignment_id: uuid.UUID, current_user: CurrentUser):
    assignment, course = await _assignment_and_course(assignment_id)
    ensure_course_owner(course, current_user, "view stats for assignments in")

    now = utc_now()
    stats = {
        "title": assignment.title,
        "due_date": assignment.due_date,
        "max_points": assignment.max_points,
        "assignment_type": assignment.assignment_type,
        "is_published": assignment.is_published,
        "days_until_due": assignment.days_until_due(now),
        "status": assignment.status(now),
        "is_overdue": assignment.is_overdue(now),
        "is_due_soon": assignment.is_due_soon(now),
        "created_at": assignment.created_at,
        "updated_at": assignment.updated_at,
    }
    return success_response({"stats": stats}, "Assignment statistics retrieved successfully")


@router.post("", status_code=201)
async def create_assignment(body: AssignmentCreate, current_user: TeacherUser):
    course = await _get_course(body.course_id)
    ensure_course_owner(course, current_user, "add assignments to")

    assignment = Assignment(**body.model_dump())
    await assignment.insert()

    course.assignment_ids.append(assignment.id)
    course.updated_at = utc_now()
    await course.save()

    logger.info(f"Assignment {assignment.id} created in course {course.id}")
    return success_response(
        {"assignment": AssignmentPublic.from_assignment(assignment)},
        "Assignment created successfully",
        201,
    )


@router.put("/{assignment_id}")
async def update_assignment(
    assignment_id: uuid.UUID,
    body: AssignmentUpdate,
    current_user: CurrentUser,
):
    assignment, course = await _assignment_and_course(assignment_id)
    ensure_course_owner(course, current_user, "update assignments in")

    for field, value in body.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(assignment, field, value)
    assignment.updated_at = utc_now()
    await assignment.save()

    return success_response(
        {"assignment": AssignmentPublic.from_assignment(assignment)},
        "Assignment updated successfully",
    )


@router.patch("/{assignment_id}/publish")
async def publish_assignment(
    assignment_id: uuid.UUID,
    body: AssignmentPublish,
    current_user: CurrentUser,
):
    assignment, course = await _assignment_and_course(assignment_id)
    ensure_course_owner(course, current_user, "modify assignments in")

    assignment.is_published = body.is_published
    assignment.updated_at = utc_now()
    await assignment.save()

    state = "published" if assignment.is_published else "unpublished"
    return success_response(
        {"assignment": AssignmentPublic.from_assignment(assignment)},
        f"Assignment {state} successfully",
    )


@router.delete("/{assignment_id}")
async def delete_assignment(assignment_id: uuid.UUID, current_user: CurrentUser):
    assignment, course = await _assignment_and_course(assignment_id)
    ensure_course_owner(course, current_user, "delete assignments from")

    if assignment.id in course.assignment_ids:
        course.assignment_ids.remove(assignment.id)
        course.updated_at = utc_now()
        await course.save()
    await assignment.delete()

    logger.info(f"Assignment {assignment.id} deleted by {current_user.id}")
    return success_response(message="Assignment deleted successfully")
