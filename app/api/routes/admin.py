"""Admin API routes for the dashboard, user management and content oversight."""

import re
import uuid
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Query

from app.api.deps import AdminUser, PaginationDep
from app.core.exceptions import BusinessException, NotFoundException
from app.core.http_utils import pagination_meta, success_response
from app.core.logger import get_logger
from app.models import (
    AdminUserUpdate,
    Assignment,
    Course,
    CoursePublic,
    CoursePublish,
    SubscriptionPlan,
    SubscriptionStatus,
    User,
    UserPublic,
    UserRole,
    Video,
    VideoPublic,
    VideoStatus,
    utc_now,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def _regex(search: str) -> dict:
    return {"$regex": re.escape(search), "$options": "i"}


# ============== DASHBOARD STATS ==============

@router.get("/stats")
async def get_admin_stats(current_user: AdminUser):
    """Get admin dashboard statistics. Admin only."""
    today = utc_now().replace(hour=0, minute=0, second=0, microsecond=0)

    users_by_role = {}
    for role in UserRole:
        users_by_role[role.value] = await User.find(User.role == role).count()

    videos_by_status = {}
    for status in VideoStatus:
        videos_by_status[status.value] = await Video.find(Video.status == status).count()

    # Sign-ups and new courses for the last 7 days
    activity_last_7_days = []
    for i in range(6, -1, -1):
        day_start = today - timedelta(days=i)
        day_end = day_start + timedelta(days=1)
        activity_last_7_days.append({
            "date": day_start.strftime("%Y-%m-%d"),
            "users": await User.find(User.created_at >= day_start, User.created_at < day_end).count(),
            "courses": await Course.find(Course.created_at >= day_start, Course.created_at < day_end).count(),
        })

    recent_users = await User.find().sort(-User.created_at).limit(5).to_list()
    recent_courses = await Course.find().sort(-Course.created_at).limit(5).to_list()

    stats = {
        "users": {
            "total": await User.count(),
            "active": await User.find({"subscription.status": SubscriptionStatus.ACTIVE.value}).count(),
            "trial": await User.find({"subscription.status": SubscriptionStatus.TRIAL.value}).count(),
            "premium": await User.find({"subscription.plan": SubscriptionPlan.PREMIUM.value}).count(),
            "by_role": users_by_role,
            "new_today": await User.find(User.created_at >= today).count(),
        },
        "content": {
            "total_courses": await Course.count(),
            "published_courses": await Course.find(Course.is_published == True).count(),  # noqa: E712
            "total_videos": await Video.count(),
            "videos_by_status": videos_by_status,
            "total_assignments": await Assignment.count(),
        },
        "recent_activity": {
            "users": [
                {
                    "id": u.id,
                    "full_name": u.full_name,
                    "email": u.email,
                    "role": u.role,
                    "created_at": u.created_at,
                }
                for u in recent_users
            ],
            "courses": [
                {
                    "id": c.id,
                    "title": c.title,
                    "instructor_id": c.instructor_id,
                    "created_at": c.created_at,
                }
                for c in recent_courses
            ],
        },
        "activity_last_7_days": activity_last_7_days,
    }
    return success_response({"stats": stats}, "System statistics retrieved successfully")


# ============== USER MANAGEMENT ==============

@router.get("/users")
async def get_users(
    current_user: AdminUser,
    pagination: PaginationDep,
    role: Optional[UserRole] = None,
    search: Optional[str] = Query(None, max_length=100),
):
    """Get list of users. Admin only."""
    query = User.find()

    if role:
        query = query.find(User.role == role)

    if search:
        query = query.find({
            "$or": [
                {"email": _regex(search)},
                {"first_name": _regex(search)},
                {"last_name": _regex(search)},
            ]
        })

    total = await query.count()
    users = await query.sort(-User.created_at).skip(pagination.skip).limit(pagination.limit).to_list()

    return success_response(
        {
            "users": [UserPublic.from_user(u) for u in users],
            "pagination": pagination_meta(pagination.page, pagination.limit, total),
        },
        "Users retrieved successfully",
    )


@router.patch("/users/{user_id}")
async def update_user(
    user_id: uuid.UUID,
    body: AdminUserUpdate,
    current_user: AdminUser,
):
    """Update a user's role, activation, verification or subscription. Admin only."""
    user = await User.get(str(user_id))
    if not user:
        raise NotFoundException(
            error_code="USER_NOT_FOUND",
            message="User not found",
            resource_type="user",
            resource_id=str(user_id),
        )

    if user.id == current_user.id and body.role is not None and body.role != UserRole.ADMIN:
        raise BusinessException(
            error_code="SELF_DEMOTION",
            message="Cannot change your own role",
        )

    old_role = user.role
    if body.role is not None:
        user.role = body.role
    if body.is_active is not None:
        user.is_active = body.is_active
    if body.is_email_verified is not None:
        user.is_email_verified = body.is_email_verified
    if body.subscription is not None:
        user.apply_subscription_update(body.subscription)
    user.updated_at = utc_now()
    await user.save()

    if old_role != user.role:
        logger.info(
            f"Admin {current_user.id} changed {user.id}'s role from {old_role.value} to {user.role.value}"
        )

    return success_response({"user": UserPublic.from_user(user)}, "User updated successfully")


# ============== CONTENT OVERSIGHT ==============

@router.get("/courses")
async def get_courses(
    current_user: AdminUser,
    pagination: PaginationDep,
    is_published: Optional[bool] = None,
    search: Optional[str] = Query(None, max_length=100),
):
    """All courses, published or not. Admin only."""
    query = Course.find()
    if is_published is not None:
        query = query.find(Course.is_published == is_published)
    if search:
        query = query.find({"$or": [{"title": _regex(search)}, {"description": _regex(search)}]})

    total = await query.count()
    courses = await query.sort(-Course.created_at).skip(pagination.skip).limit(pagination.limit).to_list()

    return success_response(
        {
            "courses": [CoursePublic.from_course(c) for c in courses],
            "pagination": pagination_meta(pagination.page, pagination.limit, total),
        },
        "Courses retrieved successfully",
    )


@router.patch("/courses/{course_id}")
async def update_course(
    course_id: uuid.UUID,
    body: CoursePublish,
    current_user: AdminUser,
):
    """Publish or unpublish any course. Admin only."""
    course = await Course.get(str(course_id))
    if not course:
        raise NotFoundException(
            error_code="COURSE_NOT_FOUND",
            message="Course not found",
            resource_type="course",
            resource_id=str(course_id),
        )

    course.is_published = body.is_published
    course.updated_at = utc_now()
    await course.save()

    logger.info(f"Admin {current_user.id} set course {course.id} published={course.is_published}")
    return success_response({"course": CoursePublic.from_course(course)}, "Course updated successfully")


@router.get("/videos")
async def get_videos(
    current_user: AdminUser,
    pagination: PaginationDep,
    course_id: Optional[str] = None,
    status: Optional[VideoStatus] = None,
    search: Optional[str] = Query(None, max_length=100),
):
    """All videos with their processing status. Admin only."""
    query = Video.find()
    if course_id:
        query = query.find(Video.course_id == course_id)
    if status:
        query = query.find(Video.status == status)
    if search:
        query = query.find({"$or": [{"title": _regex(search)}, {"description": _regex(search)}]})

    total = await query.count()
    videos = await query.sort(-Video.created_at).skip(pagination.skip).limit(pagination.limit).to_list()

    return success_response(
        {
            "videos": [VideoPublic.from_video(v) for v in videos],
            "pagination": pagination_meta(pagination.page, pagination.limit, total),
        },
        "Videos retrieved successfully",
    )


# ============== SUBSCRIPTIONS ==============

@router.get("/subscriptions")
async def get_subscription_analytics(current_user: AdminUser):
    """Subscription counts by status and plan. Admin only."""
    by_status = {}
    for status in SubscriptionStatus:
        by_status[status.value] = await User.find({"subscription.status": status.value}).count()

    by_plan = {}
    for plan in SubscriptionPlan:
        by_plan[plan.value] = await User.find({"subscription.plan": plan.value}).count()

    now = utc_now()
    expired_trials = await User.find({
        "subscription.status": SubscriptionStatus.TRIAL.value,
        "subscription.trial_end_date": {"$lt": now},
    }).count()

    recent = (
        await User.find({"subscription.plan": {"$ne": SubscriptionPlan.FREE.value}})
        .sort("-subscription.subscription_start_date")
        .limit(10)
        .to_list()
    )

    analytics = {
        "overview": {
            "total_paid": by_plan.get(SubscriptionPlan.PREMIUM.value, 0),
            "by_status": by_status,
            "expired_trials": expired_trials,
        },
        "breakdown": by_plan,
        "recent": [
            {
                "id": u.id,
                "full_name": u.full_name,
                "email": u.email,
                "subscription": u.subscription,
            }
            for u in recent
        ],
    }
    return success_response({"analytics": analytics}, "Subscription analytics retrieved successfully")
