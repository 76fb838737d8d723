"""User account routes."""

import re
import uuid
from typing import Literal, Optional

from fastapi import APIRouter

from app.api.deps import AdminUser, CurrentUser, PaginationDep
from app.core import security
from app.core.exceptions import (
    BusinessException,
    ForbiddenException,
    NotFoundException,
)
from app.core.http_utils import pagination_meta, success_response
from app.core.logger import get_logger
from app.models import (
    Course,
    CoursePublic,
    SubscriptionStatus,
    SubscriptionUpdate,
    UpdatePassword,
    User,
    UserPublic,
    UserRole,
    UserUpdate,
    utc_now,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def _ensure_self_or_admin(current_user: User, user_id: str, action: str) -> None:
    if current_user.role != UserRole.ADMIN and current_user.id != user_id:
        raise ForbiddenException(message=f"You can only {action}")


async def _get_user(user_id: str) -> User:
    user = await User.get(user_id)
    if not user:
        raise NotFoundException(
            error_code="USER_NOT_FOUND",
            message="User not found",
            resource_type="user",
            resource_id=user_id,
        )
    return user


@router.get("")
async def list_users(
    current_user: AdminUser,
    pagination: PaginationDep,
    role: Optional[UserRole] = None,
    subscription_status: Optional[SubscriptionStatus] = None,
    search: Optional[str] = None,
    sort: Literal["created_at", "email", "last_name", "last_login"] = "created_at",
    order: Literal["asc", "desc"] = "desc",
):
    """List users. Admin only."""
    query = User.find()
    if role:
        query = query.find(User.role == role)
    if subscription_status:
        query = query.find({"subscription.status": subscription_status.value})
    if search:
        pattern = re.escape(search)
        query = query.find({
            "$or": [
                {"email": {"$regex": pattern, "$options": "i"}},
                {"first_name": {"$regex": pattern, "$options": "i"}},
                {"last_name": {"$regex": pattern, "$options": "i"}},
            ]
        })

    total = await query.count()
    sort_key = f"{'-' if order == 'desc' else '+'}{sort}"
    users = await query.sort(sort_key).skip(pagination.skip).limit(pagination.limit).to_list()

    return success_response(
        {
            "users": [UserPublic.from_user(u) for u in users],
            "pagination": pagination_meta(pagination.page, pagination.limit, total),
        },
        "Users retrieved successfully",
    )


@router.get("/{user_id}")
async def get_user(user_id: uuid.UUID, current_user: CurrentUser):
    _ensure_self_or_admin(current_user, str(user_id), "view your own profile")
    user = await _get_user(str(user_id))
    return success_response({"user": UserPublic.from_user(user)}, "User retrieved successfully")


@router.get("/{user_id}/courses")
async def get_user_courses(
    user_id: uuid.UUID,
    current_user: CurrentUser,
    pagination: PaginationDep,
    is_published: Optional[bool] = None,
):
    """Courses taught by the user."""
    _ensure_self_or_admin(current_user, str(user_id), "view your own courses")
    user = await _get_user(str(user_id))

    query = Course.find(Course.instructor_id == user.id)
    if is_published is not None:
        query = query.find(Course.is_published == is_published)
    total = await query.count()
    courses = await query.sort(-Course.created_at).skip(pagination.skip).limit(pagination.limit).to_list()

    return success_response(
        {
            "user": {"id": user.id, "name": user.full_name, "role": user.role},
            "courses": [CoursePublic.from_course(c) for c in courses],
            "pagination": pagination_meta(pagination.page, pagination.limit, total),
        },
        "User courses retrieved successfully",
    )


@router.get("/{user_id}/stats")
async def get_user_stats(user_id: uuid.UUID, current_user: CurrentUser):
    _ensure_self_or_admin(current_user, str(user_id), "view your own statistics")
    user = await _get_user(str(user_id))

    course_stats = None
    if user.role in (UserRole.TEACHER, UserRole.ADMIN):
        total_courses = await Course.find(Course.instructor_id == user.id).count()
        published = await Course.find(
            Course.instructor_id == user.id, Course.is_published == True  # noqa: E712
        ).count()
        course_stats = {
            "total_courses": total_courses,
            "published_courses": published,
            "unpublished_courses": total_courses - published,
        }

    stats = {
        "user": {
            "id": user.id,
            "email": user.email,
            "role": user.role,
            "is_email_verified": user.is_email_verified,
            "subscription": user.subscription,
            "has_active_subscription": user.has_active_subscription(),
            "created_at": user.created_at,
            "last_login": user.last_login,
        },
        "course_stats": course_stats,
    }
    return success_response({"stats": stats}, "User statistics retrieved successfully")


@router.put("/{user_id}")
async def update_user(user_id: uuid.UUID, body: UserUpdate, current_user: CurrentUser):
    """Update profile fields."""
    _ensure_self_or_admin(current_user, str(user_id), "update your own profile")
    user = await _get_user(str(user_id))

    for field, value in body.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(user, field, value)
    user.updated_at = utc_now()
    await user.save()

    return success_response({"user": UserPublic.from_user(user)}, "Profile updated successfully")


@router.patch("/{user_id}/subscription")
async def update_subscription(
    user_id: uuid.UUID,
    body: SubscriptionUpdate,
    current_user: AdminUser,
):
    """Change a user's plan or subscription status. Admin only."""
    user = await _get_user(str(user_id))
    user.apply_subscription_update(body)
    user.updated_at = utc_now()
    await user.save()

    logger.info(
        f"Subscription of {user.id} updated by {current_user.id}",
        extra={"extra_data": body.model_dump(exclude_none=True)},
    )
    return success_response(
        {"user": UserPublic.from_user(user)}, "Subscription updated successfully"
    )


@router.patch("/{user_id}/password")
async def change_password(
    user_id: uuid.UUID,
    body: UpdatePassword,
    current_user: CurrentUser,
):
    if current_user.id != str(user_id):
        raise ForbiddenException(message="You can only change your own password")
    if not security.verify_password(body.current_password, current_user.hashed_password):
        raise BusinessException(
            error_code="INCORRECT_PASSWORD",
            message="Current password is incorrect",
        )
    if body.current_password == body.new_password:
        raise BusinessException(
            error_code="PASSWORD_UNCHANGED",
            message="New password cannot be the same as the current one",
        )

    current_user.hashed_password = security.get_password_hash(body.new_password)
    current_user.updated_at = utc_now()
    await current_user.save()
    return success_response(message="Password updated successfully")


@router.delete("/{user_id}")
async def delete_user(user_id: uuid.UUID, current_user: CurrentUser):
    _ensure_self_or_admin(current_user, str(user_id), "delete your own account")
    if current_user.role == UserRole.ADMIN and current_user.id == str(user_id):
        raise BusinessException(
            error_code="ADMIN_SELF_DELETE",
            message="Admins cannot delete their own account",
        )

    user = await _get_user(str(user_id))
    await user.delete()

    logger.info(f"User {user.id} deleted by {current_user.id}")
    return success_response(message="User account deleted successfully")
