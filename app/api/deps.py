"""Authentication, authorization and service dependencies."""
from typing import Annotated, Optional

import jwt
from fastapi import Depends, Query, Request
from fastapi.security import OAuth2PasswordBearer
from jwt.exceptions import InvalidTokenError
from pydantic import ValidationError

from app.core import security
from app.core.config import settings
from app.core.exceptions import ForbiddenException, UnauthorizedException
from app.models import Course, TokenPayload, User, UserRole
from app.services.video_ingest import VideoIngestService
from app.services.video_provider import VideoProvider, VideoProviderFactory
from app.services.webhook_signature import WebhookSignatureVerifier

# auto_error=False so missing tokens go through UnauthorizedException
reusable_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_STR}/auth/login",
    auto_error=False,
)

OptionalTokenDep = Annotated[Optional[str], Depends(reusable_oauth2)]


async def _user_from_token(token: str) -> Optional[User]:
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[security.ALGORITHM]
        )
        token_data = TokenPayload(**payload)
    except (InvalidTokenError, ValidationError):
        return None
    if not token_data.sub:
        return None
    return await User.get(token_data.sub)


async def get_current_user(token: OptionalTokenDep) -> User:
    """Get current authenticated user. Raises 401 if not authenticated."""
    if not token:
        raise UnauthorizedException(message="Not authenticated")

    user = await _user_from_token(token)
    if not user:
        raise UnauthorizedException(
            error_code="INVALID_TOKEN",
            message="Could not validate credentials",
        )
    if not user.is_active:
        raise ForbiddenException(
            error_code="INACTIVE_USER",
            message="Account is deactivated",
        )
    return user


async def get_current_user_optional(token: OptionalTokenDep) -> Optional[User]:
    """
    Get current user if authenticated, otherwise return None.
    Used for endpoints that support both authenticated and guest access.
    """
    if not token:
        return None

    user = await _user_from_token(token)
    if not user or not user.is_active:
        return None
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[Optional[User], Depends(get_current_user_optional)]


def require_role(*allowed_roles: UserRole):
    """
    Dependency factory to require specific user roles.

    Usage:
        @router.get("/teachers-only")
        async def endpoint(user: User = Depends(require_role(UserRole.TEACHER))):
            ...
    """
    async def role_checker(current_user: CurrentUser) -> User:
        if current_user.role == UserRole.ADMIN:
            return current_user

        if current_user.role not in allowed_roles:
            raise ForbiddenException(
                error_code="INSUFFICIENT_ROLE",
                message=f"Insufficient permissions. Required roles: {[r.value for r in allowed_roles]}",
            )
        return current_user

    return role_checker


async def require_admin(current_user: CurrentUser) -> User:
    """Require ADMIN role."""
    if current_user.role != UserRole.ADMIN:
        raise ForbiddenException(message="Admin privileges required")
    return current_user


TeacherUser = Annotated[User, Depends(require_role(UserRole.TEACHER))]
AdminUser = Annotated[User, Depends(require_admin)]


def is_course_owner(course: Course, user: User) -> bool:
    return user.role == UserRole.ADMIN or course.instructor_id == user.id


def ensure_course_owner(course: Course, user: User, action: str = "manage") -> None:
    """Only the course instructor or an admin may change a course's content."""
    if not is_course_owner(course, user):
        raise ForbiddenException(
            error_code="NOT_COURSE_OWNER",
            message=f"You can only {action} your own courses",
            metadata={"course_id": course.id},
        )


# ============== Pagination ==============

class Pagination:
    def __init__(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(10, ge=1, le=100),
    ):
        self.page = page
        self.limit = limit

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


PaginationDep = Annotated[Pagination, Depends()]


# ============== Video pipeline ==============

def get_video_provider(request: Request) -> VideoProvider:
    """Provider client built at startup; tests override this dependency."""
    provider = getattr(request.app.state, "video_provider", None)
    if provider is None:
        provider = VideoProviderFactory.get_default_provider()
        request.app.state.video_provider = provider
    return provider


def get_webhook_verifier() -> WebhookSignatureVerifier:
    return WebhookSignatureVerifier.from_settings(settings)


VideoProviderDep = Annotated[VideoProvider, Depends(get_video_provider)]


def get_video_ingest_service(provider: VideoProviderDep) -> VideoIngestService:
    return VideoIngestService(provider, settings)


WebhookVerifierDep = Annotated[WebhookSignatureVerifier, Depends(get_webhook_verifier)]
VideoIngestDep = Annotated[VideoIngestService, Depends(get_video_ingest_service)]
