"""
Models package for the music lessons LMS.

Database documents and API schemas organized by domain:
- base: Roles, tokens, and shared helpers
- user: Accounts and embedded subscriptions
- course: Courses and their catalog metadata
- video: Lesson videos and the provider ingest schemas
- assignment: Course assignments
"""

# Base types and enums
from .base import (
    UserRole,
    Token,
    TokenPayload,
    utc_now,
    ensure_utc,
)

# User models
from .user import (
    SubscriptionPlan,
    SubscriptionStatus,
    Subscription,
    UserBase,
    UserRegister,
    UserUpdate,
    UpdatePassword,
    SubscriptionUpdate,
    AdminUserUpdate,
    User,
    UserPublic,
)

# Course models
from .course import (
    CourseCategory,
    CourseLevel,
    CourseCreate,
    CourseUpdate,
    CoursePublish,
    Course,
    InstructorSummary,
    CoursePublic,
)

# Video models
from .video import (
    VideoStatus,
    TERMINAL_STATUSES,
    format_duration,
    Video,
    UploadUrlRequest,
    VideoCreate,
    VideoUpdate,
    VideoOrderItem,
    VideoReorderRequest,
    VideoPublic,
    UploadSessionVideo,
    UploadUrlResponse,
    VideoSyncResponse,
    VideoStatusResponse,
)

# Assignment models
from .assignment import (
    AssignmentType,
    AssignmentStatus,
    Attachment,
    AssignmentCreate,
    AssignmentUpdate,
    AssignmentPublish,
    Assignment,
    AssignmentPublic,
)

DOCUMENT_MODELS = [User, Course, Video, Assignment]

__all__ = [
    # Base
    "UserRole",
    "Token",
    "TokenPayload",
    "utc_now",
    "ensure_utc",
    # User
    "SubscriptionPlan",
    "SubscriptionStatus",
    "Subscription",
    "UserBase",
    "UserRegister",
    "UserUpdate",
    "UpdatePassword",
    "SubscriptionUpdate",
    "AdminUserUpdate",
    "User",
    "UserPublic",
    # Course
    "CourseCategory",
    "CourseLevel",
    "CourseCreate",
    "CourseUpdate",
    "CoursePublish",
    "Course",
    "InstructorSummary",
    "CoursePublic",
    # Video
    "VideoStatus",
    "TERMINAL_STATUSES",
    "format_duration",
    "Video",
    "UploadUrlRequest",
    "VideoCreate",
    "VideoUpdate",
    "VideoOrderItem",
    "VideoReorderRequest",
    "VideoPublic",
    "UploadSessionVideo",
    "UploadUrlResponse",
    "VideoSyncResponse",
    "VideoStatusResponse",
    # Assignment
    "AssignmentType",
    "AssignmentStatus",
    "Attachment",
    "AssignmentCreate",
    "AssignmentUpdate",
    "AssignmentPublish",
    "Assignment",
    "AssignmentPublic",
    "DOCUMENT_MODELS",
]
