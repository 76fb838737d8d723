"""User models and schemas."""
import uuid
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from beanie import Document, Indexed
from pydantic import BaseModel, EmailStr, Field, field_validator

from app.core.config import settings

from .base import UserRole, ensure_utc, utc_now


class SubscriptionPlan(str, Enum):
    FREE = "free"
    PREMIUM = "premium"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    TRIAL = "trial"


def _trial_end() -> datetime:
    return utc_now() + timedelta(days=settings.TRIAL_PERIOD_DAYS)


class Subscription(BaseModel):
    """Embedded subscription state. New accounts start a free trial."""
    plan: SubscriptionPlan = SubscriptionPlan.FREE
    status: SubscriptionStatus = SubscriptionStatus.TRIAL
    trial_start_date: datetime = Field(default_factory=utc_now)
    trial_end_date: datetime = Field(default_factory=_trial_end)
    subscription_start_date: Optional[datetime] = None
    subscription_end_date: Optional[datetime] = None


PHONE_PATTERN = r"^\+?[1-9]\d{0,15}$"


# Shared properties
class UserBase(BaseModel):
    email: Indexed(EmailStr, unique=True) = Field(..., max_length=255)  # type: ignore
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    role: UserRole = UserRole.STUDENT
    avatar_url: str = Field(default="", max_length=500)
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    bio: Optional[str] = Field(default=None, max_length=500)
    is_active: bool = True
    is_email_verified: bool = False

    @field_validator("email", mode="after")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.lower()


class UserRegister(BaseModel):
    email: EmailStr = Field(..., max_length=255)
    password: str = Field(..., min_length=8, max_length=40)
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    # Only student and teacher accounts can be self-registered
    role: UserRole = UserRole.STUDENT

    @field_validator("role")
    @classmethod
    def _no_self_admin(cls, v: UserRole) -> UserRole:
        if v == UserRole.ADMIN:
            raise ValueError("Cannot register as admin")
        return v


# Properties to receive via API on update, all are optional
class UserUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    avatar_url: Optional[str] = Field(default=None, max_length=500)
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    bio: Optional[str] = Field(default=None, max_length=500)


class UpdatePassword(BaseModel):
    current_password: str = Field(..., min_length=8, max_length=40)
    new_password: str = Field(..., min_length=8, max_length=40)


class SubscriptionUpdate(BaseModel):
    plan: Optional[SubscriptionPlan] = None
    status: Optional[SubscriptionStatus] = None
    subscription_end_date: Optional[datetime] = None


class AdminUserUpdate(BaseModel):
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None
    is_email_verified: Optional[bool] = None
    subscription: Optional[SubscriptionUpdate] = None


# Database model for MongoDB
class User(Document, UserBase):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), alias="_id")
    hashed_password: str
    subscription: Subscription = Field(default_factory=Subscription)
    last_login: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "users"  # MongoDB collection name
        use_state_management = True
        validate_on_save = True

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def is_in_trial_period(self, now: Optional[datetime] = None) -> bool:
        now = now or utc_now()
        return (
            self.subscription.status == SubscriptionStatus.TRIAL
            and now <= ensure_utc(self.subscription.trial_end_date)
        )

    def has_active_subscription(self, now: Optional[datetime] = None) -> bool:
        if self.subscription.status == SubscriptionStatus.TRIAL:
            return self.is_in_trial_period(now)
        return self.subscription.status == SubscriptionStatus.ACTIVE

    def apply_subscription_update(self, update: SubscriptionUpdate) -> None:
        sub = self.subscription
        if update.plan is not None:
            sub.plan = update.plan
        if update.status is not None:
            if (
                update.status == SubscriptionStatus.ACTIVE
                and sub.status != SubscriptionStatus.ACTIVE
            ):
                sub.subscription_start_date = utc_now()
            sub.status = update.status
        if update.subscription_end_date is not None:
            sub.subscription_end_date = update.subscription_end_date


# Properties to return via API, id is always required
class UserPublic(UserBase):
    id: str
    full_name: str
    subscription: Subscription
    has_active_subscription: bool
    last_login: Optional[datetime] = None
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserPublic":
        return cls(
            **user.model_dump(exclude={"id", "hashed_password", "updated_at"}),
            id=user.id,
            full_name=user.full_name,
            has_active_subscription=user.has_active_subscription(),
        )
