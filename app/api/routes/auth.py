"""Authentication routes: registration, password login and the current user."""

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm

from app.api.deps import CurrentUser
from app.core import security
from app.core.exceptions import ConflictException, ForbiddenException, UnauthorizedException
from app.core.http_utils import success_response
from app.core.logger import get_logger
from app.models import Token, User, UserPublic, UserRegister, utc_now

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", status_code=201)
async def register(body: UserRegister):
    email = body.email.lower()
    if await User.find_one(User.email == email):
        raise ConflictException(
            error_code="EMAIL_TAKEN",
            message="An account with this email already exists",
        )

    user = User(
        email=email,
        hashed_password=security.get_password_hash(body.password),
        first_name=body.first_name,
        last_name=body.last_name,
        role=body.role,
    )
    await user.insert()

    logger.info(f"User registered: {user.id} ({user.role.value})")
    token = Token(access_token=security.create_access_token(user.id))
    return success_response(
        {"user": UserPublic.from_user(user), "token": token},
        "User registered successfully",
        201,
    )


@router.post("/login")
async def login(form_data: Annotated[OAuth2PasswordRequestForm, Depends()]) -> Token:
    """OAuth2 compatible token login, get an access token for future requests."""
    user = await User.find_one(User.email == form_data.username.lower())
    if not user or not security.verify_password(form_data.password, user.hashed_password):
        raise UnauthorizedException(
            error_code="INVALID_CREDENTIALS",
            message="Incorrect email or password",
        )
    if not user.is_active:
        raise ForbiddenException(error_code="INACTIVE_USER", message="Account is deactivated")

    user.last_login = utc_now()
    await user.save()

    return Token(access_token=security.create_access_token(user.id))


@router.get("/me")
async def read_me(current_user: CurrentUser):
    return success_response(
        {"user": UserPublic.from_user(current_user)}, "User profile retrieved successfully"
    )
