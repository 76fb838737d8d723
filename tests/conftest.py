import hashlib
import hmac
import os
import time
import uuid
from typing import Optional

os.environ["ENVIRONMENT"] = "local"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["FIRST_SUPERUSER_PASSWORD"] = "test-admin-password"
os.environ.setdefault("MONGODB_URL", "mongodb://localhost:27017")
os.environ["MUX_TOKEN_ID"] = "test-token-id"
os.environ["MUX_TOKEN_SECRET"] = "test-token-secret"
os.environ["MUX_WEBHOOK_SECRET"] = "test-webhook-secret"
os.environ["FRONTEND_HOST"] = "http://localhost:3000"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["LOG_FORMAT"] = "pretty"

import pytest
from beanie import init_beanie
from httpx import ASGITransport, AsyncClient
from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from app.core.config import settings
from app.core.exceptions import NotFoundException, UpstreamServiceException
from app.core.security import create_access_token, get_password_hash
from app.models import DOCUMENT_MODELS, Course, User, UserRole
from app.services.video_provider import (
    PlaybackId,
    ProviderAsset,
    ProviderUpload,
    VideoProvider,
)

WEBHOOK_SECRET = "test-webhook-secret"
TEST_PASSWORD = "correct-horse-battery"


class FakeVideoProvider(VideoProvider):
    """In-memory provider recording every call."""

    def __init__(self):
        self.uploads: dict[str, ProviderUpload] = {}
        self.assets: dict[str, ProviderAsset] = {}
        self.calls: list[tuple[str, Optional[str]]] = []
        self.deleted_assets: list[str] = []
        self.fail: Optional[UpstreamServiceException] = None
        self._counter = 0

    @property
    def provider_name(self) -> str:
        return "fake"

    def _check_failure(self):
        if self.fail is not None:
            raise self.fail

    async def create_upload(self, cors_origin: str, playback_policy: str = "public") -> ProviderUpload:
        self.calls.append(("create_upload", cors_origin))
        self._check_failure()
        self._counter += 1
        upload_id = f"upload-{self._counter}"
        upload = ProviderUpload(
            id=upload_id,
            url=f"https://storage.example.com/{upload_id}",
            status="waiting",
        )
        self.uploads[upload_id] = upload
        return upload

    async def get_upload(self, upload_id: str) -> ProviderUpload:
        self.calls.append(("get_upload", upload_id))
        self._check_failure()
        if upload_id not in self.uploads:
            raise NotFoundException(resource_type="upload", resource_id=upload_id)
        return self.uploads[upload_id]

    async def get_asset(self, asset_id: str) -> ProviderAsset:
        self.calls.append(("get_asset", asset_id))
        self._check_failure()
        if asset_id not in self.assets:
            raise NotFoundException(resource_type="asset", resource_id=asset_id)
        return self.assets[asset_id]

    async def delete_asset(self, asset_id: str) -> None:
        self.calls.append(("delete_asset", asset_id))
        self._check_failure()
        self.deleted_assets.append(asset_id)

    # Test helpers

    def put_asset(
        self,
        asset_id: str,
        status: str = "ready",
        duration: Optional[float] = None,
        playback_ids: Optional[list[str]] = None,
        upload_id: Optional[str] = None,
    ) -> ProviderAsset:
        asset = ProviderAsset(
            id=asset_id,
            status=status,
            duration=duration,
            playback_ids=[PlaybackId(id=p, policy="public") for p in (playback_ids or [])],
        )
        self.assets[asset_id] = asset
        if upload_id is not None:
            upload = self.uploads[upload_id]
            self.uploads[upload_id] = upload.model_copy(
                update={"asset_id": asset_id, "status": "asset_created"}
            )
        return asset

    def calls_to(self, name: str) -> list[Optional[str]]:
        return [arg for call, arg in self.calls if call == name]


def sign_webhook(body: bytes, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    t = int(time.time()) if timestamp is None else timestamp
    digest = hmac.new(secret.encode(), f"{t}.".encode() + body, hashlib.sha256).hexdigest()
    return f"t={t},v1={digest}"


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


_mongo_unavailable = False


@pytest.fixture
async def db():
    """A fresh database per test on the server at MONGODB_URL.

    Tests that need it are skipped when no server answers.
    """
    global _mongo_unavailable
    if _mongo_unavailable:
        pytest.skip("MongoDB is not available")

    client = AsyncMongoClient(settings.MONGODB_URL, serverSelectionTimeoutMS=2000)
    try:
        await client.admin.command("ping")
    except PyMongoError:
        _mongo_unavailable = True
        await client.close()
        pytest.skip("MongoDB is not available")

    name = f"music_lms_test_{uuid.uuid4().hex[:12]}"
    await init_beanie(database=client[name], document_models=DOCUMENT_MODELS)
    yield client[name]

    await client.drop_database(name)
    await client.close()


@pytest.fixture
def fake_provider() -> FakeVideoProvider:
    return FakeVideoProvider()


@pytest.fixture
def app(fake_provider):
    from app.api.deps import get_video_provider
    from app.main import app as fastapi_app

    fastapi_app.dependency_overrides[get_video_provider] = lambda: fake_provider
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def make_user(email: str, role: UserRole, **kwargs) -> User:
    user = User(
        email=email,
        hashed_password=get_password_hash(TEST_PASSWORD),
        first_name=kwargs.pop("first_name", "Test"),
        last_name=kwargs.pop("last_name", role.value.title()),
        role=role,
        **kwargs,
    )
    await user.insert()
    return user


@pytest.fixture
async def teacher(db) -> User:
    return await make_user("teacher@example.com", UserRole.TEACHER)


@pytest.fixture
async def other_teacher(db) -> User:
    return await make_user("other.teacher@example.com", UserRole.TEACHER)


@pytest.fixture
async def student(db) -> User:
    return await make_user("student@example.com", UserRole.STUDENT)


@pytest.fixture
async def admin(db) -> User:
    return await make_user("admin@example.com", UserRole.ADMIN)


@pytest.fixture
async def course(teacher) -> Course:
    course = Course(
        title="Fingerstyle Guitar Basics",
        description="Learn fingerpicking patterns from scratch.",
        thumbnail="https://img.example.com/guitar.jpg",
        price=49.0,
        category="guitar",
        level="beginner",
        tags=["fingerstyle", "acoustic"],
        instructor_id=teacher.id,
        is_published=True,
    )
    await course.insert()
    return course


@pytest.fixture
def sign():
    return sign_webhook


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def password() -> str:
    return TEST_PASSWORD
