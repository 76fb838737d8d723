"""MongoDB database connection and initialization."""

from beanie import init_beanie
from pymongo import AsyncMongoClient

from app.core.config import settings
from app.core.logger import get_logger
from app.models import DOCUMENT_MODELS, User, UserRole

logger = get_logger(__name__)

# Global MongoDB client
mongodb_client: AsyncMongoClient | None = None


async def connect_to_mongodb() -> None:
    """
    Connect to MongoDB and initialize Beanie.

    This function should be called on application startup.
    """
    global mongodb_client

    mongodb_client = AsyncMongoClient(settings.MONGODB_URL)

    await init_beanie(
        database=mongodb_client[settings.MONGODB_DB_NAME],
        document_models=DOCUMENT_MODELS,
    )

    logger.info(f"Connected to MongoDB: {settings.MONGODB_DB_NAME}")


async def close_mongodb_connection() -> None:
    """
    Close MongoDB connection.

    This function should be called on application shutdown.
    """
    global mongodb_client

    if mongodb_client:
        await mongodb_client.close()
        mongodb_client = None
        logger.info("MongoDB connection closed")


async def init_db() -> None:
    """Create the first admin account if it doesn't exist."""
    from app.core.security import get_password_hash

    user = await User.find_one(User.email == settings.FIRST_SUPERUSER.lower())
    if user:
        return

    user = User(
        email=settings.FIRST_SUPERUSER,
        hashed_password=get_password_hash(settings.FIRST_SUPERUSER_PASSWORD),
        first_name="Site",
        last_name="Admin",
        role=UserRole.ADMIN,
        is_email_verified=True,
    )
    await user.insert()
    logger.info(f"Created first superuser: {settings.FIRST_SUPERUSER}")
