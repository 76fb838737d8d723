"""Video provider factory module."""

from enum import Enum

from app.core.config import Settings, settings as default_settings
from app.core.logger import get_logger
from .base import VideoProvider
from .mux import MuxVideoProvider, UnconfiguredVideoProvider

logger = get_logger(__name__)


class VideoProviderName(str, Enum):
    """Available video providers."""
    MUX = "mux"


class VideoProviderFactory:
    """Factory for creating video provider clients."""

    @staticmethod
    def create(
        provider: VideoProviderName = VideoProviderName.MUX,
        settings: Settings = default_settings,
    ) -> VideoProvider:
        """
        Create a video provider client.

        Falls back to ``UnconfiguredVideoProvider`` when the provider's
        credentials are missing, so the API still starts in development.

        Raises:
            ValueError: If provider is not supported
        """
        if provider == VideoProviderName.MUX:
            if not settings.mux_configured:
                logger.warning(
                    "Mux credentials are not set; video uploads and sync are disabled"
                )
                return UnconfiguredVideoProvider()
            return MuxVideoProvider(
                token_id=settings.MUX_TOKEN_ID,
                token_secret=settings.MUX_TOKEN_SECRET,
                base_url=settings.MUX_API_BASE_URL,
                timeout=settings.MUX_REQUEST_TIMEOUT,
            )

        raise ValueError(f"Unknown video provider: {provider}")

    @staticmethod
    def get_default_provider() -> VideoProvider:
        """Get the default provider based on configuration."""
        return VideoProviderFactory.create(VideoProviderName.MUX)
