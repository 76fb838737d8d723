"""Video provider package.

Usage:
    from app.services.video_provider import VideoProviderFactory

    provider = VideoProviderFactory.get_default_provider()
    upload = await provider.create_upload(cors_origin=settings.FRONTEND_HOST)
"""

from .base import PlaybackId, ProviderAsset, ProviderUpload, VideoProvider
from .factory import VideoProviderFactory, VideoProviderName
from .mux import MuxVideoProvider, UnconfiguredVideoProvider

__all__ = [
    "PlaybackId",
    "ProviderAsset",
    "ProviderUpload",
    "VideoProvider",
    "VideoProviderFactory",
    "VideoProviderName",
    "MuxVideoProvider",
    "UnconfiguredVideoProvider",
]
