"""Base classes for video provider clients using Factory Pattern."""

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel, Field


class PlaybackId(BaseModel):
    id: str
    policy: Optional[str] = None


class ProviderUpload(BaseModel):
    """A direct-upload session as reported by the provider."""
    id: str
    url: Optional[str] = None
    status: Optional[str] = None
    asset_id: Optional[str] = None


class ProviderAsset(BaseModel):
    """An asset as reported by the provider."""
    id: str
    status: str
    duration: Optional[float] = None
    aspect_ratio: Optional[str] = None
    playback_ids: list[PlaybackId] = Field(default_factory=list)

    @property
    def first_playback_id(self) -> Optional[str]:
        return self.playback_ids[0].id if self.playback_ids else None


class VideoProvider(ABC):
    """
    Abstract client for a hosted video provider.

    Implementations raise ``UpstreamServiceException`` for transport
    failures and unexpected responses, and ``NotFoundException`` when the
    provider reports the upload or asset as unknown.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of the provider."""

    @property
    def is_configured(self) -> bool:
        return True

    @abstractmethod
    async def create_upload(
        self,
        cors_origin: str,
        playback_policy: str = "public",
    ) -> ProviderUpload:
        """
        Create a direct-upload session.

        Args:
            cors_origin: Origin allowed to PUT the file to the returned URL
            playback_policy: Playback policy for the asset created from it

        Returns:
            ProviderUpload carrying the signed upload URL
        """

    @abstractmethod
    async def get_upload(self, upload_id: str) -> ProviderUpload:
        """Fetch an upload session, including its asset id once attached."""

    @abstractmethod
    async def get_asset(self, asset_id: str) -> ProviderAsset:
        """Fetch asset detail: status, duration and playback ids."""

    @abstractmethod
    async def delete_asset(self, asset_id: str) -> None:
        """Delete an asset."""
