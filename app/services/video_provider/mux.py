"""Mux video provider implementation over the REST API."""

from typing import Any, Optional

import httpx
from pydantic import ValidationError

from app.core.config import settings
from app.core.exceptions import NotFoundException, UpstreamServiceException
from app.core.logger import get_logger
from .base import ProviderAsset, ProviderUpload, VideoProvider

logger = get_logger(__name__)


class MuxVideoProvider(VideoProvider):
    """Mux Video client authenticating with an access token id and secret."""

    def __init__(
        self,
        token_id: Optional[str] = None,
        token_secret: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the Mux client.

        Args:
            token_id: Mux access token id. Defaults to settings.MUX_TOKEN_ID
            token_secret: Mux access token secret. Defaults to settings.MUX_TOKEN_SECRET
            base_url: API root, settings.MUX_API_BASE_URL by default
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.token_id = token_id or settings.MUX_TOKEN_ID
        self.token_secret = token_secret or settings.MUX_TOKEN_SECRET
        if not self.token_id or not self.token_secret:
            raise ValueError("Mux token id and secret are required")
        self.base_url = (base_url or settings.MUX_API_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.MUX_REQUEST_TIMEOUT
        self._transport = transport

    @property
    def provider_name(self) -> str:
        return "mux"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            auth=(self.token_id, self.token_secret),
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        resource_id: Optional[str] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> Optional[dict[str, Any]]:
        metadata = {"provider": self.provider_name}
        if resource_id:
            metadata["resource_id"] = resource_id

        try:
            async with self._client() as client:
                response = await client.request(method, path, json=json)
        except httpx.TimeoutException as e:
            logger.error(
                f"Mux {operation} timed out",
                extra={"extra_data": metadata},
            )
            raise UpstreamServiceException(
                message="Video provider request timed out",
                metadata=metadata,
                debug_message=str(e),
                operation=operation,
            )
        except httpx.HTTPError as e:
            logger.error(
                f"Mux {operation} failed: {e}",
                extra={"extra_data": metadata},
            )
            raise UpstreamServiceException(
                metadata=metadata,
                debug_message=str(e),
                operation=operation,
            )

        if response.status_code == 404:
            raise NotFoundException(
                error_code="PROVIDER_RESOURCE_NOT_FOUND",
                message="Video provider resource not found",
                resource_type=operation.split("_", 1)[-1],
                resource_id=resource_id,
            )
        if response.status_code >= 400:
            logger.error(
                f"Mux {operation} returned HTTP {response.status_code}",
                extra={"extra_data": {**metadata, "body": response.text[:500]}},
            )
            raise UpstreamServiceException(
                metadata={**metadata, "status_code": response.status_code},
                debug_message=response.text[:500],
                operation=operation,
            )

        if response.status_code == 204 or not response.content:
            return None

        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamServiceException(
                message="Video provider returned an unreadable response",
                metadata=metadata,
                debug_message=str(e),
                operation=operation,
            )
        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            raise UpstreamServiceException(
                message="Video provider returned an unexpected response",
                metadata=metadata,
                operation=operation,
            )
        return data

    async def create_upload(
        self,
        cors_origin: str,
        playback_policy: str = "public",
    ) -> ProviderUpload:
        payload = {
            "cors_origin": cors_origin,
            "new_asset_settings": {"playback_policy": [playback_policy]},
        }
        data = await self._request(
            "POST", "/video/v1/uploads", "create_upload", json=payload
        )
        upload = self._parse(ProviderUpload, data, "create_upload")
        if not upload.url:
            raise UpstreamServiceException(
                message="Video provider did not return an upload URL",
                metadata={"upload_id": upload.id},
                operation="create_upload",
            )
        logger.info(
            "Mux direct upload created",
            extra={"extra_data": {"upload_id": upload.id, "status": upload.status}},
        )
        return upload

    async def get_upload(self, upload_id: str) -> ProviderUpload:
        data = await self._request(
            "GET", f"/video/v1/uploads/{upload_id}", "get_upload", upload_id
        )
        return self._parse(ProviderUpload, data, "get_upload")

    async def get_asset(self, asset_id: str) -> ProviderAsset:
        data = await self._request(
            "GET", f"/video/v1/assets/{asset_id}", "get_asset", asset_id
        )
        return self._parse(ProviderAsset, data, "get_asset")

    async def delete_asset(self, asset_id: str) -> None:
        await self._request(
            "DELETE", f"/video/v1/assets/{asset_id}", "delete_asset", asset_id
        )
        logger.info(
            "Mux asset deleted",
            extra={"extra_data": {"asset_id": asset_id}},
        )

    @staticmethod
    def _parse(model, data, operation: str):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise UpstreamServiceException(
                message="Video provider returned an unexpected response",
                debug_message=str(e),
                operation=operation,
            )


class UnconfiguredVideoProvider(VideoProvider):
    """Stand-in used when no provider credentials are set. Every call fails."""

    @property
    def provider_name(self) -> str:
        return "unconfigured"

    @property
    def is_configured(self) -> bool:
        return False

    def _fail(self, operation: str):
        return UpstreamServiceException(
            error_code="PROVIDER_NOT_CONFIGURED",
            message="Video provider is not configured",
            debug_message="Set MUX_TOKEN_ID and MUX_TOKEN_SECRET",
            operation=operation,
        )

    async def create_upload(
        self,
        cors_origin: str,
        playback_policy: str = "public",
    ) -> ProviderUpload:
        raise self._fail("create_upload")

    async def get_upload(self, upload_id: str) -> ProviderUpload:
        raise self._fail("get_upload")

    async def get_asset(self, asset_id: str) -> ProviderAsset:
        raise self._fail("get_asset")

    async def delete_asset(self, asset_id: str) -> None:
        raise self._fail("delete_asset")
