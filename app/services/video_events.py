"""
Provider webhook event decoding.

Raw webhook bodies are decoded once, at the HTTP boundary, into one of a
closed set of event types. Everything downstream works on these instead of
poking at nested dictionaries.
"""

from dataclasses import dataclass, field
from typing import Any, Union

from app.core.exceptions import ValidationException

ASSET_READY = "asset.ready"
ASSET_ERRORED = "asset.errored"
UPLOAD_ASSET_CREATED = "upload.asset_created"

_PROVIDER_PREFIX = "video."


@dataclass(frozen=True)
class AssetReadyEvent:
    asset_id: str


@dataclass(frozen=True)
class AssetErroredEvent:
    asset_id: str
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class UploadAssetCreatedEvent:
    upload_id: str
    asset_id: str


@dataclass(frozen=True)
class IgnoredEvent:
    event_type: str


VideoWebhookEvent = Union[
    AssetReadyEvent, AssetErroredEvent, UploadAssetCreatedEvent, IgnoredEvent
]


def normalize_event_type(event_type: str) -> str:
    """``video.asset.ready`` and ``asset.ready`` name the same event."""
    if event_type.startswith(_PROVIDER_PREFIX):
        return event_type[len(_PROVIDER_PREFIX):]
    return event_type


def _require_str(data: dict[str, Any], key: str, event_type: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise ValidationException(
            error_code="INVALID_WEBHOOK_PAYLOAD",
            message=f"Webhook '{event_type}' is missing data.{key}",
            field=f"data.{key}",
        )
    return value


def _error_messages(data: dict[str, Any]) -> list[str]:
    errors = data.get("errors")
    if not isinstance(errors, dict):
        return []
    messages = errors.get("messages")
    if not isinstance(messages, list):
        return []
    return [str(m) for m in messages]


def decode_event(payload: Any) -> VideoWebhookEvent:
    """
    Decode a parsed webhook body.

    Raises:
        ValidationException: The body is not an object, has no ``type``, or
            a recognised event lacks the ids it needs.
    """
    if not isinstance(payload, dict):
        raise ValidationException(
            error_code="INVALID_WEBHOOK_PAYLOAD",
            message="Webhook body must be a JSON object",
        )

    raw_type = payload.get("type")
    if not isinstance(raw_type, str) or not raw_type:
        raise ValidationException(
            error_code="INVALID_WEBHOOK_PAYLOAD",
            message="Webhook body is missing 'type'",
            field="type",
        )

    event_type = normalize_event_type(raw_type)
    data = payload.get("data")
    if not isinstance(data, dict):
        data = {}

    if event_type == ASSET_READY:
        return AssetReadyEvent(asset_id=_require_str(data, "id", raw_type))
    if event_type == ASSET_ERRORED:
        return AssetErroredEvent(
            asset_id=_require_str(data, "id", raw_type),
            errors=_error_messages(data),
        )
    if event_type == UPLOAD_ASSET_CREATED:
        return UploadAssetCreatedEvent(
            upload_id=_require_str(data, "id", raw_type),
            asset_id=_require_str(data, "asset_id", raw_type),
        )
    return IgnoredEvent(event_type=raw_type)

