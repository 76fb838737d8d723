from __future__ import annotations

import pytest

from app.core.exceptions import ValidationException
from app.services.video_events import (
    AssetErroredEvent,
    AssetReadyEvent,
    IgnoredEvent,
    UploadAssetCreatedEvent,
    decode_event,
    normalize_event_type,
)


def test_normalize_event_type():
    assert normalize_event_type("video.asset.ready") == "asset.ready"
    assert normalize_event_type("asset.ready") == "asset.ready"
    assert normalize_event_type("video.upload.asset_created") == "upload.asset_created"


@pytest.mark.parametrize("event_type", ["video.asset.ready", "asset.ready"])
def test_decode_asset_ready(event_type):
    event = decode_event({"type": event_type, "data": {"id": "asset-1"}})
    assert event == AssetReadyEvent(asset_id="asset-1")


def test_decode_asset_errored_with_messages():
    event = decode_event({
        "type": "video.asset.errored",
        "data": {"id": "asset-9", "errors": {"type": "invalid_input", "messages": ["bad codec"]}},
    })
    assert event == AssetErroredEvent(asset_id="asset-9", errors=["bad codec"])


def test_decode_asset_errored_without_messages():
    event = decode_event({"type": "asset.errored", "data": {"id": "asset-9"}})
    assert isinstance(event, AssetErroredEvent)
    assert event.errors == []


@pytest.mark.parametrize("event_type", ["video.upload.asset_created", "upload.asset_created"])
def test_decode_upload_asset_created(event_type):
    event = decode_event({"type": event_type, "data": {"id": "upload-1", "asset_id": "asset-1"}})
    assert event == UploadAssetCreatedEvent(upload_id="upload-1", asset_id="asset-1")


def test_unknown_event_is_ignored():
    event = decode_event({"type": "video.asset.created", "data": {"id": "asset-1"}})
    assert event == IgnoredEvent(event_type="video.asset.created")


@pytest.mark.parametrize(
    "payload",
    [
        [],
        "asset.ready",
        {},
        {"type": ""},
        {"type": 42},
        {"type": "video.asset.ready"},
        {"type": "video.asset.ready", "data": {}},
        {"type": "video.asset.ready", "data": {"id": ""}},
        {"type": "video.upload.asset_created", "data": {"id": "upload-1"}},
    ],
)
def test_malformed_payload_rejected(payload):
    with pytest.raises(ValidationException) as exc_info:
        decode_event(payload)
    assert exc_info.value.error_code == "INVALID_WEBHOOK_PAYLOAD"
    assert exc_info.value.http_status_code == 400
