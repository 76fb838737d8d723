"""Video status transitions."""

from enum import Enum

from app.models import TERMINAL_STATUSES, VideoStatus


class VideoEvent(str, Enum):
    """What the provider reported about an asset."""
    CREATED = "created"
    READY = "ready"
    ERRORED = "errored"


_TRANSITIONS = {
    VideoEvent.CREATED: VideoStatus.PREPARING,
    VideoEvent.READY: VideoStatus.READY,
    VideoEvent.ERRORED: VideoStatus.ERRORED,
}


def next_status(current: VideoStatus, event: VideoEvent) -> VideoStatus:
    """
    The one transition function used by webhooks, manual sync and status
    refresh. ``ready`` and ``errored`` are terminal and absorb every event.
    """
    if current in TERMINAL_STATUSES:
        return current
    return _TRANSITIONS[event]


def event_for_asset_status(asset_status: str) -> VideoEvent:
    """Map a provider asset status onto an event."""
    if asset_status == "ready":
        return VideoEvent.READY
    if asset_status == "errored":
        return VideoEvent.ERRORED
    return VideoEvent.CREATED
