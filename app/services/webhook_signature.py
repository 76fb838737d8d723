"""
Webhook signature verification.

The provider signs each delivery with a header of the form

    mux-signature: t=1700000000,v1=<hex hmac>

where the HMAC-SHA256 is computed with the webhook secret over
``"<t>." + raw_body``. Deliveries older or newer than the tolerance window
are rejected to limit replays.
"""

import hashlib
import hmac
import re
import time
from typing import Optional

from app.core.config import Settings
from app.core.logger import get_logger

logger = get_logger(__name__)

SIGNATURE_HEADER = "mux-signature"

_TIMESTAMP_RE = re.compile(r"[0-9]{1,15}")
_HEX_RE = re.compile(r"[0-9a-fA-F]+")


def parse_signature_header(header: str) -> tuple[Optional[int], list[str]]:
    """Split ``t=...,v1=...`` into the timestamp and the v1 signatures.

    A timestamp that is not a plain unix-seconds integer voids the header.
    ``v1`` values that are not hex are dropped.
    """
    timestamp: Optional[int] = None
    signatures: list[str] = []
    for part in header.split(","):
        key, sep, value = part.strip().partition("=")
        if not sep:
            continue
        if key == "t":
            if not _TIMESTAMP_RE.fullmatch(value):
                return None, []
            timestamp = int(value)
        elif key == "v1" and _HEX_RE.fullmatch(value):
            signatures.append(value)
    return timestamp, signatures


def compute_signature(secret: str, timestamp: int, raw_body: bytes) -> str:
    signed_payload = f"{timestamp}.".encode() + raw_body
    return hmac.new(secret.encode(), signed_payload, hashlib.sha256).hexdigest()


class WebhookSignatureVerifier:
    """
    Verifies signed webhook deliveries.

    A verifier built with ``enabled=False`` accepts every delivery and logs a
    warning each time. That only happens in development, when the webhook
    secret or the provider credentials are not configured.
    """

    def __init__(
        self,
        secret: Optional[str],
        tolerance_seconds: int = 300,
        enabled: bool = True,
    ):
        self.secret = secret
        self.tolerance_seconds = tolerance_seconds
        self.enabled = enabled and bool(secret)

    @classmethod
    def from_settings(cls, settings: Settings) -> "WebhookSignatureVerifier":
        return cls(
            secret=settings.MUX_WEBHOOK_SECRET,
            tolerance_seconds=settings.WEBHOOK_TOLERANCE_SECONDS,
            enabled=bool(settings.MUX_WEBHOOK_SECRET) and settings.mux_configured,
        )

    def verify(
        self,
        raw_body: bytes,
        header: Optional[str],
        now: Optional[float] = None,
    ) -> bool:
        if not self.enabled:
            logger.warning(
                "Webhook signature verification is disabled; accepting unsigned delivery"
            )
            return True

        if not header:
            logger.warning("Webhook rejected: missing signature header")
            return False

        timestamp, signatures = parse_signature_header(header)
        if timestamp is None or not signatures:
            logger.warning("Webhook rejected: malformed signature header")
            return False

        current = time.time() if now is None else now
        if abs(current - timestamp) > self.tolerance_seconds:
            logger.warning(
                "Webhook rejected: timestamp outside tolerance",
                extra={"extra_data": {"timestamp": timestamp, "now": int(current)}},
            )
            return False

        expected = compute_signature(self.secret, timestamp, raw_body)
        if any(hmac.compare_digest(expected, sig) for sig in signatures):
            return True

        logger.warning("Webhook rejected: signature mismatch")
        return False
