"""
Core Logging System

Structured logging for the API:
- JSON lines in production, coloured console output in development
  (``LOG_FORMAT``)
- A per-request correlation id and optional extra context attached to
  every record
- Helpers that log ``BaseAppException`` instances with their full payload
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Optional

from app.core.config import settings

# =============================================================================
# Context Variables for Request Tracking
# =============================================================================

correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def set_correlation_id(correlation_id: Optional[str]) -> None:
    """Set the correlation ID for the current context."""
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> Optional[str]:
    """Get the correlation ID for the current context."""
    return correlation_id_var.get()


def clear_context() -> None:
    correlation_id_var.set(None)


# =============================================================================
# Formatters
# =============================================================================

class JSONFormatter(logging.Formatter):
    """
    One JSON object per line:
    {"timestamp": "...", "level": "INFO", "module": "app.services.video_ingest", ...}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.name,
            "message": record.getMessage(),
        }

        correlation_id = correlation_id_var.get()
        if correlation_id:
            log_data["correlation_id"] = correlation_id

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "stacktrace": self.formatException(record.exc_info),
            }

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            log_data["data"] = extra_data

        return json.dumps(log_data, default=str)


class PrettyFormatter(logging.Formatter):
    """Colourised single-line output for local development."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

        parts = [
            f"{self.DIM}{timestamp}{self.RESET}",
            f"{color}{self.BOLD}{record.levelname:8}{self.RESET}",
            f"{self.DIM}[{record.name}]{self.RESET}",
        ]

        correlation_id = correlation_id_var.get()
        if correlation_id:
            parts.append(f"{self.DIM}(req:{correlation_id[:8]}){self.RESET}")

        parts.append(record.getMessage())
        result = " ".join(parts)

        if record.exc_info:
            result += f"\n{color}{self.formatException(record.exc_info)}{self.RESET}"

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            result += f"\n{self.DIM}  └─ {extra_data}{self.RESET}"

        return result


# =============================================================================
# Logger Factory
# =============================================================================

def get_log_level() -> int:
    level_name = settings.LOG_LEVEL.upper()
    return getattr(logging, level_name, logging.INFO)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a configured logger instance.

    Example:
        logger = get_logger(__name__)
        logger.info("Video ready", extra={"extra_data": {"video_id": video.id}})
    """
    logger = logging.getLogger(name or "app")

    if not logger.handlers:
        logger.setLevel(get_log_level())

        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(get_log_level())
        if settings.LOG_FORMAT.lower() == "json":
            handler.setFormatter(JSONFormatter())
        else:
            handler.setFormatter(PrettyFormatter())

        logger.addHandler(handler)
        # Avoid duplicate lines through the root logger
        logger.propagate = False

    return logger


# =============================================================================
# Exception Logging Helpers
# =============================================================================

def log_exception(
    logger: logging.Logger,
    exception: Exception,
    extra_context: Optional[dict[str, Any]] = None,
) -> None:
    """
    Log an exception with its structured payload.

    Application exceptions below 500 are logged as warnings without a
    traceback; everything else is an error with a traceback.
    """
    from app.core.exceptions import BaseAppException

    if isinstance(exception, BaseAppException):
        log_data = exception.to_dict(include_debug=True)
        log_data["exception_type"] = exception.__class__.__name__
        log_data["http_status_code"] = exception.http_status_code
    else:
        log_data = {
            "exception_type": exception.__class__.__name__,
            "message": str(exception),
        }

    if extra_context:
        log_data["context"] = extra_context

    if isinstance(exception, BaseAppException):
        if exception.http_status_code >= 500:
            logger.error(
                f"{exception.__class__.__name__}: {exception.message}",
                exc_info=exception,
                extra={"extra_data": log_data},
            )
        else:
            logger.warning(
                f"{exception.__class__.__name__}: {exception.message}",
                extra={"extra_data": log_data},
            )
    else:
        logger.error(
            f"Unexpected error: {exception}",
            exc_info=exception,
            extra={"extra_data": log_data},
        )


def log_business_error(
    logger: logging.Logger,
    error_code: str,
    message: str,
    metadata: Optional[dict[str, Any]] = None,
) -> None:
    """
    Log a handled business error without raising.

    Example:
        log_business_error(
            logger,
            "ASSET_NOT_LINKED",
            "Errored asset has no matching video",
            {"asset_id": event.asset_id},
        )
    """
    log_data: dict[str, Any] = {
        "error_code": error_code,
        "message": message,
    }
    if metadata:
        log_data["metadata"] = metadata

    logger.warning(
        f"Business error [{error_code}]: {message}",
        extra={"extra_data": log_data},
    )


__all__ = [
    "get_logger",
    "log_exception",
    "log_business_error",
    "set_correlation_id",
    "get_correlation_id",
    "clear_context",
    "correlation_id_var",
]
