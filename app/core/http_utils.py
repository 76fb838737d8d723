"""
HTTP Utilities

Response envelopes shared by all routers. Errors are rendered by the
handlers registered in ``app.main``; successful responses go through
``success_response`` so every endpoint answers with the same shape:

    {"success": true, "message": "...", "data": {...}}
"""

from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from app.core.exceptions import BaseAppException


def error_body(exc: BaseAppException) -> dict[str, Any]:
    """Build the JSON error envelope for an application exception."""
    body: dict[str, Any] = {
        "success": False,
        "error": exc.message,
        "error_code": exc.error_code,
    }
    if exc.metadata:
        body["metadata"] = exc.metadata
    return body


def success_response(
    data: Any = None,
    message: str = "Success",
    status_code: int = 200,
) -> JSONResponse:
    """
    Create a standardized success response.

    ``data`` may contain pydantic models and datetimes; it is passed through
    ``jsonable_encoder`` before serialisation.

    Example:
        return success_response({"video": video_public}, "Video created", 201)
    """
    response_body: dict[str, Any] = {
        "success": True,
        "message": message,
    }

    if data is not None:
        response_body["data"] = jsonable_encoder(data)

    return JSONResponse(
        status_code=status_code,
        content=response_body,
    )


def pagination_meta(page: int, limit: int, total: int) -> dict[str, Any]:
    """Page counters returned next to every paginated list."""
    total_pages = (total + limit - 1) // limit if limit else 0
    return {
        "current_page": page,
        "total_pages": total_pages,
        "total_items": total,
        "items_per_page": limit,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }


__all__ = [
    "error_body",
    "success_response",
    "pagination_meta",
]
