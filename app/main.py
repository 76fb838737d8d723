import uuid
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware

from app.api.main import api_router
from app.core.config import settings
from app.core.db import close_mongodb_connection, connect_to_mongodb, init_db
from app.core.exceptions import BaseAppException
from app.core.http_utils import error_body
from app.core.logger import clear_context, get_logger, log_exception, set_correlation_id
from app.services.video_provider import VideoProviderFactory

logger = get_logger(__name__)


def custom_generate_unique_id(route: APIRoute) -> str:
    return f"{route.tags[0]}-{route.name}"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    await connect_to_mongodb()
    await init_db()

    app.state.video_provider = VideoProviderFactory.get_default_provider()
    logger.info(f"Video provider: {app.state.video_provider.provider_name}")

    yield

    await close_mongodb_connection()


if settings.SENTRY_DSN and settings.ENVIRONMENT != "local":
    sentry_sdk.init(dsn=str(settings.SENTRY_DSN), enable_tracing=True)

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    generate_unique_id_function=custom_generate_unique_id,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.all_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    """Tag every log line of a request with its X-Request-ID."""
    correlation_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    set_correlation_id(correlation_id)
    try:
        response = await call_next(request)
    finally:
        clear_context()
    response.headers["X-Request-ID"] = correlation_id
    return response


# Exception handlers for standardized error responses
@app.exception_handler(BaseAppException)
async def base_app_exception_handler(request: Request, exc: BaseAppException):
    """Handle all custom application exceptions."""
    log_exception(logger, exc, {"path": request.url.path, "method": request.method})
    return JSONResponse(status_code=exc.http_status_code, content=error_body(exc))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle framework HTTP errors (unknown routes, wrong methods) in the same format."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.detail if isinstance(exc.detail, str) else str(exc.detail),
            "error_code": f"HTTP_{exc.status_code}",
        },
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors with per-field messages.

    A malformed path id is a bad request (400); body and query errors are 422.
    """
    errors = exc.errors()
    if errors and all(error["loc"][0] == "path" for error in errors):
        field = str(errors[0]["loc"][-1])
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "error": f"Invalid {field.removesuffix('_id')} ID",
                "error_code": "INVALID_ID",
                "field_errors": {str(e["loc"][-1]): e["msg"] for e in errors},
            },
        )

    field_errors = {}
    messages = []

    for error in errors:
        field = ".".join(str(loc) for loc in error["loc"] if loc not in ("body", "path", "query"))
        msg = error["msg"]
        field_errors[field] = msg
        messages.append(f"{field}: {msg}")

    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "error": messages[0] if len(messages) == 1 else "Invalid request data",
            "error_code": "VALIDATION_ERROR",
            "field_errors": field_errors,
        },
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    log_exception(logger, exc, {"path": request.url.path, "method": request.method})
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "An internal error occurred",
            "error_code": "INTERNAL_ERROR",
        },
    )


@app.get("/health", tags=["health"])
async def health_check():
    return {"status": "ok", "video_provider": getattr(app.state, "video_provider", None) is not None}


app.include_router(api_router, prefix=settings.API_V1_STR)
