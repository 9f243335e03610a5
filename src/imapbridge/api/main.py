"""FastAPI application factory."""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from imapbridge.domain.errors import ErrorKind
from imapbridge.infrastructure.settings import Settings, get_settings

MISSING_INPUT_ERRORS = {
    "/api/test-connection": "Missing email configuration",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    settings: Settings = app.state.settings
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")
    if not settings.verify_certificates:
        logger.warning("IMAP certificate verification is disabled")

    yield

    logger.info("Shutdown complete")


async def _log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    logger.info(f"{request.method} {request.url.path} {response.status_code} {duration_ms:.0f}ms")
    return response


async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Only report which fields are wrong; the body may contain a password
    fields = [".".join(str(p) for p in err.get("loc", ()) if p != "body") for err in exc.errors()]
    logger.warning(f"Rejected {request.url.path} ({ErrorKind.MISSING_INPUT.value}): invalid fields {fields}")
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": MISSING_INPUT_ERRORS.get(request.url.path, "Missing required fields"),
            "details": f"Invalid or missing fields: {', '.join(f for f in fields if f) or 'body'}",
        },
    )


async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        return JSONResponse(
            status_code=404,
            content={
                "success": False,
                "error": "Route not found",
                "details": f"The requested route {request.url.path} does not exist on this server",
            },
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": str(exc.detail), "details": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Server error on {request.method} {request.url.path} ({ErrorKind.INTERNAL_ERROR.value}): {exc}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error", "details": str(exc)},
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Read IMAP mailboxes using SMTP-style account settings",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.started_at = time.monotonic()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "x-client-info", "apikey", "Content-Range", "Range"],
        expose_headers=["Content-Range", "Range"],
        max_age=settings.cors_max_age,
    )
    app.middleware("http")(_log_requests)

    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(Exception, _unhandled_error)

    # Register routes
    from imapbridge.api.routes import router

    app.dependency_overrides[get_settings] = lambda: settings
    app.include_router(router)

    return app
