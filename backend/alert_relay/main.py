"""
PURPOSE: Main FastAPI application factory and lifecycle management for Alert Relay.

Initializes the FastAPI application with:
- The signal router (channel queues and dedup maps) owned by app.state
- Signal, polling, health and status routes
- slowapi rate limiting
- Exception handlers for malformed bodies and unexpected errors
- Startup / shutdown logging
- Metadata from version.json
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from alert_relay.api import api_router
from alert_relay.config.settings import Settings, settings as default_settings
from alert_relay.core.rate_limit import configure_limits, limiter
from alert_relay.signals.channels import build_router
from alert_relay.utils.logger import get_logger, setup_logging
from alert_relay.utils.time_utils import Clock, epoch_seconds
from alert_relay.version import get_version


logger = get_logger(__name__)


# ════════════════════════════════════════════════════════════════
# Lifecycle Events
# ════════════════════════════════════════════════════════════════


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    PURPOSE: Log startup and shutdown around the application's lifetime.

    Queues and dedup maps are volatile: they are built in create_app() and
    simply dropped at exit, so there is nothing to drain on shutdown.

    Args:
        app: FastAPI application instance

    Yields:
        None
    """
    app_settings: Settings = app.state.settings
    logger.info(
        "application_startup_complete",
        version=get_version().get("version"),
        log_level=app_settings.LOG_LEVEL,
        channels=app.state.router.channels(),
        max_queue=app_settings.MAX_QUEUE,
    )

    insecure = app_settings.get_insecure_defaults()
    if insecure:
        logger.warning(
            "insecure_default_credentials",
            message="Default credentials detected. Change these before deploying.",
            settings=insecure,
        )

    yield

    logger.info("application_shutdown_complete", status=app.state.router.status())


# ════════════════════════════════════════════════════════════════
# Exception Handlers
# ════════════════════════════════════════════════════════════════


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """
    PURPOSE: Handle request validation errors with consistent JSON responses.

    A body that is not valid JSON gets HTTP 400 {"error": "invalid_json"} so
    the sender sees a plain rejection; any other validation problem gets the
    structured 422 response.

    CALLED BY: FastAPI when request validation fails

    Args:
        request: HTTP request that failed validation
        exc: RequestValidationError with validation details

    Returns:
        JSONResponse: Formatted error response with validation details
    """
    errors = exc.errors()
    json_errors = [err for err in errors if err.get("type") == "json_invalid"]
    if json_errors:
        message = str(json_errors[0].get("ctx", {}).get("error", json_errors[0].get("msg", "")))
        logger.warning("json_parse_error", path=request.url.path, message=message)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "invalid_json", "message": message},
        )

    logger.warning(
        "request_validation_failed",
        path=request.url.path,
        method=request.method,
        error_count=len(errors)
    )

    safe_errors = jsonable_encoder(
        errors,
        custom_encoder={
            ValueError: lambda e: str(e),
            Exception: lambda e: str(e),
        },
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "status": "error",
            "detail": "Request validation failed",
            "errors": safe_errors,
        },
    )


async def general_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    PURPOSE: Handle unexpected exceptions with logging and safe error response.

    CALLED BY: FastAPI exception handler middleware

    Args:
        request: HTTP request that raised exception
        exc: Exception that was raised

    Returns:
        JSONResponse: Safe error response without exposing internals
    """
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exception_type=type(exc).__name__
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "status": "error",
            "detail": "Internal server error",
        },
    )


# ════════════════════════════════════════════════════════════════
# FastAPI Application Factory
# ════════════════════════════════════════════════════════════════


def create_app(
    app_settings: Optional[Settings] = None,
    clock: Clock = epoch_seconds,
) -> FastAPI:
    """
    PURPOSE: Create and configure the FastAPI application with its signal router.

    CALLED BY: Application entrypoint (uvicorn), tests

    Args:
        app_settings: Settings override; defaults to the environment-loaded settings.
        clock:        Epoch-seconds clock for dedup windows and timestamps.

    Returns:
        FastAPI: Configured FastAPI application ready to run

    Raises:
        ValueError: If SECRET_KEY is empty, or still the default outside development.
    """
    app_settings = app_settings or default_settings

    # Fail fast if non-dev config still has insecure defaults.
    app_settings.validate_credentials()
    setup_logging(app_settings.LOG_LEVEL)

    try:
        version = get_version().get("version", "unknown")
    except Exception as e:
        logger.warning("version_data_unavailable", error=str(e))
        version = "unknown"

    app = FastAPI(
        title="Alert Relay",
        description="Trading-alert normalisation and per-channel signal queues",
        version=version,
        lifespan=lifespan,
    )

    # One router per process: every channel's queue and dedup map lives here
    app.state.settings = app_settings
    app.state.router = build_router(app_settings, clock=clock)

    # ────────────────────────────────────────────────────────────
    # Middleware
    # ────────────────────────────────────────────────────────────

    configure_limits(app_settings)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # ────────────────────────────────────────────────────────────
    # Routes
    # ────────────────────────────────────────────────────────────

    app.include_router(api_router)

    @app.get("/", tags=["root"])
    async def root():
        """
        PURPOSE: Root endpoint for API availability check.

        Returns:
            dict: Service information and version
        """
        return {
            "status": "ok",
            "service": "Alert Relay",
            "version": version,
        }

    # ────────────────────────────────────────────────────────────
    # Exception Handlers
    # ────────────────────────────────────────────────────────────

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    logger.info(
        "fastapi_application_created",
        version=version,
        channels=app.state.router.channels(),
    )

    return app


if __name__ == "__main__":
    """
    PURPOSE: Run the relay with Uvicorn.

    Usage:
        python -m alert_relay.main
        OR
        uvicorn alert_relay.main:create_app --factory --host 0.0.0.0 --port 3000
    """
    import uvicorn

    uvicorn.run(
        "alert_relay.main:create_app",
        factory=True,
        host=default_settings.HOST,
        port=default_settings.PORT,
        log_level=default_settings.LOG_LEVEL.lower(),
    )
