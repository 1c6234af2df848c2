"""FastAPI application for the Villa Pura booking backend."""

import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from villapura import __version__
from villapura.api.routers import availability_router, bookings_router
from villapura.config import Settings, get_settings
from villapura.container import ServiceContainer, create_container
from villapura.errors import BookingSystemError
from villapura.utils.logger import (
    bind_request_context,
    clear_request_context,
    get_logger,
    setup_logging,
)

logger = get_logger(__name__)


def create_app(
    settings: Settings | None = None,
    container: ServiceContainer | None = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Settings to use (environment by default)
        container: Prebuilt services; when given, the lifespan neither builds
            nor starts anything
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.container is not None:
            yield
            return

        services = await create_container(settings)
        app.state.container = services
        await services.start()
        logger.info("services_initialized", storage=services.storage)
        try:
            yield
        finally:
            await services.close()
            app.state.container = None
            logger.info("services_stopped")

    app = FastAPI(
        title="Villa Pura Booking API",
        description="Reservations, payments and calendar availability for Villa Pura Bali.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.app.app_cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )

    # =========================================================================
    # Request logging
    # =========================================================================

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        bind_request_context(
            request_id=uuid4().hex[:12],
            method=request.method,
            path=request.url.path,
        )
        started = time.perf_counter()
        try:
            response = await call_next(request)
            logger.info(
                "request_completed",
                status=response.status_code,
                duration_ms=int((time.perf_counter() - started) * 1000),
            )
            return response
        finally:
            clear_request_context()

    # =========================================================================
    # Error handling
    # =========================================================================

    @app.exception_handler(BookingSystemError)
    async def booking_error_handler(request: Request, exc: BookingSystemError):
        log = logger.warning if exc.status_code < 500 else logger.error
        log(
            "request_rejected",
            error_type=type(exc).__name__,
            error=exc.message,
            status=exc.status_code,
            **{k: v for k, v in exc.context.items() if v is not None},
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = "; ".join(
            f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
            for err in exc.errors()
        )
        return JSONResponse(status_code=400, content={"error": "Invalid request body", "details": details})

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """Service status, calendar sync state and storage backend."""
        services: ServiceContainer | None = request.app.state.container
        if services is None:
            return JSONResponse(status_code=503, content={"status": "starting", "version": __version__})
        return {
            "status": "healthy",
            "version": __version__,
            "storage": services.storage,
            "calendar_sync": services.sync_job.get_status(),
        }

    app.include_router(bookings_router)
    app.include_router(availability_router)

    return app


def run() -> None:
    """Console entry point: configure logging and serve with uvicorn."""
    import uvicorn

    settings = get_settings()
    setup_logging(settings.app.log_level, settings.app.log_format)
    uvicorn.run(
        "villapura.api.main:create_app",
        factory=True,
        host=settings.app.app_host,
        port=settings.app.app_port,
        log_config=None,
    )
