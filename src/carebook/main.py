"""Carebook Booking Service - FastAPI Application.

Stateless caregiver booking on top of Google Calendar:
- Hourly availability grid per caregiver and date
- Reservations written as one calendar event per slot
- Cancellation links, confirmation emails, health diagnostics
"""

import logging
import os
import sys
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from carebook import __version__
from carebook.config import BookingPolicy, Settings, caregivers_path, get_settings
from carebook.middleware.request_logging import RequestLoggingMiddleware
from carebook.routers import (
    availability_router,
    caregivers_router,
    health_router,
    reservations_router,
)
from carebook.services.availability_service import AvailabilityService
from carebook.services.calendar_client import CalendarGateway, GoogleCalendarClient, load_credentials
from carebook.services.date_policy import DatePolicy
from carebook.services.email_service import EmailService
from carebook.services.errors import BookingError, UpstreamError
from carebook.services.reservation_service import ReservationService
from carebook.services.resource_registry import ResourceRegistry

# Configure logging based on LOG_LEVEL env var
log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

# Set uvicorn loggers to same level
logging.getLogger("uvicorn").setLevel(getattr(logging, log_level, logging.INFO))
logging.getLogger("uvicorn.error").setLevel(getattr(logging, log_level, logging.INFO))
logging.getLogger("uvicorn.access").setLevel(getattr(logging, log_level, logging.INFO))

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    Logs the effective configuration on startup and closes the calendar HTTP
    client on shutdown.
    """
    policy: BookingPolicy = app.state.policy
    logger.info(f"Starting booking service with {len(app.state.registry)} caregiver(s)")
    logger.info(f"Timezone: {policy.tz}, lead time: {policy.lead_workdays} working day(s)")
    logger.info(f"Catalog: {', '.join(r.label for r in policy.catalog)}")

    yield

    logger.info("Shutting down booking service")
    http_client = getattr(app.state, "http_client", None)
    if http_client is not None:
        await http_client.aclose()


def _error_response(request: Request, exc: BookingError) -> JSONResponse:
    body = exc.to_dict()
    if isinstance(exc, UpstreamError):
        # Provider payloads stay in the logs
        request_id = getattr(request.state, "request_id", None)
        logger.error(
            f"Upstream failure ({request_id}): {exc.message} "
            f"[status={exc.provider_status}] {exc.provider_detail or ''}"
        )
        body["error"]["correlation_id"] = request_id
    return JSONResponse(status_code=exc.status_code, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    """Map booking errors and request validation errors to the error envelope."""

    @app.exception_handler(BookingError)
    async def booking_error_handler(request: Request, exc: BookingError):
        return _error_response(request, exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or None
        return JSONResponse(
            status_code=400,
            content={
                "error": {
                    "code": "validation_error",
                    "message": first.get("msg", "Invalid request"),
                    "details": {"field": field},
                }
            },
        )


def create_app(
    settings: Settings | None = None,
    calendar: CalendarGateway | None = None,
    registry: ResourceRegistry | None = None,
    date_policy: DatePolicy | None = None,
    email_service: EmailService | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Every collaborator can be supplied explicitly; anything omitted is built
    from ``settings``.
    """
    settings = settings or get_settings()
    policy = BookingPolicy.from_settings(settings)
    if registry is None:
        registry = ResourceRegistry.load(caregivers_path(settings), inline=settings.caregivers)
    date_policy = date_policy or DatePolicy(tz=policy.tz, lead_workdays=policy.lead_workdays)
    email_service = email_service or EmailService(settings)

    http_client = None
    if calendar is None:
        http_client = httpx.AsyncClient(timeout=settings.calendar_timeout)
        calendar = GoogleCalendarClient(
            credentials=load_credentials(settings),
            http=http_client,
            base_url=settings.calendar_api_url,
            timezone=settings.timezone,
        )

    availability = AvailabilityService(calendar, registry, policy, date_policy)
    reservations = ReservationService(
        calendar, registry, policy, date_policy, availability, email_service=email_service
    )

    app = FastAPI(
        title="Carebook Booking Service",
        description="Caregiver availability and reservations backed by Google Calendar",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.policy = policy
    app.state.registry = registry
    app.state.calendar = calendar
    app.state.http_client = http_client
    app.state.email_service = email_service
    app.state.availability_service = availability
    app.state.reservation_service = reservations

    cors_origins = settings.cors_origin_list
    logger.info(f"CORS origins: {cors_origins}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials="*" not in cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(caregivers_router, prefix="/api", tags=["caregivers"])
    app.include_router(availability_router, prefix="/api", tags=["availability"])
    app.include_router(reservations_router, prefix="/api", tags=["reservations"])

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "service": "Carebook",
            "version": __version__,
            "docs": "/docs",
        }

    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "carebook.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=False,
    )
