"""FastAPI dependencies for the booking service.

Services are built once by the application factory and stored on
``app.state``; these helpers hand them to route handlers.
"""

from fastapi import Request

from carebook.services.availability_service import AvailabilityService
from carebook.services.diagnostic_service import DiagnosticService
from carebook.services.reservation_service import ReservationService
from carebook.services.resource_registry import ResourceRegistry


def get_registry(request: Request) -> ResourceRegistry:
    """Get the caregiver registry."""
    return request.app.state.registry


def get_availability_service(request: Request) -> AvailabilityService:
    """Get the availability service."""
    return request.app.state.availability_service


def get_reservation_service(request: Request) -> ReservationService:
    """Get the reservation service."""
    return request.app.state.reservation_service


def get_diagnostic_service(request: Request) -> DiagnosticService:
    """Build a fresh diagnostic service (it accumulates checks per run)."""
    state = request.app.state
    return DiagnosticService(
        settings=state.settings,
        policy=state.policy,
        registry=state.registry,
        calendar=state.calendar,
        email_service=state.email_service,
    )
