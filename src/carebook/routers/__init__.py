"""API routers for the booking service."""

from carebook.routers.availability import router as availability_router
from carebook.routers.caregivers import router as caregivers_router
from carebook.routers.health import router as health_router
from carebook.routers.reservations import router as reservations_router

__all__ = [
    "availability_router",
    "caregivers_router",
    "health_router",
    "reservations_router",
]
