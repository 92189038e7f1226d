"""Availability endpoints."""

from fastapi import APIRouter, Depends, Query

from carebook.dependencies import get_availability_service
from carebook.schemas.booking import AvailabilityResponse
from carebook.services.availability_service import AvailabilityService
from carebook.services.errors import ValidationError

router = APIRouter()


@router.get("/slots", response_model=AvailabilityResponse)
async def get_slots(
    date: str | None = Query(None, description="Date (YYYY-MM-DD or DD/MM/YYYY)"),
    caregiver: str | None = Query(None, description="Caregiver name"),
    fecha: str | None = Query(None, include_in_schema=False),
    cuidadora: str | None = Query(None, include_in_schema=False),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Get the availability grid for a caregiver on a date.

    Weekend dates and dates inside the lead time return every slot taken
    with ``bookable: false`` and the rule in ``reason``.
    """
    day = date or fecha
    name = caregiver or cuidadora
    if not day:
        raise ValidationError("Query parameter 'date' is required", field="date", code="missing_fields")
    if not name:
        raise ValidationError("Query parameter 'caregiver' is required", field="caregiver", code="missing_fields")

    grid = await service.get_grid(day, name)
    return grid.to_dict()
