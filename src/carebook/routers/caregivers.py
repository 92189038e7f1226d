"""Caregiver listing endpoint."""

from fastapi import APIRouter, Depends

from carebook.dependencies import get_registry
from carebook.schemas.booking import CaregiversResponse
from carebook.services.resource_registry import ResourceRegistry

router = APIRouter()


@router.get("/caregivers", response_model=CaregiversResponse)
async def list_caregivers(registry: ResourceRegistry = Depends(get_registry)):
    """List configured caregivers (static configuration, no calendar call)."""
    return {"caregivers": registry.names()}
