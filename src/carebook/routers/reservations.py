"""Reservation endpoints.

Implements:
- Create a reservation (one calendar event per requested slot)
- Cancel a reservation from the link sent to the customer
"""

from html import escape

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from carebook.dependencies import get_reservation_service
from carebook.schemas.booking import ReservationResponse, ReserveRequest
from carebook.services.errors import NotFoundError
from carebook.services.reservation_service import ReservationService

router = APIRouter()

_PAGE = """<html><body style="font-family: Arial, sans-serif; padding: 20px">
<h2>{title}</h2>
<p>{message}</p>
<a href="/">Back to the website</a>
</body></html>"""


@router.post("/reserve", response_model=ReservationResponse)
async def create_reservation(
    body: ReserveRequest,
    service: ReservationService = Depends(get_reservation_service),
):
    """Create a reservation.

    Returns 409 with the colliding slots if any requested slot was taken in
    the meantime; nothing is written in that case.
    """
    result = await service.create_reservation(body.to_domain())
    return result.to_dict()


@router.get("/cancel/{token}", response_class=HTMLResponse)
async def cancel_reservation(
    token: str,
    service: ReservationService = Depends(get_reservation_service),
):
    """Cancel every slot of a reservation and show a confirmation page."""
    try:
        deleted = await service.cancel_reservation(token)
    except NotFoundError as e:
        return HTMLResponse(
            _PAGE.format(title="Booking not found", message=escape(e.message)),
            status_code=404,
        )

    return HTMLResponse(
        _PAGE.format(
            title="Booking cancelled",
            message=f"{deleted} slot(s) are available again.",
        )
    )
