"""Pydantic schemas for booking request/response validation.

Request fields accept both the English names and the Spanish names used by
the public booking form (``nombre``, ``cuidadora``, ``horas`` ...).
"""

from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic.networks import validate_email

from carebook.services.reservation_service import ReservationRequest


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


# =============================================================================
# Common Response Schemas
# =============================================================================


class ErrorDetail(BaseModel):
    """Error detail structure."""

    code: str
    message: str
    suggestion: str | None = None
    details: dict[str, Any] | None = None
    correlation_id: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response wrapper."""

    error: ErrorDetail


# =============================================================================
# Availability Schemas
# =============================================================================


class SlotResponse(BaseModel):
    """One catalog range and whether it is taken."""

    range: str
    taken: bool


class AvailabilityResponse(BaseModel):
    """Availability grid for one caregiver and date."""

    date: str
    caregiver: str
    bookable: bool
    reason: str | None = None
    earliest_bookable_date: str | None = None
    slots: list[SlotResponse]


class CaregiversResponse(BaseModel):
    """Configured caregiver names."""

    caregivers: list[str]


# =============================================================================
# Reservation Schemas
# =============================================================================


class ReserveRequest(BaseModel):
    """Reservation request body.

    Missing fields default to empty so that the reservation service reports
    them uniformly as ``missing_fields``.
    """

    first_name: str = Field(default="", validation_alias=_alias("first_name", "nombre"))
    last_name: str = Field(default="", validation_alias=_alias("last_name", "apellidos"))
    email: str = ""
    phone: str = Field(default="", validation_alias=_alias("phone", "telefono"))
    town: str = Field(default="", validation_alias=_alias("town", "localidad"))
    address: str = Field(default="", validation_alias=_alias("address", "direccion"))
    services: list[str] = Field(default_factory=list, validation_alias=_alias("services", "servicios"))
    caregiver: str = Field(default="", validation_alias=_alias("caregiver", "cuidadora"))
    date: str = Field(default="", validation_alias=_alias("date", "fecha"))
    ranges: list[str] = Field(default_factory=list, validation_alias=_alias("ranges", "horas"))
    details: str | None = Field(default=None, validation_alias=_alias("details", "detalles"))

    model_config = {"populate_by_name": True}

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        value = value.strip()
        if value:
            validate_email(value)
        return value

    def to_domain(self) -> ReservationRequest:
        return ReservationRequest(
            first_name=self.first_name,
            last_name=self.last_name,
            email=self.email,
            phone=self.phone,
            town=self.town,
            address=self.address,
            caregiver=self.caregiver,
            date=self.date,
            ranges=list(self.ranges),
            services=list(self.services),
            details=self.details,
        )


class PriceResponse(BaseModel):
    """Price breakdown rounded to cents."""

    hours: int
    subtotal: float
    tax: float
    total: float
    currency: str


class ReservationResponse(BaseModel):
    """Successful reservation."""

    ok: bool = True
    bookings: int
    caregiver: str
    date: str
    ranges: list[str]
    price: PriceResponse
    token: str
    cancel_url: str
