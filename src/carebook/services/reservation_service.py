"""Reservation service - validates, re-checks and writes bookings.

A reservation becomes one calendar event per requested range in the
caregiver's calendar (plus optional copies in mirror calendars). Either every
event of a request is written, or none is: conflicts abort before any write,
and a failed write deletes the events already created for that request.

There is no lock between the final occupancy check and the writes; two
simultaneous requests for the same slot can both succeed. The calendar offers
no transactional primitive to prevent it.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from carebook.config import BookingPolicy
from carebook.services.availability_service import (
    PROP_BOOKING,
    PROP_DATE,
    PROP_RANGE,
    PROP_RESOURCE,
    AvailabilityService,
)
from carebook.services.calendar_client import CalendarGateway
from carebook.services.date_policy import DatePolicy, parse_date
from carebook.services.email_service import ConfirmationEmail, EmailService
from carebook.services.errors import ConflictError, NotFoundError, ValidationError
from carebook.services.pricing import PriceBreakdown, calculate_price
from carebook.services.resource_registry import Caregiver, ResourceRegistry
from carebook.services.time_grid import TimeRange

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "town",
    "address",
    "caregiver",
    "date",
)


@dataclass
class ReservationRequest:
    """Customer booking input, already decoded from the wire format."""

    first_name: str
    last_name: str
    email: str
    phone: str
    town: str
    address: str
    caregiver: str
    date: str
    ranges: list[str]
    services: list[str]
    details: str | None = None

    @property
    def customer_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class ReservationResult:
    """Outcome of a successful reservation."""

    token: str
    caregiver: Caregiver
    day: date
    ranges: list[TimeRange]
    price: PriceBreakdown
    cancel_url: str
    event_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": True,
            "bookings": len(self.ranges),
            "caregiver": self.caregiver.name,
            "date": self.day.isoformat(),
            "ranges": [r.label for r in self.ranges],
            "price": self.price.to_dict(),
            "token": self.token,
            "cancel_url": self.cancel_url,
        }


class ReservationService:
    """Creates and cancels reservations against the calendar."""

    def __init__(
        self,
        calendar: CalendarGateway,
        registry: ResourceRegistry,
        policy: BookingPolicy,
        date_policy: DatePolicy,
        availability: AvailabilityService,
        email_service: EmailService | None = None,
    ):
        self.calendar = calendar
        self.registry = registry
        self.policy = policy
        self.date_policy = date_policy
        self.availability = availability
        self.email_service = email_service
        self.mirror_calendar_ids = self._filter_mirrors()

    def _filter_mirrors(self) -> list[str]:
        """Configured mirror calendars minus any caregiver's own calendar."""
        own = self.registry.calendar_ids()
        mirrors = []
        for calendar_id in self.policy.mirror_calendar_ids:
            if calendar_id in own:
                logger.warning(f"Ignoring mirror calendar {calendar_id}: it belongs to a caregiver")
                continue
            if calendar_id not in mirrors:
                mirrors.append(calendar_id)
        return mirrors

    def validate(self, request: ReservationRequest) -> tuple[date, list[TimeRange]]:
        """Check required fields, the date format and the requested ranges.

        Returns:
            Parsed date and the requested ranges in catalog order

        Raises:
            ValidationError: Naming the first offending field or rule
        """
        for name in REQUIRED_FIELDS:
            value = getattr(request, name)
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(f"Field '{name}' is required", field=name, code="missing_fields")

        if not request.services or not any(s.strip() for s in request.services):
            raise ValidationError("At least one service is required", field="services", code="missing_fields")
        if not request.ranges:
            raise ValidationError("At least one time range is required", field="ranges", code="missing_fields")

        day = parse_date(request.date, field="date")

        catalog = self.policy.catalog
        ranges: list[TimeRange] = []
        for label in request.ranges:
            slot = TimeRange.parse(label)
            if slot not in catalog:
                raise ValidationError(f"'{slot.label}' is not a bookable time range", field="ranges")
            if slot in ranges:
                raise ValidationError(f"Time range '{slot.label}' requested twice", field="ranges")
            ranges.append(slot)

        ranges.sort(key=catalog.index)
        return day, ranges

    async def create_reservation(self, request: ReservationRequest) -> ReservationResult:
        """Create a reservation.

        Steps, in order: validate input, apply the date policy, resolve the
        caregiver, re-check occupancy of exactly the requested ranges, write
        one event per range, price it and send a best-effort confirmation.

        Raises:
            ValidationError: Missing or malformed input
            PolicyRejectedError: Weekend or inside the lead time
            NotFoundError: Unknown caregiver
            ConflictError: Requested ranges already occupied
            UpstreamError: Calendar read or write failed (nothing left behind)
        """
        day, ranges = self.validate(request)
        self.date_policy.check(day)
        caregiver = self.registry.get(request.caregiver)

        conflicts = await self.availability.find_conflicts(day, caregiver, ranges)
        if conflicts:
            labels = [r.label for r in conflicts]
            logger.info(f"Reservation conflict for {caregiver.name} on {day.isoformat()}: {labels}")
            raise ConflictError(labels)

        token = str(uuid.uuid4())
        price = calculate_price(
            len(ranges), self.policy.hourly_rate, self.policy.tax_rate, self.policy.currency
        )
        event_ids = await self._write_events(request, caregiver, day, ranges, price, token)

        result = ReservationResult(
            token=token,
            caregiver=caregiver,
            day=day,
            ranges=ranges,
            price=price,
            cancel_url=f"{self.policy.public_base_url}/api/cancel/{token}",
            event_ids=event_ids,
        )
        logger.info(
            f"Reserved {len(ranges)} slot(s) for {caregiver.name} on {day.isoformat()} (token {token})"
        )

        await self._notify(request, result)
        return result

    def _event_body(
        self,
        request: ReservationRequest,
        caregiver: Caregiver,
        day: date,
        slot: TimeRange,
        price: PriceBreakdown,
        token: str,
    ) -> dict[str, Any]:
        start, end = slot.on(day, self.policy.tz)
        tz_name = str(self.policy.tz)

        lines = [
            f"Customer: {request.customer_name}",
            f"Phone: {request.phone} - Email: {request.email}",
            f"Address: {request.address}, {request.town}",
            f"Services: {', '.join(s.strip() for s in request.services if s.strip())}",
            f"Price: {price.describe()}",
            f"Cancel token: {token}",
        ]
        if request.details:
            lines.append(f"Details: {request.details}")

        body: dict[str, Any] = {
            "summary": f"Booking {slot.label} - {request.customer_name}",
            "description": "\n".join(lines),
            "start": {"dateTime": start.isoformat(), "timeZone": tz_name},
            "end": {"dateTime": end.isoformat(), "timeZone": tz_name},
            "extendedProperties": {
                "private": {
                    PROP_RANGE: slot.label,
                    PROP_DATE: day.isoformat(),
                    PROP_RESOURCE: caregiver.name,
                    PROP_BOOKING: token,
                }
            },
            "reminders": {"useDefault": True},
        }
        if self.policy.invite_attendees:
            attendees = [{"email": request.email}]
            if caregiver.email:
                attendees.append({"email": caregiver.email})
            body["attendees"] = attendees
        return body

    async def _write_events(
        self,
        request: ReservationRequest,
        caregiver: Caregiver,
        day: date,
        ranges: list[TimeRange],
        price: PriceBreakdown,
        token: str,
    ) -> list[str]:
        """Insert one event per range (and its mirrors); undo everything on failure."""
        targets = [caregiver.calendar_id] + self.mirror_calendar_ids
        created: list[tuple[str, str]] = []
        primary_ids: list[str] = []

        try:
            for slot in ranges:
                body = self._event_body(request, caregiver, day, slot, price, token)
                for calendar_id in targets:
                    event = await self.calendar.insert_event(calendar_id, body)
                    created.append((calendar_id, event["id"]))
                    if calendar_id == caregiver.calendar_id:
                        primary_ids.append(event["id"])
        except Exception:
            logger.error(
                f"Reservation {token} failed after {len(created)} event(s); rolling back",
                exc_info=True,
            )
            await self._compensate(created)
            raise

        return primary_ids

    async def _compensate(self, created: list[tuple[str, str]]) -> None:
        for calendar_id, event_id in reversed(created):
            try:
                await self.calendar.delete_event(calendar_id, event_id)
            except Exception as e:
                # Left behind; must be removed by hand
                logger.error(f"Rollback could not delete event {event_id} in {calendar_id}: {e}")

    async def _notify(self, request: ReservationRequest, result: ReservationResult) -> None:
        if self.email_service is None:
            return
        email = ConfirmationEmail(
            to_email=request.email,
            customer_name=request.customer_name,
            caregiver_name=result.caregiver.name,
            caregiver_email=result.caregiver.email,
            day=result.day.isoformat(),
            ranges=[r.label for r in result.ranges],
            price_summary=result.price.describe(),
            cancel_url=result.cancel_url,
        )
        try:
            await asyncio.to_thread(self.email_service.send_reservation_confirmation, email)
        except Exception as e:
            logger.error(f"Confirmation email for reservation {result.token} failed: {e}")

    async def cancel_reservation(self, token: str) -> int:
        """Delete every event carrying ``token`` across caregiver and mirror calendars.

        Returns:
            Number of events deleted

        Raises:
            ValidationError: If the token is not a UUID
            NotFoundError: If no event carries the token
            UpstreamError: If a calendar call fails
        """
        try:
            token = str(uuid.UUID(token))
        except (ValueError, TypeError, AttributeError):
            raise ValidationError("Invalid cancellation token", field="token")

        # The token filter alone bounds the search; bookings have no date limit
        calendar_ids = sorted(self.registry.calendar_ids()) + self.mirror_calendar_ids
        deleted = 0
        for calendar_id in calendar_ids:
            events = await self.calendar.list_events(
                calendar_id,
                None,
                None,
                private_property=f"{PROP_BOOKING}={token}",
            )
            for event in events:
                await self.calendar.delete_event(calendar_id, event["id"])
                deleted += 1

        if not deleted:
            raise NotFoundError(
                code="reservation_not_found",
                message="No reservation found for this token",
            )
        logger.info(f"Cancelled reservation {token}: {deleted} event(s) deleted")
        return deleted
