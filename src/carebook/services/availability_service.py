"""Availability calculation service - occupancy of the daily grid.

This module handles:
- Resolving the busy intervals of a caregiver's calendar for one civil day
- Marking each catalog range taken when it overlaps a busy interval
- Re-checking an exact set of ranges right before a reservation is written

Every call re-reads the calendar; nothing is cached between requests.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any
from zoneinfo import ZoneInfo

from carebook.config import BookingPolicy
from carebook.services.calendar_client import CalendarGateway
from carebook.services.date_policy import DatePolicy, parse_date
from carebook.services.errors import ValidationError
from carebook.services.resource_registry import Caregiver, ResourceRegistry
from carebook.services.time_grid import TimeRange, overlaps

logger = logging.getLogger(__name__)

# Private extended properties written on every event this service creates
PROP_RANGE = "carebook_range"
PROP_DATE = "carebook_date"
PROP_RESOURCE = "carebook_resource"
PROP_BOOKING = "carebook_booking"


def _parse_instant(value: str, tz: ZoneInfo) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def event_occupies(event: dict[str, Any]) -> bool:
    """Cancelled and free ("transparent") events never block a slot."""
    return event.get("status") != "cancelled" and event.get("transparency") != "transparent"


def event_interval(event: dict[str, Any], tz: ZoneInfo) -> tuple[datetime, datetime] | None:
    """Busy interval of a calendar event.

    The bounds the calendar reports are authoritative: ``dateTime`` bounds,
    or local midnights for all-day events. An event moved or resized by hand
    occupies where it now is. The date and range stored in the private
    extended properties of events created by this service are only used when
    the event has no usable bounds. Returns None if no interval can be derived.
    """
    start = event.get("start") or {}
    end = event.get("end") or {}
    try:
        if start.get("dateTime") and end.get("dateTime"):
            return _parse_instant(start["dateTime"], tz), _parse_instant(end["dateTime"], tz)
        if start.get("date") and end.get("date"):
            return (
                datetime.combine(date.fromisoformat(start["date"]), time.min, tzinfo=tz),
                datetime.combine(date.fromisoformat(end["date"]), time.min, tzinfo=tz),
            )
    except ValueError:
        logger.warning(f"Event {event.get('id')} has unparseable bounds")

    private = (event.get("extendedProperties") or {}).get("private") or {}
    if private.get(PROP_RANGE) and private.get(PROP_DATE):
        try:
            day = date.fromisoformat(private[PROP_DATE])
            return TimeRange.parse(private[PROP_RANGE]).on(day, tz)
        except (ValueError, ValidationError):
            logger.warning(f"Ignoring malformed booking metadata on event {event.get('id')}")
    return None


@dataclass
class SlotStatus:
    """One catalog range and whether it is occupied."""

    range: TimeRange
    taken: bool

    def to_dict(self) -> dict[str, Any]:
        return {"range": self.range.label, "taken": self.taken}


@dataclass
class AvailabilityGrid:
    """Per-range occupancy for one caregiver and date, in catalog order."""

    day: date
    caregiver: Caregiver
    slots: list[SlotStatus] = field(default_factory=list)
    bookable: bool = True
    reason: str | None = None
    earliest_bookable_date: date | None = None

    @property
    def free_ranges(self) -> list[TimeRange]:
        return [s.range for s in self.slots if not s.taken]

    @property
    def taken_ranges(self) -> list[TimeRange]:
        return [s.range for s in self.slots if s.taken]

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.day.isoformat(),
            "caregiver": self.caregiver.name,
            "bookable": self.bookable,
            "reason": self.reason,
            "earliest_bookable_date": (
                self.earliest_bookable_date.isoformat() if self.earliest_bookable_date else None
            ),
            "slots": [s.to_dict() for s in self.slots],
        }


class AvailabilityService:
    """Service for calculating slot occupancy."""

    def __init__(
        self,
        calendar: CalendarGateway,
        registry: ResourceRegistry,
        policy: BookingPolicy,
        date_policy: DatePolicy,
    ):
        """Initialize availability service.

        Args:
            calendar: Calendar gateway used for reads
            registry: Configured caregivers
            policy: Business rules (timezone, catalog)
            date_policy: Weekend and lead-time gate
        """
        self.calendar = calendar
        self.registry = registry
        self.policy = policy
        self.date_policy = date_policy

    async def get_grid(self, day: date | str, caregiver_name: str) -> AvailabilityGrid:
        """Compute the availability grid for a caregiver on a date.

        Non-bookable dates (weekend, inside the lead time) produce the full
        catalog with every range taken and no calendar call.

        Raises:
            ValidationError: If the date cannot be parsed
            NotFoundError: If the caregiver is unknown
            UpstreamError: If the calendar read fails
        """
        if isinstance(day, str):
            day = parse_date(day)
        caregiver = self.registry.get(caregiver_name)

        rejection = self.date_policy.rejection(day)
        if rejection is not None:
            earliest = rejection.details.get("earliest_bookable_date")
            return AvailabilityGrid(
                day=day,
                caregiver=caregiver,
                slots=[SlotStatus(r, True) for r in self.policy.catalog],
                bookable=False,
                reason=rejection.rule,
                earliest_bookable_date=date.fromisoformat(earliest) if earliest else None,
            )

        busy = await self.busy_intervals(caregiver, day)
        return AvailabilityGrid(
            day=day,
            caregiver=caregiver,
            slots=[SlotStatus(r, self._is_taken(r, day, busy)) for r in self.policy.catalog],
        )

    async def find_conflicts(
        self, day: date, caregiver: Caregiver, ranges: list[TimeRange]
    ) -> list[TimeRange]:
        """Return the subset of ``ranges`` currently occupied, in input order."""
        busy = await self.busy_intervals(caregiver, day)
        return [r for r in ranges if self._is_taken(r, day, busy)]

    async def busy_intervals(
        self, caregiver: Caregiver, day: date
    ) -> list[tuple[datetime, datetime]]:
        """Read the caregiver's calendar for the whole civil day (one call)."""
        tz = self.policy.tz
        day_start = datetime.combine(day, time.min, tzinfo=tz)
        day_end = datetime.combine(day, time(23, 59, 59), tzinfo=tz)

        events = await self.calendar.list_events(caregiver.calendar_id, day_start, day_end)
        logger.debug(f"{len(events)} events for {caregiver.name} on {day.isoformat()}")

        intervals = []
        for event in events:
            if not event_occupies(event):
                continue
            interval = event_interval(event, tz)
            if interval is not None:
                intervals.append(interval)
        return intervals

    def _is_taken(
        self, slot: TimeRange, day: date, busy: list[tuple[datetime, datetime]]
    ) -> bool:
        slot_start, slot_end = slot.on(day, self.policy.tz)
        return any(overlaps(slot_start, slot_end, start, end) for start, end in busy)
