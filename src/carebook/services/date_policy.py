"""Date policy: parsing, weekend rule and minimum lead time.

All "today" evaluations happen in the business timezone, never UTC or the
server's local zone.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable
from zoneinfo import ZoneInfo

from carebook.services.errors import PolicyRejectedError, ValidationError

_ISO_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_EU_RE = re.compile(r"^(\d{2})/(\d{2})/(\d{4})$")


def parse_date(value: str, field: str = "fecha") -> date:
    """Parse ``YYYY-MM-DD`` or ``DD/MM/YYYY``.

    Raises:
        ValidationError: If the text is empty, in another format, or names an
            impossible date such as 2025-02-30.
    """
    text = (value or "").strip()
    iso_match = _ISO_RE.match(text)
    eu_match = _EU_RE.match(text)
    if iso_match:
        year, month, day = (int(g) for g in iso_match.groups())
    elif eu_match:
        day, month, year = (int(g) for g in eu_match.groups())
    else:
        raise ValidationError(
            f"Invalid date '{value}', expected YYYY-MM-DD or DD/MM/YYYY", field=field
        )
    try:
        return date(year, month, day)
    except ValueError:
        raise ValidationError(f"Invalid date '{value}'", field=field)


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


@dataclass
class DatePolicy:
    """Weekend and lead-time gate for bookable dates.

    Args:
        tz: Business timezone
        lead_workdays: Minimum number of working days of notice (0 = same day)
        clock: Returns the current aware datetime; injectable for tests
    """

    tz: ZoneInfo
    lead_workdays: int = 0
    clock: Callable[[], datetime] | None = None

    def today(self) -> date:
        now = self.clock() if self.clock else datetime.now(self.tz)
        return now.astimezone(self.tz).date()

    def earliest_bookable_date(self, today: date | None = None) -> date:
        """First date satisfying the lead time, counting only weekdays."""
        current = today or self.today()
        counted = 0
        while counted < self.lead_workdays:
            current += timedelta(days=1)
            if not is_weekend(current):
                counted += 1
        return current

    def rejection(self, day: date) -> PolicyRejectedError | None:
        """Return the rule ``day`` violates, or None when it is bookable."""
        if is_weekend(day):
            return PolicyRejectedError(
                rule="weekend",
                message=f"{day.isoformat()} falls on a weekend",
            )
        earliest = self.earliest_bookable_date()
        if day < earliest:
            return PolicyRejectedError(
                rule="lead_time",
                message=f"Bookings require {self.lead_workdays} working days of notice",
                earliest=earliest.isoformat(),
            )
        return None

    def check(self, day: date) -> None:
        """Raise ``PolicyRejectedError`` if ``day`` cannot be booked."""
        error = self.rejection(day)
        if error is not None:
            raise error

    def is_bookable(self, day: date) -> bool:
        return self.rejection(day) is None
