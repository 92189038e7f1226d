"""Daily catalog of bookable hour ranges.

The catalog is a pure function of configuration: a list of ``(start_hour,
end_hour)`` blocks, each expanded into whole-hour ranges. Catalog order is the
block order followed by hour order, and is preserved everywhere a grid is
returned.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from carebook.services.errors import ValidationError

DEFAULT_BLOCKS: tuple[tuple[int, int], ...] = ((9, 14), (16, 20))

_RANGE_RE = re.compile(r"^(\d{2}):(\d{2})-(\d{2}):(\d{2})$")


def overlaps(a_start, a_end, b_start, b_end) -> bool:
    """Strict half-open overlap test for ``[a_start, a_end)`` and ``[b_start, b_end)``."""
    return a_start < b_end and b_start < a_end


@dataclass(frozen=True, order=True)
class TimeRange:
    """Half-open wall-clock interval on a single civil date."""

    start: time
    end: time

    @classmethod
    def parse(cls, label: str) -> "TimeRange":
        """Parse an ``HH:MM-HH:MM`` label.

        Raises:
            ValidationError: If the label is malformed or empty.
        """
        match = _RANGE_RE.match(label.strip()) if isinstance(label, str) else None
        if not match:
            raise ValidationError(f"Invalid time range '{label}', expected HH:MM-HH:MM", field="ranges")
        sh, sm, eh, em = (int(g) for g in match.groups())
        try:
            start = time(sh, sm)
            end = time(eh, em) if (eh, em) != (24, 0) else time.max
        except ValueError:
            raise ValidationError(f"Invalid time range '{label}'", field="ranges")
        if start >= end:
            raise ValidationError(f"Time range '{label}' ends before it starts", field="ranges")
        return cls(start=start, end=end)

    @property
    def label(self) -> str:
        end = "24:00" if self.end == time.max else self.end.strftime("%H:%M")
        return f"{self.start.strftime('%H:%M')}-{end}"

    def on(self, day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
        """Aware ``(start, end)`` instants of this range on ``day`` in ``tz``."""
        return (
            datetime.combine(day, self.start, tzinfo=tz),
            datetime.combine(day, self.end, tzinfo=tz),
        )

    def __str__(self) -> str:
        return self.label


def validate_blocks(blocks) -> tuple[tuple[int, int], ...]:
    """Check block hours are sane, ordered and non-overlapping.

    Raises:
        ValueError: On any invalid block.
    """
    checked = []
    previous_end = -1
    for start_hour, end_hour in blocks:
        if not (0 <= start_hour < end_hour <= 24):
            raise ValueError(f"Invalid block {start_hour}-{end_hour}")
        if start_hour < previous_end:
            raise ValueError(f"Block {start_hour}-{end_hour} overlaps the previous block")
        previous_end = end_hour
        checked.append((int(start_hour), int(end_hour)))
    if not checked:
        raise ValueError("At least one block is required")
    return tuple(checked)


def build_catalog(blocks=DEFAULT_BLOCKS) -> tuple[TimeRange, ...]:
    """Expand hour blocks into the ordered catalog of one-hour ranges."""
    ranges = []
    for start_hour, end_hour in validate_blocks(blocks):
        for hour in range(start_hour, end_hour):
            end = time(hour + 1) if hour + 1 < 24 else time.max
            ranges.append(TimeRange(start=time(hour), end=end))
    return tuple(ranges)
