"""Tests for the daily slot catalog."""

from datetime import date, datetime, time
from zoneinfo import ZoneInfo

import pytest

from carebook.services.errors import ValidationError
from carebook.services.time_grid import TimeRange, build_catalog, overlaps, validate_blocks

MADRID = ZoneInfo("Europe/Madrid")


class TestBuildCatalog:
    """Tests for catalog generation."""

    def test_default_catalog(self):
        """Test default blocks skip lunch and evenings."""
        labels = [r.label for r in build_catalog()]

        assert labels == [
            "09:00-10:00",
            "10:00-11:00",
            "11:00-12:00",
            "12:00-13:00",
            "13:00-14:00",
            "16:00-17:00",
            "17:00-18:00",
            "18:00-19:00",
            "19:00-20:00",
        ]

    def test_configurable_blocks(self):
        """Test afternoon block starting at 17:00."""
        labels = [r.label for r in build_catalog(((9, 11), (17, 19)))]

        assert labels == ["09:00-10:00", "10:00-11:00", "17:00-18:00", "18:00-19:00"]

    def test_deterministic(self):
        """Test repeated builds are identical."""
        assert build_catalog() == build_catalog()

    @pytest.mark.parametrize(
        "blocks",
        [
            ((14, 9),),
            ((9, 9),),
            ((9, 25),),
            ((9, 14), (13, 16)),
            (),
        ],
    )
    def test_invalid_blocks(self, blocks):
        """Test invalid block definitions are rejected."""
        with pytest.raises(ValueError):
            validate_blocks(blocks)


class TestTimeRange:
    """Tests for TimeRange parsing and conversion."""

    def test_parse(self):
        """Test parsing a well-formed label."""
        slot = TimeRange.parse("09:00-10:00")

        assert slot.start == time(9)
        assert slot.end == time(10)
        assert slot.label == "09:00-10:00"

    @pytest.mark.parametrize("label", ["", "9-10", "09:00", "10:00-09:00", "25:00-26:00", "09:00-09:00"])
    def test_parse_invalid(self, label):
        """Test malformed labels raise a validation error."""
        with pytest.raises(ValidationError):
            TimeRange.parse(label)

    def test_on_date_is_local_wall_clock(self):
        """Test conversion keeps wall-clock hours in the business timezone."""
        start, end = TimeRange.parse("09:00-10:00").on(date(2025, 9, 24), MADRID)

        assert start == datetime(2025, 9, 24, 9, 0, tzinfo=MADRID)
        assert end == datetime(2025, 9, 24, 10, 0, tzinfo=MADRID)
        # CEST in September
        assert start.utcoffset().total_seconds() == 2 * 3600

    def test_catalog_membership(self):
        """Test parsed ranges compare equal to catalog entries."""
        assert TimeRange.parse("16:00-17:00") in build_catalog()
        assert TimeRange.parse("14:00-15:00") not in build_catalog()


class TestOverlaps:
    """Tests for the half-open overlap predicate."""

    def test_adjacent_ranges_do_not_overlap(self):
        assert not overlaps(9, 10, 10, 11)
        assert not overlaps(10, 11, 9, 10)

    def test_partial_overlap(self):
        assert overlaps(9, 10, 9.5, 10.5)
        assert overlaps(10, 11, 9.5, 10.5)

    def test_containment(self):
        assert overlaps(9, 10, 8, 12)
        assert overlaps(8, 12, 9, 10)

    def test_identical(self):
        assert overlaps(9, 10, 9, 10)
