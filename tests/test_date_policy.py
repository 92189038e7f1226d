"""Tests for date parsing, the weekend rule and the lead time."""

from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from carebook.services.date_policy import DatePolicy, is_weekend, parse_date
from carebook.services.errors import PolicyRejectedError, ValidationError

MADRID = ZoneInfo("Europe/Madrid")
MONDAY = date(2025, 9, 22)


def policy_at(now: datetime, lead_workdays: int = 0) -> DatePolicy:
    return DatePolicy(tz=MADRID, lead_workdays=lead_workdays, clock=lambda: now)


class TestParseDate:
    """Tests for date parsing."""

    def test_iso_format(self):
        assert parse_date("2025-09-24") == date(2025, 9, 24)

    def test_day_month_year_format(self):
        assert parse_date("24/09/2025") == date(2025, 9, 24)

    def test_surrounding_whitespace(self):
        assert parse_date(" 2025-09-24 ") == date(2025, 9, 24)

    @pytest.mark.parametrize("value", ["", "tomorrow", "2025/09/24", "09-24-2025", "2025-9-24", "2025-02-30"])
    def test_invalid(self, value):
        """Test unparseable and impossible dates are validation errors."""
        with pytest.raises(ValidationError) as exc_info:
            parse_date(value)

        assert exc_info.value.code == "validation_error"
        assert exc_info.value.field == "fecha"


class TestWeekend:
    """Tests for the weekend rule."""

    def test_weekdays(self):
        assert not any(is_weekend(date(2025, 9, d)) for d in range(22, 27))

    def test_weekend_days(self):
        assert is_weekend(date(2025, 9, 27))
        assert is_weekend(date(2025, 9, 28))

    def test_weekend_rejected_even_without_lead_time(self):
        policy = policy_at(datetime(2025, 9, 22, 8, tzinfo=MADRID))

        with pytest.raises(PolicyRejectedError) as exc_info:
            policy.check(date(2025, 9, 27))

        assert exc_info.value.rule == "weekend"
        assert exc_info.value.status_code == 422


class TestLeadTime:
    """Tests for the minimum lead time."""

    def test_five_workdays_from_monday_is_next_monday(self):
        """Test the weekend is skipped when counting working days."""
        policy = policy_at(datetime(2025, 9, 22, 8, tzinfo=MADRID), lead_workdays=5)

        assert policy.earliest_bookable_date() == date(2025, 9, 29)
        assert not policy.is_bookable(date(2025, 9, 26))
        assert policy.is_bookable(date(2025, 9, 29))

    def test_zero_allows_same_day(self):
        policy = policy_at(datetime(2025, 9, 22, 8, tzinfo=MADRID))

        assert policy.earliest_bookable_date() == MONDAY
        assert policy.is_bookable(MONDAY)

    def test_one_workday_from_friday(self):
        policy = policy_at(datetime(2025, 9, 26, 8, tzinfo=MADRID), lead_workdays=1)

        assert policy.earliest_bookable_date() == date(2025, 9, 29)

    def test_lead_time_rejection_names_earliest_date(self):
        policy = policy_at(datetime(2025, 9, 22, 8, tzinfo=MADRID), lead_workdays=2)

        with pytest.raises(PolicyRejectedError) as exc_info:
            policy.check(date(2025, 9, 23))

        assert exc_info.value.rule == "lead_time"
        assert exc_info.value.details["earliest_bookable_date"] == "2025-09-24"

    def test_past_dates_rejected(self):
        policy = policy_at(datetime(2025, 9, 22, 8, tzinfo=MADRID))

        assert not policy.is_bookable(date(2025, 9, 19))

    def test_today_uses_business_timezone(self):
        """Test 23:30 UTC on Sunday is already Monday in Madrid."""
        utc_now = datetime(2025, 9, 21, 23, 30, tzinfo=ZoneInfo("UTC"))
        policy = policy_at(utc_now)

        assert policy.today() == MONDAY
        assert policy.is_bookable(MONDAY)
