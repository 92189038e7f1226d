"""Test fixtures."""

import copy
from datetime import date, datetime, time
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from carebook.config import BookingPolicy, Settings
from carebook.main import create_app
from carebook.services.availability_service import AvailabilityService, event_interval
from carebook.services.calendar_client import CalendarGateway
from carebook.services.date_policy import DatePolicy
from carebook.services.errors import UpstreamError
from carebook.services.reservation_service import ReservationRequest, ReservationService
from carebook.services.resource_registry import Caregiver, ResourceRegistry
from carebook.services.time_grid import build_catalog

MADRID = ZoneInfo("Europe/Madrid")

# Monday 22 September 2025, 08:00 in Madrid
NOW = datetime(2025, 9, 22, 8, 0, tzinfo=MADRID)
WEDNESDAY = date(2025, 9, 24)
SATURDAY = date(2025, 9, 27)

LUCIA_CAL = "lucia@group.calendar.google.com"
MARTA_CAL = "marta@group.calendar.google.com"


def make_event(day: date, start: str, end: str, event_id: str = "existing", **extra) -> dict:
    """Raw calendar event between two HH:MM wall-clock times in Madrid."""
    start_dt = datetime.combine(day, time.fromisoformat(start), tzinfo=MADRID)
    end_dt = datetime.combine(day, time.fromisoformat(end), tzinfo=MADRID)
    event = {
        "id": event_id,
        "status": "confirmed",
        "start": {"dateTime": start_dt.isoformat()},
        "end": {"dateTime": end_dt.isoformat()},
    }
    event.update(extra)
    return event


class FakeCalendar(CalendarGateway):
    """In-memory calendar implementing the gateway interface."""

    def __init__(self):
        self.events: dict[str, list[dict]] = {}
        self.list_calls: list[tuple[str, datetime, datetime, str | None]] = []
        self.inserted: list[tuple[str, dict]] = []
        self.deleted: list[tuple[str, str]] = []
        self.fail_on_insert: int | None = None
        self.list_error: Exception | None = None
        self._counter = 0

    def add(self, calendar_id: str, event: dict) -> None:
        self.events.setdefault(calendar_id, []).append(event)

    async def list_events(self, calendar_id, time_min, time_max, private_property=None):
        self.list_calls.append((calendar_id, time_min, time_max, private_property))
        if self.list_error is not None:
            raise self.list_error

        result = []
        for event in self.events.get(calendar_id, []):
            interval = event_interval(event, MADRID)
            if interval is not None:
                if time_max is not None and interval[0] >= time_max:
                    continue
                if time_min is not None and interval[1] <= time_min:
                    continue
            if private_property:
                key, value = private_property.split("=", 1)
                private = (event.get("extendedProperties") or {}).get("private") or {}
                if private.get(key) != value:
                    continue
            result.append(copy.deepcopy(event))
        return result

    async def insert_event(self, calendar_id, body):
        if self.fail_on_insert is not None and len(self.inserted) + 1 == self.fail_on_insert:
            raise UpstreamError("Calendar request timed out", retryable=True)
        self._counter += 1
        event = copy.deepcopy(body)
        event["id"] = f"evt-{self._counter}"
        self.add(calendar_id, event)
        self.inserted.append((calendar_id, copy.deepcopy(event)))
        return copy.deepcopy(event)

    async def delete_event(self, calendar_id, event_id):
        self.deleted.append((calendar_id, event_id))
        self.events[calendar_id] = [
            e for e in self.events.get(calendar_id, []) if e["id"] != event_id
        ]


class RecordingEmailService:
    """Collects confirmation emails instead of sending them."""

    is_configured = True

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    def send_reservation_confirmation(self, email):
        if self.fail:
            raise RuntimeError("SMTP connection refused")
        self.sent.append(email)
        return True


@pytest.fixture
def calendar():
    return FakeCalendar()


@pytest.fixture
def registry():
    return ResourceRegistry(
        [
            Caregiver(name="Lucía Gómez", calendar_id=LUCIA_CAL, email="lucia@example.com"),
            Caregiver(name="Marta", calendar_id=MARTA_CAL, email="marta@example.com"),
        ]
    )


@pytest.fixture
def policy():
    return BookingPolicy(
        tz=MADRID,
        catalog=build_catalog(),
        lead_workdays=0,
        hourly_rate=Decimal("18"),
        tax_rate=Decimal("0.10"),
        public_base_url="https://book.example.com",
    )


@pytest.fixture
def date_policy(policy):
    return DatePolicy(tz=MADRID, lead_workdays=policy.lead_workdays, clock=lambda: NOW)


@pytest.fixture
def availability(calendar, registry, policy, date_policy):
    return AvailabilityService(calendar, registry, policy, date_policy)


@pytest.fixture
def email_service():
    return RecordingEmailService()


@pytest.fixture
def reservations(calendar, registry, policy, date_policy, availability, email_service):
    return ReservationService(
        calendar, registry, policy, date_policy, availability, email_service=email_service
    )


@pytest.fixture
def reservation_request():
    """Valid request for two free morning slots on a Wednesday."""
    return ReservationRequest(
        first_name="Ana",
        last_name="Pérez",
        email="ana@example.com",
        phone="600000000",
        town="Madrid",
        address="Calle Mayor 1",
        caregiver="lucia gomez",
        date=WEDNESDAY.isoformat(),
        ranges=["10:00-11:00", "09:00-10:00"],
        services=["Companionship"],
        details="Ring twice",
    )


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        public_base_url="https://book.example.com",
        cors_origins="http://localhost:3000",
    )


@pytest.fixture
def app(settings, calendar, registry, date_policy, email_service):
    return create_app(
        settings=settings,
        calendar=calendar,
        registry=registry,
        date_policy=date_policy,
        email_service=email_service,
    )


@pytest_asyncio.fixture
async def client(app):
    """Create test HTTP client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def event_factory():
    """Build raw calendar events: ``event_factory(day, "09:30", "10:30")``."""
    return make_event
