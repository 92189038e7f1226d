"""Calendar gateway.

The booking services only need three calendar capabilities: list the events
in a time window, insert an event and delete an event. ``CalendarGateway``
captures exactly that; ``GoogleCalendarClient`` implements it on top of the
Google Calendar v3 REST API using an async httpx client and a service account.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any
from urllib.parse import quote

import httpx
from google.auth import exceptions as google_auth_exceptions
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import service_account

from carebook.config import Settings
from carebook.services.errors import UpstreamError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar"]
TOKEN_URI = "https://oauth2.googleapis.com/token"

# Statuses worth retrying later; everything else is a hard failure
RETRYABLE_STATUSES = {408, 429, 500, 502, 503, 504}


class CalendarGateway(ABC):
    """Narrow interface over an external calendar store."""

    @abstractmethod
    async def list_events(
        self,
        calendar_id: str,
        time_min: datetime | None,
        time_max: datetime | None,
        private_property: str | None = None,
    ) -> list[dict[str, Any]]:
        """List events intersecting ``[time_min, time_max]``.

        Args:
            calendar_id: Calendar to read
            time_min: Window start (aware), or None for no lower bound
            time_max: Window end (aware), or None for no upper bound
            private_property: Optional ``key=value`` filter on private
                extended properties

        Returns:
            Raw event resources, ordered by start time
        """

    @abstractmethod
    async def insert_event(self, calendar_id: str, body: dict[str, Any]) -> dict[str, Any]:
        """Create an event and return the stored resource (including ``id``)."""

    @abstractmethod
    async def delete_event(self, calendar_id: str, event_id: str) -> None:
        """Delete an event. Deleting an already deleted event is not an error."""


def load_credentials(settings: Settings) -> service_account.Credentials | None:
    """Build service account credentials from a key file or env variables.

    Returns None when nothing is configured; calls will then fail with an
    upstream error instead of preventing start-up.
    """
    if settings.google_application_credentials:
        return service_account.Credentials.from_service_account_file(
            settings.google_application_credentials, scopes=SCOPES
        )
    if settings.google_sa_client_email and settings.google_sa_private_key:
        return service_account.Credentials.from_service_account_info(
            {
                "client_email": settings.google_sa_client_email,
                "private_key": settings.private_key,
                "token_uri": TOKEN_URI,
            },
            scopes=SCOPES,
        )
    return None


class GoogleCalendarClient(CalendarGateway):
    """Google Calendar v3 implementation of ``CalendarGateway``."""

    def __init__(
        self,
        credentials: service_account.Credentials | None,
        http: httpx.AsyncClient,
        base_url: str = "https://www.googleapis.com/calendar/v3",
        timezone: str = "Europe/Madrid",
    ) -> None:
        """Initialize the client.

        Args:
            credentials: Service account credentials (None if unconfigured)
            http: Shared async HTTP client; its timeout bounds every call
            base_url: Calendar API root
            timezone: Time zone name sent with listings
        """
        self._credentials = credentials
        self._http = http
        self._base_url = base_url.rstrip("/")
        self._timezone = timezone
        self._refresh_lock = asyncio.Lock()

    async def _access_token(self) -> str:
        if self._credentials is None:
            raise UpstreamError("Calendar credentials are not configured", retryable=False)

        async with self._refresh_lock:
            if not self._credentials.valid:
                try:
                    # google-auth refreshes synchronously
                    await asyncio.to_thread(self._credentials.refresh, GoogleAuthRequest())
                except google_auth_exceptions.RefreshError as e:
                    logger.error(f"Calendar credential refresh rejected: {e}")
                    raise UpstreamError(
                        "Calendar authentication failed",
                        retryable=False,
                        provider_detail=str(e),
                    ) from e
                except google_auth_exceptions.TransportError as e:
                    logger.error(f"Calendar credential refresh unreachable: {e}")
                    raise UpstreamError(
                        "Calendar authentication unavailable",
                        retryable=True,
                        provider_detail=str(e),
                    ) from e
        return self._credentials.token

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        allow_statuses: tuple[int, ...] = (),
    ) -> httpx.Response:
        token = await self._access_token()
        url = f"{self._base_url}{path}"

        try:
            response = await self._http.request(
                method,
                url,
                params=params,
                json=json,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.TimeoutException as e:
            logger.error(f"Calendar {method} {path} timed out")
            raise UpstreamError("Calendar request timed out", retryable=True, provider_detail=str(e)) from e
        except httpx.TransportError as e:
            logger.error(f"Calendar {method} {path} transport error: {e}")
            raise UpstreamError("Calendar unreachable", retryable=True, provider_detail=str(e)) from e

        if response.is_success or response.status_code in allow_statuses:
            return response

        status = response.status_code
        logger.error(f"Calendar {method} {path} failed with {status}: {response.text}")
        if status in (401, 403):
            message = "Calendar authentication failed"
        elif status == 404:
            message = "Calendar not found"
        elif status in RETRYABLE_STATUSES:
            message = "Calendar temporarily unavailable"
        else:
            message = "Calendar request rejected"
        raise UpstreamError(
            message,
            retryable=status in RETRYABLE_STATUSES,
            provider_status=status,
            provider_detail=response.text,
        )

    @staticmethod
    def _events_path(calendar_id: str, event_id: str | None = None) -> str:
        path = f"/calendars/{quote(calendar_id, safe='')}/events"
        if event_id:
            path += f"/{quote(event_id, safe='')}"
        return path

    async def list_events(
        self,
        calendar_id: str,
        time_min: datetime | None,
        time_max: datetime | None,
        private_property: str | None = None,
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {
            "singleEvents": "true",
            "orderBy": "startTime",
            "timeZone": self._timezone,
            "maxResults": 250,
        }
        if time_min is not None:
            params["timeMin"] = time_min.isoformat()
        if time_max is not None:
            params["timeMax"] = time_max.isoformat()
        if private_property:
            params["privateExtendedProperty"] = private_property

        events: list[dict[str, Any]] = []
        while True:
            response = await self._request("GET", self._events_path(calendar_id), params=params)
            data = response.json()
            events.extend(data.get("items", []))
            page_token = data.get("nextPageToken")
            if not page_token:
                return events
            params["pageToken"] = page_token

    async def insert_event(self, calendar_id: str, body: dict[str, Any]) -> dict[str, Any]:
        response = await self._request("POST", self._events_path(calendar_id), json=body)
        return response.json()

    async def delete_event(self, calendar_id: str, event_id: str) -> None:
        # 410 Gone: already deleted
        await self._request(
            "DELETE",
            self._events_path(calendar_id, event_id),
            allow_statuses=(404, 410),
        )
