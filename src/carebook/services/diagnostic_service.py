"""Diagnostic service for booking service health checks."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from carebook.config import BookingPolicy, Settings
from carebook.services.calendar_client import CalendarGateway
from carebook.services.email_service import EmailService
from carebook.services.errors import BookingError, UpstreamError
from carebook.services.resource_registry import ResourceRegistry

logger = logging.getLogger(__name__)


@dataclass
class DiagnosticCheck:
    """A single diagnostic check result."""

    name: str
    status: str  # "ok", "warning", "error"
    message: str
    suggestion: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "name": self.name,
            "status": self.status,
            "message": self.message,
            "suggestion": self.suggestion,
            "details": self.details,
        }


@dataclass
class DiagnosticResult:
    """Complete diagnostic result."""

    overall_health: str  # "healthy", "degraded", "critical"
    checks: list[DiagnosticCheck] = field(default_factory=list)
    configuration: dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "overall_health": self.overall_health,
            "checks": [c.to_dict() for c in self.checks],
            "configuration": self.configuration,
            "timestamp": self.timestamp,
        }


async def check_calendar_access(calendar: CalendarGateway, calendar_id: str) -> None:
    """Authenticate and read a one-minute window; raises on any failure."""
    now = datetime.now(timezone.utc)
    await calendar.list_events(calendar_id, now, now + timedelta(minutes=1))


class DiagnosticService:
    """Service for diagnosing booking service health."""

    def __init__(
        self,
        settings: Settings,
        policy: BookingPolicy,
        registry: ResourceRegistry,
        calendar: CalendarGateway,
        email_service: EmailService | None = None,
    ):
        self.settings = settings
        self.policy = policy
        self.registry = registry
        self.calendar = calendar
        self.email_service = email_service
        self.checks: list[DiagnosticCheck] = []

    async def check_liveness(self) -> DiagnosticCheck:
        """Real round trip against the first caregiver calendar.

        Credential misconfiguration is the most common failure, so this never
        reports ok without reading from the calendar.
        """
        caregivers = list(self.registry)
        if not caregivers:
            return DiagnosticCheck(
                name="calendar",
                status="error",
                message="No caregivers configured",
                suggestion="Set CAREBOOK_CAREGIVERS_FILE or CAREBOOK_CAREGIVERS",
            )
        try:
            await check_calendar_access(self.calendar, caregivers[0].calendar_id)
        except BookingError as e:
            return DiagnosticCheck(
                name="calendar",
                status="error",
                message=e.message,
                details={"retryable": getattr(e, "retryable", False)},
            )
        return DiagnosticCheck(name="calendar", status="ok", message="Calendar reachable")

    async def run_diagnostics(self) -> DiagnosticResult:
        """Run all diagnostic checks."""
        logger.info("Starting diagnostic checks")
        self.checks = []

        self._check_credentials()
        self._check_caregivers()
        await self._check_calendars()
        self._check_mirrors()
        self._check_email_configuration()
        self._check_public_base_url()

        critical_checks = [c for c in self.checks if c.status == "error"]
        warning_checks = [c for c in self.checks if c.status == "warning"]

        if critical_checks:
            overall_health = "critical"
        elif warning_checks:
            overall_health = "degraded"
        else:
            overall_health = "healthy"

        # Build safe configuration (redact secrets)
        safe_config = {
            "timezone": self.settings.timezone,
            "lead_workdays": self.policy.lead_workdays,
            "hourly_rate": str(self.policy.hourly_rate),
            "tax_rate": str(self.policy.tax_rate),
            "catalog": [r.label for r in self.policy.catalog],
            "caregivers": self.registry.names(),
            "mirror_calendars": len(self.policy.mirror_calendar_ids),
            "credentials_configured": self.settings.credentials_configured,
            "invite_attendees": self.policy.invite_attendees,
        }

        return DiagnosticResult(
            overall_health=overall_health,
            checks=self.checks,
            configuration=safe_config,
        )

    def _check_credentials(self) -> None:
        if self.settings.credentials_configured:
            source = "key file" if self.settings.google_application_credentials else "environment"
            self.checks.append(
                DiagnosticCheck(
                    name="credentials",
                    status="ok",
                    message=f"Service account credentials loaded from {source}",
                )
            )
        else:
            self.checks.append(
                DiagnosticCheck(
                    name="credentials",
                    status="error",
                    message="No Google service account credentials configured",
                    suggestion="Set GOOGLE_APPLICATION_CREDENTIALS or GOOGLE_SA_CLIENT_EMAIL and GOOGLE_SA_PRIVATE_KEY",
                )
            )

    def _check_caregivers(self) -> None:
        if len(self.registry):
            self.checks.append(
                DiagnosticCheck(
                    name="caregivers",
                    status="ok",
                    message=f"{len(self.registry)} caregiver(s) configured",
                    details={"names": self.registry.names()},
                )
            )
        else:
            self.checks.append(
                DiagnosticCheck(
                    name="caregivers",
                    status="error",
                    message="No caregivers configured",
                    suggestion="Set CAREBOOK_CAREGIVERS_FILE or CAREBOOK_CAREGIVERS",
                )
            )

    async def _check_calendars(self) -> None:
        """Read from every caregiver calendar."""
        for caregiver in self.registry:
            try:
                await check_calendar_access(self.calendar, caregiver.calendar_id)
            except UpstreamError as e:
                logger.error(f"Calendar check failed for {caregiver.name}: {e.message}")
                self.checks.append(
                    DiagnosticCheck(
                        name=f"calendar:{caregiver.name}",
                        status="error",
                        message=e.message,
                        suggestion=(
                            "Retry later" if e.retryable
                            else "Share the calendar with the service account and check its id"
                        ),
                        details={"retryable": e.retryable, "provider_status": e.provider_status},
                    )
                )
            else:
                self.checks.append(
                    DiagnosticCheck(
                        name=f"calendar:{caregiver.name}",
                        status="ok",
                        message="Calendar readable",
                    )
                )

    def _check_mirrors(self) -> None:
        own = self.registry.calendar_ids()
        ignored = [c for c in self.policy.mirror_calendar_ids if c in own]
        if ignored:
            self.checks.append(
                DiagnosticCheck(
                    name="mirrors",
                    status="warning",
                    message=f"{len(ignored)} mirror calendar(s) are caregiver calendars and will be ignored",
                    suggestion="Remove caregiver calendars from CAREBOOK_MIRROR_CALENDAR_IDS",
                )
            )

    def _check_email_configuration(self) -> None:
        if self.email_service is not None and self.email_service.is_configured:
            self.checks.append(
                DiagnosticCheck(name="email", status="ok", message="SMTP configured")
            )
        else:
            self.checks.append(
                DiagnosticCheck(
                    name="email",
                    status="warning",
                    message="Confirmation emails disabled or SMTP not configured",
                    suggestion="Set SMTP_HOST, SMTP_USER and SMTP_PASS",
                )
            )

    def _check_public_base_url(self) -> None:
        if not self.policy.public_base_url:
            self.checks.append(
                DiagnosticCheck(
                    name="public_base_url",
                    status="warning",
                    message="PUBLIC_BASE_URL not set; cancellation links will be relative",
                )
            )
