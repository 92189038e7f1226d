"""Configuration settings for the Carebook booking service.

Loads settings from environment variables (prefix ``CAREBOOK_``) and an
optional ``.env`` file. Google and SMTP variables keep their conventional
unprefixed names.
"""

from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from zoneinfo import ZoneInfo

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

from carebook.services.time_grid import TimeRange, build_catalog, validate_blocks


def _env(name: str, *aliases: str):
    return AliasChoices(name, f"CAREBOOK_{name.upper()}", *aliases)


class Settings(BaseSettings):
    """Booking service configuration."""

    # Business rules
    timezone: str = "Europe/Madrid"
    lead_workdays: int = 0
    hourly_rate: Decimal = Decimal("18")
    tax_rate: Decimal = Decimal("0.10")
    currency: str = "EUR"

    # Daily grid (hours, end exclusive)
    morning_start: int = 9
    morning_end: int = 14
    afternoon_start: int = 16
    afternoon_end: int = 20

    # Caregivers: inline JSON wins over the file
    caregivers_file: str = "caregivers.json"
    caregivers: str = ""

    # Extra calendars that receive a copy of every booking (comma-separated)
    mirror_calendar_ids: str = ""

    # Google Calendar
    google_application_credentials: str = Field(
        default="", validation_alias=_env("google_application_credentials", "GOOGLE_APPLICATION_CREDENTIALS")
    )
    google_sa_client_email: str = Field(
        default="", validation_alias=_env("google_sa_client_email", "GOOGLE_SA_CLIENT_EMAIL")
    )
    google_sa_private_key: str = Field(
        default="", validation_alias=_env("google_sa_private_key", "GOOGLE_SA_PRIVATE_KEY")
    )
    calendar_api_url: str = "https://www.googleapis.com/calendar/v3"
    calendar_timeout: float = 10.0
    invite_attendees: bool = False

    # Public links
    public_base_url: str = Field(default="", validation_alias=_env("public_base_url", "PUBLIC_BASE_URL"))

    # CORS
    cors_origins: str = "*"  # Comma-separated list

    # Email notifications
    notifications_enabled: bool = True
    smtp_host: str = Field(default="", validation_alias=_env("smtp_host", "SMTP_HOST"))
    smtp_port: int = Field(default=587, validation_alias=_env("smtp_port", "SMTP_PORT"))
    smtp_user: str = Field(default="", validation_alias=_env("smtp_user", "SMTP_USER"))
    smtp_pass: str = Field(default="", validation_alias=_env("smtp_pass", "SMTP_PASS"))
    smtp_from: str = Field(default="", validation_alias=_env("smtp_from", "SMTP_FROM"))
    smtp_from_name: str = Field(default="Carebook", validation_alias=_env("smtp_from_name", "SMTP_FROM_NAME"))

    # Server
    host: str = "127.0.0.1"
    port: int = Field(default=3000, validation_alias=_env("port", "PORT"))

    # Logging
    log_level: str = Field(default="INFO", validation_alias=_env("log_level", "LOG_LEVEL"))

    class Config:
        env_file = ".env"
        env_prefix = "CAREBOOK_"
        extra = "ignore"
        populate_by_name = True

    @property
    def blocks(self) -> tuple[tuple[int, int], ...]:
        return (
            (self.morning_start, self.morning_end),
            (self.afternoon_start, self.afternoon_end),
        )

    @property
    def mirror_calendars(self) -> list[str]:
        return [c.strip() for c in self.mirror_calendar_ids.split(",") if c.strip()]

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def private_key(self) -> str:
        """Service account private key with escaped newlines restored."""
        return self.google_sa_private_key.replace("\\n", "\n")

    @property
    def credentials_configured(self) -> bool:
        return bool(
            self.google_application_credentials
            or (self.google_sa_client_email and self.google_sa_private_key)
        )


@dataclass(frozen=True)
class BookingPolicy:
    """Business rules snapshot built once at start-up and passed to services."""

    tz: ZoneInfo
    catalog: tuple[TimeRange, ...]
    lead_workdays: int = 0
    hourly_rate: Decimal = Decimal("18")
    tax_rate: Decimal = Decimal("0.10")
    currency: str = "EUR"
    mirror_calendar_ids: tuple[str, ...] = ()
    invite_attendees: bool = False
    public_base_url: str = ""

    @classmethod
    def from_settings(cls, settings: Settings) -> "BookingPolicy":
        return cls(
            tz=ZoneInfo(settings.timezone),
            catalog=build_catalog(validate_blocks(settings.blocks)),
            lead_workdays=settings.lead_workdays,
            hourly_rate=settings.hourly_rate,
            tax_rate=settings.tax_rate,
            currency=settings.currency,
            mirror_calendar_ids=tuple(settings.mirror_calendars),
            invite_attendees=settings.invite_attendees,
            public_base_url=settings.public_base_url.rstrip("/"),
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def caregivers_path(settings: Settings) -> Path:
    return Path(settings.caregivers_file)
