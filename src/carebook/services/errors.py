"""Error taxonomy for booking operations.

Every failure raised by the booking services is a ``BookingError`` carrying a
stable machine-readable ``code``. The HTTP layer maps each subclass to a
status code; callers never need to inspect messages.
"""

from typing import Any


class BookingError(Exception):
    """Base exception for booking service errors."""

    status_code = 500

    def __init__(
        self,
        code: str,
        message: str,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the public error envelope."""
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.suggestion:
            error["suggestion"] = self.suggestion
        if self.details:
            error["details"] = self.details
        return {"error": error}


class ValidationError(BookingError):
    """Malformed or missing input. Always raised before any calendar call."""

    status_code = 400

    def __init__(self, message: str, field: str | None = None, code: str = "validation_error"):
        super().__init__(
            code=code,
            message=message,
            details={"field": field} if field else None,
        )
        self.field = field


class PolicyRejectedError(BookingError):
    """Well-formed date that violates the weekend or lead-time rule."""

    status_code = 422

    def __init__(self, rule: str, message: str, earliest: str | None = None):
        details: dict[str, Any] = {"rule": rule}
        if earliest:
            details["earliest_bookable_date"] = earliest
        super().__init__(
            code="date_not_bookable",
            message=message,
            suggestion="Choose a different date",
            details=details,
        )
        self.rule = rule


class NotFoundError(BookingError):
    """Unknown caregiver or reservation."""

    status_code = 404


class ConflictError(BookingError):
    """Requested ranges collide with existing calendar events."""

    status_code = 409

    def __init__(self, ranges: list[str]):
        super().__init__(
            code="conflict",
            message="Some of the requested slots are no longer available",
            suggestion="Refresh availability and pick other slots",
            details={"slots": list(ranges)},
        )
        self.ranges = list(ranges)


class UpstreamError(BookingError):
    """The external calendar call failed.

    ``retryable`` is advisory for the caller; nothing in this package retries.
    ``provider_detail`` is for server-side logs only and is never serialized.
    """

    def __init__(
        self,
        message: str,
        retryable: bool,
        provider_status: int | None = None,
        provider_detail: str | None = None,
    ):
        super().__init__(
            code="upstream_unavailable" if retryable else "upstream_error",
            message=message,
        )
        self.retryable = retryable
        self.provider_status = provider_status
        self.provider_detail = provider_detail

    @property
    def status_code(self) -> int:  # type: ignore[override]
        return 503 if self.retryable else 502
