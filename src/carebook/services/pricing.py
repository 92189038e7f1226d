"""Price breakdown for a number of booked hours."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

CENTS = Decimal("0.01")


def money(value: Decimal) -> float:
    """Round to cents for presentation only."""
    return float(value.quantize(CENTS, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class PriceBreakdown:
    """Unrounded price components; round with ``money`` when presenting."""

    hours: int
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    currency: str = "EUR"

    def to_dict(self) -> dict[str, Any]:
        return {
            "hours": self.hours,
            "subtotal": money(self.subtotal),
            "tax": money(self.tax),
            "total": money(self.total),
            "currency": self.currency,
        }

    def describe(self) -> str:
        """One-line human summary used in event descriptions and emails."""
        return (
            f"{money(self.subtotal):.2f} {self.currency} + tax ({money(self.tax):.2f}) "
            f"= {money(self.total):.2f} {self.currency}"
        )


def calculate_price(
    hours: int,
    hourly_rate: Decimal,
    tax_rate: Decimal,
    currency: str = "EUR",
) -> PriceBreakdown:
    """Compute subtotal, tax and total for ``hours`` booked hours."""
    if hours < 0:
        raise ValueError("hours must be non-negative")
    subtotal = Decimal(str(hourly_rate)) * hours
    tax = subtotal * Decimal(str(tax_rate))
    return PriceBreakdown(
        hours=hours,
        subtotal=subtotal,
        tax=tax,
        total=subtotal + tax,
        currency=currency,
    )
