"""Conversion between major currency units and the stored minor units."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MINOR_UNITS_PER_MAJOR = 100
_CENT = Decimal("0.01")


def to_minor_units(amount: Decimal | int | float | str) -> int:
    """Convert a major-unit amount (e.g. ``25.99``) to minor units (``2599``)."""
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"invalid amount: {amount!r}") from exc
    if not value.is_finite():
        raise ValueError(f"invalid amount: {amount!r}")
    return int((value * MINOR_UNITS_PER_MAJOR).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_major_units(amount_cents: int) -> Decimal:
    return (Decimal(amount_cents) / MINOR_UNITS_PER_MAJOR).quantize(_CENT)


def normalize_currency(currency: str | None, default: str) -> str:
    return (currency or default).strip().lower()
