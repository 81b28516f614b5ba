"""Checks for amounts stored in ``Numeric(10, 2)`` columns."""

from __future__ import annotations

from decimal import Decimal

from app.core.errors import InvalidRequest

CENT = Decimal("0.01")
MAX_AMOUNT = Decimal("99999999.99")


def ensure_storable(value: Decimal, *, field: str, label: str) -> Decimal:
    """Reject amounts the money columns would round or overflow."""
    if value > MAX_AMOUNT:
        raise InvalidRequest(f"{label} cannot exceed {MAX_AMOUNT}", field=field)
    if value != value.quantize(CENT):
        raise InvalidRequest(f"{label} can have at most 2 decimal places", field=field)
    return value
