"""
Shared numeric and clock helpers for the service layer.

Rounding uses Decimal with ROUND_HALF_UP so reported values are stable across
platforms and match what a person computing by hand would write down.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Optional


def round_half_up(value: float, places: int) -> float:
    """Round a finite float to `places` decimals, halves away from zero."""
    d = Decimal(str(value))
    with localcontext() as ctx:
        # Enough digits for the integer part plus the requested decimals
        ctx.prec = max(28, d.adjusted() + places + 2)
        return float(d.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP))


def is_finite_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(moment: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def hours_between(start: datetime, end: Optional[datetime] = None) -> float:
    """Signed hours from `start` to `end` (default: now)."""
    end = utc_now() if end is None else ensure_utc(end)
    return (end - ensure_utc(start)).total_seconds() / 3600.0
