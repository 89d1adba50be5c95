"""Small numeric helpers shared by task scoring and health metrics."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal


def round_half_up(value: float, digits: int = 0) -> float:
    """Round like JavaScript's Math.round: halves go up, not to even."""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def days_since(then: datetime, now: datetime | None = None) -> int:
    """Whole days elapsed between then and now. Naive datetimes are taken as UTC."""
    now = now or datetime.now(timezone.utc)
    elapsed = _as_utc(now) - _as_utc(then)
    return max(elapsed.days, 0)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
