from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

CENTS = Decimal("0.01")


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def duration_hours(start_time: datetime, end_time: datetime) -> float:
    """Length of [start, end) in hours, fractional"""
    delta = ensure_utc(end_time) - ensure_utc(start_time)
    return delta.total_seconds() / 3600


def to_money(amount: Union[Decimal, float, int, str]) -> Decimal:
    return Decimal(str(amount)).quantize(CENTS, rounding=ROUND_HALF_UP)


def compute_price(price_per_hour: Union[Decimal, float, int, str], hours: float) -> Decimal:
    """price = rate x hours, rounded once to cents"""
    return to_money(Decimal(str(price_per_hour)) * Decimal(str(hours)))
