from datetime import datetime, timedelta, timezone
from decimal import Decimal

from app.utils.pricing import compute_price, duration_hours, ensure_utc, to_money


def test_compute_price():
    assert compute_price(Decimal("10.00"), 2.5) == Decimal("25.00")
    assert compute_price("3.33", 0.5) == Decimal("1.67")
    assert compute_price(0, 4) == Decimal("0.00")


def test_to_money_rounds_half_up():
    assert to_money("0.005") == Decimal("0.01")
    assert to_money(2) == Decimal("2.00")


def test_duration_hours_is_fractional():
    start = datetime(2026, 5, 1, 9, 0, tzinfo=timezone.utc)
    assert duration_hours(start, start + timedelta(minutes=90)) == 1.5


def test_ensure_utc():
    naive = datetime(2026, 5, 1, 9, 0)
    assert ensure_utc(naive) == datetime(2026, 5, 1, 9, 0, tzinfo=timezone.utc)

    plus_two = datetime(2026, 5, 1, 11, 0, tzinfo=timezone(timedelta(hours=2)))
    assert ensure_utc(plus_two).hour == 9
    assert ensure_utc(plus_two).tzinfo == timezone.utc
