"""Stay-date helpers."""

from datetime import date, timedelta

from .models import DatePair


def generate_date_pairs(base_check_in: date, base_check_out: date, day_range: int) -> list[DatePair]:
    """
    Generate consecutive date pairs that keep the base stay length.

    Args:
        base_check_in: First check-in date
        base_check_out: First check-out date
        day_range: Number of consecutive pairs

    Returns:
        List of DatePair, pair i starting base_check_in + i days
    """
    if day_range < 1:
        raise ValueError(f"day_range must be at least 1, got {day_range}")

    stay = base_check_out - base_check_in
    pairs = []
    for offset in range(day_range):
        check_in = base_check_in + timedelta(days=offset)
        pairs.append(DatePair(check_in, check_in + stay))
    return pairs
