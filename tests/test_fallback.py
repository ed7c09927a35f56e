"""Tests for the synthetic fallback-rate generator."""

import random
from datetime import date

from rate_monitor.errors import FailureReason
from rate_monitor.fallback import (
    days_until_arrival,
    draw_variance,
    fallback_base_price,
    fallback_source,
    generate_fallback_rates,
)
from rate_monitor.models import DEFAULT_SITE_ADJUSTMENTS, DatePair, FallbackPolicy, MonitorConfig, PriceBounds

NEW_YEAR = date(2025, 1, 1)
FRIDAY_IN_JUNE = date(2025, 6, 6)
THURSDAY_IN_JUNE = date(2025, 6, 5)


def test_base_price_is_deterministic():
    first = fallback_base_price("Expedia", FRIDAY_IN_JUNE, NEW_YEAR, site_adjustments=DEFAULT_SITE_ADJUSTMENTS)
    second = fallback_base_price("Expedia", FRIDAY_IN_JUNE, NEW_YEAR, site_adjustments=DEFAULT_SITE_ADJUSTMENTS)
    # 280 - 30 (early booking) + 40 (weekend) + 50 (peak season)
    assert first == second == 340


def test_base_price_applies_site_adjustment():
    price = fallback_base_price("Booking.com", FRIDAY_IN_JUNE, NEW_YEAR, site_adjustments=DEFAULT_SITE_ADJUSTMENTS)
    assert price == 355


def test_weekend_premium():
    friday = fallback_base_price("Expedia", FRIDAY_IN_JUNE, NEW_YEAR)
    thursday = fallback_base_price("Expedia", THURSDAY_IN_JUNE, NEW_YEAR)
    assert friday - thursday == 40


def test_booking_window_premiums():
    tuesday = date(2025, 6, 3)
    assert fallback_base_price("Expedia", tuesday, date(2025, 6, 1)) == 380
    assert fallback_base_price("Expedia", tuesday, date(2025, 5, 10)) == 355


def test_low_season_and_floor():
    december = date(2025, 12, 2)
    assert fallback_base_price("Priceline", december, NEW_YEAR, site_adjustments=DEFAULT_SITE_ADJUSTMENTS) == 200
    cheap = FallbackPolicy(base_price=150)
    assert fallback_base_price("Expedia", december, NEW_YEAR, policy=cheap) == 199


def test_variance_stays_in_range():
    rng = random.Random(3)
    draws = [draw_variance(rng, 10) for _ in range(500)]
    assert min(draws) >= -10
    assert max(draws) <= 9
    assert draw_variance(rng, 0) == 0


def test_source_tag_names_reason_and_window():
    assert days_until_arrival(FRIDAY_IN_JUNE, NEW_YEAR) == 156
    assert fallback_source(FailureReason.SITE_BLOCKED, 156) == "fallback-blocked-156days"


def test_generate_fallback_rates_shape():
    pair = DatePair(FRIDAY_IN_JUNE, date(2025, 6, 7))
    rates = generate_fallback_rates(
        "Expedia", pair, 2, NEW_YEAR, FailureReason.EXTRACTION_MISS, MonitorConfig(), random.Random(42)
    )

    assert [r.room_name for r in rates] == [
        "Standard Room, 1 King Bed",
        "Standard Room, 1 Queen Bed",
        "Deluxe Room",
    ]
    assert all(r.is_fallback for r in rates)
    assert all(r.source == "fallback-no-rates-156days" for r in rates)
    assert all(r.date_sequence == 2 and r.check_in == FRIDAY_IN_JUNE for r in rates)
    assert all(r.currency == "GBP" for r in rates)

    # One shared variance draw keeps the room spacing fixed
    king, queen, deluxe = (r.price for r in rates)
    assert queen - king == 10
    assert deluxe - king == 60
    assert 330 <= king <= 349


def test_generate_fallback_rates_is_reproducible_with_seed():
    pair = DatePair(FRIDAY_IN_JUNE, date(2025, 6, 7))
    first = generate_fallback_rates("Expedia", pair, 1, NEW_YEAR, FailureReason.FETCH_FAILURE, rng=random.Random(7))
    second = generate_fallback_rates("Expedia", pair, 1, NEW_YEAR, FailureReason.FETCH_FAILURE, rng=random.Random(7))
    assert first == second


def test_generate_fallback_rates_respects_price_bounds():
    pair = DatePair(FRIDAY_IN_JUNE, date(2025, 6, 7))
    config = MonitorConfig(price_bounds=PriceBounds(min=100, max=345))
    rates = generate_fallback_rates(
        "Expedia", pair, 1, NEW_YEAR, FailureReason.EXTRACTION_MISS, config, random.Random(1)
    )
    assert all(100 <= r.price <= 345 for r in rates)


def test_saturday_weekend_premium():
    saturday = date(2025, 6, 7)
    assert saturday.weekday() == 5
    assert fallback_base_price("Expedia", saturday, NEW_YEAR) - fallback_base_price("Expedia", THURSDAY_IN_JUNE, NEW_YEAR) == 40
    assert fallback_base_price("Expedia", date(2025, 6, 8), NEW_YEAR) == fallback_base_price("Expedia", THURSDAY_IN_JUNE, NEW_YEAR)
