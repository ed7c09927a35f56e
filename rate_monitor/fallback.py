"""Synthetic fallback rates for site/date pairs where nothing could be extracted."""

import logging
import random
from datetime import date
from typing import Mapping, Optional

from .errors import FailureReason
from .models import FALLBACK_PREFIX, DatePair, FallbackPolicy, MonitorConfig, PriceBounds, RateRecord

logger = logging.getLogger(__name__)

FRIDAY = 4
SATURDAY = 5


def days_until_arrival(check_in: date, today: date) -> int:
    return (check_in - today).days


def fallback_base_price(
    site: str,
    check_in: date,
    today: date,
    policy: Optional[FallbackPolicy] = None,
    site_adjustments: Optional[Mapping[str, int]] = None,
) -> int:
    """
    Estimate a base nightly price from booking window, weekday and season.

    Deterministic: no randomness is involved here.

    Args:
        site: Site identifier, used for the per-site offset
        check_in: Check-in date
        today: Reference date for the booking window
        policy: Pricing constants
        site_adjustments: Site -> price offset

    Returns:
        Base price, never below the policy floor
    """
    policy = policy or FallbackPolicy()
    site_adjustments = site_adjustments or {}
    days = days_until_arrival(check_in, today)

    price = policy.base_price

    # Booking window
    if days < policy.last_minute_days:
        price += policy.last_minute_premium
    elif days < policy.short_window_days:
        price += policy.short_window_premium
    elif days > policy.early_booking_days:
        price -= policy.early_booking_discount

    if check_in.weekday() in (FRIDAY, SATURDAY):
        price += policy.weekend_premium

    if check_in.month in policy.peak_months:
        price += policy.peak_premium
    elif check_in.month in policy.low_months:
        price -= policy.low_discount

    price += site_adjustments.get(site, 0)

    return max(policy.floor, price)


def draw_variance(rng: random.Random, spread: int) -> int:
    """Uniform integer in [-spread, spread)."""
    if spread <= 0:
        return 0
    return rng.randrange(-spread, spread)


def fallback_source(reason: FailureReason, days: int) -> str:
    return f"{FALLBACK_PREFIX}{reason.fallback_tag}-{days}days"


def generate_fallback_rates(
    site: str,
    pair: DatePair,
    date_sequence: int,
    today: date,
    reason: FailureReason,
    config: Optional[MonitorConfig] = None,
    rng: Optional[random.Random] = None,
) -> list[RateRecord]:
    """
    Build a tagged synthetic rate set for one site and date pair.

    All rooms share one variance draw, so their spacing stays fixed. Prices
    are clamped into the configured bounds.

    Args:
        site: Site identifier
        pair: Stay dates
        date_sequence: 1-based position in the scan
        today: Reference date for the booking window
        reason: Why genuine extraction produced nothing
        config: Monitor configuration
        rng: Source of the variance term; pass a seeded Random in tests

    Returns:
        List of RateRecord tagged ``fallback-<reason>-<days>days``
    """
    config = config or MonitorConfig()
    rng = rng or random.Random()
    policy = config.fallback
    bounds: PriceBounds = config.price_bounds

    base = fallback_base_price(site, pair.check_in, today, policy, config.site_adjustments)
    variance = draw_variance(rng, policy.variance)
    days = days_until_arrival(pair.check_in, today)
    source = fallback_source(reason, days)

    logger.info(f"Using fallback rates for {site} {pair} (base {base}, {source})")

    return [
        RateRecord(
            ota=site,
            room_name=room_name,
            price=bounds.clamp(base + offset + variance),
            currency=config.currency,
            source=source,
            check_in=pair.check_in,
            check_out=pair.check_out,
            date_sequence=date_sequence,
        )
        for room_name, offset in policy.room_offsets
    ]
