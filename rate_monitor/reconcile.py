"""Cross-site price comparison for the collected rates."""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional, Sequence

from .models import RateRecord, ScanResult

logger = logging.getLogger(__name__)


@dataclass
class SummaryRow:
    """One room type on one date pair, priced across sites."""
    room_name: str
    date_sequence: int
    check_in: date
    check_out: date
    prices: dict[str, Optional[int]] = field(default_factory=dict)
    price_difference: Optional[int] = None
    best_rate: Optional[str] = None

    def price_for(self, site: str) -> Optional[int]:
        return self.prices.get(site)


def group_by_site_and_dates(rates: Iterable[RateRecord]) -> dict[tuple[str, date, date], list[RateRecord]]:
    """
    Group rates by (site, check-in, check-out), keeping first-seen order.

    Args:
        rates: Flat list of records

    Returns:
        Ordered dict of group key -> records
    """
    groups: dict[tuple[str, date, date], list[RateRecord]] = {}
    for rate in rates:
        groups.setdefault((rate.ota, rate.check_in, rate.check_out), []).append(rate)
    return groups


def compare_prices(prices: dict[str, Optional[int]], sites: Sequence[str]) -> tuple[Optional[int], Optional[str]]:
    """
    Spread and cheapest site among the sites that have a price.

    Ties go to the site listed first. Fewer than two priced sites gives
    (None, None).
    """
    priced = [(site, prices[site]) for site in sites if prices.get(site) is not None]
    if len(priced) < 2:
        return None, None

    values = [price for _, price in priced]
    best_site, best_price = priced[0]
    for site, price in priced[1:]:
        if price < best_price:
            best_site, best_price = site, price
    return max(values) - min(values), best_site


def reconcile(result: ScanResult, sites: Optional[Sequence[str]] = None) -> list[SummaryRow]:
    """
    Build one comparison row per (room name, date sequence).

    When a site lists the same room more than once for a date pair, its
    lowest price is used.

    Args:
        result: Completed scan
        sites: Site order for columns and tie-breaking; defaults to the
            order sites first appear in the rates

    Returns:
        Rows ordered by date sequence, then by first appearance of the room
    """
    if sites is None:
        sites = list(dict.fromkeys(rate.ota for rate in result.rates))
    sites = list(sites)

    rows: dict[tuple[str, int], SummaryRow] = {}
    for rate in result.rates:
        key = (rate.room_name, rate.date_sequence)
        row = rows.get(key)
        if row is None:
            row = SummaryRow(
                room_name=rate.room_name,
                date_sequence=rate.date_sequence,
                check_in=rate.check_in,
                check_out=rate.check_out,
                prices={site: None for site in sites},
            )
            rows[key] = row

        current = row.prices.get(rate.ota)
        if current is None or rate.price < current:
            row.prices[rate.ota] = rate.price

    for row in rows.values():
        row.price_difference, row.best_rate = compare_prices(row.prices, sites)

    ordered = sorted(rows.values(), key=lambda r: r.date_sequence)
    logger.debug(f"Reconciled {len(result.rates)} rates into {len(ordered)} summary rows")
    return ordered
