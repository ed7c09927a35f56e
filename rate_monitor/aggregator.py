"""Multi-date, multi-site scan orchestration."""

import logging
import random
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Optional, Sequence

from .dates import generate_date_pairs
from .errors import FailureReason, FetchError
from .fallback import generate_fallback_rates
from .fetch import FetchOutcome, PageFetcher
from .models import DatePair, MonitorConfig, RateRecord, ScanResult, SiteFailure
from .records import build_records
from .sites import get_profile, site_url
from .strategies import ParsePolicy, Strategy, select_first

logger = logging.getLogger(__name__)


@dataclass
class SiteScan:
    """Records produced for one site and date pair."""
    site: str
    pair: DatePair
    date_sequence: int
    records: list[RateRecord] = field(default_factory=list)
    strategy: Optional[str] = None
    failure: Optional[SiteFailure] = None

    @property
    def used_fallback(self) -> bool:
        return any(record.is_fallback for record in self.records)


def _fallback_or_empty(
    site: str,
    pair: DatePair,
    date_sequence: int,
    config: MonitorConfig,
    today: date,
    reason: FailureReason,
    detail: str,
    rng: random.Random,
) -> SiteScan:
    failure = SiteFailure(site, pair.check_in, pair.check_out, reason.value, detail)
    if not config.fallback_enabled:
        logger.warning(f"{site} {pair}: {reason.value} ({detail}); fallback disabled")
        return SiteScan(site, pair, date_sequence, failure=failure)

    records = generate_fallback_rates(site, pair, date_sequence, today, reason, config, rng)
    return SiteScan(site, pair, date_sequence, records=records, failure=failure)


def scan_site(
    site: str,
    outcome: FetchOutcome,
    pair: DatePair,
    date_sequence: int,
    config: MonitorConfig,
    today: date,
    rng: Optional[random.Random] = None,
    strategies: Optional[Sequence[Strategy]] = None,
) -> SiteScan:
    """
    Turn one fetch outcome into records, substituting fallback rates on failure.

    Args:
        site: Site identifier
        outcome: Fetched page, or a blocked/failed signal
        pair: Stay dates
        date_sequence: 1-based position in the scan
        config: Monitor configuration
        today: Reference date for fallback pricing
        rng: Variance source for fallback pricing
        strategies: Strategy order; defaults to the site's profile

    Returns:
        SiteScan with genuine records, or fallback records and a failure note
    """
    rng = rng or random.Random()

    reason = outcome.failure_reason
    if reason is not None:
        logger.warning(f"{site} {pair}: {reason.value} {outcome.detail}".rstrip())
        return _fallback_or_empty(site, pair, date_sequence, config, today, reason, outcome.detail, rng)

    if outcome.content is None:
        return _fallback_or_empty(
            site, pair, date_sequence, config, today,
            FailureReason.FETCH_FAILURE, "fetcher returned no content", rng,
        )

    strategies = strategies or get_profile(site).strategies
    selected = select_first(strategies, outcome.content, ParsePolicy.from_config(config))
    if not selected.succeeded:
        detail = f"no valid rates from {', '.join(selected.attempted) or 'no strategies'}"
        logger.info(f"{site} {pair}: {detail}")
        return _fallback_or_empty(
            site, pair, date_sequence, config, today,
            FailureReason.EXTRACTION_MISS, detail, rng,
        )

    records = build_records(
        selected.candidates,
        ota=site,
        pair=pair,
        date_sequence=date_sequence,
        currency=config.currency,
        source=selected.strategy,
    )
    return SiteScan(site, pair, date_sequence, records=records, strategy=selected.strategy)


async def fetch_page(fetcher: PageFetcher, site: str, url: str, pair: DatePair) -> FetchOutcome:
    """Call the fetcher, converting anything it raises into a failed outcome."""
    try:
        outcome = await fetcher.fetch(site, url, pair)
    except FetchError as e:
        logger.warning(f"Could not fetch {site} {pair}: {e}")
        return FetchOutcome.failed(detail=str(e), url=url)
    except Exception as e:
        logger.error(f"Fetching {site} {pair} failed: {e}")
        return FetchOutcome.failed(detail=str(e) or type(e).__name__, url=url)
    if outcome is None:
        return FetchOutcome.failed(detail="fetcher returned nothing", url=url)
    return outcome


async def run_scan(
    config: MonitorConfig,
    fetcher: PageFetcher,
    today: Optional[date] = None,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
    on_rates: Optional[Callable[[list[RateRecord]], None]] = None,
) -> ScanResult:
    """
    Scan every date pair and site in order and collect the rates.

    Date pairs are processed strictly in sequence and sites in configured
    order within each pair. A failure for one combination never stops the
    others. This function does not raise; a run that collects nothing comes
    back with ``rates == []`` and ``error`` set.

    Args:
        config: Monitor configuration
        fetcher: Page fetcher for (site, date pair) pages
        today: Reference date for fallback pricing (defaults to now)
        now: Run timestamp
        rng: Variance source for fallback pricing
        on_rates: Called with each combination's records as soon as they exist

    Returns:
        ScanResult for the run
    """
    now = now or datetime.now()
    today = today or now.date()
    rng = rng or random.Random()

    result = ScanResult(
        scraped_at=now,
        hotel=config.hotel,
        base_check_in=config.base_check_in,
        base_check_out=config.base_check_out,
        day_range=config.day_range,
    )

    try:
        pairs = generate_date_pairs(config.base_check_in, config.base_check_out, config.day_range)
        logger.info(f"Scanning {config.hotel}: {len(pairs)} date pair(s) x {len(config.sites)} site(s)")

        for sequence, pair in enumerate(pairs, 1):
            logger.info(f"Scraping rates for {pair} ({sequence}/{len(pairs)})")

            for site in config.sites:
                scan = await _scan_combination(config, fetcher, site, pair, sequence, today, rng)
                if scan.failure:
                    result.failures.append(scan.failure)
                result.rates.extend(scan.records)
                logger.info(f"{site}: {len(scan.records)} rates ({scan.strategy or 'fallback'})")

                if on_rates and scan.records:
                    try:
                        on_rates(scan.records)
                    except Exception as e:
                        logger.error(f"Rate callback failed for {site} {pair}: {e}")

    except Exception as e:
        logger.error(f"Scan aborted: {e}")
        if not result.rates:
            result.error = f"Scan aborted before any rates were collected: {e}"
        return result

    if not result.rates:
        last = result.failures[-1] if result.failures else None
        detail = f" (last failure: {last.site} {last.reason} {last.detail}".rstrip() + ")" if last else ""
        result.error = f"No rates collected for any site/date pair{detail}"
        logger.error(result.error)

    return result


async def _scan_combination(
    config: MonitorConfig,
    fetcher: PageFetcher,
    site: str,
    pair: DatePair,
    sequence: int,
    today: date,
    rng: random.Random,
) -> SiteScan:
    url = site_url(config, site, pair)
    outcome = await fetch_page(fetcher, site, url, pair)
    try:
        return scan_site(site, outcome, pair, sequence, config, today, rng)
    except Exception as e:
        logger.error(f"Extraction crashed for {site} {pair}: {e}")
        crash = str(e) or type(e).__name__

    try:
        return _fallback_or_empty(
            site, pair, sequence, config, today, FailureReason.EXTRACTION_MISS, crash, rng,
        )
    except Exception as fallback_error:
        logger.error(f"Fallback generation failed for {site} {pair}: {fallback_error}")
        failure = SiteFailure(site, pair.check_in, pair.check_out,
                              FailureReason.TOTAL_FAILURE.value, str(fallback_error))
        return SiteScan(site, pair, sequence, failure=failure)
