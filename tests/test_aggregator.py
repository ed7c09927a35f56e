"""Tests for multi-date, multi-site scan orchestration."""

import asyncio
import random
from datetime import date, datetime

from rate_monitor.aggregator import run_scan, scan_site
from rate_monitor.errors import FetchError
from rate_monitor.fetch import FetchOutcome, PageContent, SnapshotFetcher, classify_content, snapshot_filename
from rate_monitor.models import DatePair, MonitorConfig

TODAY = date(2025, 1, 1)
NOW = datetime(2025, 1, 1, 9, 30)

EXPEDIA_HTML = """
<html><head><title>The Standard London</title></head><body>
  <div data-stid="property-offer-1">
    <h3 class="uitk-heading-6">Double Room</h3>
    <span class="uitk-type-500">£400</span>
  </div>
</body></html>
"""

BOOKING_HTML = """
<html><head><title>The Standard London</title></head><body>
<table class="hprt-table"><tbody>
  <tr>
    <td><a class="hprt-roomtype-icon-link">Double Room</a></td>
    <td><span class="prco-valign-middle-helper">£450</span></td>
  </tr>
</tbody></table>
</body></html>
"""


class _StubFetcher:
    """Serves canned outcomes per site and records the call order."""

    def __init__(self, pages=None, default=None):
        self.pages = pages or {}
        self.default = default or FetchOutcome.failed(detail="timeout")
        self.calls = []

    async def fetch(self, site, url, pair):
        self.calls.append((site, pair.check_in))
        outcome = self.pages.get(site, self.default)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _ok(html):
    return FetchOutcome.ok(PageContent(html=html))


def _run(config, fetcher, **kwargs):
    return asyncio.run(run_scan(config, fetcher, today=TODAY, now=NOW, rng=random.Random(1), **kwargs))


def test_all_fail_produces_tagged_fallback_for_every_combination():
    config = MonitorConfig(day_range=3)
    result = _run(config, _StubFetcher())

    assert len(result.rates) == 18
    assert all(r.source.startswith("fallback-") for r in result.rates)
    assert all("fetch-failed" in r.source for r in result.rates)
    assert result.error is None
    assert len(result.failures) == 6


def test_rates_are_ordered_by_date_then_site():
    config = MonitorConfig(day_range=2)
    fetcher = _StubFetcher()
    result = _run(config, fetcher)

    assert fetcher.calls == [
        ("Expedia", date(2025, 6, 1)),
        ("Booking.com", date(2025, 6, 1)),
        ("Expedia", date(2025, 6, 2)),
        ("Booking.com", date(2025, 6, 2)),
    ]
    assert [(r.date_sequence, r.ota) for r in result.rates[::3]] == [
        (1, "Expedia"),
        (1, "Booking.com"),
        (2, "Expedia"),
        (2, "Booking.com"),
    ]


def test_total_failure_without_fallback_sets_error():
    config = MonitorConfig(day_range=2, fallback_enabled=False)
    result = _run(config, _StubFetcher())

    assert result.rates == []
    assert result.error
    assert result.to_dict()["rates"] == []
    assert "error" in result.to_dict()


def test_genuine_rates_from_each_site():
    fetcher = _StubFetcher({"Expedia": _ok(EXPEDIA_HTML), "Booking.com": _ok(BOOKING_HTML)})
    result = _run(MonitorConfig(), fetcher)

    assert [(r.ota, r.room_name, r.price, r.source) for r in result.rates] == [
        ("Expedia", "Double Room", 400, "offer-cards"),
        ("Booking.com", "Double Room", 450, "room-table"),
    ]
    assert result.failures == []
    assert result.fallback_rates == []


def test_raising_fetcher_only_affects_its_own_combination():
    fetcher = _StubFetcher({"Expedia": RuntimeError("browser crashed"), "Booking.com": _ok(BOOKING_HTML)})
    result = _run(MonitorConfig(), fetcher)

    expedia = [r for r in result.rates if r.ota == "Expedia"]
    booking = [r for r in result.rates if r.ota == "Booking.com"]
    assert len(expedia) == 3
    assert all(r.source.startswith("fallback-fetch-failed-") for r in expedia)
    assert [r.price for r in booking] == [450]
    assert result.failures[0].site == "Expedia"
    assert "browser crashed" in result.failures[0].detail


def test_challenge_page_is_tagged_blocked():
    challenge = classify_content(PageContent(html="<html><head><title>Bot or Not?</title></head><body></body></html>"))
    fetcher = _StubFetcher({"Expedia": challenge, "Booking.com": _ok(BOOKING_HTML)})
    result = _run(MonitorConfig(), fetcher)

    expedia = [r for r in result.rates if r.ota == "Expedia"]
    assert all(r.source.startswith("fallback-blocked-") for r in expedia)
    assert result.failures[0].reason == "site-blocked"


def test_scan_site_extraction_miss_uses_no_rates_tag():
    pair = DatePair(date(2025, 6, 1), date(2025, 6, 2))
    outcome = _ok("<html><body><p>Nothing available</p></body></html>")
    scan = scan_site("Expedia", outcome, pair, 1, MonitorConfig(), TODAY, random.Random(0))

    assert scan.used_fallback
    assert scan.strategy is None
    assert scan.failure.reason == "extraction-miss"
    assert all(r.source == "fallback-no-rates-151days" for r in scan.records)


def test_rate_callback_errors_do_not_abort_scan():
    def broken_callback(rates):
        raise OSError("disk full")

    result = _run(MonitorConfig(day_range=2), _StubFetcher(), on_rates=broken_callback)
    assert len(result.rates) == 12


def test_rate_callback_receives_each_combination():
    batches = []
    _run(MonitorConfig(), _StubFetcher(), on_rates=batches.append)
    assert [batch[0].ota for batch in batches] == ["Expedia", "Booking.com"]


def test_snapshot_fetcher_end_to_end(tmp_path):
    pair = DatePair(date(2025, 6, 1), date(2025, 6, 2))
    (tmp_path / snapshot_filename("Expedia", pair)).write_text(EXPEDIA_HTML, encoding="utf-8")
    (tmp_path / snapshot_filename("Booking.com", pair)).write_text(BOOKING_HTML, encoding="utf-8")

    fetcher = SnapshotFetcher(tmp_path)
    result = _run(MonitorConfig(), fetcher)

    assert fetcher.requested == ["expedia_2025-06-01_2025-06-02.html", "booking-com_2025-06-01_2025-06-02.html"]
    assert [r.price for r in result.rates] == [400, 450]


def test_missing_snapshot_falls_back(tmp_path):
    result = _run(MonitorConfig(sites=("Expedia",)), SnapshotFetcher(tmp_path))
    assert len(result.rates) == 3
    assert result.failures[0].reason == "fetch-failure"


def test_fetch_error_becomes_fetch_failure():
    fetcher = _StubFetcher({"Expedia": FetchError("Could not launch Chromium")})
    result = _run(MonitorConfig(sites=("Expedia",)), fetcher)

    assert all(r.source.startswith("fallback-fetch-failed-") for r in result.rates)
    assert result.failures[0].detail == "Could not launch Chromium"


def test_repeated_site_is_scanned_once_per_date_pair():
    fetcher = _StubFetcher({"Expedia": _ok(EXPEDIA_HTML)})
    result = _run(MonitorConfig(sites=("Expedia", "Expedia")), fetcher)

    assert fetcher.calls == [("Expedia", date(2025, 6, 1))]
    assert [(r.room_name, r.price) for r in result.rates] == [("Double Room", 400)]
