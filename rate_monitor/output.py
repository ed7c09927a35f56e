"""Output handlers for the results artifact and CSV exports."""

import csv
import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Optional, Sequence

from .models import MonitorConfig, RateRecord, ScanResult
from .reconcile import SummaryRow, group_by_site_and_dates, reconcile
from .room_parser import CURRENCY_SYMBOLS

logger = logging.getLogger(__name__)

RESULTS_FILENAME = "results.json"


def rate_headers(currency: str = "GBP") -> list[str]:
    return [
        "Timestamp",
        "Hotel",
        "Check-In",
        "Check-Out",
        "Date Sequence",
        "OTA",
        "Room Type",
        f"Price ({currency})",
        "Currency",
        "Source",
        "Date Scraped",
        "Base Check-In",
        "Day Range",
    ]


def summary_headers(sites: Sequence[str]) -> list[str]:
    return [
        "Last Updated",
        "Room Type",
        "Date Sequence",
        "Check-In",
        "Check-Out",
        *sites,
        "Price Difference",
        "Best Rate",
    ]


def rate_row(
    rate: RateRecord,
    hotel: str,
    scraped_at: datetime,
    base_check_in: date,
    day_range: int,
) -> dict:
    """Flatten one record into a rate-sheet row."""
    return {
        "Timestamp": scraped_at.isoformat(),
        "Hotel": hotel,
        "Check-In": rate.check_in.isoformat(),
        "Check-Out": rate.check_out.isoformat(),
        "Date Sequence": rate.date_sequence,
        "OTA": rate.ota,
        "Room Type": rate.room_name,
        f"Price ({rate.currency})": rate.price,
        "Currency": rate.currency,
        "Source": rate.source,
        "Date Scraped": scraped_at.strftime("%d/%m/%Y"),
        "Base Check-In": base_check_in.isoformat(),
        "Day Range": day_range,
    }


def rate_rows(result: ScanResult) -> list[dict]:
    return [
        rate_row(rate, result.hotel, result.scraped_at, result.base_check_in, result.day_range)
        for rate in result.rates
    ]


def format_money(amount: Optional[int], currency: str) -> str:
    if amount is None:
        return ""
    return f"{CURRENCY_SYMBOLS.get(currency, '')}{amount}"


def summary_row(row: SummaryRow, sites: Sequence[str], updated_at: datetime, currency: str) -> dict:
    data = {
        "Last Updated": updated_at.strftime("%d/%m/%Y, %H:%M:%S"),
        "Room Type": row.room_name,
        "Date Sequence": row.date_sequence,
        "Check-In": row.check_in.isoformat(),
        "Check-Out": row.check_out.isoformat(),
    }
    for site in sites:
        price = row.price_for(site)
        data[site] = "" if price is None else price
    data["Price Difference"] = format_money(row.price_difference, currency)
    data["Best Rate"] = row.best_rate or ""
    return data


def summary_rows(
    result: ScanResult,
    sites: Sequence[str],
    currency: str = "GBP",
    updated_at: Optional[datetime] = None,
) -> list[dict]:
    """
    Build the cross-site comparison rows for a scan.

    Args:
        result: Completed scan
        sites: Site columns, in configured order
        currency: Currency used to format the price difference
        updated_at: "Last Updated" timestamp (defaults to the scan time)

    Returns:
        List of row dicts keyed by summary_headers(sites)
    """
    updated_at = updated_at or result.scraped_at
    return [summary_row(row, sites, updated_at, currency) for row in reconcile(result, sites)]


class OutputManager:
    """Writes the results artifact and the rate/summary CSV files."""

    def __init__(self, config: MonitorConfig, output_dir: Optional[str] = None, timestamp: Optional[datetime] = None):
        self.config = config
        self.output_dir = Path(output_dir or config.output_dir)
        self.timestamp = (timestamp or datetime.now()).strftime("%Y%m%d_%H%M%S")

        self.csv_dir = self.output_dir / "csv"
        self._ensure_output_dir()

        self.results_path = self.output_dir / RESULTS_FILENAME
        self.rates_csv_path = self.csv_dir / f"rates_{self.timestamp}.csv"
        self.summary_csv_path = self.csv_dir / f"summary_{self.timestamp}.csv"

        self.rate_headers = rate_headers(config.currency)
        self._init_rates_csv()

        self.total_rates = 0
        self.results_saved = False

    def _ensure_output_dir(self):
        """Create output directories if they don't exist."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.csv_dir.mkdir(parents=True, exist_ok=True)

    def _init_rates_csv(self):
        """Initialize rates CSV with headers."""
        with open(self.rates_csv_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=self.rate_headers)
            writer.writeheader()
        logger.info(f"Initialized CSV file: {self.rates_csv_path}")

    def append_rates_to_csv(self, rates: list[RateRecord], scraped_at: Optional[datetime] = None):
        """
        Append records to the rates CSV as soon as they are collected.

        Args:
            rates: Records for one site and date pair
            scraped_at: Run timestamp for the Timestamp column
        """
        if not rates:
            return

        scraped_at = scraped_at or datetime.now()
        with open(self.rates_csv_path, "a", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=self.rate_headers, extrasaction="ignore")
            for rate in rates:
                writer.writerow(rate_row(
                    rate,
                    self.config.hotel,
                    scraped_at,
                    self.config.base_check_in,
                    self.config.day_range,
                ))

        self.total_rates += len(rates)
        logger.debug(f"Appended {len(rates)} rates to CSV")

    def save_results(self, result: ScanResult) -> Path:
        """Write results.json; called on every run, including failed ones."""
        path = export_to_json(result, self.results_path)
        self.results_saved = True
        return path

    def save_summary_csv(self, result: ScanResult) -> Path:
        rows = summary_rows(result, self.config.sites, self.config.currency)
        write_csv(rows, summary_headers(self.config.sites), self.summary_csv_path)
        return self.summary_csv_path

    def get_file_paths(self) -> dict:
        """Get paths to output files."""
        return {
            "results": str(self.results_path),
            "rates_csv": str(self.rates_csv_path),
            "summary_csv": str(self.summary_csv_path),
        }


def write_csv(rows: list[dict], headers: list[str], filepath) -> None:
    """Write rows to a CSV file, creating the parent directory."""
    Path(filepath).parent.mkdir(parents=True, exist_ok=True)

    with open(filepath, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=headers, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(rows)

    logger.info(f"Exported {len(rows)} rows to CSV: {filepath}")


def export_to_json(result: ScanResult, filepath) -> Path:
    """
    Export a scan result to JSON.

    Args:
        result: ScanResult object
        filepath: Output file path

    Returns:
        Path written
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        json.dump(result.to_dict(), f, indent=2, ensure_ascii=False)

    logger.info(f"Exported result to JSON: {path}")
    return path


def failed_result(
    message: str,
    config: Optional[MonitorConfig] = None,
    rates: Optional[list[RateRecord]] = None,
    failed_at: Optional[datetime] = None,
) -> ScanResult:
    """A ScanResult carrying an error, with whatever rates were collected so far."""
    config = config or MonitorConfig()
    return ScanResult(
        scraped_at=failed_at or datetime.now(),
        hotel=config.hotel,
        base_check_in=config.base_check_in,
        base_check_out=config.base_check_out,
        day_range=config.day_range,
        rates=list(rates or []),
        error=message,
    )


def export_error(
    message: str,
    filepath,
    config: Optional[MonitorConfig] = None,
    failed_at: Optional[datetime] = None,
) -> Path:
    """
    Write the results artifact for a run that failed outside the scan.

    Args:
        message: Error to record
        filepath: Output file path
        config: Run configuration; defaults are used when it could not be loaded
        failed_at: Failure timestamp

    Returns:
        Path written
    """
    return export_to_json(failed_result(message, config, failed_at=failed_at), filepath)


def load_results(filepath) -> Optional[ScanResult]:
    """
    Load a previously written results artifact.

    Returns:
        ScanResult, or None if the file does not exist
    """
    try:
        with open(filepath, "r", encoding="utf-8") as f:
            return ScanResult.from_dict(json.load(f))
    except FileNotFoundError:
        return None


def format_listing(result: ScanResult) -> str:
    """Rates grouped by site and date pair, one line per room."""
    lines = []
    for (site, check_in, check_out), rates in group_by_site_and_dates(result.rates).items():
        lines.append(f"{site} ({check_in.isoformat()} to {check_out.isoformat()}):")
        for rate in rates:
            lines.append(f"  {rate.room_name}: {format_money(rate.price, rate.currency)} [{rate.source}]")
    return "\n".join(lines)


def generate_summary(result: ScanResult) -> str:
    """
    Generate a summary of the monitoring run.

    Args:
        result: ScanResult object

    Returns:
        Summary string
    """
    rates = result.rates
    fallback = result.fallback_rates
    prices = [r.price for r in rates]

    avg_price = sum(prices) / len(prices) if prices else 0
    min_price = min(prices) if prices else 0
    max_price = max(prices) if prices else 0

    sites = list(dict.fromkeys(r.ota for r in rates))
    sequences = {r.date_sequence for r in rates}

    summary = f"""
=== Rate Monitor Summary ===
Hotel: {result.hotel}
Scan Date: {result.scraped_at.strftime('%Y-%m-%d %H:%M:%S')}
Base Stay: {result.base_check_in.isoformat()} to {result.base_check_out.isoformat()} ({result.day_range} day range)

Rate Records: {len(rates)}
  - Extracted: {len(rates) - len(fallback)}
  - Fallback: {len(fallback)}
Sites: {', '.join(sites) or 'none'}
Date Pairs With Rates: {len(sequences)}

Pricing:
  - Average Price: {avg_price:,.2f}
  - Min Price: {min_price:,.2f}
  - Max Price: {max_price:,.2f}

Failures: {len(result.failures)}
Error: {result.error or 'none'}
============================
"""
    return summary.strip()
