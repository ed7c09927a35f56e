"""Command-line entry point for the rate monitor."""

import argparse
import asyncio
import json
import logging
import os
import random
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Mapping, Optional

from pydantic import ValidationError

from .aggregator import run_scan
from .errors import ConfigError
from .fetch import PageFetcher, SnapshotFetcher
from .models import MonitorConfig, ScanResult
from .output import OutputManager, export_error, failed_result, format_listing, generate_summary, RESULTS_FILENAME

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATHS = ["config.json", "rate_monitor/config.json"]


def configure_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


def _parse_date(value: str, name: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise ConfigError(f"{name} must be an ISO date (YYYY-MM-DD), got {value!r}")


def _parse_days(value: str, name: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {value!r}")


def apply_overrides(
    config: MonitorConfig,
    check_in: Optional[date] = None,
    check_out: Optional[date] = None,
    **updates,
) -> MonitorConfig:
    """
    Return a re-validated copy of the config with the given fields replaced.

    A new check-in without a check-out keeps the configured stay length.
    """
    data = config.model_dump()
    if check_in is not None:
        data["base_check_in"] = check_in
        if check_out is None:
            check_out = check_in + (config.base_check_out - config.base_check_in)
    if check_out is not None:
        data["base_check_out"] = check_out
    data.update({key: value for key, value in updates.items() if value is not None})

    try:
        return MonitorConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def load_config(config_path: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> MonitorConfig:
    """
    Load configuration from file, then apply environment overrides.

    Environment variables ``CHECK_IN``, ``CHECK_OUT`` and ``DATE_RANGE``
    override the base stay and the number of date pairs.

    Args:
        config_path: Path to config JSON file
        env: Environment mapping (defaults to os.environ)

    Returns:
        MonitorConfig object
    """
    env = os.environ if env is None else env

    try:
        if config_path:
            logger.info(f"Loading config from: {config_path}")
            config = MonitorConfig.from_json_file(config_path)
        else:
            config = None
            for path in DEFAULT_CONFIG_PATHS:
                if Path(path).exists():
                    logger.info(f"Loading config from: {path}")
                    config = MonitorConfig.from_json_file(path)
                    break
            if config is None:
                logger.info("Using default configuration")
                config = MonitorConfig()
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {config_path}") from e
    except (ValueError, ValidationError) as e:
        raise ConfigError(f"Could not load config: {e}") from e

    check_in = _parse_date(env["CHECK_IN"], "CHECK_IN") if env.get("CHECK_IN") else None
    check_out = _parse_date(env["CHECK_OUT"], "CHECK_OUT") if env.get("CHECK_OUT") else None
    day_range = _parse_days(env["DATE_RANGE"], "DATE_RANGE") if env.get("DATE_RANGE") else None

    if check_in or check_out or day_range is not None:
        config = apply_overrides(config, check_in=check_in, check_out=check_out, day_range=day_range)
    return config


def fallback_output_dir(args) -> str:
    """
    Output directory to use when the configuration could not be validated.

    Takes ``--output`` first, then ``output_dir`` from the raw config file,
    then the default.
    """
    if args.output:
        return args.output

    paths = [args.config] if args.config else DEFAULT_CONFIG_PATHS
    for path in paths:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            continue
        if isinstance(data, dict) and isinstance(data.get("output_dir"), str) and data["output_dir"]:
            return data["output_dir"]
        break

    return MonitorConfig.model_fields["output_dir"].default


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="OTA Rate Monitor - compare a hotel's room rates across booking sites"
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        help="Path to configuration JSON file",
        default=None,
    )

    parser.add_argument(
        "--check-in",
        type=str,
        help="Base check-in date, YYYY-MM-DD (overrides config and CHECK_IN)",
        default=None,
    )

    parser.add_argument(
        "--check-out",
        type=str,
        help="Base check-out date, YYYY-MM-DD (overrides config and CHECK_OUT)",
        default=None,
    )

    parser.add_argument(
        "--days", "-d",
        type=int,
        help="Number of consecutive date pairs to scan (overrides config and DATE_RANGE)",
        default=None,
    )

    parser.add_argument(
        "--site", "-s",
        action="append",
        dest="sites",
        help="Site to scan; repeat for several (overrides config)",
        default=None,
    )

    parser.add_argument(
        "--snapshots",
        type=str,
        help="Read saved HTML pages from this directory instead of launching a browser",
        default=None,
    )

    parser.add_argument(
        "--output", "-o",
        type=str,
        help="Output directory (overrides config)",
        default=None,
    )

    parser.add_argument(
        "--no-headless",
        action="store_true",
        help="Run browser in visible mode (for debugging)",
    )

    parser.add_argument(
        "--seed",
        type=int,
        help="Seed for fallback price variance",
        default=None,
    )

    parser.add_argument(
        "--no-fallback",
        action="store_true",
        help="Do not substitute estimated rates when extraction fails",
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    return parser.parse_args(argv)


def config_from_args(args, env: Optional[Mapping[str, str]] = None) -> MonitorConfig:
    """Load the config and apply command line overrides."""
    config = load_config(args.config, env)

    check_in = _parse_date(args.check_in, "--check-in") if args.check_in else None
    check_out = _parse_date(args.check_out, "--check-out") if args.check_out else None

    return apply_overrides(
        config,
        check_in=check_in,
        check_out=check_out,
        day_range=args.days,
        sites=tuple(args.sites) if args.sites else None,
        output_dir=args.output,
        headless=False if args.no_headless else None,
        fallback_enabled=False if args.no_fallback else None,
    )


async def run_monitor(
    config: MonitorConfig,
    fetcher: PageFetcher,
    output: OutputManager,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> ScanResult:
    """
    Run one scan and write every output file.

    Args:
        config: Monitor configuration
        fetcher: Page fetcher
        output: Output manager for the run
        rng: Variance source for fallback pricing
        now: Run timestamp

    Returns:
        The ScanResult that was written
    """
    now = now or datetime.now()
    logger.info(f"Starting rate monitor for {config.hotel}")
    logger.info(f"Configuration: {', '.join(config.sites)}; {config.day_range} date pair(s) from {config.base_check_in}")

    collected = []

    def on_rates(rates):
        collected.extend(rates)
        output.append_rates_to_csv(rates, now)

    try:
        result = await run_scan(config, fetcher, now=now, rng=rng, on_rates=on_rates)
    except (KeyboardInterrupt, asyncio.CancelledError):
        # Keep what was collected before the interruption
        output.save_results(failed_result("interrupted", config, collected, now))
        raise

    output.save_results(result)
    if result.rates:
        output.save_summary_csv(result)

    listing = format_listing(result)
    if listing:
        logger.info(f"Rates by site and dates:\n{listing}")
    logger.info(generate_summary(result))

    paths = output.get_file_paths()
    logger.info("Output files:")
    logger.info(f"  Results: {paths['results']}")
    logger.info(f"  Rates CSV: {paths['rates_csv']}")
    if result.rates:
        logger.info(f"  Summary CSV: {paths['summary_csv']}")

    return result


async def _run_with_browser(config: MonitorConfig, output: OutputManager, rng: random.Random) -> ScanResult:  # pragma: no cover
    from .browser import PlaywrightFetcher

    fetcher = PlaywrightFetcher(headless=config.headless, timeout_ms=config.page_timeout_ms)
    try:
        return await run_monitor(config, fetcher, output, rng)
    finally:
        await fetcher.close()
        logger.info("Browser closed")


def run(argv=None, env: Optional[Mapping[str, str]] = None) -> int:
    """
    Run the monitor from command line arguments.

    Returns:
        Process exit code: 0 on success, 1 when the run recorded an error,
        130 when interrupted
    """
    args = parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = config_from_args(args, env)
    except ConfigError as e:
        logger.error(str(e))
        export_error(str(e), Path(fallback_output_dir(args)) / RESULTS_FILENAME)
        return 1

    rng = random.Random(args.seed)
    output = OutputManager(config)

    try:
        if args.snapshots:
            result = asyncio.run(run_monitor(config, SnapshotFetcher(Path(args.snapshots)), output, rng))
        else:
            result = asyncio.run(_run_with_browser(config, output, rng))
    except KeyboardInterrupt:
        logger.info("Monitoring interrupted by user")
        if not output.results_saved:
            export_error("interrupted", output.results_path, config)
        return 130
    except Exception as e:
        logger.error(f"Monitoring failed: {e}")
        export_error(f"Monitoring failed: {e}", output.results_path, config)
        return 1

    if result.error:
        logger.warning(f"Completed with error: {result.error}")
        return 1

    logger.info("Monitoring completed successfully!")
    return 0


def main():
    """Main entry point."""
    sys.exit(run())


if __name__ == "__main__":
    main()
