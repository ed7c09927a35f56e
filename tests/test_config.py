"""Tests for configuration loading and overrides."""

import json
from datetime import date

import pytest
from pydantic import ValidationError

from rate_monitor.errors import ConfigError
from rate_monitor.main import apply_overrides, config_from_args, load_config, parse_args
from rate_monitor.models import DatePair, MonitorConfig, PriceBounds
from rate_monitor.sites import build_site_url, site_url


def test_defaults():
    config = MonitorConfig()
    assert config.hotel == "The Standard London"
    assert config.base_check_in == date(2025, 6, 1)
    assert config.base_check_out == date(2025, 6, 2)
    assert config.day_range == 1
    assert config.sites == ("Expedia", "Booking.com")
    assert config.site_adjustment("Booking.com") == 15
    assert config.site_adjustment("Unknown") == 0


def test_invalid_configs_are_rejected():
    with pytest.raises(ValidationError):
        MonitorConfig(base_check_in=date(2025, 6, 2), base_check_out=date(2025, 6, 1))
    with pytest.raises(ValidationError):
        MonitorConfig(day_range=0)
    with pytest.raises(ValidationError):
        MonitorConfig(sites=())
    with pytest.raises(ValidationError):
        PriceBounds(min=500, max=100)


def test_duplicate_sites_are_collapsed_in_order():
    config = MonitorConfig(sites=("Expedia", " Expedia", "Booking.com", "Expedia"))
    assert config.sites == ("Expedia", "Booking.com")


def test_currency_is_normalised():
    assert MonitorConfig(currency=" gbp ").currency == "GBP"


def test_from_json_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "monitor.json"
    path.write_text(json.dumps({
        "hotel": "Test Hotel",
        "base_check_in": "2025-07-10",
        "base_check_out": "2025-07-12",
        "day_range": 4,
        "price_bounds": {"min": 150, "max": 900},
    }), encoding="utf-8")

    config = load_config(str(path), env={})
    assert config.hotel == "Test Hotel"
    assert config.base_check_out == date(2025, 7, 12)
    assert config.price_bounds.max == 900


def test_env_overrides(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config = load_config(env={"CHECK_IN": "2025-08-01", "CHECK_OUT": "2025-08-03", "DATE_RANGE": "5"})
    assert config.base_check_in == date(2025, 8, 1)
    assert config.base_check_out == date(2025, 8, 3)
    assert config.day_range == 5


def test_check_in_alone_keeps_stay_length():
    config = apply_overrides(MonitorConfig(), check_in=date(2025, 9, 10))
    assert config.base_check_out == date(2025, 9, 11)


def test_bad_env_values_raise_config_error(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(ConfigError):
        load_config(env={"DATE_RANGE": "three"})
    with pytest.raises(ConfigError):
        load_config(env={"CHECK_IN": "01/06/2025"})
    with pytest.raises(ConfigError):
        load_config(env={"DATE_RANGE": "0"})


def test_missing_config_file_raises_config_error(tmp_path):
    with pytest.raises(ConfigError):
        load_config(str(tmp_path / "missing.json"), env={})


def test_cli_overrides_win(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    args = parse_args([
        "--check-in", "2025-10-01",
        "--days", "2",
        "--site", "Expedia",
        "--output", "out",
        "--no-fallback",
        "--no-headless",
    ])
    config = config_from_args(args, env={"DATE_RANGE": "7"})

    assert config.base_check_in == date(2025, 10, 1)
    assert config.day_range == 2
    assert config.sites == ("Expedia",)
    assert config.output_dir == "out"
    assert config.fallback_enabled is False
    assert config.headless is False


def test_site_urls_carry_stay_dates():
    pair = DatePair(date(2025, 6, 1), date(2025, 6, 2))
    expedia = site_url(MonitorConfig(), "Expedia", pair)
    assert "chkin=2025-06-01" in expedia
    assert "chkout=2025-06-02" in expedia

    booking = build_site_url("Booking.com", pair, "https://www.booking.com/hotel/gb/x.html?lang=en-gb")
    assert "checkin=2025-06-01" in booking
    assert "lang=en-gb" in booking
    assert "group_adults=2" in booking

    assert build_site_url("Unknown", pair) == ""
