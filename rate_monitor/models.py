"""Data models for the OTA rate monitor."""

import json
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

FALLBACK_PREFIX = "fallback-"


@dataclass(frozen=True)
class DatePair:
    """One stay to price: a check-in/check-out tuple."""
    check_in: date
    check_out: date

    @property
    def stay_length(self) -> int:
        return (self.check_out - self.check_in).days

    def __str__(self) -> str:
        return f"{self.check_in.isoformat()} to {self.check_out.isoformat()}"


@dataclass(frozen=True)
class RateCandidate:
    """An unvalidated room/price pair produced by an extraction strategy."""
    room_name: str
    price: int


@dataclass(frozen=True)
class RateRecord:
    """One offer as scraped or synthesized for a site and date pair."""
    ota: str
    room_name: str
    price: int
    currency: str
    source: str
    check_in: date
    check_out: date
    date_sequence: int

    @property
    def is_fallback(self) -> bool:
        return self.source.startswith(FALLBACK_PREFIX)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON export."""
        return {
            "ota": self.ota,
            "roomName": self.room_name,
            "price": self.price,
            "currency": self.currency,
            "source": self.source,
            "checkIn": self.check_in.isoformat(),
            "checkOut": self.check_out.isoformat(),
            "dateSequence": self.date_sequence,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RateRecord":
        return cls(
            ota=data["ota"],
            room_name=data["roomName"],
            price=int(data["price"]),
            currency=data["currency"],
            source=data["source"],
            check_in=date.fromisoformat(data["checkIn"]),
            check_out=date.fromisoformat(data["checkOut"]),
            date_sequence=int(data["dateSequence"]),
        )


@dataclass(frozen=True)
class SiteFailure:
    """Why a (site, date pair) combination produced no genuine rates."""
    site: str
    check_in: date
    check_out: date
    reason: str
    detail: str = ""

    def to_dict(self) -> dict:
        return {
            "site": self.site,
            "checkIn": self.check_in.isoformat(),
            "checkOut": self.check_out.isoformat(),
            "reason": self.reason,
            "detail": self.detail,
        }


@dataclass
class ScanResult:
    """Aggregate of one monitoring run."""
    scraped_at: datetime
    hotel: str
    base_check_in: date
    base_check_out: date
    day_range: int
    rates: list[RateRecord] = field(default_factory=list)
    error: Optional[str] = None
    failures: list[SiteFailure] = field(default_factory=list)

    @property
    def fallback_rates(self) -> list[RateRecord]:
        return [r for r in self.rates if r.is_fallback]

    @property
    def extracted_rates(self) -> list[RateRecord]:
        return [r for r in self.rates if not r.is_fallback]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON export."""
        data = {
            "scrapedAt": self.scraped_at.isoformat(),
            "hotel": self.hotel,
            "baseCheckIn": self.base_check_in.isoformat(),
            "baseCheckOut": self.base_check_out.isoformat(),
            "dayRange": self.day_range,
            "rates": [rate.to_dict() for rate in self.rates],
        }
        if self.error:
            data["error"] = self.error
        if self.failures:
            data["failures"] = [failure.to_dict() for failure in self.failures]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ScanResult":
        """Rebuild a result from its JSON form."""
        failures = [
            SiteFailure(
                site=item["site"],
                check_in=date.fromisoformat(item["checkIn"]),
                check_out=date.fromisoformat(item["checkOut"]),
                reason=item["reason"],
                detail=item.get("detail", ""),
            )
            for item in data.get("failures", [])
        ]
        return cls(
            scraped_at=datetime.fromisoformat(data["scrapedAt"]),
            hotel=data["hotel"],
            base_check_in=date.fromisoformat(data["baseCheckIn"]),
            base_check_out=date.fromisoformat(data["baseCheckOut"]),
            day_range=int(data["dayRange"]),
            rates=[RateRecord.from_dict(item) for item in data.get("rates", [])],
            error=data.get("error"),
            failures=failures,
        )


class PriceBounds(BaseModel):
    """Sanity window for accepted prices, in whole currency units."""
    model_config = ConfigDict(frozen=True)

    min: int = 100
    max: int = 5000

    @model_validator(mode="after")
    def _check_order(self) -> "PriceBounds":
        if self.min > self.max:
            raise ValueError(f"price_bounds.min ({self.min}) exceeds price_bounds.max ({self.max})")
        return self

    def contains(self, price: int) -> bool:
        return self.min <= price <= self.max

    def clamp(self, price: int) -> int:
        return max(self.min, min(self.max, price))


class FallbackPolicy(BaseModel):
    """Constants for the synthetic seasonal/day-of-week pricing heuristic."""
    model_config = ConfigDict(frozen=True)

    base_price: int = 280
    floor: int = 199
    last_minute_days: int = 7
    last_minute_premium: int = 50
    short_window_days: int = 30
    short_window_premium: int = 25
    early_booking_days: int = 90
    early_booking_discount: int = 30
    weekend_premium: int = 40
    peak_months: tuple[int, ...] = (6, 7, 8, 9)
    peak_premium: int = 50
    low_months: tuple[int, ...] = (12, 1, 2)
    low_discount: int = 40
    variance: int = 10
    # Room label -> increment over the base price
    room_offsets: tuple[tuple[str, int], ...] = (
        ("Standard Room, 1 King Bed", 0),
        ("Standard Room, 1 Queen Bed", 10),
        ("Deluxe Room", 60),
    )


DEFAULT_SITE_ADJUSTMENTS = {
    "Expedia": 0,
    "Booking.com": 15,
    "Hotels.com": -5,
    "Priceline": -10,
}

DEFAULT_ROOM_VOCABULARY = (
    "Quadruple Room - Disability Access",
    "Quadruple Room",
    "Studio with Terrace",
    "Standard Studio",
    "Standard Room",
    "Deluxe Room",
    "Premium Room",
    "Double Room",
    "Single Room",
    "Twin Room",
    "Suite",
    "Studio",
)


class MonitorConfig(BaseModel):
    """Main monitor configuration."""
    model_config = ConfigDict(frozen=True)

    hotel: str = "The Standard London"
    base_check_in: date = date(2025, 6, 1)
    base_check_out: date = date(2025, 6, 2)
    day_range: int = Field(default=1, ge=1)
    sites: tuple[str, ...] = ("Expedia", "Booking.com")
    currency: str = "GBP"
    price_bounds: PriceBounds = Field(default_factory=PriceBounds)
    site_adjustments: dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_SITE_ADJUSTMENTS))
    room_vocabulary: tuple[str, ...] = DEFAULT_ROOM_VOCABULARY
    # Site -> hotel page URL; stay dates are added as query parameters
    site_urls: dict[str, str] = Field(default_factory=dict)
    fallback: FallbackPolicy = Field(default_factory=FallbackPolicy)
    fallback_enabled: bool = True
    output_dir: str = "output"
    headless: bool = True
    page_timeout_ms: int = 45000

    @field_validator("sites")
    @classmethod
    def _sites_not_empty(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        cleaned = tuple(site.strip() for site in value if site and site.strip())
        if not cleaned:
            raise ValueError("at least one site must be configured")
        # Each site is scanned once per date pair
        return tuple(dict.fromkeys(cleaned))

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return value.strip().upper()

    @model_validator(mode="after")
    def _check_dates(self) -> "MonitorConfig":
        if self.base_check_out <= self.base_check_in:
            raise ValueError("base_check_out must be after base_check_in")
        return self

    @classmethod
    def from_json_file(cls, filepath: str) -> "MonitorConfig":
        """Load configuration from JSON file."""
        with open(filepath, "r", encoding="utf-8") as f:
            data = json.load(f)
        return cls(**data)

    def site_adjustment(self, site: str) -> int:
        return self.site_adjustments.get(site, 0)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return self.model_dump(mode="json")
