"""Failure taxonomy for the rate monitor."""

from enum import Enum


class FailureReason(str, Enum):
    """Why a (site, date pair) produced no genuine rates."""

    # A single strategy found nothing; the next strategy is tried.
    EXTRACTION_MISS = "extraction-miss"
    # The page was a bot-detection/challenge page.
    SITE_BLOCKED = "site-blocked"
    # A candidate failed validation and was dropped.
    MALFORMED_CONTENT = "malformed-content"
    # Content could not be retrieved at all (timeout, network error).
    FETCH_FAILURE = "fetch-failure"
    # Nothing at all could be collected for the run.
    TOTAL_FAILURE = "total-failure"

    @property
    def fallback_tag(self) -> str:
        """Reason fragment used in ``fallback-<reason>-<n>days`` sources."""
        return _FALLBACK_TAGS.get(self, self.value)


_FALLBACK_TAGS = {
    FailureReason.EXTRACTION_MISS: "no-rates",
    FailureReason.SITE_BLOCKED: "blocked",
    FailureReason.FETCH_FAILURE: "fetch-failed",
}


class RateMonitorError(Exception):
    """Base class for rate monitor errors."""


class FetchError(RateMonitorError):
    """Raised by a page fetcher that could not retrieve content."""


class ConfigError(RateMonitorError):
    """Raised when the monitor configuration cannot be loaded."""
