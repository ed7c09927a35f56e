"""Page content handed to the extraction core, and the fetchers that supply it."""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from pathlib import Path
from typing import Optional, Protocol

from bs4 import BeautifulSoup

from .errors import FailureReason
from .models import DatePair

logger = logging.getLogger(__name__)

# Markers of bot-detection / challenge interstitials
CHALLENGE_TITLE_MARKERS = ["bot", "human", "captcha", "access denied"]
CHALLENGE_TEXT_MARKERS = [
    "human side",
    "are you a robot",
    "verify you are human",
    "complete the captcha",
    "unusual traffic",
]


@dataclass
class PageContent:
    """Rendered page content: HTML, a plain-text dump, or both."""
    html: Optional[str] = None
    text: Optional[str] = None
    title: str = ""

    @cached_property
    def soup(self) -> BeautifulSoup:
        return BeautifulSoup(self.html or "", "lxml")

    @cached_property
    def page_text(self) -> str:
        """Visible text, preferring the supplied dump over the parsed HTML."""
        if self.text is not None:
            return self.text
        if not self.html:
            return ""
        body = self.soup.body or self.soup
        return body.get_text("\n", strip=True)

    @property
    def page_title(self) -> str:
        if self.title:
            return self.title
        if self.html and self.soup.title and self.soup.title.string:
            return self.soup.title.string.strip()
        return ""


class FetchStatus(str, Enum):
    OK = "ok"
    BLOCKED = "blocked"
    FAILED = "failed"


@dataclass
class FetchOutcome:
    """Typed result of fetching one (site, date pair) page."""
    status: FetchStatus
    content: Optional[PageContent] = None
    detail: str = ""
    url: str = ""

    @classmethod
    def ok(cls, content: PageContent, url: str = "") -> "FetchOutcome":
        return cls(FetchStatus.OK, content=content, url=url)

    @classmethod
    def blocked(cls, detail: str = "", url: str = "") -> "FetchOutcome":
        return cls(FetchStatus.BLOCKED, detail=detail, url=url)

    @classmethod
    def failed(cls, detail: str = "", url: str = "") -> "FetchOutcome":
        return cls(FetchStatus.FAILED, detail=detail, url=url)

    @property
    def failure_reason(self) -> Optional[FailureReason]:
        if self.status is FetchStatus.BLOCKED:
            return FailureReason.SITE_BLOCKED
        if self.status is FetchStatus.FAILED:
            return FailureReason.FETCH_FAILURE
        return None


class PageFetcher(Protocol):
    """Anything that can load a booking page for a site and date pair."""

    async def fetch(self, site: str, url: str, pair: DatePair) -> FetchOutcome:
        ...


def detect_challenge_page(title: str, text: str) -> Optional[str]:
    """
    Check whether a page looks like a bot-detection challenge.

    Args:
        title: Page title
        text: Visible page text (only the start is inspected)

    Returns:
        The matched marker, or None for a normal page
    """
    title_words = set(re.findall(r"[a-z]+", (title or "").lower()))
    title_lower = (title or "").lower()
    for marker in CHALLENGE_TITLE_MARKERS:
        if (" " in marker and marker in title_lower) or marker in title_words:
            return marker

    head = (text or "")[:2000].lower()
    for marker in CHALLENGE_TEXT_MARKERS:
        if marker in head:
            return marker
    return None


def classify_content(content: PageContent, url: str = "") -> FetchOutcome:
    """Wrap loaded content in an outcome, flagging challenge pages as blocked."""
    marker = detect_challenge_page(content.page_title, content.page_text)
    if marker:
        logger.warning(f"Challenge page detected ({marker!r}) at {url or 'page'}")
        return FetchOutcome.blocked(detail=f"challenge page: {marker}", url=url)
    return FetchOutcome.ok(content, url=url)


def site_slug(site: str) -> str:
    """File-system friendly site name: ``Booking.com`` -> ``booking-com``."""
    return re.sub(r"[^a-z0-9]+", "-", site.lower()).strip("-")


def snapshot_filename(site: str, pair: DatePair) -> str:
    return f"{site_slug(site)}_{pair.check_in.isoformat()}_{pair.check_out.isoformat()}.html"


@dataclass
class SnapshotFetcher:
    """Serves previously saved page HTML from a directory."""
    directory: Path
    encoding: str = "utf-8"
    requested: list[str] = field(default_factory=list)

    def __post_init__(self):
        self.directory = Path(self.directory)

    async def fetch(self, site: str, url: str, pair: DatePair) -> FetchOutcome:
        path = self.directory / snapshot_filename(site, pair)
        self.requested.append(path.name)
        try:
            html = path.read_text(encoding=self.encoding)
        except FileNotFoundError:
            logger.warning(f"No snapshot for {site} {pair}: {path}")
            return FetchOutcome.failed(detail=f"snapshot not found: {path.name}", url=url)
        except OSError as e:
            return FetchOutcome.failed(detail=f"could not read {path.name}: {e}", url=url)

        logger.debug(f"Loaded snapshot {path}")
        return classify_content(PageContent(html=html), url=url or str(path))
