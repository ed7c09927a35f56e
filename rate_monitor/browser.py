"""Page loading with Playwright."""

import logging
from typing import Optional

from playwright.async_api import async_playwright, Browser, BrowserContext, Page, Playwright

from .errors import FetchError
from .fetch import FetchOutcome, PageContent, classify_content
from .models import DatePair

logger = logging.getLogger(__name__)


class PlaywrightFetcher:  # pragma: no cover - needs a real browser
    """Loads booking pages in Chromium and hands back their rendered HTML."""

    def __init__(self, headless: bool = True, timeout_ms: int = 45000, locale: str = "en-GB"):
        self.headless = headless
        self.timeout_ms = timeout_ms
        self.locale = locale
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

    async def start(self) -> Page:
        """Initialize browser and return page instance."""
        self.playwright = await async_playwright().start()
        try:
            self.browser = await self.playwright.chromium.launch(
                headless=self.headless,
                args=["--disable-dev-shm-usage", "--no-sandbox"],
            )
        except Exception as e:
            raise FetchError(f"Could not launch Chromium: {e}") from e
        self.context = await self.browser.new_context(
            locale=self.locale,
            viewport={"width": 1366, "height": 768},
        )
        self.page = await self.context.new_page()
        self.page.set_default_timeout(self.timeout_ms)
        self.page.set_default_navigation_timeout(self.timeout_ms)
        return self.page

    async def close(self):
        """Clean up browser resources."""
        if self.context:
            await self.context.close()
        if self.browser:
            await self.browser.close()
        if self.playwright:
            await self.playwright.stop()
        self.page = None

    async def __aenter__(self) -> "PlaywrightFetcher":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def fetch(self, site: str, url: str, pair: DatePair) -> FetchOutcome:
        """
        Navigate to a site's page for one stay and capture its content.

        Args:
            site: Site identifier (for logging)
            url: Page URL with stay dates
            pair: Stay dates

        Returns:
            FetchOutcome; navigation errors and timeouts come back as failed
        """
        if not url:
            return FetchOutcome.failed(detail=f"no URL configured for {site}")
        if self.page is None:
            await self.start()

        logger.info(f"Loading {site} for {pair}: {url}")
        try:
            await self.page.goto(url, wait_until="domcontentloaded", timeout=self.timeout_ms)
            await wait_for_page_ready(self.page)
            html = await self.page.content()
            title = await self.page.title()
        except Exception as e:
            logger.error(f"Failed to load {site} page: {e}")
            return FetchOutcome.failed(detail=str(e), url=url)

        return classify_content(PageContent(html=html, title=title), url=url)


async def wait_for_page_ready(page: Page, max_wait: int = 10):  # pragma: no cover
    """
    Wait for the DOM and, briefly, for the network to settle.

    Args:
        page: Playwright page instance
        max_wait: Maximum seconds to wait for DOM content
    """
    try:
        await page.wait_for_load_state("domcontentloaded", timeout=max_wait * 1000)
    except Exception as e:
        logger.debug(f"DOM content wait ended early: {e}")

    try:
        await page.wait_for_load_state("networkidle", timeout=5000)
    except Exception as e:
        logger.debug(f"Network idle wait ended early: {e}")
