"""Ordered extraction strategies for OTA booking pages."""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from .models import MonitorConfig, PriceBounds, RateCandidate, DEFAULT_ROOM_VOCABULARY
from .fetch import PageContent
from .records import clean_candidates
from .room_parser import (
    CURRENCY_SYMBOLS,
    clean_room_name,
    extract_price,
    find_vocabulary_rooms,
    is_valid_room_name,
    looks_like_room_name,
    unique_prices,
)

logger = logging.getLogger(__name__)

# Offer cards, most specific first
OFFER_CARD_SELECTORS = [
    '[data-stid^="property-offer"]',
    '[data-testid="property-offer"]',
    '[data-testid*="room-card"]',
    'div.room-card',
]
OFFER_NAME_SELECTORS = [
    'h3.uitk-heading-6',
    'h3',
    '.uitk-heading-6',
    '[data-testid*="title"]',
    '[data-stid*="content-hotel-title"]',
]
OFFER_PRICE_SELECTORS = [
    '.uitk-type-500',
    '[data-testid*="price"]',
]

ROOM_TABLE_ROW_SELECTORS = [
    'table.hprt-table tbody tr',
    'tr[data-block-id]',
]
ROOM_TABLE_NAME_SELECTORS = '.hprt-roomtype-icon-link, .hprt-roomtype-link'
ROOM_TABLE_PRICE_SELECTORS = [
    '.prco-valign-middle-helper',
    '.bui-price-display__value span',
    '.bui-price-display__value',
    '[data-testid*="price"] span',
]

HEADING_SELECTORS = (
    'h1, h2, h3, h4, h5, h6, .room, .accommodation, [data-room-name], '
    '[title], strong, .title, [class*="name"], span'
)
MAX_HEADING_MATCHES = 10


@dataclass(frozen=True)
class ParsePolicy:
    """What the strategies need to know about acceptable values."""
    bounds: PriceBounds = field(default_factory=PriceBounds)
    currency: str = "GBP"
    vocabulary: tuple[str, ...] = DEFAULT_ROOM_VOCABULARY

    @classmethod
    def from_config(cls, config: MonitorConfig) -> "ParsePolicy":
        return cls(
            bounds=config.price_bounds,
            currency=config.currency,
            vocabulary=tuple(config.room_vocabulary),
        )


StrategyFunc = Callable[[PageContent, ParsePolicy], list[RateCandidate]]


@dataclass(frozen=True)
class Strategy:
    """A named extraction approach tried in priority order."""
    name: str
    func: StrategyFunc

    def __call__(self, content: PageContent, policy: ParsePolicy) -> list[RateCandidate]:
        return self.func(content, policy)


@dataclass
class StrategyOutcome:
    """Result of running a strategy list against one page."""
    strategy: Optional[str]
    candidates: list[RateCandidate] = field(default_factory=list)
    attempted: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.strategy is not None and bool(self.candidates)


def _first_text(element, selectors: Sequence[str]) -> str:
    """Text of the first valid room label found under the element."""
    for selector in selectors:
        found = element.select_one(selector)
        if found is None:
            continue
        name = clean_room_name(found.get_text(" ", strip=True))
        if len(name) > 5 and is_valid_room_name(name):
            return name
    return ""


def _first_price(element, selectors: Sequence[str], policy: ParsePolicy) -> Optional[int]:
    for selector in selectors:
        for found in element.select(selector):
            price = extract_price(found.get_text(" ", strip=True), policy.bounds, policy.currency)
            if price is not None:
                return price
    return None


def extract_offer_cards(content: PageContent, policy: ParsePolicy) -> list[RateCandidate]:
    """
    Extract rates from structured offer cards (one card per room offer).

    Args:
        content: Page content
        policy: Bounds, currency and vocabulary

    Returns:
        List of raw candidates
    """
    soup = content.soup
    cards = []
    for selector in OFFER_CARD_SELECTORS:
        cards = soup.select(selector)
        if cards:
            logger.debug(f"Found {len(cards)} offer cards using selector: {selector}")
            break

    candidates = []
    for card in cards:
        name = _first_text(card, OFFER_NAME_SELECTORS)
        price = _first_price(card, OFFER_PRICE_SELECTORS, policy)
        if name and price is not None:
            candidates.append(RateCandidate(name, price))
    return candidates


def extract_room_table(content: PageContent, policy: ParsePolicy) -> list[RateCandidate]:
    """
    Extract rates from an availability table.

    A room-type cell spans several rate rows, so the last seen room name is
    carried forward onto the rows below it. Pages without table rows fall
    back to pairing room-type links with price cells in document order.
    """
    soup = content.soup
    rows = []
    for selector in ROOM_TABLE_ROW_SELECTORS:
        rows = soup.select(selector)
        if rows:
            break

    candidates = []
    current_name = ""
    for row in rows:
        link = row.select_one(ROOM_TABLE_NAME_SELECTORS)
        if link is not None:
            current_name = clean_room_name(link.get_text(" ", strip=True))
        if not current_name:
            continue
        price = _first_price(row, ROOM_TABLE_PRICE_SELECTORS, policy)
        if price is not None:
            candidates.append(RateCandidate(current_name, price))

    if candidates or rows:
        return candidates

    names = [
        clean_room_name(link.get_text(" ", strip=True))
        for link in soup.select(ROOM_TABLE_NAME_SELECTORS)
    ]
    names = [name for name in names if len(name) > 2]

    prices = []
    for selector in ROOM_TABLE_PRICE_SELECTORS:
        prices = [
            price
            for price in (
                extract_price(el.get_text(" ", strip=True), policy.bounds, policy.currency)
                for el in soup.select(selector)
            )
            if price is not None
        ]
        if prices:
            break

    return [RateCandidate(name, price) for name, price in zip(names, prices)]


def extract_headings(content: PageContent, policy: ParsePolicy) -> list[RateCandidate]:
    """Pair room-like headings with unique page prices in document order."""
    soup = content.soup
    names = []
    symbol = CURRENCY_SYMBOLS.get(policy.currency)
    for element in soup.select(HEADING_SELECTORS):
        text = element.get_text(" ", strip=True) or element.get("data-room-name") or element.get("title") or ""
        name = clean_room_name(text)
        # Whole card text with the price in it, not a label
        if symbol and symbol in name:
            continue
        if name not in names and looks_like_room_name(name):
            names.append(name)

    prices = unique_prices(content.page_text, policy.bounds, policy.currency)
    pairs = list(zip(names, prices))[:MAX_HEADING_MATCHES]
    return [RateCandidate(name, price) for name, price in pairs]


def extract_text_scan(content: PageContent, policy: ParsePolicy) -> list[RateCandidate]:
    """Match known room labels in the page text with unique page prices."""
    text = content.page_text
    rooms = find_vocabulary_rooms(text, policy.vocabulary)
    prices = unique_prices(text, policy.bounds, policy.currency)
    return [RateCandidate(room, price) for room, price in zip(rooms, prices)]


OFFER_CARDS = Strategy("offer-cards", extract_offer_cards)
ROOM_TABLE = Strategy("room-table", extract_room_table)
HEADINGS = Strategy("headings", extract_headings)
TEXT_SCAN = Strategy("text-scan", extract_text_scan)

DEFAULT_STRATEGIES = (OFFER_CARDS, ROOM_TABLE, HEADINGS, TEXT_SCAN)


def select_first(
    strategies: Sequence[Strategy],
    content: PageContent,
    policy: ParsePolicy,
) -> StrategyOutcome:
    """
    Run strategies in order and keep the first one that yields valid rates.

    Results from different strategies are never merged. A strategy that
    raises is treated like one that found nothing.

    Args:
        strategies: Strategies in confidence order
        content: Page content
        policy: Bounds, currency and vocabulary

    Returns:
        StrategyOutcome; ``strategy`` is None when every strategy missed
    """
    attempted = []
    for strategy in strategies:
        attempted.append(strategy.name)
        try:
            raw = strategy(content, policy)
        except Exception as e:
            logger.warning(f"Strategy {strategy.name} failed: {e}")
            continue

        candidates = clean_candidates(raw, policy.bounds)
        if candidates:
            logger.debug(f"Strategy {strategy.name} produced {len(candidates)} rates")
            return StrategyOutcome(strategy.name, candidates, attempted)
        logger.debug(f"Strategy {strategy.name} found no valid rates")

    return StrategyOutcome(None, [], attempted)
