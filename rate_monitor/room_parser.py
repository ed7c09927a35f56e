"""Price and room-name parsing for scraped OTA page fragments."""

import re
from typing import Iterable, Optional

from .models import PriceBounds

CURRENCY_SYMBOLS = {
    "GBP": "£",
    "USD": "$",
    "EUR": "€",
    "INR": "₹",
}

# Labels that show up next to prices but are never room names
ROOM_NAME_BOILERPLATE = [
    "our lowest price",
    "upgrade your stay",
    "view all photos",
    "show more rooms",
    "see all rooms",
    "check availability",
]

# Single words that disqualify a label when they appear as a whole word
ROOM_NAME_STOP_WORDS = ["select", "choose", "book", "reserve"]

# Words that make a heading or span look like a room label
ROOM_KEYWORDS = [
    "room", "suite", "studio", "double", "single", "twin",
    "deluxe", "standard", "premium", "superior", "king", "queen",
]

PHOTO_PREFIX = "View all photos for "

_STOP_WORD_PATTERN = re.compile(r"\b(?:%s)\b" % "|".join(ROOM_NAME_STOP_WORDS), re.I)
_AMOUNT = r"\d{1,3}(?:[,\u00a0\u202f]\d{3})+|\d+"


def _price_pattern(currency: str) -> re.Pattern:
    """Build the ``<symbol><digits>`` / ``<digits><symbol>`` pattern for a currency."""
    markers = [re.escape(currency.upper())]
    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    if symbol:
        markers.insert(0, re.escape(symbol))
    marker = "(?:%s)" % "|".join(markers)
    return re.compile(
        rf"{marker}\s*(?P<lead>{_AMOUNT})(?:\.\d{{1,2}})?"
        rf"|(?<![\d.,])(?P<trail>{_AMOUNT})(?:\.\d{{1,2}})?\s*{marker}"
    )


def parse_amount(raw: str) -> Optional[int]:
    """Turn a matched amount like ``1,299`` into an integer."""
    digits = re.sub(r"[,\s]", "", raw)
    if not digits.isdigit():
        return None
    return int(digits)


def extract_prices(text: str, bounds: PriceBounds, currency: str = "GBP") -> list[int]:
    """
    Extract every in-bounds currency amount from text, in document order.

    Values outside the bounds are discarded even if syntactically valid, which
    filters out dates, ratings and counts that happen to sit near a symbol.

    Args:
        text: Text content of a page or element
        bounds: Accepted price window
        currency: ISO code of the run currency

    Returns:
        List of integer prices
    """
    if not text:
        return []

    prices = []
    for match in _price_pattern(currency).finditer(text):
        price = parse_amount(match.group("lead") or match.group("trail"))
        if price is not None and bounds.contains(price):
            prices.append(price)
    return prices


def extract_price(text: str, bounds: PriceBounds, currency: str = "GBP") -> Optional[int]:
    """Return the first in-bounds price in text, or None."""
    prices = extract_prices(text, bounds, currency)
    return prices[0] if prices else None


def unique_prices(text: str, bounds: PriceBounds, currency: str = "GBP") -> list[int]:
    """In-bounds prices with repeats removed, first occurrence kept."""
    seen = set()
    result = []
    for price in extract_prices(text, bounds, currency):
        if price not in seen:
            seen.add(price)
            result.append(price)
    return result


def clean_room_name(text: Optional[str]) -> str:
    """Normalise whitespace and strip gallery prefixes from a label."""
    if not text:
        return ""
    name = re.sub(r"\s+", " ", text).strip()
    if name.startswith(PHOTO_PREFIX):
        name = name[len(PHOTO_PREFIX):].strip()
    return name


def is_valid_room_name(name: Optional[str]) -> bool:
    """Check if the room name is valid (not a UI element or boilerplate)."""
    if not name:
        return False

    name = name.strip()
    if len(name) <= 2:
        return False

    # Room names are never questions
    if "?" in name:
        return False

    # Concatenated card text, not a label
    if len(name) > 120:
        return False

    name_lower = name.lower()
    for boilerplate in ROOM_NAME_BOILERPLATE:
        if boilerplate in name_lower:
            return False

    if _STOP_WORD_PATTERN.search(name):
        return False

    return True


def looks_like_room_name(text: str) -> bool:
    """Heuristic used when scanning loose headings and spans."""
    if not text or not (3 < len(text) < 100):
        return False
    text_lower = text.lower()
    if not any(keyword in text_lower for keyword in ROOM_KEYWORDS):
        return False
    return is_valid_room_name(text)


def match_room_vocabulary(text: str, vocabulary: Iterable[str]) -> Optional[str]:
    """Return the first vocabulary label contained in text (case-insensitive)."""
    if not text:
        return None
    text_lower = text.lower()
    for label in vocabulary:
        if label.lower() in text_lower:
            return label
    return None


def find_vocabulary_rooms(text: str, vocabulary: Iterable[str]) -> list[str]:
    """All vocabulary labels present in text, in vocabulary order."""
    if not text:
        return []
    text_lower = text.lower()
    found = []
    for label in vocabulary:
        label_lower = label.lower()
        if label_lower not in text_lower:
            continue
        # "Studio" is already covered by "Standard Studio"
        if any(label_lower in existing.lower() for existing in found):
            continue
        found.append(label)
    return found
