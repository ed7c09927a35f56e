"""Validation, deduplication and record building for extracted rates."""

import logging
from typing import Iterable

from .errors import FailureReason
from .models import DatePair, PriceBounds, RateCandidate, RateRecord
from .room_parser import clean_room_name, is_valid_room_name

logger = logging.getLogger(__name__)


def dedupe_candidates(candidates: Iterable[RateCandidate]) -> list[RateCandidate]:
    """
    Remove exact (room name, price) duplicates, keeping first-seen order.

    Args:
        candidates: Candidates from a single site and date pair

    Returns:
        Deduplicated list of candidates
    """
    seen = set()
    unique = []
    for candidate in candidates:
        key = (candidate.room_name, candidate.price)
        if key in seen:
            continue
        seen.add(key)
        unique.append(candidate)
    return unique


def is_valid_candidate(candidate: RateCandidate, bounds: PriceBounds) -> bool:
    """A candidate needs a real room name and an in-bounds price."""
    if candidate.price is None or not bounds.contains(candidate.price):
        return False
    return is_valid_room_name(candidate.room_name)


def clean_candidates(candidates: Iterable[RateCandidate], bounds: PriceBounds) -> list[RateCandidate]:
    """
    Normalise names, drop malformed candidates and collapse duplicates.

    Malformed candidates (out-of-range price, empty or boilerplate name) are
    dropped silently; they are not errors.
    """
    kept = []
    for candidate in candidates:
        normalised = RateCandidate(clean_room_name(candidate.room_name), candidate.price)
        if not is_valid_candidate(normalised, bounds):
            logger.debug(f"Dropping candidate ({FailureReason.MALFORMED_CONTENT.value}): {candidate.room_name!r} @ {candidate.price}")
            continue
        kept.append(normalised)
    return dedupe_candidates(kept)


def build_records(
    candidates: Iterable[RateCandidate],
    ota: str,
    pair: DatePair,
    date_sequence: int,
    currency: str,
    source: str,
) -> list[RateRecord]:
    """Attach site, stay dates and provenance to cleaned candidates."""
    return [
        RateRecord(
            ota=ota,
            room_name=candidate.room_name,
            price=candidate.price,
            currency=currency,
            source=source,
            check_in=pair.check_in,
            check_out=pair.check_out,
            date_sequence=date_sequence,
        )
        for candidate in candidates
    ]
