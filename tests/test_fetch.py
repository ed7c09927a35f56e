"""Tests for page content handling and challenge detection."""

from datetime import date

from rate_monitor.fetch import (
    FetchStatus,
    PageContent,
    classify_content,
    detect_challenge_page,
    site_slug,
    snapshot_filename,
)
from rate_monitor.models import DatePair


def test_challenge_titles_are_detected():
    assert detect_challenge_page("Bot or Not?", "") == "bot"
    assert detect_challenge_page("Are you human?", "") == "human"
    assert detect_challenge_page("Access Denied", "") == "access denied"


def test_challenge_text_is_detected():
    text = "Please help us confirm you are on the human side of the internet."
    assert detect_challenge_page("Expedia", text) == "human side"


def test_normal_pages_pass():
    assert detect_challenge_page("Booking.com: The Standard London", "Double Room £400") is None
    assert detect_challenge_page("Robotics Hotel", "") is None


def test_classify_content_flags_challenge_pages():
    blocked = classify_content(PageContent(html="<html><head><title>Bot check</title></head></html>"))
    assert blocked.status is FetchStatus.BLOCKED
    assert blocked.content is None

    ok = classify_content(PageContent(html="<html><head><title>Hotel</title></head><body>Suite</body></html>"))
    assert ok.status is FetchStatus.OK
    assert ok.failure_reason is None


def test_page_text_prefers_supplied_text():
    assert PageContent(html="<body><p>ignored</p></body>", text="Suite £300").page_text == "Suite £300"
    assert PageContent(html="<body><p>Suite</p><p>£300</p></body>").page_text == "Suite\n£300"
    assert PageContent().page_text == ""


def test_snapshot_filename_uses_site_slug():
    pair = DatePair(date(2025, 6, 1), date(2025, 6, 2))
    assert site_slug("Booking.com") == "booking-com"
    assert snapshot_filename("Booking.com", pair) == "booking-com_2025-06-01_2025-06-02.html"
