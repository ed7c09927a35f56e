"""OTA site profiles: page URLs and extraction strategy order per site."""

from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from .models import DatePair, MonitorConfig
from .strategies import DEFAULT_STRATEGIES, HEADINGS, OFFER_CARDS, ROOM_TABLE, TEXT_SCAN, Strategy


@dataclass(frozen=True)
class SiteProfile:
    """How to address and parse one booking site."""
    name: str
    base_url: str = ""
    check_in_param: str = "checkin"
    check_out_param: str = "checkout"
    extra_params: tuple[tuple[str, str], ...] = ()
    strategies: tuple[Strategy, ...] = field(default=DEFAULT_STRATEGIES)


SITE_PROFILES = {
    "Expedia": SiteProfile(
        name="Expedia",
        base_url="https://www.expedia.co.uk/London-Hotels-The-Standard-London.h34928032.Hotel-Information",
        check_in_param="chkin",
        check_out_param="chkout",
        extra_params=(("rm1", "a2"),),
        strategies=(OFFER_CARDS, HEADINGS, TEXT_SCAN),
    ),
    "Booking.com": SiteProfile(
        name="Booking.com",
        base_url="https://www.booking.com/hotel/gb/the-standard-london.en-gb.html",
        check_in_param="checkin",
        check_out_param="checkout",
        extra_params=(("group_adults", "2"), ("group_children", "0"), ("no_rooms", "1")),
        strategies=(ROOM_TABLE, HEADINGS, TEXT_SCAN),
    ),
}


def get_profile(site: str) -> SiteProfile:
    """Profile for a site; unknown sites get the generic strategy order."""
    return SITE_PROFILES.get(site) or SiteProfile(name=site)


def build_site_url(
    site: str,
    pair: DatePair,
    base_url: Optional[str] = None,
) -> str:
    """
    Add stay dates to a site's hotel page URL.

    Args:
        site: Site identifier
        pair: Stay dates
        base_url: Hotel page URL overriding the profile default

    Returns:
        URL with date parameters, or "" when the site has no known URL
    """
    profile = get_profile(site)
    url = base_url or profile.base_url
    if not url:
        return ""

    parsed = urlparse(url)
    params = parse_qs(parsed.query)

    for key, value in profile.extra_params:
        params.setdefault(key, [value])
    params[profile.check_in_param] = [pair.check_in.isoformat()]
    params[profile.check_out_param] = [pair.check_out.isoformat()]

    # Flatten the params dict
    flat_params = {k: v[0] if len(v) == 1 else v for k, v in params.items()}

    return urlunparse((
        parsed.scheme,
        parsed.netloc,
        parsed.path,
        parsed.params,
        urlencode(flat_params, doseq=True),
        parsed.fragment,
    ))


def site_url(config: MonitorConfig, site: str, pair: DatePair) -> str:
    return build_site_url(site, pair, config.site_urls.get(site))
