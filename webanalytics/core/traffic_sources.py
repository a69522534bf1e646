# ==============================================================================
# Traffic Source Taxonomy
# ==============================================================================
"""
Static lookup tables and rules for classifying where a session came from.

Classification order:
1. UTM source present: search engine, social platform, email, paid, else campaign
2. No UTM source: no referrer is Direct; known search/social domains;
   anything else is Referral

The tables are plain tuples so the rule can be audited and tested on its own.
"""

import re
from enum import Enum
from typing import Optional
from urllib.parse import urlsplit


class TrafficSource(str, Enum):
    ORGANIC_SEARCH = "Organic Search"
    SOCIAL_MEDIA = "Social Media"
    EMAIL = "Email"
    PAID_ADS = "Paid Ads"
    CAMPAIGN = "Campaign"
    DIRECT = "Direct"
    REFERRAL = "Referral"


SEARCH_ENGINES: tuple[str, ...] = (
    "google",
    "bing",
    "duckduckgo",
    "yahoo",
    "baidu",
    "yandex",
)

SOCIAL_PLATFORMS: tuple[str, ...] = (
    "facebook",
    "instagram",
    "linkedin",
    "twitter",
    "tiktok",
    "reddit",
)

# Short names that would match far too much as substrings
SOCIAL_SHORT_SOURCES: tuple[str, ...] = ("x",)
SOCIAL_SHORT_DOMAINS: tuple[str, ...] = ("x.com", "t.co")

EMAIL_MARKERS: tuple[str, ...] = ("email", "newsletter")
PAID_MARKERS: tuple[str, ...] = ("cpc", "ads", "paid")

_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")


def extract_referrer_domain(referrer: Optional[str]) -> Optional[str]:
    """
    Get the hostname of a referrer URL without a leading "www.".

    Returns:
        Lowercase domain, or None for absent or malformed URLs
    """
    if not referrer:
        return None
    try:
        hostname = urlsplit(referrer.strip()).hostname
    except ValueError:
        return None
    if not hostname:
        return None
    return hostname.removeprefix("www.")


def _classify_utm_source(utm_source: str) -> TrafficSource:
    source = utm_source.lower()
    tokens = set(_TOKEN_SPLIT.split(source))

    if any(name in source for name in SEARCH_ENGINES):
        return TrafficSource.ORGANIC_SEARCH
    if any(name in source for name in SOCIAL_PLATFORMS) or tokens & set(SOCIAL_SHORT_SOURCES):
        return TrafficSource.SOCIAL_MEDIA
    if any(marker in source for marker in EMAIL_MARKERS):
        return TrafficSource.EMAIL
    if any(marker in source for marker in PAID_MARKERS):
        return TrafficSource.PAID_ADS
    return TrafficSource.CAMPAIGN


def _classify_domain(referrer_domain: str) -> TrafficSource:
    domain = referrer_domain.lower()
    labels = set(domain.split("."))

    if labels & set(SEARCH_ENGINES):
        return TrafficSource.ORGANIC_SEARCH
    if labels & set(SOCIAL_PLATFORMS):
        return TrafficSource.SOCIAL_MEDIA
    if any(domain == d or domain.endswith("." + d) for d in SOCIAL_SHORT_DOMAINS):
        return TrafficSource.SOCIAL_MEDIA
    return TrafficSource.REFERRAL


def categorize_traffic_source(
    referrer_domain: Optional[str], utm_source: Optional[str]
) -> TrafficSource:
    """
    Assign a session to a traffic-source category.

    A UTM source always wins over the referrer domain.

    Args:
        referrer_domain: Domain derived from the session's referrer
        utm_source: utm_source query parameter captured at session start

    Returns:
        TrafficSource category
    """
    if utm_source and utm_source.strip():
        return _classify_utm_source(utm_source)
    if not referrer_domain:
        return TrafficSource.DIRECT
    return _classify_domain(referrer_domain)
