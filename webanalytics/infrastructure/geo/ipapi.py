# ==============================================================================
# ipapi.co Geo Lookup
# ==============================================================================
"""
GeoLookup adapter backed by the ipapi.co JSON API.

Lookups are best-effort enrichment on the ingestion path:
- Loopback, private, link-local and other non-routable addresses
  (documentation, benchmarking, reserved) never leave the process
- One GET per lookup with a short timeout and no retries
- Every failure (network, HTTP status, bad JSON, API error payload)
  collapses to an empty GeoLocation

API Documentation: https://ipapi.co/api/
"""

import ipaddress
import logging
from typing import Any, Optional

import requests

from webanalytics.base.geo import GeoLookup
from webanalytics.core.models import GeoLocation

logger = logging.getLogger(__name__)

IPAPI_BASE_URL = "https://ipapi.co"
DEFAULT_TIMEOUT = 2.0  # seconds

# Returned for requests coming from the local machine or a private network
LOCAL_GEO = GeoLocation(country="Local", country_code="LO", city="Localhost")

EMPTY_GEO = GeoLocation()


def is_local_address(ip: Optional[str]) -> bool:
    """
    Check whether an address should be treated as local.

    Empty values count as local. Unparseable values are not local.
    """
    if not ip or not ip.strip():
        return True
    try:
        addr = ipaddress.ip_address(ip.strip())
    except ValueError:
        return False
    return addr.is_loopback or addr.is_private or addr.is_link_local or addr.is_unspecified


def _parse_response(data: Any) -> GeoLocation:
    """Map an ipapi.co payload onto GeoLocation."""
    if not isinstance(data, dict) or data.get("error"):
        return EMPTY_GEO

    def _float(value: Any) -> Optional[float]:
        try:
            return float(value) if value is not None else None
        except (TypeError, ValueError):
            return None

    return GeoLocation(
        country=data.get("country_name") or None,
        country_code=data.get("country_code") or None,
        city=data.get("city") or None,
        region=data.get("region") or None,
        latitude=_float(data.get("latitude")),
        longitude=_float(data.get("longitude")),
        timezone=data.get("timezone") or None,
    )


class IpApiGeoLookup(GeoLookup):
    """
    ipapi.co implementation of GeoLookup.

    Never raises: the worst outcome of a lookup is an empty GeoLocation.
    """

    def __init__(self, base_url: str = IPAPI_BASE_URL, timeout: float = DEFAULT_TIMEOUT):
        """
        Initialize the lookup.

        Args:
            base_url: API base URL (default: https://ipapi.co)
            timeout: Request timeout in seconds (default: 2)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def lookup(self, ip: str | None) -> GeoLocation:
        if is_local_address(ip):
            return LOCAL_GEO

        ip = ip.strip()
        try:
            ipaddress.ip_address(ip)
        except ValueError:
            logger.debug("Skipping geo lookup for unparseable address %r", ip)
            return EMPTY_GEO

        url = f"{self.base_url}/{ip}/json/"
        try:
            response = requests.get(url, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.Timeout:
            logger.warning("Geo lookup for %s timed out after %.1fs", ip, self.timeout)
            return EMPTY_GEO
        except requests.exceptions.RequestException as e:
            # raise_for_status errors and JSON decode errors both land here
            logger.warning("Geo lookup for %s failed: %s", ip, e)
            return EMPTY_GEO
        except ValueError as e:
            logger.warning("Geo lookup for %s returned invalid JSON: %s", ip, e)
            return EMPTY_GEO

        geo = _parse_response(data)
        if geo.is_empty:
            logger.debug("Geo lookup for %s returned no data", ip)
        return geo


class NullGeoLookup(GeoLookup):
    """GeoLookup used when enrichment is disabled. Always empty."""

    def lookup(self, ip: str | None) -> GeoLocation:
        return EMPTY_GEO
