# ==============================================================================
# Geo Lookup Abstract Base Class
# ==============================================================================
"""
Port for resolving a client IP address to an approximate location.

Lookups are best-effort enrichment: implementations must never raise and
return an empty GeoLocation when nothing is known.
"""

from abc import ABC, abstractmethod

from webanalytics.core.models import GeoLocation


class GeoLookup(ABC):
    """IP to location resolver."""

    @abstractmethod
    def lookup(self, ip: str | None) -> GeoLocation:
        """
        Resolve an IP address.

        Args:
            ip: IPv4 or IPv6 address as a string, may be None or empty

        Returns:
            GeoLocation, empty (all fields None) when unknown
        """
        ...
