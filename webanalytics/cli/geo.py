# ==============================================================================
# Geo Commands
# ==============================================================================
"""
Geo enrichment commands for the web analytics CLI.

Resolve a single IP through the configured lookup chain, or clear the
Valkey lookup cache.
"""

from typing import Annotated

import typer

from webanalytics.cli.shared import C, I, print_json
from webanalytics.utils.config import get_settings


# ==============================================================================
# Commands
# ==============================================================================


def geo_lookup(
    ip: Annotated[str, typer.Argument(help="IPv4 or IPv6 address")],
    json_output: Annotated[
        bool, typer.Option("--json", "-j", help="Output as JSON for scripting")
    ] = False,
) -> None:
    """Resolve an IP address with the configured geo lookup.

    Examples:
        webanalytics geo lookup 8.8.8.8
    """
    from webanalytics.services.factory import get_geo_lookup

    geo = get_geo_lookup().lookup(ip)

    if json_output:
        print_json(geo.model_dump())
        return

    print()
    if geo.is_empty:
        print(f"{C.BRIGHT_YELLOW}{I.CROSS} No location found for {ip}{C.RESET}")
        print()
        return

    for label, value in geo.model_dump().items():
        if value is not None:
            print(f"  {label.replace('_', ' ').title() + ':':<14}{C.WHITE}{value}{C.RESET}")
    print()


def geo_clear_cache() -> None:
    """Delete every cached geo lookup from Valkey.

    Examples:
        webanalytics geo clear-cache
    """
    from webanalytics.infrastructure.cache import ValkeyCache, check_valkey_connection
    from webanalytics.infrastructure.geo import CachedGeoLookup, NullGeoLookup

    settings = get_settings()

    print()
    if not check_valkey_connection():
        print(f"{C.BRIGHT_RED}{I.CROSS} Cannot connect to Valkey{C.RESET}")
        raise typer.Exit(1)

    cache = ValkeyCache(settings.valkey.url, socket_timeout=5)
    try:
        deleted = CachedGeoLookup(NullGeoLookup(), cache).clear()
    finally:
        cache.close()

    print(f"{C.BRIGHT_GREEN}{I.CHECK} Removed {C.WHITE}{deleted}{C.RESET} cached lookups")
    print()
