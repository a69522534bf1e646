# ==============================================================================
# Config Commands
# ==============================================================================
"""
Configuration commands for the web analytics CLI.
"""

from typing import Annotated

import typer

from webanalytics.cli.shared import C, print_json
from webanalytics.utils.config import get_settings


# ==============================================================================
# Commands
# ==============================================================================


def config_show(
    json_output: Annotated[
        bool, typer.Option("--json", "-j", help="Output configuration as JSON")
    ] = False,
) -> None:
    """Display current configuration (includes secrets in JSON mode)."""
    settings = get_settings()

    if json_output:
        config = {
            "analytics": {
                "store": settings.analytics.store,
                "timezone": settings.analytics.timezone,
                "query_timeout_seconds": settings.analytics.query_timeout_seconds,
            },
            "postgresql": {
                "host": settings.postgres.host,
                "port": settings.postgres.port,
                "database": settings.postgres.database,
                "schema": settings.postgres.schema_name,
                "user": settings.postgres.user,
                "password": settings.postgres.password,
                "sslmode": settings.postgres.sslmode,
            },
            "geo": {
                "enabled": settings.geo.enabled,
                "base_url": settings.geo.base_url,
                "timeout_seconds": settings.geo.timeout_seconds,
                "cache_enabled": settings.geo.cache_enabled,
                "cache_ttl_hours": settings.geo.cache_ttl_hours,
            },
            "valkey": {
                "host": settings.valkey.host,
                "port": settings.valkey.port,
                "db": settings.valkey.db,
                "ssl_enabled": settings.valkey.ssl,
                "password": settings.valkey.password,
            },
            "log_level": settings.log_level,
        }
        print_json(config)
        return

    # Human-readable output
    print()
    print(f"{C.BOLD}Configuration{C.RESET}")
    print()

    print(f"{C.CYAN}Analytics{C.RESET}")
    print(f"  Store:      {C.WHITE}{settings.analytics.store}{C.RESET}")
    print(f"  Timezone:   {C.WHITE}{settings.analytics.timezone}{C.RESET}")
    print(f"  Timeout:    {C.WHITE}{settings.analytics.query_timeout_seconds}s{C.RESET}")
    print()

    print(f"{C.CYAN}PostgreSQL{C.RESET}")
    print(f"  Host:       {C.WHITE}{settings.postgres.host}{C.RESET}")
    print(f"  Port:       {C.WHITE}{settings.postgres.port}{C.RESET}")
    print(f"  Database:   {C.WHITE}{settings.postgres.database}{C.RESET}")
    print(f"  Schema:     {C.WHITE}{settings.postgres.schema_name}{C.RESET}")
    print(f"  User:       {C.WHITE}{settings.postgres.user}{C.RESET}")
    print(f"  SSL:        {C.WHITE}{settings.postgres.sslmode}{C.RESET}")
    print()

    print(f"{C.CYAN}Geo Lookup{C.RESET}")
    geo_status = "enabled" if settings.geo.enabled else "disabled"
    print(f"  Status:     {C.WHITE}{geo_status}{C.RESET}")
    print(f"  API:        {C.WHITE}{settings.geo.base_url}{C.RESET}")
    print(f"  Timeout:    {C.WHITE}{settings.geo.timeout_seconds}s{C.RESET}")
    cache_status = (
        f"Valkey, {settings.geo.cache_ttl_hours}h TTL" if settings.geo.cache_enabled else "disabled"
    )
    print(f"  Cache:      {C.WHITE}{cache_status}{C.RESET}")
    print()

    if settings.geo.cache_enabled:
        print(f"{C.CYAN}Valkey{C.RESET}")
        print(f"  Host:       {C.WHITE}{settings.valkey.host}{C.RESET}")
        print(f"  Port:       {C.WHITE}{settings.valkey.port}{C.RESET}")
        valkey_ssl = "enabled" if settings.valkey.ssl else "disabled"
        print(f"  SSL:        {C.WHITE}{valkey_ssl}{C.RESET}")
        print()
