# ==============================================================================
# Web Analytics CLI
# ==============================================================================
"""
Command-line interface for the web analytics engine.

Usage:
    webanalytics --help
    webanalytics collect -v visitor-1 -p /pricing
    webanalytics heartbeat -s <session-id> --scroll 50 -p /pricing
    webanalytics report summary -r 30d
    webanalytics report pages -n 10 --json
    webanalytics report realtime
    webanalytics db init
    webanalytics db reset -y
    webanalytics geo lookup 8.8.8.8
    webanalytics config show
"""

# ==============================================================================
# App Configuration
# ==============================================================================
# Set consistent terminal width for help output formatting
import os

import typer

if "COLUMNS" not in os.environ:
    os.environ["COLUMNS"] = "115"

app = typer.Typer(
    name="webanalytics",
    help="Web analytics ingestion and reporting CLI",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Ingestion commands are imported from webanalytics.cli.ingest
from webanalytics.cli.ingest import collect, heartbeat

app.command("collect")(collect)
app.command("heartbeat")(heartbeat)

report_app = typer.Typer(
    help="Dashboard reports",
    no_args_is_help=True,
)
app.add_typer(report_app, name="report")

# Register report commands from cli.analytics module
from webanalytics.cli.analytics import (
    report_devices,
    report_geo,
    report_pages,
    report_realtime,
    report_referrers,
    report_summary,
    report_timeseries,
)

report_app.command("summary")(report_summary)
report_app.command("timeseries")(report_timeseries)
report_app.command("pages")(report_pages)
report_app.command("geo")(report_geo)
report_app.command("devices")(report_devices)
report_app.command("referrers")(report_referrers)
report_app.command("realtime")(report_realtime)

db_app = typer.Typer(
    help="Database schema management",
    no_args_is_help=True,
)
app.add_typer(db_app, name="db")

# Register db commands from cli.data module
from webanalytics.cli.data import db_init, db_reset

db_app.command("init")(db_init)
db_app.command("reset")(db_reset)

geo_app = typer.Typer(
    help="Geo lookup operations",
    no_args_is_help=True,
)
app.add_typer(geo_app, name="geo")

from webanalytics.cli.geo import geo_clear_cache, geo_lookup

geo_app.command("lookup")(geo_lookup)
geo_app.command("clear-cache")(geo_clear_cache)

config_app = typer.Typer(
    help="Configuration management",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")

# Register config commands from cli.config module
from webanalytics.cli.config import config_show

config_app.command("show")(config_show)


# ==============================================================================
# Entry Point
# ==============================================================================


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
