# ==============================================================================
# Database Commands
# ==============================================================================
"""
Database management commands for the web analytics CLI.

Commands for initializing and resetting the PostgreSQL schema.
"""

from typing import Annotated

import psycopg2
import typer

from webanalytics.cli.shared import C, I
from webanalytics.utils.config import get_settings
from webanalytics.utils.db import check_db_connection


# ==============================================================================
# Commands
# ==============================================================================


def db_init() -> None:
    """Create the analytics schema and tables if they do not exist.

    Safe to run repeatedly.

    Examples:
        webanalytics db init
    """
    from webanalytics.utils.db import ensure_schema

    settings = get_settings()
    schema = settings.postgres.schema_name

    print()
    print(f"  Initializing PostgreSQL schema '{C.WHITE}{schema}{C.RESET}'...")
    try:
        created = ensure_schema()
    except (RuntimeError, psycopg2.Error) as e:
        print(f"{C.BRIGHT_RED}{I.CROSS} Failed to initialize schema: {e}{C.RESET}")
        raise typer.Exit(1)

    if created:
        print(f"{C.BRIGHT_GREEN}{I.CHECK} Schema created{C.RESET}")
    else:
        print(f"{C.BRIGHT_GREEN}{I.CHECK} Schema already exists{C.RESET}")
    print()


def db_reset(
    confirm: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompt")] = False,
) -> None:
    """Drop and recreate the analytics schema.

    Deletes every session and page view.

    Examples:
        webanalytics db reset       # With confirmation prompt
        webanalytics db reset -y    # Skip confirmation
    """
    from webanalytics.utils.db import reset_schema

    settings = get_settings()
    schema = settings.postgres.schema_name

    print()
    if not confirm:
        typer.confirm(
            f"This will DELETE all sessions and page views in schema '{schema}'. Are you sure?",
            abort=True,
        )
        print()

    print(f"  Resetting PostgreSQL schema '{C.WHITE}{schema}{C.RESET}'...")
    if not check_db_connection():
        print(f"{C.BRIGHT_RED}{I.CROSS} Cannot connect to PostgreSQL{C.RESET}")
        raise typer.Exit(1)

    try:
        reset_schema()
    except RuntimeError as e:
        print(f"{C.BRIGHT_RED}{I.CROSS} {e}{C.RESET}")
        raise typer.Exit(1)

    print(f"{C.BRIGHT_GREEN}{I.CHECK} PostgreSQL reset{C.RESET}")
    print()
