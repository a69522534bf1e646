# ==============================================================================
# CLI Commands Module
# ==============================================================================
"""
CLI commands for the web analytics engine.

Commands are organized into separate modules for maintainability:
- shared.py: Common output helpers and command lifecycle
- ingest.py: collect and heartbeat
- analytics.py: report views
- data.py: database schema management
- geo.py: geo lookup and cache maintenance
- config.py: configuration display
"""

from webanalytics.cli.shared import (
    # Constants
    BOX_WIDTH,
    # Classes
    Box,
    Colors,
    Icons,
    # Aliases
    B,
    C,
    I,
    # Output helpers
    command_context,
    open_event_store,
    print_error,
    print_json,
)

__all__ = [
    "BOX_WIDTH",
    "Box",
    "Colors",
    "Icons",
    "B",
    "C",
    "I",
    "command_context",
    "open_event_store",
    "print_error",
    "print_json",
]
