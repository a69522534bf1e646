# ==============================================================================
# Shared Utilities for CLI Commands
# ==============================================================================
"""
Shared utilities, constants, and helper functions used across CLI command modules.

This module provides:
- ANSI color codes and box-drawing characters
- Box drawing helpers for formatted output
- Event store lifecycle for commands
- Error reporting that turns analytics errors into exit code 1
"""

import json
import re
from contextlib import contextmanager
from typing import Any, Iterator

import typer

from webanalytics.base import EventStore
from webanalytics.core.errors import AnalyticsError, InvalidEventError
from webanalytics.utils.config import get_settings
from webanalytics.utils.logging_setup import configure_logging

# ==============================================================================
# Constants
# ==============================================================================

# Box drawing width (unified for all commands)
BOX_WIDTH = 68


# ==============================================================================
# ANSI Colors and Box Drawing
# ==============================================================================


class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    # Colors
    CYAN = "\033[36m"
    WHITE = "\033[37m"

    # Bright colors
    BRIGHT_RED = "\033[91m"
    BRIGHT_GREEN = "\033[92m"
    BRIGHT_YELLOW = "\033[93m"


class Box:
    """Unicode box-drawing characters."""

    H = "─"  # horizontal
    V = "│"  # vertical
    TL = "┌"  # top-left
    TR = "┐"  # top-right
    BL = "└"  # bottom-left
    BR = "┘"  # bottom-right
    LT = "├"  # left-tee
    RT = "┤"  # right-tee


class Icons:
    """Status icons using Unicode symbols."""

    CHECK = "✓"
    CROSS = "✗"
    UP = "▲"
    DOWN = "▼"


# Module-level aliases for convenience
C, B, I = Colors, Box, Icons

_ANSI_ESCAPE_PATTERN = re.compile(r"\x1b\[[0-9;]*m")


# ==============================================================================
# Box Drawing Helpers
# ==============================================================================


def _visible_len(s: str) -> int:
    """Calculate visible length of string, ignoring ANSI escape codes."""
    return len(_ANSI_ESCAPE_PATTERN.sub("", s))


def _truncate(text: str, width: int) -> str:
    """Shorten plain text to width, marking the cut with an ellipsis."""
    if len(text) <= width:
        return text
    return text[: max(width - 1, 0)] + "…"


def _box_header(title: str, width: int = BOX_WIDTH) -> str:
    """Create a single-line box header."""
    inner_width = width - 2
    title_padded = f" {title} "
    left_bar = (inner_width - len(title_padded)) // 2
    right_bar = inner_width - left_bar - len(title_padded)
    return (
        f"{C.CYAN}{B.TL}{B.H * left_bar}{C.BOLD}{C.WHITE}{title_padded}"
        f"{C.RESET}{C.CYAN}{B.H * right_bar}{B.TR}{C.RESET}"
    )


def _section_header(title: str, width: int = BOX_WIDTH) -> str:
    """Create a section divider inside a box."""
    inner_width = width - 2
    title_padded = f" {title} "
    bar_len = inner_width - len(title_padded) - 1  # -1 for the first H after LT
    return (
        f"{C.CYAN}{B.LT}{B.H}{C.BOLD}{title_padded}{C.RESET}{C.CYAN}{B.H * bar_len}{B.RT}{C.RESET}"
    )


def _box_line(content: str, width: int = BOX_WIDTH) -> str:
    """Create a line inside the box with proper padding to right border."""
    inner_width = width - 2
    padding = inner_width - _visible_len(content)
    return f"{C.CYAN}{B.V}{C.RESET}{content}{' ' * padding}{C.CYAN}{B.V}{C.RESET}"


def _empty_line(width: int = BOX_WIDTH) -> str:
    """Create an empty line inside the box."""
    return f"{C.CYAN}{B.V}{' ' * (width - 2)}{B.V}{C.RESET}"


def _box_bottom(width: int = BOX_WIDTH) -> str:
    """Create a box bottom border."""
    return f"{C.CYAN}{B.BL}{B.H * (width - 2)}{B.BR}{C.RESET}"


def _format_change(change: float | None) -> str:
    """Colored arrow and percent for a period-over-period change."""
    if change is None:
        return f"{C.DIM}{'-':>9}{C.RESET}"
    if change > 0:
        return f"{C.BRIGHT_GREEN}{I.UP} {change:>6.1f}%{C.RESET}"
    if change < 0:
        return f"{C.BRIGHT_RED}{I.DOWN} {abs(change):>6.1f}%{C.RESET}"
    return f"{C.DIM}  {change:>6.1f}%{C.RESET}"


# ==============================================================================
# Output Helpers
# ==============================================================================


def print_json(data: Any) -> None:
    """Print data as indented JSON; datetimes and other objects use str()."""
    print(json.dumps(data, indent=2, default=str))


def print_error(message: str) -> None:
    print(f"{C.BRIGHT_RED}{I.CROSS} {message}{C.RESET}")


# ==============================================================================
# Command Lifecycle
# ==============================================================================


@contextmanager
def command_context() -> Iterator[None]:
    """
    Configure logging and convert analytics errors into exit code 1.

    Usage:
        with command_context():
            ...
    """
    configure_logging(get_settings().log_level)
    try:
        yield
    except InvalidEventError as e:
        print_error(str(e))
        for err in e.errors:
            print(f"    {err['field']}: {err['message']}")
        raise typer.Exit(1)
    except AnalyticsError as e:
        print_error(str(e))
        raise typer.Exit(1)


@contextmanager
def open_event_store() -> Iterator[EventStore]:
    """Yield a connected event store from configuration and close it afterwards."""
    from webanalytics.services.factory import get_event_store

    store = get_event_store()
    try:
        yield store
    finally:
        store.close()
