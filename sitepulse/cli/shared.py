# ==============================================================================
# Shared Utilities for CLI Commands
# ==============================================================================
"""
Shared utilities, constants, and helper functions used across CLI command modules.

This module provides:
- ANSI color codes and box-drawing characters
- Box drawing helpers for formatted output
- Error output and store access shared by the report commands
"""

import json
import re

import typer

from sitepulse.base.repositories import EventRepository
from sitepulse.core.errors import StoreError
from sitepulse.utils.config import get_settings
from sitepulse.utils.db import open_store
from sitepulse.utils.versions import get_sitepulse_version

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
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"

    # Bright colors
    BRIGHT_RED = "\033[91m"
    BRIGHT_GREEN = "\033[92m"
    BRIGHT_YELLOW = "\033[93m"
    BRIGHT_CYAN = "\033[96m"


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
    WARN = "!"
    CIRCLE = "●"
    ARROW = "→"
    DATABASE = "◆"


# Module-level aliases for convenience
C, B, I = Colors, Box, Icons

_ANSI_ESCAPE_PATTERN = re.compile(r"\033\[[0-9;]*m")


# ==============================================================================
# Box Drawing Helpers
# ==============================================================================


def _visible_len(s: str) -> int:
    """Calculate visible length of string, ignoring ANSI escape codes."""
    return len(_ANSI_ESCAPE_PATTERN.sub("", s))


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
    """Create a section divider inside the box."""
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
    """Create a box bottom border with the centered version tag."""
    text = f" SitePulse {get_sitepulse_version()} "
    remaining = width - 2 - len(text)  # -2 for corners
    left_pad = remaining // 2
    right_pad = remaining - left_pad
    return f"{C.CYAN}{B.BL}{B.H * left_pad}{text}{B.H * right_pad}{B.BR}{C.RESET}"


# ==============================================================================
# Command Helpers
# ==============================================================================


def fail(message: str, json_output: bool = False) -> None:
    """Print an error in the requested format and exit with status 1."""
    if json_output:
        print(json.dumps({"error": message}))
    else:
        print(f"\n{C.BRIGHT_RED}{I.CROSS} {message}{C.RESET}\n")
    raise typer.Exit(1)


def open_store_or_exit(json_output: bool = False, read_only: bool = False) -> EventRepository:
    """Load the persisted event store for a one-shot command."""
    try:
        return open_store(get_settings(), read_only=read_only)
    except StoreError as e:
        fail(f"Cannot open event store: {e}", json_output)


__all__ = [
    # Constants
    "BOX_WIDTH",
    # Classes
    "Box",
    "Colors",
    "Icons",
    # Aliases
    "B",
    "C",
    "I",
    # Box drawing helpers
    "_box_bottom",
    "_box_header",
    "_box_line",
    "_empty_line",
    "_section_header",
    "_visible_len",
    # Command helpers
    "fail",
    "open_store_or_exit",
]
