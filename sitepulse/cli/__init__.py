# ==============================================================================
# CLI Commands Module
# ==============================================================================
"""
CLI commands for SitePulse.

Commands are organized into separate modules for maintainability:
- shared.py: Common utilities, constants, and helpers
- serve.py: HTTP server
- analytics.py: stats, flow and visitors reports
- data.py: Data reset
- config.py: Configuration display
"""

from sitepulse.cli.shared import (
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
    # Command helpers
    fail,
    open_store_or_exit,
)

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
    # Command helpers
    "fail",
    "open_store_or_exit",
]
