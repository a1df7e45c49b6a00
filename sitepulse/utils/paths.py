# ==============================================================================
# Path Utilities
# ==============================================================================
"""
Project and package path helpers.

This module provides:
- Project root detection (for resolving relative data files)
- Location of the bundled schema template
"""

from pathlib import Path


def get_project_root() -> Path:
    """
    Get the project root directory.

    Searches upward from the current file for a directory containing
    pyproject.toml. Falls back to current working directory if not found.

    Returns:
        Path to the project root directory
    """
    # Start from this file's location and walk up
    current = Path(__file__).parent.parent.parent  # utils/paths.py -> sitepulse -> project
    if (current / "pyproject.toml").exists():
        return current

    return Path.cwd()


def get_schema_dir() -> Path:
    """Directory holding the SQL templates shipped inside the package."""
    return Path(__file__).parent.parent / "schema"


def get_init_sql_path() -> Path:
    """
    Get the path to the store initialization SQL template.

    Returns:
        Path to init.sql
    """
    return get_schema_dir() / "init.sql"
