# ==============================================================================
# Version Utilities
# ==============================================================================
"""
Utilities for retrieving package versions.
"""

from importlib.metadata import version, PackageNotFoundError


def get_sitepulse_version() -> str:
    """
    Get the sitepulse package version.

    Returns:
        Version string (e.g., "0.1.0")
    """
    try:
        return version("sitepulse")
    except PackageNotFoundError:
        return "0.1.0"
