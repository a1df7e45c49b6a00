# ==============================================================================
# HTTP Interface
# ==============================================================================
"""
FastAPI application exposing collection, reports, flow graph, visitor
listing and data management.
"""

from sitepulse.api.app import create_app

__all__ = [
    "create_app",
]
