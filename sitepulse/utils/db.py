# ==============================================================================
# Database Utilities
# ==============================================================================
"""
Database utility functions for the event store.

Provides schema template rendering and a helper that opens the configured
store for one-shot CLI use.
"""

import logging
import re
from pathlib import Path

from jinja2 import Template

from sitepulse.utils.config import Settings, get_settings
from sitepulse.utils.paths import get_init_sql_path

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def get_schema_file() -> Path:
    """Get the bundled init.sql template path."""
    path = get_init_sql_path()
    if not path.exists():
        raise RuntimeError(f"Schema template not found at {path}")
    return path


def validate_identifier(name: str) -> str:
    """Reject table names that are not plain SQL identifiers."""
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid table name: '{name}'")
    return name


def render_schema_sql(table_name: str) -> str:
    """Render the schema SQL template with the given table name."""
    template = Template(get_schema_file().read_text())
    return template.render(table_name=validate_identifier(table_name))


def open_store(settings: Settings | None = None, read_only: bool = False):
    """
    Open the configured event store and load its persisted contents.

    A read-only open never moves an unreadable data file aside; it raises
    StoreError so report commands do not replace the data with an empty store.

    The caller owns the returned repository and must close() it (and
    persist() first if it changed anything).
    """
    # Import here to avoid circular imports
    from sitepulse.infrastructure.repositories import SQLiteEventRepository

    store = SQLiteEventRepository.from_settings(settings or get_settings())
    store.connect(quarantine=not read_only)
    return store
