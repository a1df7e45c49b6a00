# ==============================================================================
# Database Repository Adapters
# ==============================================================================
"""
Database adapters implementing the repository interface from base/repositories.py.

Currently supported:
- SQLite, in memory with file persistence (sqlite.py)
"""

from sitepulse.infrastructure.repositories.sqlite import SQLiteEventRepository

__all__ = [
    "SQLiteEventRepository",
]
