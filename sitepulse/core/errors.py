# ==============================================================================
# Domain Errors
# ==============================================================================
"""
Exceptions raised by the store and the query-side components.
"""


class StoreError(Exception):
    """The event store could not be opened, read, written or persisted."""


class InvalidRangeError(ValueError):
    """A time range selector or its explicit bounds could not be resolved."""
