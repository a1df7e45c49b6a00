# ==============================================================================
# Core Domain Logic
# ==============================================================================
"""
Domain logic for visit analytics.

This module contains:
- Domain models (VisitEvent, StatsReport, FlowGraph, ...)
- Device and traffic-channel classification
- Time range resolution
- Report aggregation, session flow and visitor listing (aggregation.py,
  flow.py, visitors.py), which read through an EventRepository and are
  imported from their own modules

All code here is framework-agnostic and easily unit-testable.
"""

from sitepulse.core.channels import Channel, classify_channel
from sitepulse.core.device import classify
from sitepulse.core.errors import InvalidRangeError, StoreError
from sitepulse.core.models import (
    CollectParams,
    DeviceInfo,
    FlowGraph,
    NewVisitEvent,
    StatsReport,
    VisitEvent,
    VisitorListing,
)
from sitepulse.core.time_range import TimeRange, resolve_range

__all__ = [
    "Channel",
    "CollectParams",
    "DeviceInfo",
    "FlowGraph",
    "InvalidRangeError",
    "NewVisitEvent",
    "StatsReport",
    "StoreError",
    "TimeRange",
    "VisitEvent",
    "VisitorListing",
    "classify",
    "classify_channel",
    "resolve_range",
]
