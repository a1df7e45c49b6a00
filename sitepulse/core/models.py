# ==============================================================================
# Visit Analytics Domain Models
# ==============================================================================
"""
Pydantic models for visit events and the derived analytics payloads.

These models are used for:
- Validating collection parameters sent by the tracking snippet
- Typing rows read back from the event store
- Serializing report, flow and visitor payloads as JSON

Python code uses snake_case attributes; JSON uses camelCase aliases
(``visitorId``, ``metaData``, ...), matching the snippet's event shape.

This module is part of the core domain layer and has no external dependencies
beyond Pydantic.
"""

from datetime import datetime
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_EVENT_TYPE = "pageview"


class CamelModel(BaseModel):
    """Base for payload models serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ==============================================================================
# Events
# ==============================================================================


class NewVisitEvent(CamelModel):
    """
    An event accepted for storage but not yet assigned an id.

    Attributes:
        timestamp: Creation time; the store assigns the current time when None
        visitor_id: Client-generated visitor identifier
        client_address: Best-effort network origin of the request
        client_signature: Raw User-Agent text
        url: Path and query of the viewed page
        referrer: Referring URL, empty string for direct navigation
        event_type: Free-form label, "pageview" by default
        meta_data: Opaque JSON text passed through untouched
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    timestamp: datetime | None = None
    visitor_id: str | None = None
    client_address: str | None = None
    client_signature: str | None = None
    url: str | None = None
    referrer: str | None = None
    event_type: str = DEFAULT_EVENT_TYPE
    meta_data: str | None = None


class VisitEvent(NewVisitEvent):
    """A stored, immutable visit event."""

    id: int = Field(..., description="Store-assigned identity, increasing in append order")
    timestamp: datetime = Field(..., description="Creation time (UTC)")


class CollectParams(BaseModel):
    """
    Query parameters of a collection request.

    Accepts the tracking snippet's names (``uid``, ``event_type``,
    ``meta_data``) as well as the camelCase event field names. Every field is
    optional; a collection request never fails validation on missing data.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    visitor_id: str | None = Field(
        None, validation_alias=AliasChoices("uid", "visitorId", "visitor_id")
    )
    url: str | None = None
    referrer: str | None = None
    event_type: str = Field(
        DEFAULT_EVENT_TYPE, validation_alias=AliasChoices("event_type", "eventType")
    )
    meta_data: str | None = Field(
        None, validation_alias=AliasChoices("meta_data", "metaData")
    )

    @field_validator("visitor_id", "url")
    @classmethod
    def _blank_as_missing(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value

    @field_validator("event_type", mode="before")
    @classmethod
    def _default_event_type(cls, value):
        if value is None or not str(value).strip():
            return DEFAULT_EVENT_TYPE
        return value

    def to_event(
        self, client_address: str | None = None, client_signature: str | None = None
    ) -> NewVisitEvent:
        """Combine the request parameters with transport-level details."""
        return NewVisitEvent(
            visitor_id=self.visitor_id,
            client_address=client_address,
            client_signature=client_signature,
            url=self.url,
            referrer=self.referrer,
            event_type=self.event_type,
            meta_data=self.meta_data,
        )


# ==============================================================================
# Device classification
# ==============================================================================


class DeviceInfo(CamelModel):
    """Device type, browser family and operating system of a client signature."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    type: str
    browser: str
    os: str


# ==============================================================================
# Aggregation report
# ==============================================================================


class RangeInfo(CamelModel):
    """Echo of the resolved time range."""

    name: str
    start: datetime
    end: datetime


class TrendPoint(CamelModel):
    """Event count for one time bucket."""

    bucket: str
    count: int


class RankedCount(CamelModel):
    """Event count for one value (page, referrer, browser, ...)."""

    value: str
    count: int


class ChannelBreakdown(CamelModel):
    """Events per traffic channel."""

    direct: int = 0
    search: int = 0
    social: int = 0
    referral: int = 0


class StatsReport(CamelModel):
    """Full breakdown returned by the aggregation engine."""

    range: RangeInfo
    generated_at: datetime
    total_events: int
    unique_visitors: int
    realtime_visitors: int
    new_visitors: int
    returning_visitors: int
    minute_trend: list[TrendPoint] = Field(default_factory=list)
    period_unit: Literal["hour", "day"]
    period_trend: list[TrendPoint] = Field(default_factory=list)
    top_pages: list[RankedCount] = Field(default_factory=list)
    top_referrers: list[RankedCount] = Field(default_factory=list)
    devices: list[RankedCount] = Field(default_factory=list)
    browsers: list[RankedCount] = Field(default_factory=list)
    operating_systems: list[RankedCount] = Field(default_factory=list)
    channels: ChannelBreakdown = Field(default_factory=ChannelBreakdown)
    entry_pages: list[RankedCount] = Field(default_factory=list)
    exit_pages: list[RankedCount] = Field(default_factory=list)


# ==============================================================================
# Flow graph
# ==============================================================================


class FlowNode(CamelModel):
    name: str


class FlowLink(CamelModel):
    source: str
    target: str
    value: int


class FlowGraph(CamelModel):
    """
    Layered transition graph for a Sankey chart.

    Attributes:
        nodes: Labels that appear in the retained links, ordered by layer
        links: Transitions ranked by count, truncated to the edge limit
        max_layer: Effective depth after clamping
        total_sessions: Number of visitor sessions considered
    """

    nodes: list[FlowNode] = Field(default_factory=list)
    links: list[FlowLink] = Field(default_factory=list)
    max_layer: int
    total_sessions: int


# ==============================================================================
# Visitor listing
# ==============================================================================


class VisitorEntry(VisitEvent):
    """A recent event enriched with its device classification."""

    device: DeviceInfo


class VisitorListing(CamelModel):
    visitors: list[VisitorEntry] = Field(default_factory=list)
    addresses: list[str] = Field(default_factory=list)
    limit: int
