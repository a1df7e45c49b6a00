# ==============================================================================
# Session Flow Builder - Pure Domain Logic
# ==============================================================================
"""
Reconstruct per-visitor page sequences and compress them into a layered
transition graph for a Sankey chart.

A session is every event of one visitor that has both a visitor id and a
url, ordered by (timestamp, id). Its first `max_layer` pages become layered
nodes:

    <source category> -> "L1: /a" -> "L2: /b" -> "L3: /c" ...

The source category of the first page comes from its referrer:
- empty or absent        -> "Direct Entry"
- starts with scheme://  -> "External Source"
- anything else          -> "Internal Navigation"

Consecutive views of the same page produce no edge. Transition counts are
ranked and truncated to `edge_limit` edges: the graph is a readable summary,
not a full transition matrix.
"""

import re
from collections import Counter, defaultdict
from collections.abc import Iterable, Iterator

from sitepulse.base.repositories import EventRepository
from sitepulse.core.models import FlowGraph, FlowLink, FlowNode, VisitEvent
from sitepulse.core.time_range import clamp

ENTRY_LABEL = "Direct Entry"
EXTERNAL_LABEL = "External Source"
INTERNAL_LABEL = "Internal Navigation"
SOURCE_LABELS = (ENTRY_LABEL, EXTERNAL_LABEL, INTERNAL_LABEL)

MIN_LAYERS = 1
MAX_LAYERS = 10
DEFAULT_LAYERS = 5

DEFAULT_EDGE_LIMIT = 80
MAX_EDGE_LIMIT = 100

# Layer assigned to labels that are neither categories nor "L<n>: " labels
UNLAYERED = 99

_URL_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")
_LAYER_PREFIX = re.compile(r"^L(\d+): ")


def clamp_layers(value: int | None) -> int:
    """Clamp a requested depth into [1, 10]; None means the default."""
    if value is None:
        return DEFAULT_LAYERS
    return clamp(value, MIN_LAYERS, MAX_LAYERS)


def source_category(referrer: str | None) -> str:
    """Label for where a session's first page view came from."""
    if not referrer:
        return ENTRY_LABEL
    if _URL_SCHEME.match(referrer):
        return EXTERNAL_LABEL
    return INTERNAL_LABEL


def layer_label(layer: int, url: str) -> str:
    return f"L{layer}: {url}"


def node_layer(label: str) -> int:
    """Layer of a node label: 0 for source categories, n for "L<n>: ..."."""
    if label in SOURCE_LABELS:
        return 0
    match = _LAYER_PREFIX.match(label)
    return int(match.group(1)) if match else UNLAYERED


def build_sessions(events: Iterable[VisitEvent]) -> dict[str, list[VisitEvent]]:
    """
    Group events into sessions.

    Events without a visitor id or url are skipped. Sessions are keyed by
    visitor id in ascending order; each is ordered by (timestamp, id).
    """
    groups: dict[str, list[VisitEvent]] = defaultdict(list)
    for event in events:
        if event.visitor_id is None or event.url is None:
            continue
        groups[event.visitor_id].append(event)

    return {
        visitor_id: sorted(groups[visitor_id], key=lambda e: (e.timestamp, e.id))
        for visitor_id in sorted(groups)
    }


def session_transitions(session: list[VisitEvent], max_layer: int) -> Iterator[tuple[str, str]]:
    """Yield the (source, target) labels of one session's first max_layer positions."""
    for index, event in enumerate(session[:max_layer]):
        if index == 0:
            source = source_category(event.referrer)
        else:
            previous = session[index - 1]
            if previous.url == event.url:
                continue
            source = layer_label(index, previous.url)
        target = layer_label(index + 1, event.url)
        if source == target:
            continue
        yield source, target


class SessionFlowBuilder:
    """
    Builds FlowGraph payloads from the full event ledger.

    Args:
        store: Event repository to read from
        edge_limit: Number of top-ranked edges to keep (1-100)
    """

    def __init__(self, store: EventRepository, edge_limit: int = DEFAULT_EDGE_LIMIT):
        if not 1 <= edge_limit <= MAX_EDGE_LIMIT:
            raise ValueError(f"edge_limit must be between 1 and {MAX_EDGE_LIMIT}")
        self._store = store
        self._edge_limit = edge_limit

    @property
    def edge_limit(self) -> int:
        return self._edge_limit

    def build(self, max_layer: int | None = DEFAULT_LAYERS) -> FlowGraph:
        """
        Build the flow graph.

        Args:
            max_layer: Session depth to consider; clamped to [1, 10]

        Returns:
            FlowGraph with ranked links and layer-ordered nodes
        """
        layers = clamp_layers(max_layer)

        with self._store.snapshot() as store:
            events = store.query(require=("visitor_id", "url"))

        sessions = build_sessions(events)
        return self.compress(sessions, layers)

    def compress(self, sessions: dict[str, list[VisitEvent]], max_layer: int) -> FlowGraph:
        """Count transitions across sessions and keep the top-ranked edges."""
        counts: Counter = Counter()
        for session in sessions.values():
            counts.update(session_transitions(session, max_layer))

        links = [
            FlowLink(source=source, target=target, value=value)
            for (source, target), value in counts.most_common(self._edge_limit)
        ]

        labels: dict[str, None] = {}
        for link in links:
            labels.setdefault(link.source)
            labels.setdefault(link.target)
        nodes = [FlowNode(name=label) for label in sorted(labels, key=node_layer)]

        return FlowGraph(
            nodes=nodes,
            links=links,
            max_layer=max_layer,
            total_sessions=len(sessions),
        )
