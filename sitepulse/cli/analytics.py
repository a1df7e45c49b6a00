# ==============================================================================
# Analytics Commands
# ==============================================================================
"""
Report commands for the SitePulse CLI.

Reads the persisted data file, so the output reflects the store as of the
server's last persist.
"""

import json
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from sitepulse.cli.shared import (
    BOX_WIDTH,
    C,
    I,
    _box_bottom,
    _box_header,
    _box_line,
    _empty_line,
    _section_header,
    fail,
    open_store_or_exit,
)
from sitepulse.core.aggregation import AggregationEngine
from sitepulse.core.errors import InvalidRangeError, StoreError
from sitepulse.core.flow import SessionFlowBuilder
from sitepulse.core.models import RankedCount
from sitepulse.core.time_range import resolve_timezone
from sitepulse.core.visitors import list_recent_visitors
from sitepulse.utils.config import get_settings


# ==============================================================================
# Helper Functions
# ==============================================================================


def _ranked_table(title: str, rows: list[RankedCount], label: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold", title_justify="left")
    table.add_column(label, justify="left", overflow="fold")
    table.add_column("Events", justify="right")
    for row in rows:
        table.add_row(row.value, f"{row.count:,}")
    return table


# ==============================================================================
# Commands
# ==============================================================================


def show_stats(
    range_name: Annotated[
        str, typer.Option("--range", "-r", help="today, week, month, all or custom")
    ] = "today",
    start: Annotated[
        str | None, typer.Option("--start", help="Custom range start (YYYY-MM-DD or ISO time)")
    ] = None,
    end: Annotated[
        str | None, typer.Option("--end", help="Custom range end (YYYY-MM-DD or ISO time)")
    ] = None,
    json_output: Annotated[
        bool, typer.Option("--json", "-j", help="Output as JSON for scripting")
    ] = False,
) -> None:
    """Show the analytics report for a time range.

    Examples:
        sitepulse stats                       # Today, formatted output
        sitepulse stats --range week --json   # Last 7 days as JSON
        sitepulse stats -r custom --start 2024-05-01 --end 2024-05-31
    """
    settings = get_settings()
    store = open_store_or_exit(json_output, read_only=True)
    try:
        engine = AggregationEngine(store, tz=resolve_timezone(settings.analytics.timezone))
        report = engine.report(range_name, start, end)
    except InvalidRangeError as e:
        fail(str(e), json_output)
    except StoreError as e:
        fail(f"Failed to compute report: {e}", json_output)
    finally:
        store.close()

    if json_output:
        print(report.model_dump_json(by_alias=True, indent=2))
        return

    W = BOX_WIDTH
    tz = engine.tz
    start_text = report.range.start.astimezone(tz).strftime("%Y-%m-%d %H:%M")
    end_text = report.range.end.astimezone(tz).strftime("%Y-%m-%d %H:%M")

    print()
    print(_box_header("SITEPULSE ANALYTICS", W))
    print(_empty_line(W))
    print(_box_line(f"  {'Range':<24}{C.WHITE}{report.range.name}{C.RESET}", W))
    print(_box_line(f"  {'':<24}{C.DIM}{start_text} {I.ARROW} {end_text}{C.RESET}", W))
    print(_empty_line(W))
    print(_box_line(f"  {'Events':<24}{report.total_events:>12,}", W))
    print(_box_line(f"  {'Unique Visitors':<24}{report.unique_visitors:>12,}", W))
    print(_box_line(f"  {'Active (5 min)':<24}{report.realtime_visitors:>12,}", W))
    print(_box_line(f"  {'New Visitors':<24}{report.new_visitors:>12,}", W))
    print(_box_line(f"  {'Returning Visitors':<24}{report.returning_visitors:>12,}", W))
    print(_empty_line(W))

    print(_section_header("Channels", W))
    channels = report.channels
    for name, value in (
        ("Direct", channels.direct),
        ("Search", channels.search),
        ("Social", channels.social),
        ("Referral", channels.referral),
    ):
        print(_box_line(f"  {name:<24}{value:>12,}", W))
    print(_empty_line(W))
    print(_box_bottom(W))

    console = Console()
    print()
    console.print(_ranked_table("Top Pages", report.top_pages, "Page"))
    console.print(_ranked_table("Top Referrers", report.top_referrers, "Referrer"))
    console.print(_ranked_table("Entry Pages", report.entry_pages, "Page"))
    console.print(_ranked_table("Exit Pages", report.exit_pages, "Page"))
    console.print(_ranked_table("Devices", report.devices, "Device"))
    console.print(_ranked_table("Browsers", report.browsers, "Browser"))
    console.print(_ranked_table("Operating Systems", report.operating_systems, "OS"))

    unit = "Hour" if report.period_unit == "hour" else "Day"
    trend = Table(title=f"Events by {unit}", show_header=True, header_style="bold", title_justify="left")
    trend.add_column(unit, justify="left")
    trend.add_column("Events", justify="right")
    for point in report.period_trend:
        trend.add_row(point.bucket, f"{point.count:,}")
    console.print(trend)
    print()


def show_flow(
    layers: Annotated[
        int | None, typer.Option("--layers", "-l", help="Session depth (1-10)")
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Show the ranked page-to-page transitions of visitor sessions.

    Examples:
        sitepulse flow
        sitepulse flow --layers 3 --json
    """
    settings = get_settings()
    if layers is None:
        layers = settings.analytics.flow_default_layers

    store = open_store_or_exit(json_output, read_only=True)
    try:
        graph = SessionFlowBuilder(store, settings.analytics.flow_edge_limit).build(layers)
    except StoreError as e:
        fail(f"Failed to build flow graph: {e}", json_output)
    finally:
        store.close()

    if json_output:
        print(graph.model_dump_json(by_alias=True, indent=2))
        return

    if not graph.links:
        print(f"\n  {C.BRIGHT_YELLOW}{I.WARN} No sessions with page views yet{C.RESET}\n")
        return

    console = Console()
    table = Table(
        title=f"Navigation Flow ({graph.total_sessions:,} sessions, {graph.max_layer} layers)",
        show_header=True,
        header_style="bold",
    )
    table.add_column("From", justify="left", overflow="fold")
    table.add_column("To", justify="left", overflow="fold")
    table.add_column("Sessions", justify="right")
    for link in graph.links:
        table.add_row(link.source, link.target, f"{link.value:,}")

    print()
    console.print(table)
    print(f"  {C.BOLD}Nodes:{C.RESET}  {len(graph.nodes)}")
    print(f"  {C.BOLD}Edges:{C.RESET}  {len(graph.links)}")
    print()


def show_visitors(
    limit: Annotated[
        int | None, typer.Option("--limit", "-n", help="Number of recent events (1-100)")
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Show the most recent events with device details.

    Examples:
        sitepulse visitors
        sitepulse visitors -n 50 --json
    """
    settings = get_settings()
    if limit is None:
        limit = settings.analytics.visitors_default_limit

    store = open_store_or_exit(json_output, read_only=True)
    try:
        listing = list_recent_visitors(store, limit)
    except StoreError as e:
        fail(f"Failed to list visitors: {e}", json_output)
    finally:
        store.close()

    if json_output:
        print(listing.model_dump_json(by_alias=True, indent=2))
        return

    if not listing.visitors:
        print(f"\n  {C.BRIGHT_YELLOW}{I.WARN} No events recorded yet{C.RESET}\n")
        return

    tz = resolve_timezone(settings.analytics.timezone)
    console = Console()
    table = Table(title="Recent Visitors", show_header=True, header_style="bold")
    table.add_column("Time", justify="left")
    table.add_column("Visitor", justify="left")
    table.add_column("Address", justify="left")
    table.add_column("Page", justify="left", overflow="fold")
    table.add_column("Device", justify="left")

    for entry in listing.visitors:
        device = f"{entry.device.type} / {entry.device.browser} / {entry.device.os}"
        table.add_row(
            entry.timestamp.astimezone(tz).strftime("%Y-%m-%d %H:%M:%S"),
            entry.visitor_id or "-",
            entry.client_address or "-",
            entry.url or "-",
            device,
        )

    print()
    console.print(table)
    print(f"  {C.BOLD}Distinct addresses:{C.RESET}  {len(listing.addresses)}")
    print()
