# ==============================================================================
# Config Commands
# ==============================================================================
"""
Configuration commands for the SitePulse CLI.
"""

import json
from typing import Annotated

import typer

from sitepulse.cli.shared import C
from sitepulse.utils.config import get_settings


# ==============================================================================
# Commands
# ==============================================================================


def config_show(
    json_output: Annotated[
        bool, typer.Option("--json", "-j", help="Output configuration as JSON")
    ] = False,
) -> None:
    """Display current configuration (includes the purge token in JSON mode)."""
    settings = get_settings()
    timezone = settings.analytics.timezone or "server local"

    # JSON output mode
    if json_output:
        config = {
            "store": {
                "data_file": str(settings.store.data_file_path),
                "table_name": settings.store.table_name,
                "persist_interval_seconds": settings.store.persist_interval_seconds,
            },
            "server": {
                "host": settings.server.host,
                "port": settings.server.port,
            },
            "analytics": {
                "timezone": timezone,
                "flow_edge_limit": settings.analytics.flow_edge_limit,
                "flow_default_layers": settings.analytics.flow_default_layers,
                "visitors_default_limit": settings.analytics.visitors_default_limit,
                "purge_token": settings.analytics.purge_token,
            },
            "debug": settings.debug,
            "log_level": settings.log_level,
        }
        print(json.dumps(config, indent=2))
        return

    # Human-readable output
    print()
    print(f"{C.BOLD}Configuration{C.RESET}")
    print()

    # Store
    print(f"{C.CYAN}Store{C.RESET}")
    print(f"  Data File:  {C.WHITE}{settings.store.data_file_path}{C.RESET}")
    print(f"  Table:      {C.WHITE}{settings.store.table_name}{C.RESET}")
    print(f"  Persist:    {C.WHITE}every {settings.store.persist_interval_seconds:g}s{C.RESET}")
    print()

    # Server
    print(f"{C.CYAN}Server{C.RESET}")
    print(f"  Host:       {C.WHITE}{settings.server.host}{C.RESET}")
    print(f"  Port:       {C.WHITE}{settings.server.port}{C.RESET}")
    print(f"  Log Level:  {C.WHITE}{settings.log_level}{C.RESET}")
    print()

    # Analytics
    print(f"{C.CYAN}Analytics{C.RESET}")
    print(f"  Timezone:   {C.WHITE}{timezone}{C.RESET}")
    print(f"  Flow:       {C.WHITE}{settings.analytics.flow_default_layers} layers, "
          f"top {settings.analytics.flow_edge_limit} edges{C.RESET}")
    print(f"  Visitors:   {C.WHITE}{settings.analytics.visitors_default_limit} most recent{C.RESET}")
    print(f"  Purge:      {C.WHITE}{'*' * 8} (see --json){C.RESET}")
    print()
