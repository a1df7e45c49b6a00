# ==============================================================================
# SitePulse CLI
# ==============================================================================
"""
Command-line interface for SitePulse page-visit analytics.

Usage:
    sitepulse --help
    sitepulse serve --port 5055
    sitepulse stats --range week
    sitepulse flow --layers 3
    sitepulse visitors --limit 50
    sitepulse data reset -y
    sitepulse config show --json
"""

# ==============================================================================
# App Configuration
# ==============================================================================
# Set consistent terminal width for help output formatting
import os

import typer

if "COLUMNS" not in os.environ:
    os.environ["COLUMNS"] = "115"

app = typer.Typer(
    name="sitepulse",
    help="SitePulse page-visit analytics CLI",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Serve command is imported from sitepulse.cli.serve
from sitepulse.cli.serve import serve

app.command("serve")(serve)

# Report commands are imported from sitepulse.cli.analytics
from sitepulse.cli.analytics import show_flow, show_stats, show_visitors

app.command("stats")(show_stats)
app.command("flow")(show_flow)
app.command("visitors")(show_visitors)

data_app = typer.Typer(
    help="Data management operations",
    no_args_is_help=True,
)
app.add_typer(data_app, name="data")

# Register data commands from cli.data module
from sitepulse.cli.data import data_reset

data_app.command("reset")(data_reset)

config_app = typer.Typer(
    help="Configuration management",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")

# Register config commands from cli.config module
from sitepulse.cli.config import config_show

config_app.command("show")(config_show)


# ==============================================================================
# Entry Point
# ==============================================================================


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
