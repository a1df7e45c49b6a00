# ==============================================================================
# Serve Command
# ==============================================================================
"""
Run the SitePulse HTTP server with uvicorn.
"""

import logging
from typing import Annotated

import typer

from sitepulse.cli.shared import C, I
from sitepulse.utils.config import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str) -> None:
    """Configure root logging for the server process."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


# ==============================================================================
# Commands
# ==============================================================================


def serve(
    host: Annotated[str | None, typer.Option("--host", help="Bind address")] = None,
    port: Annotated[int | None, typer.Option("--port", "-p", help="Bind port")] = None,
    log_level: Annotated[
        str | None, typer.Option("--log-level", "-l", help="DEBUG, INFO, WARNING or ERROR")
    ] = None,
) -> None:
    """Start the collection and analytics server.

    The event store is loaded from the data file on startup, persisted in
    the background, and persisted once more on shutdown (Ctrl-C).

    Examples:
        sitepulse serve
        sitepulse serve --port 8080 --log-level DEBUG
    """
    import uvicorn

    from sitepulse.api import create_app

    settings = get_settings()
    host = host or settings.server.host
    port = port or settings.server.port
    level = (log_level or settings.log_level).upper()

    configure_logging(level)

    print()
    print(f"  {C.BRIGHT_GREEN}{I.CIRCLE}{C.RESET} SitePulse listening on {C.WHITE}http://{host}:{port}{C.RESET}")
    print(f"  {C.DIM}Data file: {settings.store.data_file_path}{C.RESET}")
    print()

    uvicorn.run(create_app(settings), host=host, port=port, log_level=level.lower(), log_config=None)
