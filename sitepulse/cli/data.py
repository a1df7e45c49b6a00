# ==============================================================================
# Data Commands
# ==============================================================================
"""
Data management commands for the SitePulse CLI.

Commands for erasing the persisted event store.
"""

from typing import Annotated

import typer

from sitepulse.cli.shared import C, I, fail, open_store_or_exit
from sitepulse.core.errors import StoreError
from sitepulse.utils.config import get_settings


# ==============================================================================
# Commands
# ==============================================================================


def data_reset(
    confirm: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompt")] = False,
) -> None:
    """Erase every recorded event from the data file.

    Event ids keep increasing after a reset; they are never reused.

    IMPORTANT: Stop the server first. A running server keeps its own copy of
    the store in memory and will write it back on its next persist. Use
    DELETE /api/data?confirm=<token> to purge a running server.

    Examples:
        sitepulse data reset       # With confirmation prompt
        sitepulse data reset -y    # Skip confirmation
    """
    settings = get_settings()
    data_file = settings.store.data_file_path

    print()
    if not data_file.exists():
        print(f"{C.BRIGHT_YELLOW}{I.WARN} No data file at {C.WHITE}{data_file}{C.RESET}")
        print()
        return

    # Confirm with user
    if not confirm:
        typer.confirm(
            f"This will DELETE all events stored in {data_file}. Are you sure?",
            abort=True,
        )
        print()

    print(f"  Purging events from '{C.WHITE}{data_file}{C.RESET}'...")
    store = open_store_or_exit()
    try:
        deleted = store.purge_all()
        store.persist()
    except StoreError as e:
        fail(f"Failed to reset data: {e}")
    finally:
        store.close()

    print(f"{C.BRIGHT_GREEN}{I.CHECK} Deleted {C.WHITE}{deleted:,}{C.RESET}{C.BRIGHT_GREEN} events{C.RESET}")
    print()
