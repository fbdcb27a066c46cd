"""Main entry point for the esicache application.

Sets up the Typer CLI application, performs dependency injection (Composition
Root), defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Coroutine, Dict, List, Optional

import typer
from typing_extensions import Annotated

from esicache.core.command_handler import CommandHandler
from esicache.core.services.item_name_service import ItemNameService
from esicache.core.services.market_group_service import MarketGroupService
from esicache.infrastructure.cache.catalog_store import CatalogStore
from esicache.infrastructure.cli.display import ConsoleDisplay
from esicache.infrastructure.config.settings import (
    get_cache_dir,
    get_config,
    get_esi_base_url,
    get_group_concurrency,
    get_name_concurrency,
    get_name_page_size,
    get_request_timeout,
    get_user_agent,
    load_configuration,
    set_config,
)
from esicache.infrastructure.esi.esi_client import EsiClient
from esicache.infrastructure.monitoring.logger_setup import DEFAULT_LOG_FORMAT, resolve_log_level, setup_logging
from esicache.infrastructure.resilience.batch_executor import BatchExecutor
from esicache.infrastructure.resilience.rate_governor import RateBudgetGovernor

logger = logging.getLogger(__name__)

# --- Dependency Injection Container (Manual) ---

def create_dependencies() -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root.
    """
    load_configuration()
    setup_logging(
        log_level=resolve_log_level(get_config('logging.level', 'WARNING')),
        log_format=get_config('logging.format', DEFAULT_LOG_FORMAT),
        log_file=get_config('logging.file'),
    )
    logger.info("Initializing application dependencies...")

    dependencies: Dict[str, Any] = {}
    dependencies['ui'] = ConsoleDisplay()
    dependencies['store'] = CatalogStore(get_cache_dir())
    dependencies['governor'] = RateBudgetGovernor()
    dependencies['executor'] = BatchExecutor()
    dependencies['esi_client'] = EsiClient(
        governor=dependencies['governor'],
        base_url=get_esi_base_url(),
        user_agent=get_user_agent(),
        timeout_seconds=get_request_timeout(),
    )

    dependencies['group_service'] = MarketGroupService(
        api=dependencies['esi_client'],
        cache=dependencies['store'].groups,
        sentinel=dependencies['store'].sentinel,
        executor=dependencies['executor'],
        concurrency=get_group_concurrency(),
    )
    dependencies['name_service'] = ItemNameService(
        api=dependencies['esi_client'],
        cache=dependencies['store'].names,
        group_service=dependencies['group_service'],
        executor=dependencies['executor'],
        concurrency=get_name_concurrency(),
        page_size=get_name_page_size(),
    )
    dependencies['command_handler'] = CommandHandler(
        group_service=dependencies['group_service'],
        name_service=dependencies['name_service'],
        store=dependencies['store'],
        governor=dependencies['governor'],
        ui=dependencies['ui'],
    )
    logger.info("All dependencies initialized successfully.")
    return dependencies


# --- Typer App Definition ---
app = typer.Typer(
    name="esicache",
    help="Mirror the EVE ESI market group and item name catalogs into a local cache.",
    add_completion=False,
)


def run_command(command: Callable[[CommandHandler], Coroutine[Any, Any, bool]]) -> None:
    """Builds the dependencies, runs one async command and tears down.

    Exits with status 1 when the command reports failure.
    """
    dependencies = create_dependencies()

    async def _execute() -> bool:
        try:
            return await command(dependencies['command_handler'])
        finally:
            await dependencies['esi_client'].aclose()

    try:
        ok = asyncio.run(_execute())
    finally:
        dependencies['store'].close()
    if not ok:
        raise typer.Exit(code=1)


LimitOption = Annotated[
    int,
    typer.Option("--limit", "-n", min=0, help="Rows to display (0 shows all).")
]


def _limit(value: int) -> Optional[int]:
    return value or None


@app.command()
def groups(limit: LimitOption = 25):
    """Resolve the market group catalog (served from cache once synced)."""
    run_command(lambda handler: handler.handle_groups(limit=_limit(limit)))


@app.command()
def names(limit: LimitOption = 25):
    """Resolve names for every item in the market group catalog."""
    run_command(lambda handler: handler.handle_names(limit=_limit(limit)))


@app.command()
def lookup(
    ids: Annotated[List[int], typer.Argument(help="Item ids to look up in the local cache.")],
):
    """Look up cached item names without touching the network."""
    run_command(lambda handler: handler.handle_lookup(ids))


@app.command()
def status():
    """Show cache contents and sync state."""
    run_command(lambda handler: handler.handle_status())


@app.command()
def reset():
    """Mark the group catalog as stale so the next sync contacts ESI."""
    run_command(lambda handler: handler.handle_reset())


@app.callback()
def main_callback(
    cache_dir: Annotated[
        Optional[Path],
        typer.Option("--cache-dir", help="Directory of the local catalog cache.")
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log at INFO level.")
    ] = False,
):
    """esicache: a durable local mirror of the ESI market catalog."""
    if cache_dir is not None:
        set_config('cache.dir', str(cache_dir))
    if verbose:
        set_config('logging.level', 'INFO')


def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
