"""Concrete implementation of UserInterface using the rich library."""

import logging
from typing import Any, Mapping, Optional, Sequence

from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from esicache.domain.interfaces.user_interface import UserInterface
from esicache.domain.models.catalog import GroupRecord, RateBudget
from esicache.domain.models.common import NameEntry

logger = logging.getLogger(__name__)

DEFAULT_ROW_LIMIT = 25


class ConsoleDisplay(UserInterface):
    """Renders sync results, errors and cache status to the terminal."""

    def __init__(self, console: Optional[Console] = None):
        self._console = console or Console()

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style.

        Args:
            error_message: The error message to display.
            **kwargs: ``details`` may carry extra lines (e.g. failed pages).
        """
        body = Text(error_message, style="white")
        for line in kwargs.get("details", []):
            body.append(f"\n  - {line}", style="dim white")
        panel = Panel(
            body,
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def _footer(self, shown: int, total: int) -> None:
        if shown < total:
            self.console.print(f"[dim]... {total - shown} more not shown[/dim]")

    def display_groups(self, groups: Sequence[GroupRecord], limit: Optional[int] = DEFAULT_ROW_LIMIT) -> None:
        """Renders market groups as a table.

        Args:
            groups: Groups to show, in the order given.
            limit: Maximum rows; None shows everything.
        """
        shown = list(groups if limit is None else groups[:limit])
        table = Table(title=f"Market groups ({len(groups)})", box=ROUNDED, border_style="cyan")
        table.add_column("ID", justify="right", style="bold")
        table.add_column("Name")
        table.add_column("Parent", justify="right")
        table.add_column("Items", justify="right")
        for group in shown:
            parent = str(group.parent_id) if group.parent_id is not None else "-"
            table.add_row(str(group.id), group.name, parent, str(len(group.member_ids)))
        self.console.print(table)
        self._footer(len(shown), len(groups))

    def display_names(self, names: Mapping[int, NameEntry], limit: Optional[int] = DEFAULT_ROW_LIMIT) -> None:
        items = sorted(names.items())
        shown = items if limit is None else items[:limit]
        table = Table(title=f"Item names ({len(names)})", box=ROUNDED, border_style="cyan")
        table.add_column("ID", justify="right", style="bold")
        table.add_column("Name")
        table.add_column("Category")
        for entity_id, entry in shown:
            table.add_row(str(entity_id), entry.name, entry.category or "-")
        self.console.print(table)
        self._footer(len(shown), len(items))

    def display_status(
        self,
        synced: bool,
        group_count: int,
        name_count: int,
        budget: RateBudget,
        cache_dir: str,
    ) -> None:
        table = Table(show_header=False, box=SIMPLE, border_style="cyan", padding=(0, 1))
        table.add_column("Key", style="cyan")
        table.add_column("Value")
        table.add_row("Cache directory", cache_dir)
        table.add_row("Group catalog synced", "[green]yes[/green]" if synced else "[yellow]no[/yellow]")
        table.add_row("Cached market groups", str(group_count))
        table.add_row("Cached item names", str(name_count))
        table.add_row("Error budget", f"{budget.remaining} remaining, resets in {budget.reset_seconds}s")
        self.console.print(table)
