import io

import pytest
from rich.console import Console
from rich.panel import Panel

from esicache.domain.models.catalog import GroupRecord, RateBudget
from esicache.domain.models.common import NameEntry
from esicache.infrastructure.cli.display import ConsoleDisplay


@pytest.fixture
def console():
    """A real Rich console writing into a buffer."""
    return Console(file=io.StringIO(), width=120, color_system=None)

@pytest.fixture
def console_display(console: Console):
    return ConsoleDisplay(console=console)

def rendered(console: Console) -> str:
    return console.file.getvalue()


def test_display_error_lists_details(console_display, console):
    console_display.display_error("2 of 5 pages failed", details=["[3, 4]: TransportError: HTTP 503"])

    output = rendered(console)
    assert "Error" in output
    assert "2 of 5 pages failed" in output
    assert "- [3, 4]: TransportError: HTTP 503" in output


def test_display_info_prints_a_panel(mocker):
    mock_console = mocker.MagicMock()
    display = ConsoleDisplay(console=mock_console)

    display.display_info("Group catalog marked as stale.")

    mock_console.print.assert_called_once()
    assert isinstance(mock_console.print.call_args.args[0], Panel)


def test_display_groups_respects_limit(console_display, console):
    groups = [
        GroupRecord(id=4, name="Minerals", description="", member_ids=[34, 35]),
        GroupRecord(id=9, name="Ores", description="", parent_id=4),
        GroupRecord(id=12, name="Ice", description=""),
    ]

    console_display.display_groups(groups, limit=2)

    output = rendered(console)
    assert "Market groups (3)" in output
    assert "Minerals" in output
    assert "Ores" in output
    assert "Ice" not in output
    assert "1 more not shown" in output


def test_display_names_sorted_by_id(console_display, console):
    names = {35: NameEntry("Pyerite", "inventory_type"), 34: NameEntry("Tritanium")}

    console_display.display_names(names, limit=None)

    output = rendered(console)
    assert output.index("Tritanium") < output.index("Pyerite")
    assert "not shown" not in output


def test_display_status(console_display, console):
    console_display.display_status(
        synced=False,
        group_count=3,
        name_count=0,
        budget=RateBudget(remaining=7, reset_seconds=12),
        cache_dir="/tmp/catalog",
    )

    output = rendered(console)
    assert "/tmp/catalog" in output
    assert "no" in output
    assert "7 remaining, resets in 12s" in output
