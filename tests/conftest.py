import asyncio
from typing import Any, Dict, List, Optional, Sequence, Set

import pytest
from typer.testing import CliRunner

from esicache.domain.errors import TransportError
from esicache.domain.interfaces.catalog_api import CatalogApi
from esicache.infrastructure.cache.catalog_store import CatalogStore
from esicache.infrastructure.cli.display import ConsoleDisplay
from esicache.infrastructure.config.settings import clear_test_config


def group_payload(group_id: int, types: Sequence[int], parent: Optional[int] = None) -> Dict[str, Any]:
    """Builds a /markets/groups/{id}/ body the way ESI returns it."""
    payload: Dict[str, Any] = {
        "market_group_id": group_id,
        "name": f"Group {group_id}",
        "description": f"Description of group {group_id}",
        "types": list(types),
    }
    if parent is not None:
        payload["parent_group_id"] = parent
    return payload


class FakeCatalogApi(CatalogApi):
    """In-memory stand-in for ESI that records every call."""

    def __init__(self, groups: Optional[Dict[int, Any]] = None, names: Optional[Dict[int, Any]] = None):
        self.groups = groups or {}
        self.names = names or {}
        self.failing_groups: Set[int] = set()
        self.failing_names: Set[int] = set()  # a page containing one of these fails
        self.malformed_groups: Set[int] = set()
        self.list_calls = 0
        self.group_calls: List[int] = []
        self.name_pages: List[List[int]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def _enter(self) -> None:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0)

    async def list_market_group_ids(self) -> Any:
        self.list_calls += 1
        return list(self.groups)

    async def get_market_group(self, group_id: int) -> Any:
        self.group_calls.append(group_id)
        await self._enter()
        try:
            if group_id in self.failing_groups:
                raise TransportError(f"GET markets/groups/{group_id}/ returned HTTP 502", status=502)
            if group_id in self.malformed_groups:
                return {"market_group_id": group_id, "name": None}
            return self.groups[group_id]
        finally:
            self.in_flight -= 1

    async def resolve_names(self, ids: Sequence[int]) -> Any:
        self.name_pages.append(list(ids))
        await self._enter()
        try:
            if self.failing_names.intersection(ids):
                raise TransportError("POST universe/names/ returned HTTP 503", status=503)
            return [self.names[i] for i in ids if i in self.names]
        finally:
            self.in_flight -= 1


@pytest.fixture
def store(tmp_path):
    catalog_store = CatalogStore(tmp_path / "catalog")
    yield catalog_store
    catalog_store.close()


@pytest.fixture(autouse=True)
def reset_config():
    clear_test_config()
    yield
    clear_test_config()


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture
def mock_console_display(mocker):
    """Patches ConsoleDisplay in main.py so each flow's UI calls can be asserted."""
    mock = mocker.MagicMock(spec=ConsoleDisplay)
    mocker.patch('esicache.main.ConsoleDisplay', return_value=mock)
    return mock
