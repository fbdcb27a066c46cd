"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), delegates the work to
the catalog services and reports results and failures through the UI.
"""

import logging
from typing import List, Optional, Sequence

from esicache.core.services.item_name_service import ItemNameService
from esicache.core.services.market_group_service import MarketGroupService
from esicache.domain.errors import AggregateFetchError, CatalogError
from esicache.domain.interfaces.user_interface import UserInterface
from esicache.infrastructure.cache.catalog_store import CatalogStore
from esicache.infrastructure.resilience.rate_governor import RateBudgetGovernor

logger = logging.getLogger(__name__)

MAX_FAILURE_DETAILS = 5


class CommandHandler:
    """Handles incoming commands and delegates to the catalog services."""

    def __init__(
        self,
        group_service: MarketGroupService,
        name_service: ItemNameService,
        store: CatalogStore,
        governor: RateBudgetGovernor,
        ui: UserInterface,
    ):
        self.group_service = group_service
        self.name_service = name_service
        self.store = store
        self.governor = governor
        self.ui = ui

    def _report_aggregate(self, error: AggregateFetchError) -> None:
        details: List[str] = [failure.describe() for failure in error.failures[:MAX_FAILURE_DETAILS]]
        if len(error.failures) > MAX_FAILURE_DETAILS:
            details.append(f"... and {len(error.failures) - MAX_FAILURE_DETAILS} more")
        self.ui.display_error(
            f"{error} Partial results were saved; run the command again to fetch the rest.",
            details=details,
        )

    async def handle_groups(self, limit: Optional[int] = None) -> bool:
        """Handles the 'groups' command. Returns False if the sync failed."""
        logger.info("Handling 'groups' command.")
        try:
            groups = await self.group_service.resolve_market_groups()
        except AggregateFetchError as e:
            if e.partial:
                self.ui.display_groups(e.partial, limit=limit)
            self._report_aggregate(e)
            return False
        except CatalogError as e:
            logger.error(f"Groups command failed: {e}", exc_info=True)
            self.ui.display_error(f"Resolving market groups failed: {e}")
            return False
        self.ui.display_groups(groups, limit=limit)
        return True

    async def handle_names(self, limit: Optional[int] = None) -> bool:
        """Handles the 'names' command. Returns False if the sync failed."""
        logger.info("Handling 'names' command.")
        try:
            names = await self.name_service.resolve_item_names()
        except AggregateFetchError as e:
            # the group catalog failing yields a list, not a name map
            if isinstance(e.partial, dict) and e.partial:
                self.ui.display_names(e.partial, limit=limit)
            self._report_aggregate(e)
            return False
        except CatalogError as e:
            logger.error(f"Names command failed: {e}", exc_info=True)
            self.ui.display_error(f"Resolving item names failed: {e}")
            return False
        self.ui.display_names(names, limit=limit)
        return True

    async def handle_lookup(self, ids: Sequence[int]) -> bool:
        """Handles the 'lookup' command against the local cache only."""
        logger.info(f"Handling 'lookup' command for {len(ids)} ids.")
        names = await self.name_service.lookup(ids)
        unknown = [entity_id for entity_id in ids if entity_id not in names]
        if names:
            self.ui.display_names(names, limit=None)
        if unknown:
            self.ui.display_warning(
                f"Not in cache: {', '.join(map(str, unknown))}. Run 'esicache names' to sync."
            )
        return not unknown

    async def handle_status(self) -> bool:
        logger.info("Handling 'status' command.")
        self.ui.display_status(
            synced=await self.store.sentinel.is_set(),
            group_count=await self.store.groups.count(),
            name_count=await self.store.names.count(),
            budget=self.governor.snapshot(),
            cache_dir=str(self.store.root),
        )
        return True

    async def handle_reset(self) -> bool:
        """Clears the sync sentinel so the next 'groups' run re-syncs."""
        logger.info("Handling 'reset' command.")
        await self.store.sentinel.clear()
        self.ui.display_info("Group catalog marked as stale. Cached rows are kept; missing groups will be fetched on the next sync.")
        return True
