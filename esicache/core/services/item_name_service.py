"""Application Service for the item name catalog.

Item ids are the member types of every market group. Names missing from the
local mirror are resolved in pages through /universe/names/.
"""

import logging
from typing import Dict, List, Sequence

from esicache.domain.interfaces.catalog_api import CatalogApi
from esicache.domain.interfaces.catalog_cache import CatalogCache
from esicache.domain.models.catalog import NameRecord
from esicache.domain.models.common import ITEM_NAMES, NameEntry
from esicache.core.services.market_group_service import MarketGroupService
from esicache.core.services.sync_orchestrator import SyncOrchestrator, SyncState
from esicache.infrastructure.esi.schemas import parse_names_for
from esicache.infrastructure.resilience.batch_executor import BatchExecutor

logger = logging.getLogger(__name__)

DEFAULT_NAME_CONCURRENCY = 10
DEFAULT_PAGE_SIZE = 1000


def paginate(ids: Sequence[int], page_size: int) -> List[List[int]]:
    """Splits ids into consecutive pages of at most ``page_size``."""
    if page_size < 1:
        raise ValueError("Page size must be at least 1.")
    return [list(ids[i:i + page_size]) for i in range(0, len(ids), page_size)]


class ItemNameService(SyncOrchestrator[NameRecord]):
    """Resolves id -> (name, category) for every market item."""

    catalog_name = ITEM_NAMES

    def __init__(
        self,
        api: CatalogApi,
        cache: CatalogCache[NameRecord],
        group_service: MarketGroupService,
        executor: BatchExecutor,
        concurrency: int = DEFAULT_NAME_CONCURRENCY,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        super().__init__(api, cache, executor, concurrency)
        if page_size < 1:
            raise ValueError("Page size must be at least 1.")
        self.group_service = group_service
        self.page_size = page_size

    async def resolve_item_names(self) -> Dict[int, NameEntry]:
        """Returns the name of every item in the market group catalog.

        Cached names are never re-fetched. Every page that parsed is
        committed even if other pages failed.

        Raises:
            AggregateFetchError: if the group catalog or any name page
                failed. Its ``partial`` holds the mapping built so far
                (cache hits plus fetched pages).
        """
        self.state = SyncState.NOT_STARTED
        groups = await self.group_service.resolve_market_groups()
        all_ids = list(dict.fromkeys(
            member_id for group in groups for member_id in group.member_ids
        ))

        found, missing = await self.partition_cached(all_ids)
        names: Dict[int, NameEntry] = {key: record.to_entry() for key, record in found.items()}

        pages = paginate(missing, self.page_size)
        if pages:
            logger.info(f"Resolving {len(missing)} item names in {len(pages)} pages.")
        fetched, failures = await self.fetch_and_parse(pages, self.api.resolve_names, parse_names_for)
        for record in fetched:
            names[record.id] = record.to_entry()
        await self.commit(fetched)

        self.finish(failures, total_pages=len(pages), committed=len(fetched), partial=names)
        return names

    async def lookup(self, ids: Sequence[int]) -> Dict[int, NameEntry]:
        """Cache-only lookup; ids that were never resolved are omitted."""
        records = await self.cache.bulk_get(ids)
        return {key: record.to_entry() for key, record in zip(ids, records) if record is not None}
