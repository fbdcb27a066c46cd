"""Application Service for the market group catalog."""

import logging
from typing import List

from esicache.domain.errors import CatalogError
from esicache.domain.events.sync_events import CatalogServedFromCache, dispatch_event
from esicache.domain.interfaces.catalog_api import CatalogApi
from esicache.domain.interfaces.catalog_cache import CatalogCache, SyncSentinel
from esicache.domain.models.catalog import GroupRecord
from esicache.domain.models.common import MARKET_GROUPS
from esicache.core.services.sync_orchestrator import SyncOrchestrator, SyncState
from esicache.infrastructure.esi.schemas import parse_group_for, parse_group_ids
from esicache.infrastructure.resilience.batch_executor import BatchExecutor

logger = logging.getLogger(__name__)

DEFAULT_GROUP_CONCURRENCY = 10


class MarketGroupService(SyncOrchestrator[GroupRecord]):
    """Resolves the full market group catalog, preferring the local mirror."""

    catalog_name = MARKET_GROUPS

    def __init__(
        self,
        api: CatalogApi,
        cache: CatalogCache[GroupRecord],
        sentinel: SyncSentinel,
        executor: BatchExecutor,
        concurrency: int = DEFAULT_GROUP_CONCURRENCY,
    ):
        super().__init__(api, cache, executor, concurrency)
        self.sentinel = sentinel

    async def resolve_market_groups(self) -> List[GroupRecord]:
        """Returns every market group.

        Once the catalog has been fully synced the cached rows are returned
        without touching the network. Otherwise the id list is fetched, the
        groups missing from the cache are fetched, and all of them are
        returned in upstream order.

        Raises:
            AggregateFetchError: if the id list or any group failed. Its
                ``partial`` holds the groups that were resolved.
        """
        self.state = SyncState.NOT_STARTED
        self._transition(SyncState.CACHE_CHECK)
        if await self.sentinel.is_set():
            groups = await self.cache.all()
            self._transition(SyncState.CACHE_HIT)
            dispatch_event(CatalogServedFromCache(catalog=self.catalog_name, record_count=len(groups)))
            self._transition(SyncState.DONE)
            return groups

        self._transition(SyncState.CACHE_MISS)
        try:
            group_ids = list(dict.fromkeys(parse_group_ids(await self.api.list_market_group_ids())))
        except CatalogError as e:
            logger.error(f"Could not list market groups: {e}")
            raise self.early_failure(e, partial=[]) from e

        found, missing = await self.partition_cached(group_ids)
        fetched, failures = await self.fetch_and_parse(
            missing,
            self.api.get_market_group,
            lambda group_id, payload: [parse_group_for(group_id, payload)],
        )
        await self.commit(fetched)

        resolved = dict(found)
        resolved.update((group.id, group) for group in fetched)
        groups = [resolved[group_id] for group_id in group_ids if group_id in resolved]

        if not failures:
            await self.sentinel.mark()
        self.finish(failures, total_pages=len(missing), committed=len(fetched), partial=groups)
        logger.info(f"Resolved {len(groups)} market groups ({len(fetched)} fetched).")
        return groups
