"""Shared sync algorithm for the mirrored catalogs.

Every orchestrator call follows the same path: check the cache, compute the
ids it is missing, fetch them page by page through the BatchExecutor,
validate each page, commit whatever parsed, and finally report an
AggregateFetchError if any page failed. Committed data is never rolled back.
"""

import enum
import logging
from typing import Any, Awaitable, Callable, Dict, Generic, List, Sequence, Tuple, TypeVar

from esicache.domain.errors import AggregateFetchError, CatalogError, PageFailure
from esicache.domain.events.sync_events import PagesSettled, dispatch_event
from esicache.domain.interfaces.catalog_api import CatalogApi
from esicache.domain.interfaces.catalog_cache import CatalogCache
from esicache.infrastructure.resilience.batch_executor import BatchExecutor

logger = logging.getLogger(__name__)

V = TypeVar("V")
P = TypeVar("P")


class SyncState(enum.Enum):
    NOT_STARTED = "not_started"
    CACHE_CHECK = "cache_check"
    CACHE_HIT = "cache_hit"
    CACHE_MISS = "cache_miss"
    FETCHING = "fetching"
    MERGING = "merging"
    DONE = "done"
    DONE_WITH_ERROR = "done_with_error"


class SyncOrchestrator(Generic[V]):
    """Template for cache-check -> gap fetch -> validate -> merge."""

    catalog_name = "catalog"

    def __init__(
        self,
        api: CatalogApi,
        cache: CatalogCache[V],
        executor: BatchExecutor,
        concurrency: int,
    ):
        if concurrency < 1:
            raise ValueError("Concurrency width must be at least 1.")
        self.api = api
        self.cache = cache
        self.executor = executor
        self.concurrency = concurrency
        self.state = SyncState.NOT_STARTED

    def _transition(self, state: SyncState) -> None:
        logger.debug(f"{self.catalog_name}: {self.state.value} -> {state.value}")
        self.state = state

    async def partition_cached(self, ids: Sequence[int]) -> Tuple[Dict[int, V], List[int]]:
        """Splits ids into cached records and ids that still need fetching."""
        self._transition(SyncState.CACHE_CHECK)
        cached = await self.cache.bulk_get(ids)
        found: Dict[int, V] = {}
        missing: List[int] = []
        for key, record in zip(ids, cached):
            if record is None:
                missing.append(key)
            else:
                found[key] = record
        logger.info(f"{self.catalog_name}: {len(found)} cached, {len(missing)} missing")
        return found, missing

    async def fetch_and_parse(
        self,
        pages: Sequence[P],
        fetch: Callable[[P], Awaitable[Any]],
        parse: Callable[[P, Any], List[V]],
    ) -> Tuple[List[V], List[PageFailure]]:
        """Fetches every page and validates it.

        ``parse`` receives the page that was requested together with its
        payload, so it can reject records that do not belong to that page.
        Transport and validation failures are recorded per page; this never
        raises for a single page.

        Returns:
            Parsed records in page order, and the failed pages.
        """
        if not pages:
            self._transition(SyncState.CACHE_HIT)
            return [], []

        self._transition(SyncState.FETCHING)
        outcomes = await self.executor.run(pages, self.concurrency, fetch)

        self._transition(SyncState.MERGING)
        records: List[V] = []
        failures: List[PageFailure] = []
        for outcome in outcomes:
            if not outcome.ok:
                logger.warning(f"{self.catalog_name}: page {outcome.item!r} failed: {outcome.error}")
                failures.append(PageFailure(page=outcome.item, error=outcome.error))
                continue
            try:
                records.extend(parse(outcome.item, outcome.value))
            except CatalogError as e:
                logger.warning(f"{self.catalog_name}: page {outcome.item!r} did not validate: {e}")
                failures.append(PageFailure(page=outcome.item, error=e))
        return records, failures

    async def commit(self, records: Sequence[V]) -> None:
        """Persists parsed records, even when sibling pages failed."""
        if records:
            await self.cache.bulk_upsert(records)
            logger.info(f"{self.catalog_name}: committed {len(records)} records")

    def finish(self, failures: List[PageFailure], total_pages: int, committed: int, partial: Any) -> None:
        """Moves to a terminal state and raises if any page failed."""
        dispatch_event(PagesSettled(
            catalog=self.catalog_name,
            succeeded=total_pages - len(failures),
            failed=len(failures),
            records_committed=committed,
        ))
        if failures:
            self._transition(SyncState.DONE_WITH_ERROR)
            error = AggregateFetchError(self.catalog_name, failures, total_pages, partial=partial)
            logger.error(str(error))
            raise error
        self._transition(SyncState.DONE)

    def early_failure(self, error: Exception, partial: Any) -> AggregateFetchError:
        """Builds the error for a failure that happened before any page was dispatched."""
        self._transition(SyncState.DONE_WITH_ERROR)
        return AggregateFetchError(
            self.catalog_name, [PageFailure(page=None, error=error)], total_pages=1, partial=partial
        )
