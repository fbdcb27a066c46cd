"""Durable catalog tables backed by diskcache.

Each catalog kind gets its own diskcache.Cache directory under one root.
Records are stored as plain dicts and revalidated into their pydantic model
on read, so the on-disk format does not depend on pickled classes.

diskcache talks to SQLite synchronously; every table operation runs in a
worker thread through asyncio.to_thread.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Generic, List, Optional, Sequence, Type, TypeVar, Union

import diskcache as dc
from pydantic import BaseModel

from esicache.domain.interfaces.catalog_cache import CatalogCache, SyncSentinel
from esicache.domain.models.catalog import GroupRecord, NameRecord

logger = logging.getLogger(__name__)

DEFAULT_CACHE_DIR = Path.home() / ".esicache" / "catalog"
GROUPS_TABLE = "groups"
NAMES_TABLE = "names"
META_TABLE = "meta"
MARKET_GROUPS_SYNCED_KEY = "market_groups_synced"

M = TypeVar("M", bound=BaseModel)


class DiskCatalogCache(CatalogCache[M], Generic[M]):
    """One catalog table keyed by the record's ``id``."""

    def __init__(self, cache: dc.Cache, record_type: Type[M]):
        self._cache = cache
        self.record_type = record_type

    @classmethod
    def open(cls, directory: Union[str, Path], record_type: Type[M]) -> "DiskCatalogCache[M]":
        # No default expiry: catalog rows live until the directory is removed
        cache = dc.Cache(str(directory), timeout=1)
        logger.info(f"Opened {record_type.__name__} table at: {cache.directory} ({len(cache)} rows)")
        return cls(cache, record_type)

    @property
    def directory(self) -> str:
        return self._cache.directory

    def _load(self, raw: Any) -> Optional[M]:
        if raw is None:
            return None
        return self.record_type.model_validate(raw)

    async def get(self, key: int) -> Optional[M]:
        raw = await asyncio.to_thread(self._cache.get, key, None)
        return self._load(raw)

    async def bulk_get(self, keys: Sequence[int]) -> List[Optional[M]]:
        raws = await asyncio.to_thread(lambda: [self._cache.get(key, default=None) for key in keys])
        return [self._load(raw) for raw in raws]

    def _write(self, rows: List[Any]) -> None:
        with self._cache.transact():
            for key, value in rows:
                self._cache.set(key, value)

    async def bulk_upsert(self, records: Sequence[M]) -> None:
        if not records:
            return
        await asyncio.to_thread(self._write, [(record.id, record.model_dump()) for record in records])
        logger.debug(f"Upserted {len(records)} {self.record_type.__name__} rows.")

    def _read_all(self) -> List[Any]:
        return [self._cache[key] for key in sorted(self._cache)]

    async def all(self) -> List[M]:
        return [self._load(raw) for raw in await asyncio.to_thread(self._read_all)]

    async def count(self) -> int:
        return await asyncio.to_thread(len, self._cache)

    def close(self) -> None:
        self._cache.close()


class DiskSyncSentinel(SyncSentinel):
    """Presence/absence flag stored in the meta table."""

    def __init__(self, cache: dc.Cache, key: str = MARKET_GROUPS_SYNCED_KEY):
        self._cache = cache
        self.key = key

    async def is_set(self) -> bool:
        return await asyncio.to_thread(self._cache.__contains__, self.key)

    async def mark(self) -> None:
        await asyncio.to_thread(self._cache.set, self.key, True)
        logger.info(f"Sync sentinel '{self.key}' set.")

    async def clear(self) -> None:
        if await asyncio.to_thread(self._cache.delete, self.key):
            logger.info(f"Sync sentinel '{self.key}' cleared.")


class CatalogStore:
    """Opens and owns every table of the local catalog mirror."""

    def __init__(self, root: Union[str, Path] = DEFAULT_CACHE_DIR):
        self.root = Path(root)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create catalog cache directory {self.root}: {e}")
            raise

        self.groups: DiskCatalogCache[GroupRecord] = DiskCatalogCache.open(self.root / GROUPS_TABLE, GroupRecord)
        self.names: DiskCatalogCache[NameRecord] = DiskCatalogCache.open(self.root / NAMES_TABLE, NameRecord)
        self._meta = dc.Cache(str(self.root / META_TABLE), timeout=1)
        self.sentinel = DiskSyncSentinel(self._meta)
        logger.info(f"CatalogStore initialized at: {self.root}")

    def close(self) -> None:
        self.groups.close()
        self.names.close()
        self._meta.close()

    def __enter__(self) -> "CatalogStore":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
