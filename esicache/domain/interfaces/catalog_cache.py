"""Interfaces for the durable catalog cache.

A CatalogCache is an overwrite-only table of records keyed by their primary
id. Entries are never evicted or expired by this subsystem.
"""

import abc
from typing import Generic, List, Optional, Sequence, TypeVar

V = TypeVar("V")


class CatalogCache(abc.ABC, Generic[V]):
    """Abstract Base Class for one persistent catalog table."""

    @abc.abstractmethod
    async def get(self, key: int) -> Optional[V]:
        """Retrieves one record, or None if absent."""
        pass

    @abc.abstractmethod
    async def bulk_get(self, keys: Sequence[int]) -> List[Optional[V]]:
        """Retrieves many records at once.

        Args:
            keys: Ordered ids to look up.

        Returns:
            A list with the same length and order as ``keys``; absent ids
            map to None.
        """
        pass

    @abc.abstractmethod
    async def bulk_upsert(self, records: Sequence[V]) -> None:
        """Stores records, overwriting any existing entry with the same id.

        Idempotent: storing the same records twice leaves one row per id.
        """
        pass

    @abc.abstractmethod
    async def all(self) -> List[V]:
        """Returns every stored record, ordered by id."""
        pass

    @abc.abstractmethod
    async def count(self) -> int:
        pass


class SyncSentinel(abc.ABC):
    """Durable marker: 'the group catalog has been fully synced once'."""

    @abc.abstractmethod
    async def is_set(self) -> bool:
        pass

    @abc.abstractmethod
    async def mark(self) -> None:
        pass

    @abc.abstractmethod
    async def clear(self) -> None:
        """Removes the marker. Only ever triggered by an explicit user action."""
        pass
