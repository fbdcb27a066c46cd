"""Defines common Value Objects used across the catalog contexts.

These objects represent simple values like ids and resolved names,
ensuring consistency across the services and adapters.
"""

from typing import NamedTuple, NewType, Optional

# === Identifiers ===
GroupId = NewType("GroupId", int)      # Market group id (market_group_id on the wire)
EntityId = NewType("EntityId", int)    # Any universe entity id (type ids for market items)

# === Catalog names ===
CatalogName = NewType("CatalogName", str)  # 'market groups', 'item names'

MARKET_GROUPS = CatalogName("market groups")
ITEM_NAMES = CatalogName("item names")


class NameEntry(NamedTuple):
    """Value of the resolved id -> name mapping."""
    name: str
    category: Optional[str] = None
