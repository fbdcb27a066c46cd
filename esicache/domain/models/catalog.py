"""Record models for the two mirrored catalogs and the rate budget.

Catalog records are pydantic models so that the same class validates the
ESI payload and the rows read back from the local store.
"""

from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from esicache.domain.models.common import NameEntry

DEFAULT_BUDGET_REMAINING = 100
DEFAULT_BUDGET_RESET_SECONDS = 60


class GroupRecord(BaseModel):
    """One market group as returned by /markets/groups/{id}/."""
    model_config = ConfigDict(frozen=True, strict=True, populate_by_name=True)

    id: int = Field(alias="market_group_id")
    name: str
    description: str
    parent_id: Optional[int] = Field(default=None, alias="parent_group_id")
    member_ids: List[int] = Field(default_factory=list, alias="types")


class NameRecord(BaseModel):
    """One entry of a /universe/names/ response."""
    model_config = ConfigDict(frozen=True, strict=True)

    id: int
    name: str
    category: Optional[str] = None

    def to_entry(self) -> NameEntry:
        return NameEntry(self.name, self.category)


@dataclass
class RateBudget:
    """Shared ESI error budget. Mutated after every response."""
    remaining: int = DEFAULT_BUDGET_REMAINING
    reset_seconds: int = DEFAULT_BUDGET_RESET_SECONDS
