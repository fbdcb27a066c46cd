"""Domain Events related to rate governing and catalog syncs."""

import logging
import time
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


@dataclass
class RequestDeferred(DomainEvent):
    """The governor delayed a request because the error budget is low."""
    remaining: int
    wait_time_seconds: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class BudgetUpdated(DomainEvent):
    """ESI reported authoritative error-limit values."""
    remaining: int
    reset_seconds: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class CatalogServedFromCache(DomainEvent):
    catalog: str
    record_count: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class PagesSettled(DomainEvent):
    """All pages of one orchestrator call have settled."""
    catalog: str
    succeeded: int
    failed: int
    records_committed: int
    timestamp: float = field(default_factory=time.time)


def dispatch_event(event: Any) -> None:
    # In a real system, this would publish the event
    logger.debug(f"EVENT: {event}")
