"""Bounded-concurrency batch execution.

Work items are processed in consecutive rounds of ``width`` concurrent
operations. A round only starts once every operation of the previous round
has settled, so at most ``width`` requests are ever outstanding.
"""

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

@dataclass
class Outcome(Generic[T, R]):
    """Settled result of one work item: either a value or an error."""
    item: T
    value: Optional[R] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BatchExecutor:
    """Runs async operations over items in width-bounded, sequential rounds."""

    async def run(
        self,
        items: Sequence[T],
        width: int,
        op: Callable[[T], Awaitable[R]],
    ) -> List[Outcome]:
        """Executes ``op`` over every item.

        Args:
            items: Work items, one operation each.
            width: Maximum concurrent operations per round.
            op: Coroutine function applied to each item.

        Returns:
            One Outcome per item, in input order. Failures are captured,
            never raised, and do not stop sibling or later items.
        """
        if width < 1:
            raise ValueError("Batch width must be at least 1.")
        if not items:
            return []

        rounds = math.ceil(len(items) / width)
        logger.debug(f"Running {len(items)} items in {rounds} rounds of width {width}")

        outcomes: List[Outcome] = []
        for start in range(0, len(items), width):
            chunk = items[start:start + width]
            # gather keeps positional order regardless of completion order
            settled = await asyncio.gather(*(self._settle(item, op) for item in chunk))
            outcomes.extend(settled)

        failed = sum(1 for outcome in outcomes if not outcome.ok)
        if failed:
            logger.warning(f"Batch finished with {failed}/{len(outcomes)} failed items.")
        return outcomes

    @staticmethod
    async def _settle(item: Any, op: Callable[[Any], Awaitable[Any]]) -> Outcome:
        try:
            return Outcome(item=item, value=await op(item))
        except Exception as e:
            logger.debug(f"Batch item {item!r} failed: {type(e).__name__}: {e}")
            return Outcome(item=item, error=e)
