"""ESI error-budget governor.

ESI tracks how many erroring requests a client may still make in the current
window and reports it in the ``x-esi-error-limit-remain`` and
``x-esi-error-limit-reset`` headers. The governor keeps a local copy of that
budget and delays outgoing requests while it is nearly exhausted.

The budget is shared by every in-flight request and mutated without a lock.
All callers run on one event loop and the budget is a safety margin rather
than a hard guarantee, so interleaved updates are tolerated.
"""

import asyncio
import logging
from dataclasses import replace
from typing import Awaitable, Callable, Mapping, Optional

from esicache.domain.events.sync_events import BudgetUpdated, RequestDeferred, dispatch_event
from esicache.domain.models.catalog import RateBudget

logger = logging.getLogger(__name__)

LOW_WATERMARK = 10
ERROR_LIMITED_STATUS = 420  # ESI answers 420 once the error budget is spent

REMAIN_HEADER = "x-esi-error-limit-remain"
RESET_HEADER = "x-esi-error-limit-reset"


class RateBudgetGovernor:
    """Gates every outbound ESI call on the shared error budget."""

    def __init__(
        self,
        budget: Optional[RateBudget] = None,
        low_watermark: int = LOW_WATERMARK,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initializes the governor.

        Args:
            budget: Starting budget. Defaults to remaining=100, reset=60s.
            low_watermark: Below this many remaining errors, requests wait.
            sleep: Coroutine used to wait; injectable for tests.
        """
        self.budget = budget or RateBudget()
        self.low_watermark = low_watermark
        self._sleep = sleep
        logger.info(
            f"RateBudgetGovernor initialized: remaining={self.budget.remaining}, "
            f"reset={self.budget.reset_seconds}s, low_watermark={low_watermark}"
        )

    def snapshot(self) -> RateBudget:
        """Returns a copy of the current budget."""
        return replace(self.budget)

    async def before_request(self) -> None:
        """Waits out the reset window if the budget is below the watermark."""
        remaining = self.budget.remaining
        if remaining < self.low_watermark:
            wait_time = self.budget.reset_seconds
            logger.warning(
                f"ESI error budget low ({remaining} < {self.low_watermark}). "
                f"Waiting {wait_time}s before next request."
            )
            dispatch_event(RequestDeferred(remaining=remaining, wait_time_seconds=wait_time))
            await self._sleep(wait_time)

    def after_response(self, status: int, headers: Mapping[str, str]) -> None:
        """Updates the budget from a response.

        Error statuses decrement the local estimate. Authoritative header
        values, when both are present, then overwrite it.
        """
        if status >= 400:
            self.budget.remaining = max(0, self.budget.remaining - 1)
            if status == ERROR_LIMITED_STATUS:
                logger.warning("ESI responded 420 (error limited); budget exhausted.")
                self.budget.remaining = 0
            logger.debug(f"Error response {status}; remaining budget now {self.budget.remaining}")

        remain_raw = headers.get(REMAIN_HEADER)
        reset_raw = headers.get(RESET_HEADER)
        if remain_raw is None or reset_raw is None:
            return
        try:
            remaining = max(0, int(remain_raw))
            reset_seconds = max(0, int(reset_raw))
        except (TypeError, ValueError):
            logger.warning(f"Ignoring unparseable ESI error-limit headers: remain={remain_raw!r}, reset={reset_raw!r}")
            return

        self.budget.remaining = remaining
        self.budget.reset_seconds = reset_seconds
        dispatch_event(BudgetUpdated(remaining=remaining, reset_seconds=reset_seconds))
