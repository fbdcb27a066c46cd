"""Concrete implementation of the CatalogApi interface using the ESI API.

Wraps an httpx.AsyncClient whose request/response event hooks are wired to
the RateBudgetGovernor, so every outgoing call is gated on the shared error
budget and every response updates it.
"""

import logging
import time
from typing import Any, Optional, Sequence

import httpx

from esicache.domain.errors import PayloadValidationError, TransportError
from esicache.domain.interfaces.catalog_api import CatalogApi
from esicache.infrastructure.resilience.rate_governor import RateBudgetGovernor

logger = logging.getLogger(__name__)

ESI_BASE_URL = "https://esi.evetech.net/latest/"
DEFAULT_USER_AGENT = "esicache/0.1.0 (catalog mirror)"
DEFAULT_TIMEOUT_SECONDS = 30.0
NAMES_PAGE_LIMIT = 1000  # ESI rejects /universe/names/ bodies with more ids


class EsiClient(CatalogApi):
    """ESI implementation of the CatalogApi interface."""

    def __init__(
        self,
        governor: RateBudgetGovernor,
        base_url: str = ESI_BASE_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initializes the ESI client.

        Args:
            governor: Shared error-budget governor gating every request.
            base_url: ESI root, e.g. https://esi.evetech.net/latest/.
            user_agent: Sent with every request, as ESI asks clients to.
            timeout_seconds: Per-request transport timeout.
            transport: Optional httpx transport (tests pass a MockTransport).
        """
        self.governor = governor
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"User-Agent": user_agent, "Accept": "application/json"},
            timeout=timeout_seconds,
            transport=transport,
            event_hooks={
                "request": [self._on_request],
                "response": [self._on_response],
            },
        )
        logger.info(f"EsiClient initialized for: {self.base_url}")

    async def _on_request(self, request: httpx.Request) -> None:
        await self.governor.before_request()

    async def _on_response(self, response: httpx.Response) -> None:
        self.governor.after_response(response.status_code, response.headers)

    async def _request_json(self, method: str, path: str, **kwargs: Any) -> Any:
        start_time = time.perf_counter()
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"ESI {method} {path} failed: {type(e).__name__}: {e}")
            raise TransportError(f"{method} {path} failed: {e}", url=path) from e

        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(f"ESI {method} {path} -> {response.status_code} in {latency_ms:.2f}ms")

        if response.status_code >= 400:
            raise TransportError(
                f"{method} {path} returned HTTP {response.status_code}",
                url=str(response.url),
                status=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise PayloadValidationError(f"{method} {path} returned a non-JSON body") from e

    async def list_market_group_ids(self) -> Any:
        return await self._request_json("GET", "markets/groups/")

    async def get_market_group(self, group_id: int) -> Any:
        return await self._request_json("GET", f"markets/groups/{group_id}/")

    async def resolve_names(self, ids: Sequence[int]) -> Any:
        if len(ids) > NAMES_PAGE_LIMIT:
            raise ValueError(f"At most {NAMES_PAGE_LIMIT} ids may be resolved per request, got {len(ids)}.")
        return await self._request_json("POST", "universe/names/", json=list(ids))

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "EsiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
