"""Interface for the upstream catalog API (EVE ESI).

Implementations return the decoded JSON body untouched; validating its
shape is the caller's job so that a malformed page is reported as a page
failure rather than a transport failure.
"""

import abc
from typing import Any, Sequence


class CatalogApi(abc.ABC):
    """Abstract Base Class for the remote reference catalog."""

    @abc.abstractmethod
    async def list_market_group_ids(self) -> Any:
        """GET markets/groups/ -> list of integer group ids.

        Raises:
            TransportError: on network failure or HTTP status >= 400.
            PayloadValidationError: if the body is not JSON.
        """
        pass

    @abc.abstractmethod
    async def get_market_group(self, group_id: int) -> Any:
        """GET markets/groups/{group_id}/ -> one group object."""
        pass

    @abc.abstractmethod
    async def resolve_names(self, ids: Sequence[int]) -> Any:
        """POST universe/names/ with at most 1000 ids -> list of name objects."""
        pass
