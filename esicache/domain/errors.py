"""Error taxonomy for catalog synchronisation.

Page level errors (TransportError, PayloadValidationError) are recorded per
page and never abort sibling pages. Once every page has settled, the
orchestrator reports them together as one AggregateFetchError.
"""

from dataclasses import dataclass
from typing import Any, List, Optional


class CatalogError(Exception):
    """Base class for all catalog sync errors."""


class TransportError(CatalogError):
    """Network or HTTP level failure of a single request."""

    def __init__(self, message: str, url: Optional[str] = None, status: Optional[int] = None):
        self.url = url
        self.status = status
        super().__init__(message)


class PayloadValidationError(CatalogError):
    """A response body did not match the expected shape."""


@dataclass
class PageFailure:
    """A single failed page: the work item and the error it settled with."""
    page: Any
    error: Exception

    def describe(self) -> str:
        return f"{self.page!r}: {type(self.error).__name__}: {self.error}"


class AggregateFetchError(CatalogError):
    """One or more pages of a batch failed after all pages settled.

    ``partial`` holds the best-effort result (already persisted) so callers
    can still use what was resolved.
    """

    def __init__(self, catalog: str, failures: List[PageFailure], total_pages: int, partial: Any = None):
        self.catalog = catalog
        self.failures = failures
        self.total_pages = total_pages
        self.partial = partial
        super().__init__(
            f"{len(failures)} of {total_pages} pages failed while resolving {catalog}"
        )
