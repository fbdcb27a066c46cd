"""Interface for presenting sync results to the user.

Allows different UI implementations (console today) behind one contract.
"""

import abc
from typing import Any, Mapping, Optional, Sequence

from esicache.domain.models.catalog import GroupRecord, RateBudget
from esicache.domain.models.common import NameEntry


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user.

        Args:
            error_message: The error message string.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        pass

    @abc.abstractmethod
    def display_groups(self, groups: Sequence[GroupRecord], limit: Optional[int] = None) -> None:
        """Renders market groups as a table, truncated to ``limit`` rows."""
        pass

    @abc.abstractmethod
    def display_names(self, names: Mapping[int, NameEntry], limit: Optional[int] = None) -> None:
        """Renders an id -> name mapping as a table."""
        pass

    @abc.abstractmethod
    def display_status(
        self,
        synced: bool,
        group_count: int,
        name_count: int,
        budget: RateBudget,
        cache_dir: str,
    ) -> None:
        pass
