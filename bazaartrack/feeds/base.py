"""Base feed interface for BazaarTrack."""

from abc import ABC, abstractmethod
from typing import Any, Optional


class BaseFeed(ABC):
    """Abstract base class for price feed clients.

    Feeds are pure transport: they return whatever the marketplace published,
    keyed by item id. Validation happens in the collector.
    """

    @abstractmethod
    def fetch_snapshot(self) -> dict[str, Optional[dict[str, Any]]]:
        """Fetch the current marketplace snapshot.

        Returns:
            Mapping of item id to its status payload (None or empty if the
            feed published no status for the item).

        Raises:
            FeedUnavailable: If the feed could not be reached or parsed.
        """
        pass
