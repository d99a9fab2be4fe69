"""Single-flight bazaar snapshot collector."""

import logging
import threading
import time
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Callable, Optional

from pydantic import ValidationError

from bazaartrack.db.store import SnapshotStore
from bazaartrack.errors import BazaarError, FeedUnavailable
from bazaartrack.feeds.base import BaseFeed
from bazaartrack.models import CollectionRun, FeedItem, PriceSnapshot
from bazaartrack.models.requests import utcnow

logger = logging.getLogger(__name__)


def parse_feed(raw: Any) -> tuple[list[FeedItem], int]:
    """Validate a raw feed snapshot.

    Args:
        raw: Mapping of item id to status payload, as returned by a feed.

    Returns:
        Tuple of (valid items in feed order, number of rejected entries).

    Raises:
        FeedUnavailable: If the snapshot itself is not a mapping.
    """
    if not isinstance(raw, Mapping):
        raise FeedUnavailable(f"Feed returned {type(raw).__name__}, expected a mapping")

    items: list[FeedItem] = []
    rejected = 0
    for item_id, status in raw.items():
        try:
            items.append(FeedItem(item_id=item_id, status=status))
        except ValidationError as e:
            rejected += 1
            logger.debug("Dropping feed entry %r: %s", item_id, e.errors()[0]["msg"])
    return items, rejected


class Collector:
    """Fetches one feed snapshot per tick and records it as a single batch.

    At most one run is active at a time. A tick that fires while a run is
    in flight is skipped, not queued. The in-progress marker is owned here
    and is only reachable through :meth:`tick`.
    """

    def __init__(
        self,
        feed: BaseFeed,
        store: SnapshotStore,
        clock: Optional[Callable[[], datetime]] = None,
        stale_after: Optional[float] = None,
    ):
        """Initialize the collector.

        Args:
            feed: Price feed to poll.
            store: Store receiving the batches.
            clock: Returns the run timestamp (naive UTC). Defaults to now.
            stale_after: Seconds after which an unfinished run no longer
                blocks new ticks. None means never.
        """
        self.feed = feed
        self.store = store
        self.clock = clock or utcnow
        self.stale_after = stale_after

        self._lock = threading.Lock()
        self._run_token: Optional[object] = None
        self._running_since: Optional[float] = None

    @property
    def in_progress(self) -> bool:
        """Whether a run currently holds the marker."""
        with self._lock:
            return self._run_token is not None

    def _acquire(self) -> Optional[object]:
        with self._lock:
            now = time.monotonic()
            if self._run_token is not None:
                age = now - self._running_since
                if self.stale_after is None or age < self.stale_after:
                    return None
                logger.warning(
                    "Collection run in progress for %.0fs, treating it as stale", age
                )
            token = object()
            self._run_token = token
            self._running_since = now
            return token

    def _release(self, token: object) -> None:
        with self._lock:
            # A run replaced by the staleness guard must not clear its successor
            if self._run_token is token:
                self._run_token = None
                self._running_since = None

    def tick(self) -> CollectionRun:
        """Run one collection unless another is already in flight.

        Never raises: failures are logged and reported in the returned run.
        """
        started_at = self.clock()
        token = self._acquire()
        if token is None:
            logger.warning("Previous collection still running, skipping this tick")
            return CollectionRun(
                started_at=started_at, finished_at=started_at, outcome="skipped"
            )

        try:
            run = self._collect(started_at)
        finally:
            self._release(token)

        logger.info(
            "Collection %s: fetched=%d accepted=%d rejected=%d",
            run.outcome,
            run.items_fetched,
            run.items_accepted,
            run.items_rejected,
        )
        return run

    def _collect(self, started_at: datetime) -> CollectionRun:
        logger.info("Fetching bazaar snapshot...")
        fetched = accepted = rejected = 0
        try:
            raw = self.feed.fetch_snapshot()
            items, rejected = parse_feed(raw)
            fetched = len(items) + rejected
            logger.info("Retrieved %d items from the bazaar", fetched)

            if not items:
                logger.warning("No valid items to record")
                return CollectionRun(
                    started_at=started_at,
                    finished_at=self.clock(),
                    outcome="empty",
                    items_fetched=fetched,
                    items_rejected=rejected,
                )

            snapshots: list[PriceSnapshot] = [item.to_snapshot(started_at) for item in items]
            accepted = self.store.insert_batch(snapshots)
            logger.info("Recorded %d items to the store", accepted)
        except BazaarError as e:
            logger.error("Failed to record bazaar prices (%s): %s", e.kind, e)
            return self._failed(started_at, fetched, rejected, e)
        except Exception as e:
            logger.exception("Unexpected error while recording bazaar prices")
            return self._failed(started_at, fetched, rejected, e)

        return CollectionRun(
            started_at=started_at,
            finished_at=self.clock(),
            outcome="success",
            items_fetched=fetched,
            items_accepted=accepted,
            items_rejected=rejected,
        )

    def _failed(
        self, started_at: datetime, fetched: int, rejected: int, error: Exception
    ) -> CollectionRun:
        return CollectionRun(
            started_at=started_at,
            finished_at=self.clock(),
            outcome="failed",
            items_fetched=fetched,
            items_rejected=rejected,
            error=str(error) or type(error).__name__,
        )
