"""Query interface over the bazaar analytics.

Each function returns a JSON-ready dictionary, either::

    {"success": True, "data": ...}

or, on failure::

    {"success": False, "kind": "...", "message": "...", "error": ...}

``message`` is always safe to show to clients. ``error`` carries the
underlying exception text only in development mode, otherwise None.
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional

from bazaartrack.analytics import Aggregator
from bazaartrack.config import DEFAULT_DB_PATH
from bazaartrack.db.store import SnapshotStore
from bazaartrack.errors import BazaarError, InvalidInput

logger = logging.getLogger(__name__)


def _is_dev_mode() -> bool:
    return os.environ.get("BAZAARTRACK_ENV", "").lower() == "development"


def _get_aggregator(
    store: Optional[SnapshotStore],
    db_path: Optional[Path],
    clock: Optional[Callable[[], datetime]],
) -> Aggregator:
    return Aggregator(
        store,
        clock=clock,
        store_factory=lambda: SnapshotStore(db_path or DEFAULT_DB_PATH),
    )


def _dump(value: Any) -> Any:
    if isinstance(value, list):
        return [_dump(v) for v in value]
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    return value


def _run(
    name: str,
    query: Callable[[Aggregator], Any],
    store: Optional[SnapshotStore],
    db_path: Optional[Path],
    clock: Optional[Callable[[], datetime]],
    dev_mode: Optional[bool],
) -> dict:
    """Run a query and wrap its outcome in a success or failure payload."""
    if dev_mode is None:
        dev_mode = _is_dev_mode()
    try:
        aggregator = _get_aggregator(store, db_path, clock)
        return {"success": True, "data": _dump(query(aggregator))}
    except InvalidInput as e:
        return _failure(e, dev_mode)
    except BazaarError as e:
        logger.error("Error fetching bazaar %s (%s): %s", name, e.kind, e)
        return _failure(e, dev_mode)
    except Exception as e:
        logger.exception("Unexpected error fetching bazaar %s", name)
        return _failure(e, dev_mode)


def _failure(error: Exception, dev_mode: bool) -> dict:
    if isinstance(error, BazaarError):
        kind, message = error.kind, error.safe_message
    else:
        kind, message = BazaarError.kind, BazaarError.safe_message
    return {
        "success": False,
        "kind": kind,
        "message": message,
        "error": str(error) if dev_mode else None,
    }


def get_history(
    item_id: Optional[str],
    start: Any,
    end: Any,
    interval: Optional[str] = "hourly",
    store: Optional[SnapshotStore] = None,
    db_path: Optional[Path] = None,
    timeout: Optional[float] = None,
    dev_mode: Optional[bool] = None,
) -> dict:
    """Get price history for an item within ``[start, end)``.

    Args:
        item_id: Item identifier (case-insensitive).
        start: Start as a datetime or ISO-8601 string (e.g. "2025-03-01").
        end: End as a datetime or ISO-8601 string.
        interval: "raw", "hourly" (default) or "daily".
        store: Store to query. Opens ``db_path`` when omitted.
        db_path: Optional path to database file.
        timeout: Optional query deadline in seconds.
        dev_mode: Include error details. Defaults to ``BAZAARTRACK_ENV``.

    Returns:
        Payload whose data is a list of points with timestamp, buy_price,
        sell_price, buy_volume and sell_volume.
    """
    return _run(
        "price history",
        lambda agg: agg.history(item_id, start, end, interval, timeout=timeout),
        store, db_path, None, dev_mode,
    )


def get_latest(
    store: Optional[SnapshotStore] = None,
    db_path: Optional[Path] = None,
    timeout: Optional[float] = None,
    dev_mode: Optional[bool] = None,
) -> dict:
    """Get the latest snapshot of every item."""
    return _run(
        "latest prices",
        lambda agg: agg.latest(timeout=timeout),
        store, db_path, None, dev_mode,
    )


def get_stats(
    item_id: Optional[str],
    period: Optional[str] = "week",
    store: Optional[SnapshotStore] = None,
    db_path: Optional[Path] = None,
    timeout: Optional[float] = None,
    dev_mode: Optional[bool] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> dict:
    """Get summary statistics for an item.

    ``period`` is one of day, week, month or year; anything else means a
    week. The data fields are all None if the item has no rows in range.
    """
    return _run(
        "stats",
        lambda agg: agg.stats(item_id, period, timeout=timeout),
        store, db_path, clock, dev_mode,
    )


def get_trends(
    item_id: Optional[str],
    period: Optional[str] = "week",
    store: Optional[SnapshotStore] = None,
    db_path: Optional[Path] = None,
    timeout: Optional[float] = None,
    dev_mode: Optional[bool] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> dict:
    """Get hourly price trends for an item.

    Returns:
        Payload whose data holds ``history`` (per-bucket moving averages and
        percent changes) and ``trends`` (latest-bucket summary, or None).
    """
    return _run(
        "trends",
        lambda agg: agg.trends(item_id, period, timeout=timeout),
        store, db_path, clock, dev_mode,
    )


def get_volatility(
    period: Optional[str] = "week",
    limit: Any = 10,
    store: Optional[SnapshotStore] = None,
    db_path: Optional[Path] = None,
    timeout: Optional[float] = None,
    dev_mode: Optional[bool] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> dict:
    """Get the most volatile items, highest score first.

    ``period`` is one of day, week or month; ``limit`` caps the result.
    """
    return _run(
        "volatility",
        lambda agg: agg.volatility(period, limit, timeout=timeout),
        store, db_path, clock, dev_mode,
    )
