"""Analytics over the snapshot store.

The aggregator holds no mutable state: each query is a function of its
inputs and the store's current content, so queries can run in parallel.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from bazaartrack.db.store import SnapshotStore
from bazaartrack.errors import InvalidInput
from bazaartrack.indicators import (
    coefficient_of_variation,
    lagged_pct_change,
    range_pct,
    rolling_mean,
)
from bazaartrack.models import (
    HistoryPoint,
    HistoryRequest,
    PeriodStats,
    PriceSnapshot,
    StatsRequest,
    TrendPoint,
    TrendReport,
    TrendsRequest,
    TrendSummary,
    VolatilityEntry,
    VolatilityRequest,
)
from bazaartrack.models.requests import utcnow

logger = logging.getLogger(__name__)

# Trailing windows, in hourly buckets
SHORT_WINDOW = 6
LONG_WINDOW = 24

RequestT = TypeVar("RequestT", bound=BaseModel)


def _validate(model: type[RequestT], **params: Any) -> RequestT:
    """Build a request model, turning validation failures into InvalidInput."""
    try:
        return model(**params)
    except ValidationError as e:
        problems = []
        for err in e.errors():
            field = ".".join(str(part) for part in err["loc"])
            problems.append(f"{field}: {err['msg']}" if field else err["msg"])
        raise InvalidInput("; ".join(problems)) from None


def build_trend_report(points: list[HistoryPoint]) -> TrendReport:
    """Attach moving averages and lagged changes to an hourly bucket series.

    Args:
        points: Hourly buckets in ascending order.

    Returns:
        TrendReport; ``trends`` is None when there are no buckets.
    """
    if not points:
        return TrendReport(history=[], trends=None)

    buy = [p.buy_price for p in points]
    sell = [p.sell_price for p in points]

    buy_ma6 = rolling_mean(buy, SHORT_WINDOW)
    sell_ma6 = rolling_mean(sell, SHORT_WINDOW)
    buy_ma24 = rolling_mean(buy, LONG_WINDOW)
    sell_ma24 = rolling_mean(sell, LONG_WINDOW)
    buy_pct6 = lagged_pct_change(buy, SHORT_WINDOW)
    sell_pct6 = lagged_pct_change(sell, SHORT_WINDOW)
    buy_pct24 = lagged_pct_change(buy, LONG_WINDOW)
    sell_pct24 = lagged_pct_change(sell, LONG_WINDOW)

    history = [
        TrendPoint(
            timestamp=p.timestamp,
            buy_price=p.buy_price,
            sell_price=p.sell_price,
            buy_price_ma6=buy_ma6[i],
            sell_price_ma6=sell_ma6[i],
            buy_price_ma24=buy_ma24[i],
            sell_price_ma24=sell_ma24[i],
            buy_price_pct_change_6h=buy_pct6[i],
            sell_price_pct_change_6h=sell_pct6[i],
            buy_price_pct_change_24h=buy_pct24[i],
            sell_price_pct_change_24h=sell_pct24[i],
        )
        for i, p in enumerate(points)
    ]

    latest = history[-1]
    change_24h = latest.buy_price_pct_change_24h or 0.0
    trends = TrendSummary(
        short_term="up" if latest.buy_price_ma6 > latest.buy_price_ma24 else "down",
        price_volatility=abs(change_24h),
        latest_change_24h=change_24h,
    )
    return TrendReport(history=history, trends=trends)


def rank_volatility(
    daily_averages: dict[str, list[float]], limit: int
) -> list[VolatilityEntry]:
    """Rank items by the coefficient of variation of their daily prices.

    Items with fewer than two daily points, or a zero mean price, have no
    defined score and are left out. Ties are broken by item id.
    """
    entries = []
    for item_id, prices in daily_averages.items():
        score = coefficient_of_variation(prices)
        if score is None:
            continue
        entries.append(
            VolatilityEntry(
                item_id=item_id,
                volatility_score=score,
                price_range_pct=range_pct(prices),
                average_price=sum(prices) / len(prices),
                data_points=len(prices),
            )
        )
    entries.sort(key=lambda e: (-e.volatility_score, e.item_id))
    return entries[:limit]


class Aggregator:
    """Derived views over the snapshot store."""

    def __init__(
        self,
        store: Optional[SnapshotStore] = None,
        clock: Optional[Callable[[], datetime]] = None,
        store_factory: Optional[Callable[[], SnapshotStore]] = None,
    ):
        """Initialize the aggregator.

        Args:
            store: Store to read from.
            clock: Returns the current time (naive UTC) for period windows.
            store_factory: Opens the store on first use when ``store`` is
                not given, so requests that fail validation never touch it.
        """
        if store is None and store_factory is None:
            raise ValueError("either store or store_factory is required")
        self._store = store
        self._store_factory = store_factory
        self.clock = clock or utcnow

    @property
    def store(self) -> SnapshotStore:
        if self._store is None:
            self._store = self._store_factory()
        return self._store

    def history(
        self,
        item_id: Optional[str],
        start: Any,
        end: Any,
        interval: Optional[str] = "hourly",
        timeout: Optional[float] = None,
    ) -> list[HistoryPoint]:
        """Price history of one item over ``[start, end)``.

        Args:
            item_id: Item identifier.
            start: Inclusive start (datetime or ISO-8601 string).
            end: Exclusive end (datetime or ISO-8601 string).
            interval: "raw", "hourly" (default) or "daily".
            timeout: Optional store deadline in seconds.

        Raises:
            InvalidInput: If a parameter is missing or malformed.
        """
        if not item_id or not start or not end:
            raise InvalidInput(
                "Missing one or more of required parameters: item_id, start, end"
            )
        request = _validate(
            HistoryRequest, item_id=item_id, start=start, end=end, interval=interval
        )
        return self.store.range_query(
            request.item_id, request.start, request.end, request.interval, timeout=timeout
        )

    def latest(self, timeout: Optional[float] = None) -> list[PriceSnapshot]:
        """Most recent snapshot of every item ever recorded."""
        return self.store.latest_per_item(timeout=timeout)

    def stats(
        self,
        item_id: Optional[str],
        period: Optional[str] = "week",
        timeout: Optional[float] = None,
    ) -> PeriodStats:
        """Price and volume aggregates of one item over a named period."""
        if not item_id:
            raise InvalidInput("Missing required parameter: item_id")
        request = _validate(StatsRequest, item_id=item_id, period=period)
        return self.store.period_stats(
            request.item_id, request.window, now=self.clock(), timeout=timeout
        )

    def trends(
        self,
        item_id: Optional[str],
        period: Optional[str] = "week",
        timeout: Optional[float] = None,
    ) -> TrendReport:
        """Hourly moving averages, lagged changes and a trend summary."""
        if not item_id:
            raise InvalidInput("Missing required parameter: item_id")
        request = _validate(TrendsRequest, item_id=item_id, period=period)
        since = self.clock() - request.window
        points = self.store.range_query(
            request.item_id, since, None, "hourly", timeout=timeout
        )
        logger.debug("Trend series for %s has %d buckets", request.item_id, len(points))
        return build_trend_report(points)

    def volatility(
        self,
        period: Optional[str] = "week",
        limit: Any = 10,
        timeout: Optional[float] = None,
    ) -> list[VolatilityEntry]:
        """Items ranked by day-to-day price dispersion, most volatile first."""
        request = _validate(VolatilityRequest, period=period, limit=limit)
        averages = self.store.daily_buy_averages(
            request.window, now=self.clock(), timeout=timeout
        )
        return rank_volatility(averages, request.limit)
