"""Analytics over stored bazaar snapshots."""

from bazaartrack.analytics.aggregator import (
    LONG_WINDOW,
    SHORT_WINDOW,
    Aggregator,
    build_trend_report,
    rank_volatility,
)

__all__ = [
    "Aggregator",
    "LONG_WINDOW",
    "SHORT_WINDOW",
    "build_trend_report",
    "rank_volatility",
]
