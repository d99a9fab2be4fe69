"""Data models for BazaarTrack."""

from bazaartrack.models.snapshot import PriceSnapshot
from bazaartrack.models.feed import FeedItem, QuickStatus
from bazaartrack.models.run import CollectionRun
from bazaartrack.models.analytics import (
    HistoryPoint,
    PeriodStats,
    TrendPoint,
    TrendReport,
    TrendSummary,
    VolatilityEntry,
)
from bazaartrack.models.requests import (
    HistoryRequest,
    StatsRequest,
    TrendsRequest,
    VolatilityRequest,
)

__all__ = [
    "PriceSnapshot",
    "FeedItem",
    "QuickStatus",
    "CollectionRun",
    "HistoryPoint",
    "PeriodStats",
    "TrendPoint",
    "TrendReport",
    "TrendSummary",
    "VolatilityEntry",
    "HistoryRequest",
    "StatsRequest",
    "TrendsRequest",
    "VolatilityRequest",
]
