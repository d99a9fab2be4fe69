"""Scheduled snapshot collection."""

from bazaartrack.collector.collector import Collector, parse_feed
from bazaartrack.collector.scheduler import CollectionScheduler, DEFAULT_INTERVAL_SECONDS

__all__ = [
    "Collector",
    "CollectionScheduler",
    "DEFAULT_INTERVAL_SECONDS",
    "parse_feed",
]
