"""Price feed clients for BazaarTrack."""

from bazaartrack.feeds.base import BaseFeed
from bazaartrack.feeds.hypixel import HypixelFeed

__all__ = [
    "BaseFeed",
    "HypixelFeed",
]
