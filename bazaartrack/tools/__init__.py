"""Query tools for BazaarTrack.

These functions are the entry points a transport layer calls; each one
returns a structured success or failure payload.
"""

from bazaartrack.tools.queries import (
    get_history,
    get_latest,
    get_stats,
    get_trends,
    get_volatility,
)

__all__ = [
    "get_history",
    "get_latest",
    "get_stats",
    "get_trends",
    "get_volatility",
]
