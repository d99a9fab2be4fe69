"""Rolling-window indicators module."""

from bazaartrack.indicators.rolling import (
    coefficient_of_variation,
    lagged_pct_change,
    range_pct,
    rolling_mean,
)

__all__ = [
    "coefficient_of_variation",
    "lagged_pct_change",
    "range_pct",
    "rolling_mean",
]
