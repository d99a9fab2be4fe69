"""Rolling-window statistics over ordered bucket series.

All functions take values in ascending time order and only ever look
backwards: the value at index ``i`` depends on indices ``<= i``.
"""

import statistics
from typing import Optional


def rolling_mean(values: list[float], window: int) -> list[float]:
    """Calculate a trailing simple moving average.

    Each point averages itself and up to ``window - 1`` preceding points.
    Near the start of the series the window is truncated to what exists,
    so every position gets a value.

    Args:
        values: Series in ascending time order.
        window: Maximum number of points per average.

    Returns:
        List of averages, same length as ``values``.
    """
    if window < 1:
        raise ValueError("window must be at least 1")

    result = []
    for i in range(len(values)):
        chunk = values[max(0, i - window + 1):i + 1]
        # Offsets from the first value keep a constant window exactly constant
        base = chunk[0]
        result.append(base + statistics.fmean(v - base for v in chunk))
    return result


def lagged_pct_change(values: list[float], lag: int) -> list[Optional[float]]:
    """Calculate percent change against the value ``lag`` points earlier.

    Args:
        values: Series in ascending time order.
        lag: Number of points to look back.

    Returns:
        List of percent changes. None where the lagged value does not exist
        or is zero.
    """
    if lag < 1:
        raise ValueError("lag must be at least 1")

    result: list[Optional[float]] = []
    for i, current in enumerate(values):
        if i < lag or values[i - lag] == 0:
            result.append(None)
        else:
            previous = values[i - lag]
            result.append((current - previous) / previous * 100)
    return result


def coefficient_of_variation(values: list[float]) -> Optional[float]:
    """Sample standard deviation over the mean, in percent.

    Returns:
        None with fewer than two values or a zero mean.
    """
    if len(values) < 2:
        return None
    mean = statistics.fmean(values)
    if mean == 0:
        return None
    return statistics.stdev(values) / mean * 100


def range_pct(values: list[float]) -> Optional[float]:
    """Spread between the highest and lowest value, relative to the lowest.

    Returns:
        None for an empty series or a zero minimum.
    """
    if not values:
        return None
    low = min(values)
    if low == 0:
        return None
    return (max(values) - low) / low * 100
