"""Property-based tests for the rolling-window statistics.

Tests validate the in-memory windows against pandas reference calculations.
"""

import math
import statistics

import pandas as pd
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from bazaartrack.indicators import (
    coefficient_of_variation,
    lagged_pct_change,
    range_pct,
    rolling_mean,
)


# Strategy for generating realistic bucket price series
@st.composite
def price_series(draw, min_length: int = 1, max_length: int = 60):
    """Generate a bazaar-like price series with positive values."""
    length = draw(st.integers(min_value=min_length, max_value=max_length))
    base_price = draw(st.floats(min_value=0.1, max_value=1e5))
    changes = draw(st.lists(
        st.sampled_from([-0.05, -0.02, -0.01, 0.0, 0.01, 0.02, 0.05]),
        min_size=length - 1,
        max_size=length - 1,
    ))

    prices = [base_price]
    for change in changes:
        prices.append(max(0.01, prices[-1] * (1 + change)))
    return prices


def is_close(a: float, b: float, rel_tolerance: float = 1e-9, abs_tolerance: float = 1e-6) -> bool:
    """Check if two values are close within tolerance."""
    return math.isclose(a, b, rel_tol=rel_tolerance, abs_tol=abs_tolerance)


class TestRollingMeanAccuracy:
    """
    **Feature: bazaar-tracker, Property 5: Moving Average Window**

    *For any* bucket series, the moving average at each bucket equals the
    mean of that bucket and up to window - 1 preceding buckets.
    """

    @given(prices=price_series(), window=st.sampled_from([1, 6, 24]))
    @settings(max_examples=100)
    def test_matches_pandas_rolling(self, prices: list[float], window: int):
        ours = rolling_mean(prices, window)
        reference = pd.Series(prices).rolling(window=window, min_periods=1).mean().tolist()

        assert len(ours) == len(prices)
        for got, expected in zip(ours, reference):
            assert is_close(got, expected, rel_tolerance=1e-7)

    def test_truncated_window_at_start(self):
        assert rolling_mean([2, 4, 6, 8], 3) == [2.0, 3.0, 4.0, 6.0]

    def test_constant_series(self):
        assert rolling_mean([100.0] * 30, 24) == [100.0] * 30

    @given(
        price=st.floats(min_value=0.01, max_value=1e6),
        length=st.integers(min_value=1, max_value=60),
        window=st.sampled_from([1, 6, 24]),
    )
    @settings(max_examples=200)
    def test_any_constant_series_is_exact(self, price: float, length: int, window: int):
        assert rolling_mean([price] * length, window) == [price] * length

    def test_invalid_window(self):
        with pytest.raises(ValueError):
            rolling_mean([1.0], 0)


class TestLaggedChangeAccuracy:
    """
    **Feature: bazaar-tracker, Property 6: Lagged Percent Change**

    *For any* bucket series, the change at bucket i is undefined for
    i < lag and otherwise matches the reference percent change.
    """

    @given(prices=price_series(), lag=st.sampled_from([6, 24]))
    @settings(max_examples=100)
    def test_matches_pandas_pct_change(self, prices: list[float], lag: int):
        ours = lagged_pct_change(prices, lag)
        series = pd.Series(prices)
        reference = ((series / series.shift(lag) - 1) * 100).tolist()

        assert len(ours) == len(prices)
        for i, (got, expected) in enumerate(zip(ours, reference)):
            if i < lag:
                assert got is None
            else:
                assert is_close(got, expected, rel_tolerance=1e-7)

    def test_zero_base_is_undefined(self):
        assert lagged_pct_change([0.0, 5.0], 1) == [None, None]

    def test_simple_change(self):
        assert lagged_pct_change([100.0, 110.0, 99.0], 1) == [None, pytest.approx(10.0), pytest.approx(-10.0)]

    def test_invalid_lag(self):
        with pytest.raises(ValueError):
            lagged_pct_change([1.0], 0)


class TestDispersion:
    @given(prices=price_series(min_length=2))
    @settings(max_examples=100)
    def test_cv_is_sample_stdev_over_mean(self, prices: list[float]):
        expected = statistics.stdev(prices) / statistics.fmean(prices) * 100
        reference = pd.Series(prices).std(ddof=1) / pd.Series(prices).mean() * 100

        got = coefficient_of_variation(prices)

        assert got is not None and got >= 0
        assert is_close(got, expected, rel_tolerance=1e-7)
        assert is_close(got, reference, rel_tolerance=1e-6)

    def test_cv_needs_two_points(self):
        assert coefficient_of_variation([]) is None
        assert coefficient_of_variation([5.0]) is None

    def test_cv_zero_mean(self):
        assert coefficient_of_variation([0.0, 0.0, 0.0]) is None

    def test_cv_constant_series(self):
        assert coefficient_of_variation([7.0, 7.0, 7.0]) == 0.0

    def test_range_pct(self):
        assert range_pct([10.0, 15.0, 12.0]) == pytest.approx(50.0)
        assert range_pct([]) is None
        assert range_pct([0.0, 4.0]) is None
