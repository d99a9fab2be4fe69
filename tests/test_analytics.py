"""Tests for the analytics aggregator.

**Feature: bazaar-tracker**
"""

import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from bazaartrack.analytics import Aggregator, build_trend_report, rank_volatility
from bazaartrack.db.store import SnapshotStore
from bazaartrack.errors import InvalidInput
from bazaartrack.models import HistoryPoint, PriceSnapshot


NOW = datetime(2025, 3, 10, 12, 0, 0)


@pytest.fixture
def temp_store():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield SnapshotStore(Path(tmpdir) / "test.db")


def aggregator_for(store: SnapshotStore) -> Aggregator:
    return Aggregator(store, clock=lambda: NOW)


def hourly_rows(item_id: str, prices: list[float]) -> list[PriceSnapshot]:
    """One row per hourly bucket, oldest first, ending in the bucket before NOW."""
    n = len(prices)
    return [
        PriceSnapshot(
            item_id=item_id,
            timestamp=NOW - timedelta(hours=n - i) + timedelta(minutes=1),
            buy_price=price,
            sell_price=price,
        )
        for i, price in enumerate(prices)
    ]


def points(prices: list[float]) -> list[HistoryPoint]:
    return [
        HistoryPoint(
            timestamp=NOW + timedelta(hours=i),
            buy_price=p,
            sell_price=p,
            buy_volume=0,
            sell_volume=0,
        )
        for i, p in enumerate(prices)
    ]


class TestTrendReport:
    """
    **Feature: bazaar-tracker, Property 7: Trend Summary**

    *For any* bucket series, the summary direction follows the latest
    short and long averages and the volatility is the absolute 24h change.
    """

    def test_constant_series(self, temp_store: SnapshotStore):
        temp_store.insert_batch(hourly_rows("FLAT", [100.0] * 30))

        report = aggregator_for(temp_store).trends("flat", "week")

        assert len(report.history) == 30
        for point in report.history:
            assert point.buy_price_ma6 == 100.0
            assert point.buy_price_ma24 == 100.0
            for pct in (
                point.buy_price_pct_change_6h,
                point.sell_price_pct_change_6h,
                point.buy_price_pct_change_24h,
                point.sell_price_pct_change_24h,
            ):
                assert pct is None or pct == 0
        assert report.trends.latest_change_24h == 0
        assert report.trends.price_volatility == 0
        assert report.trends.short_term == "down"

    @given(
        price=st.floats(min_value=0.01, max_value=1e6),
        length=st.integers(min_value=1, max_value=60),
    )
    @settings(max_examples=200)
    def test_any_constant_series_is_flat(self, price: float, length: int):
        report = build_trend_report(points([price] * length))

        for point in report.history:
            assert point.buy_price_ma6 == point.buy_price_ma24 == price
            assert point.sell_price_ma6 == point.sell_price_ma24 == price
        assert report.trends.short_term == "down"
        assert report.trends.latest_change_24h == 0

    @pytest.mark.parametrize("price", [0.1, 0.3, 0.7, 3.3, 7.7, 12.34])
    def test_constant_decimal_prices_trend_down(self, price: float):
        report = build_trend_report(points([price] * 30))

        assert report.history[-1].buy_price_ma6 == price
        assert report.history[-1].buy_price_ma24 == price
        assert report.trends.short_term == "down"

    def test_increasing_series_trends_up(self, temp_store: SnapshotStore):
        prices = [100.0 + i for i in range(30)]
        temp_store.insert_batch(hourly_rows("RISING", prices))

        report = aggregator_for(temp_store).trends("RISING")

        expected = (prices[-1] - prices[-25]) / prices[-25] * 100
        assert report.trends.short_term == "up"
        assert report.trends.latest_change_24h == pytest.approx(expected)
        assert report.trends.price_volatility == pytest.approx(expected)

    def test_falling_series_volatility_is_absolute(self):
        report = build_trend_report(points([200.0 - i for i in range(30)]))

        assert report.trends.short_term == "down"
        assert report.trends.latest_change_24h < 0
        assert report.trends.price_volatility == pytest.approx(-report.trends.latest_change_24h)

    def test_short_series_has_no_24h_change(self):
        report = build_trend_report(points([1.0, 2.0, 3.0]))

        assert all(p.buy_price_pct_change_24h is None for p in report.history)
        assert all(p.buy_price_pct_change_6h is None for p in report.history)
        assert report.trends.latest_change_24h == 0

    def test_no_data(self, temp_store: SnapshotStore):
        report = aggregator_for(temp_store).trends("MISSING")

        assert report.history == []
        assert report.trends is None

    def test_period_limits_buckets(self, temp_store: SnapshotStore):
        temp_store.insert_batch(hourly_rows("ITEM", [5.0] * 48))

        report = aggregator_for(temp_store).trends("ITEM", "day")

        assert len(report.history) == 24

    @given(prices=st.lists(st.floats(min_value=0.01, max_value=1e6), min_size=1, max_size=60))
    @settings(max_examples=100)
    def test_summary_follows_latest_bucket(self, prices: list[float]):
        report = build_trend_report(points(prices))
        latest = report.history[-1]

        assert len(report.history) == len(prices)
        assert report.trends.price_volatility == abs(report.trends.latest_change_24h)
        expected = "up" if latest.buy_price_ma6 > latest.buy_price_ma24 else "down"
        assert report.trends.short_term == expected


class TestVolatilityRanking:
    """
    **Feature: bazaar-tracker, Property 8: Volatility Ranking**

    *For any* set of daily averages, items are ranked by descending
    score with ties broken by item id, and single-day items are absent.
    """

    def test_ranking_from_store(self, temp_store: SnapshotStore):
        rows = []
        for day, (a, c) in enumerate([(10.0, 5.0), (20.0, 5.0), (15.0, 5.0)], start=1):
            ts = NOW - timedelta(days=day)
            rows.append(PriceSnapshot(item_id="SWINGY", timestamp=ts, buy_price=a))
            rows.append(PriceSnapshot(item_id="STEADY", timestamp=ts, buy_price=c))
        rows.append(PriceSnapshot(item_id="ONCE", timestamp=NOW - timedelta(days=1), buy_price=1.0))
        temp_store.insert_batch(rows)

        ranked = aggregator_for(temp_store).volatility("week", 10)

        assert [e.item_id for e in ranked] == ["SWINGY", "STEADY"]
        swingy, steady = ranked
        assert swingy.data_points == 3
        assert swingy.average_price == pytest.approx(15.0)
        assert swingy.price_range_pct == pytest.approx(100.0)
        assert swingy.volatility_score == pytest.approx(5.0 / 15.0 * 100)
        assert steady.volatility_score == 0

    def test_ties_broken_by_item_id(self):
        ranked = rank_volatility({"ZED": [1.0, 2.0], "ALPHA": [1.0, 2.0], "MID": [1.0, 3.0]}, 10)
        assert [e.item_id for e in ranked] == ["MID", "ALPHA", "ZED"]

    def test_zero_mean_excluded(self):
        assert rank_volatility({"FREE": [0.0, 0.0]}, 10) == []

    def test_zero_minimum_has_no_range(self):
        ranked = rank_volatility({"A": [0.0, 4.0]}, 10)
        assert ranked[0].price_range_pct is None

    @given(
        averages=st.dictionaries(
            st.from_regex(r"[A-Z]{1,8}", fullmatch=True),
            st.lists(st.floats(min_value=0.01, max_value=1e6), min_size=1, max_size=10),
            max_size=20,
        ),
        limit=st.integers(min_value=1, max_value=25),
    )
    @settings(max_examples=100)
    def test_ranking_order_and_limit(self, averages, limit):
        ranked = rank_volatility(averages, limit)
        eligible = [k for k, v in averages.items() if len(v) >= 2]

        assert len(ranked) == min(limit, len(eligible))
        assert all(e.data_points >= 2 for e in ranked)
        keys = [(-e.volatility_score, e.item_id) for e in ranked]
        assert keys == sorted(keys)

    def test_unknown_period_means_week(self, temp_store: SnapshotStore):
        temp_store.insert_batch([
            PriceSnapshot(item_id="A", timestamp=NOW - timedelta(days=5), buy_price=1.0),
            PriceSnapshot(item_id="A", timestamp=NOW - timedelta(days=6), buy_price=2.0),
            PriceSnapshot(item_id="A", timestamp=NOW - timedelta(days=20), buy_price=9.0),
        ])

        ranked = aggregator_for(temp_store).volatility("year", None)

        assert ranked[0].data_points == 2


class TestStatsAndHistory:
    def test_stats_for_period(self, temp_store: SnapshotStore):
        temp_store.insert_batch([
            PriceSnapshot(item_id="A", timestamp=NOW - timedelta(hours=2), buy_price=4.0, buy_volume=3),
            PriceSnapshot(item_id="A", timestamp=NOW - timedelta(days=2), buy_price=8.0, buy_volume=5),
        ])

        day = aggregator_for(temp_store).stats("a", "day")
        week = aggregator_for(temp_store).stats("a", "week")

        assert day.max_buy_price == 4.0
        assert day.total_buy_volume == 3
        assert week.max_buy_price == 8.0
        assert week.total_buy_volume == 8

    def test_history_defaults_to_hourly(self, temp_store: SnapshotStore):
        temp_store.insert_batch([
            PriceSnapshot(item_id="A", timestamp=NOW + timedelta(minutes=5), buy_price=2.0),
            PriceSnapshot(item_id="A", timestamp=NOW + timedelta(minutes=35), buy_price=4.0),
        ])

        history = aggregator_for(temp_store).history("A", NOW, NOW + timedelta(hours=1))

        assert len(history) == 1
        assert history[0].timestamp == NOW
        assert history[0].buy_price == pytest.approx(3.0)

    def test_equal_bounds_give_empty_history(self, temp_store: SnapshotStore):
        temp_store.insert_batch([PriceSnapshot(item_id="A", timestamp=NOW, buy_price=1.0)])
        assert aggregator_for(temp_store).history("A", NOW, NOW, "raw") == []


class TestInputValidation:
    """Invalid requests fail before the store is ever opened."""

    @pytest.fixture
    def lazy(self):
        factory = MagicMock()
        return Aggregator(store_factory=factory, clock=lambda: NOW), factory

    @pytest.mark.parametrize(
        "args",
        [
            (None, "2025-03-01", "2025-03-02"),
            ("A", None, "2025-03-02"),
            ("A", "2025-03-01", ""),
        ],
    )
    def test_history_missing_parameters(self, lazy, args):
        aggregator, factory = lazy
        with pytest.raises(InvalidInput, match="Missing one or more"):
            aggregator.history(*args)
        factory.assert_not_called()

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"interval": "weekly"},
            {"start": "2025-03-05"},
            {"start": "not a date"},
        ],
    )
    def test_history_malformed_parameters(self, lazy, kwargs):
        aggregator, factory = lazy
        params = {"item_id": "A", "start": "2025-03-01", "end": "2025-03-02", **kwargs}
        with pytest.raises(InvalidInput):
            aggregator.history(**params)
        factory.assert_not_called()

    def test_stats_and_trends_need_item(self, lazy):
        aggregator, factory = lazy
        with pytest.raises(InvalidInput, match="item_id"):
            aggregator.stats("")
        with pytest.raises(InvalidInput, match="item_id"):
            aggregator.trends(None)
        factory.assert_not_called()

    @pytest.mark.parametrize("limit", [0, -1, "many"])
    def test_volatility_bad_limit(self, lazy, limit):
        aggregator, factory = lazy
        with pytest.raises(InvalidInput, match="limit"):
            aggregator.volatility("week", limit)
        factory.assert_not_called()

    def test_requires_a_store_source(self):
        with pytest.raises(ValueError):
            Aggregator()
