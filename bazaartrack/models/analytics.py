"""Result models for the analytics queries."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class HistoryPoint(BaseModel):
    """A raw row or a time bucket in an item's price history."""

    timestamp: datetime = Field(..., description="Row time, or bucket start")
    buy_price: float = Field(..., description="Buy price (mean for buckets)")
    sell_price: float = Field(..., description="Sell price (mean for buckets)")
    buy_volume: int = Field(..., description="Buy volume (sum for buckets)")
    sell_volume: int = Field(..., description="Sell volume (sum for buckets)")

    model_config = {"frozen": True}


class PeriodStats(BaseModel):
    """Scalar aggregates over a period. All None when there is no data."""

    min_buy_price: Optional[float] = None
    max_buy_price: Optional[float] = None
    avg_buy_price: Optional[float] = None
    min_sell_price: Optional[float] = None
    max_sell_price: Optional[float] = None
    avg_sell_price: Optional[float] = None
    total_buy_volume: Optional[int] = None
    total_sell_volume: Optional[int] = None

    model_config = {"frozen": True}


class TrendPoint(BaseModel):
    """One hourly bucket with its moving averages and lagged changes."""

    timestamp: datetime
    buy_price: float
    sell_price: float
    buy_price_ma6: float
    sell_price_ma6: float
    buy_price_ma24: float
    sell_price_ma24: float
    buy_price_pct_change_6h: Optional[float] = None
    sell_price_pct_change_6h: Optional[float] = None
    buy_price_pct_change_24h: Optional[float] = None
    sell_price_pct_change_24h: Optional[float] = None

    model_config = {"frozen": True}


class TrendSummary(BaseModel):
    """Direction and magnitude derived from the latest bucket."""

    short_term: Literal["up", "down"]
    price_volatility: float = Field(..., ge=0)
    latest_change_24h: float

    model_config = {"frozen": True}


class TrendReport(BaseModel):
    """Full bucket series plus the latest-bucket summary."""

    history: list[TrendPoint] = Field(default_factory=list)
    trends: Optional[TrendSummary] = None

    model_config = {"frozen": True}


class VolatilityEntry(BaseModel):
    """An item's price dispersion across daily buckets."""

    item_id: str
    volatility_score: float = Field(..., ge=0, description="Coefficient of variation, in percent")
    price_range_pct: Optional[float] = Field(
        default=None, description="(max - min) / min, in percent"
    )
    average_price: float = Field(..., description="Mean of the daily average buy prices")
    data_points: int = Field(..., ge=2, description="Number of daily buckets")

    model_config = {"frozen": True}
