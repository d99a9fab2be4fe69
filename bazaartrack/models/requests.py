"""Parameters of the analytics queries.

Requests are validated before any store access; a ``ValidationError`` here
means the caller sent bad input.
"""

from datetime import datetime, timedelta, timezone
from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, Field, field_validator, model_validator


# Named periods and their lookback windows, in days
PERIOD_DAYS = {
    "day": 1,
    "week": 7,
    "month": 30,
    "year": 365,
}

VOLATILITY_PERIODS = ("day", "week", "month")

DEFAULT_PERIOD = "week"

Interval = Literal["raw", "hourly", "daily"]


def utcnow() -> datetime:
    """Current time as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def normalize_timestamp(value: datetime) -> datetime:
    """Convert a datetime to naive UTC. Naive inputs are assumed to be UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_timestamp(value: Any) -> Any:
    """Parse ISO-8601 strings (date or datetime) into naive UTC datetimes."""
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("timestamp must not be blank")
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(text)
        except ValueError:
            raise ValueError(f"invalid ISO-8601 timestamp: {value!r}") from None
    if isinstance(value, datetime):
        return normalize_timestamp(value)
    return value


def period_window(period: str, allowed=None) -> timedelta:
    """Map a period name to its window; unknown names fall back to a week."""
    if allowed is not None and period not in allowed:
        period = DEFAULT_PERIOD
    return timedelta(days=PERIOD_DAYS.get(period, PERIOD_DAYS[DEFAULT_PERIOD]))


class _ItemRequest(BaseModel):
    item_id: str = Field(..., min_length=1)

    model_config = {"frozen": True}

    @field_validator("item_id", mode="before")
    @classmethod
    def _normalize_item_id(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value


def _normalize_period(value: Any) -> Any:
    if value is None:
        return DEFAULT_PERIOD
    if isinstance(value, str):
        return value.strip().lower() or DEFAULT_PERIOD
    return value


Period = Annotated[str, BeforeValidator(_normalize_period)]


class HistoryRequest(_ItemRequest):
    """Price history of one item over ``[start, end)``."""

    start: datetime
    end: datetime
    interval: Interval = "hourly"

    @field_validator("start", "end", mode="before")
    @classmethod
    def _parse_bounds(cls, value: Any) -> Any:
        return parse_timestamp(value)

    @field_validator("interval", mode="before")
    @classmethod
    def _default_interval(cls, value: Any) -> Any:
        if value is None:
            return "hourly"
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @model_validator(mode="after")
    def _check_range(self) -> "HistoryRequest":
        if self.start > self.end:
            raise ValueError("start must not be after end")
        return self


class StatsRequest(_ItemRequest):
    """Summary statistics of one item over a named period."""

    period: Period = DEFAULT_PERIOD

    @property
    def window(self) -> timedelta:
        return period_window(self.period)


class TrendsRequest(_ItemRequest):
    """Hourly trend analytics of one item over a named period."""

    period: Period = DEFAULT_PERIOD

    @property
    def window(self) -> timedelta:
        return period_window(self.period)


class VolatilityRequest(BaseModel):
    """Cross-item volatility ranking over a named period."""

    period: Period = DEFAULT_PERIOD
    limit: int = Field(default=10, gt=0)

    model_config = {"frozen": True}

    @field_validator("limit", mode="before")
    @classmethod
    def _default_limit(cls, value: Any) -> Any:
        return 10 if value is None else value

    @property
    def window(self) -> timedelta:
        return period_window(self.period, allowed=VOLATILITY_PERIODS)
