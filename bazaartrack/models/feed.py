"""Input schema for the bazaar price feed.

The feed's status payload is loosely shaped: fields may be missing or null.
These models pin it down at the boundary so nothing downstream has to
second-guess a value.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from bazaartrack.models.snapshot import PriceSnapshot


class QuickStatus(BaseModel):
    """Per-item status payload as published by the feed."""

    sell_price: float = Field(default=0.0, ge=0, alias="sellPrice")
    buy_price: float = Field(default=0.0, ge=0, alias="buyPrice")
    sell_volume: int = Field(default=0, ge=0, alias="sellVolume")
    buy_volume: int = Field(default=0, ge=0, alias="buyVolume")
    sell_moving_week: int = Field(default=0, ge=0, alias="sellMovingWeek")
    buy_moving_week: int = Field(default=0, ge=0, alias="buyMovingWeek")

    model_config = {"frozen": True, "populate_by_name": True, "extra": "ignore"}

    @field_validator("*", mode="before")
    @classmethod
    def _null_is_zero(cls, value: Any) -> Any:
        # The feed sends null for items nobody has traded
        return 0 if value is None else value


class FeedItem(BaseModel):
    """A feed entry that carries both an identifier and a status payload."""

    item_id: str = Field(..., min_length=1)
    status: QuickStatus

    model_config = {"frozen": True}

    @field_validator("item_id", mode="before")
    @classmethod
    def _normalize_item_id(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("item identifier must be a string")
        return value.strip().upper()

    @field_validator("status", mode="before")
    @classmethod
    def _require_status(cls, value: Any) -> Any:
        if isinstance(value, QuickStatus):
            return value
        if not isinstance(value, Mapping) or not value:
            raise ValueError("missing status payload")
        return value

    def to_snapshot(self, timestamp: datetime) -> PriceSnapshot:
        """Build the stored snapshot for this item at the given run time."""
        return PriceSnapshot(
            item_id=self.item_id,
            timestamp=timestamp,
            sell_price=self.status.sell_price,
            buy_price=self.status.buy_price,
            sell_volume=self.status.sell_volume,
            buy_volume=self.status.buy_volume,
            sell_moving_week=self.status.sell_moving_week,
            buy_moving_week=self.status.buy_moving_week,
        )
