"""PriceSnapshot data model."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class PriceSnapshot(BaseModel):
    """One observation of one bazaar item at one instant."""

    item_id: str = Field(..., min_length=1, description="Item identifier (uppercase)")
    timestamp: datetime = Field(..., description="Observation time (UTC, set by the collector)")
    sell_price: float = Field(default=0.0, ge=0, description="Instant sell price")
    buy_price: float = Field(default=0.0, ge=0, description="Instant buy price")
    sell_volume: int = Field(default=0, ge=0, description="Items in sell orders")
    buy_volume: int = Field(default=0, ge=0, description="Items in buy orders")
    sell_moving_week: int = Field(default=0, ge=0, description="Items sold over the past week")
    buy_moving_week: int = Field(default=0, ge=0, description="Items bought over the past week")

    model_config = {"frozen": True}

    @field_validator("item_id")
    @classmethod
    def _normalize_item_id(cls, value: str) -> str:
        value = value.strip().upper()
        if not value:
            raise ValueError("item_id must not be blank")
        return value
