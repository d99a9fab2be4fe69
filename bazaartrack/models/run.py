"""CollectionRun data model."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class CollectionRun(BaseModel):
    """Outcome of one collector tick. Logged, never persisted."""

    started_at: datetime = Field(..., description="When the tick fired")
    finished_at: Optional[datetime] = Field(default=None, description="When the run ended")
    outcome: Literal["success", "empty", "skipped", "failed"] = Field(
        ..., description="How the run ended"
    )
    items_fetched: int = Field(default=0, ge=0, description="Entries returned by the feed")
    items_accepted: int = Field(default=0, ge=0, description="Entries written to the store")
    items_rejected: int = Field(default=0, ge=0, description="Entries dropped by validation")
    error: Optional[str] = Field(default=None, description="Failure message, if any")

    model_config = {"frozen": True}
