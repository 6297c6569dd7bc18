"""Schedule document and recurring series data models for goalblocks."""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from goalblocks.models.block import BlockInstance, BlockTemplate
from goalblocks.models.recurrence import RecurrenceRule


class ScheduleDocument(BaseModel):
    """All blocks a user has on one calendar date."""

    user_id: str = Field(..., description="User ID who owns this schedule")
    date: str = Field(..., description="Calendar date (YYYY-MM-DD)")
    blocks: List[BlockInstance] = Field(default_factory=list)
    updated_at: Optional[datetime] = None

    def series_ids(self) -> set:
        """Series already present on this date."""
        return {b.series_id for b in self.blocks if b.series_id}


class RecurringSeries(BaseModel):
    """Template + rule a series was generated from."""

    id: str = Field(..., description="Series identifier (shared by every instance)")
    user_id: str
    template: BlockTemplate
    rule: RecurrenceRule
    start_date: date
    lookahead_days: int
    created_at: datetime
    updated_at: datetime
