"""Recurrence rule model for goalblocks.

Canonical internal representation for repeating schedule blocks.
Weekday indices follow the calendar convention used by clients: 0=Sunday ... 6=Saturday.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class RecurrenceType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


class RecurrenceRule(BaseModel):
    """Declarative description of a repeating pattern.

    End condition is at most one of `end_date` (inclusive) or `end_occurrences`.
    With neither, the series is unbounded and only the caller's lookahead window caps it.
    """

    type: RecurrenceType
    interval: int = Field(1, ge=1, description="Repeat every N units of `type`")

    # Weekly specifics
    days_of_week: List[int] = Field(
        default_factory=list, description="Weekday indices (0=Sunday .. 6=Saturday)"
    )

    # Monthly specifics
    day_of_month: Optional[int] = Field(
        None, ge=1, le=31, description="Day of month; clamped to the month's last day"
    )

    # Range
    end_date: Optional[date] = None
    end_occurrences: Optional[int] = Field(None, ge=1)

    exceptions: List[date] = Field(default_factory=list, description="Skipped dates")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True

    @field_validator("days_of_week")
    @classmethod
    def _validate_days_of_week(cls, v):
        for day in v:
            if day < 0 or day > 6:
                raise ValueError("days_of_week entries must be between 0 (Sunday) and 6 (Saturday)")
        return sorted(set(v))

    @field_validator("exceptions")
    @classmethod
    def _validate_exceptions(cls, v):
        return sorted(set(v))

    @model_validator(mode="after")
    def _validate_shape(self):
        if self.type == RecurrenceType.WEEKLY and not self.days_of_week:
            raise ValueError("days_of_week must be non-empty for weekly recurrence")
        if self.end_date is not None and self.end_occurrences is not None:
            raise ValueError("Only one of end_date or end_occurrences may be set")
        return self

    def with_exception(self, day: date) -> "RecurrenceRule":
        """Return a copy of this rule that skips `day`."""
        if day in self.exceptions:
            return self
        return self.model_copy(update={"exceptions": sorted([*self.exceptions, day])})
