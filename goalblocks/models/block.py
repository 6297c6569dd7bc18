"""Schedule block data models for goalblocks."""

import re
from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from goalblocks.models.recurrence import RecurrenceRule

_HHMM_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class BlockCategory(str, Enum):
    """Goal category a block contributes to."""
    PHYSICAL = "physical"
    MENTAL = "mental"
    FINANCIAL = "financial"
    SOCIAL = "social"
    PERSONAL = "personal"


def _validate_hhmm(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    if not _HHMM_RE.match(v):
        raise ValueError("Time must be in HH:MM (24h) format")
    return v


class BlockTemplate(BaseModel):
    """Fields shared by every occurrence of a series."""

    title: str = Field(..., min_length=1, description="Block title")
    category: BlockCategory = Field(..., description="Goal category")
    start_time: str = Field(..., description="Start time (HH:MM)")
    end_time: str = Field(..., description="End time (HH:MM)")
    goal_id: Optional[str] = Field(None, description="Owning goal (external reference)")
    tags: List[str] = Field(default_factory=list)

    class Config:
        """Pydantic configuration."""
        use_enum_values = True

    @field_validator("start_time", "end_time")
    @classmethod
    def _validate_times(cls, v):
        return _validate_hhmm(v)


class BlockInstance(BlockTemplate):
    """One concrete block on one date (recurring occurrence or one-off)."""

    id: str = Field(..., description="Unique block identifier within its date document")
    recurring: bool = Field(False, description="Whether this block belongs to a series")
    series_id: Optional[str] = Field(None, description="Identifier shared by all instances of a series")
    completed: bool = Field(False)
    original_date: Optional[date] = Field(None, description="Date the occurrence was generated for")


# Fields a caller may change on an instance. `completed` is per-instance state, not template.
TEMPLATE_FIELDS = ("title", "category", "start_time", "end_time", "goal_id", "tags")

# Fields that may be left out of a change but never cleared.
NON_NULLABLE_FIELDS = ("title", "category", "start_time", "end_time", "tags", "completed")


class BlockChanges(BaseModel):
    """Partial update applied by an occurrence edit."""

    title: Optional[str] = Field(None, min_length=1)
    category: Optional[BlockCategory] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    goal_id: Optional[str] = None
    tags: Optional[List[str]] = None
    completed: Optional[bool] = None
    rule: Optional[RecurrenceRule] = Field(
        None, description="Replacement rule (only valid for 'all' scope edits)"
    )

    class Config:
        """Pydantic configuration."""
        use_enum_values = True

    @field_validator("start_time", "end_time")
    @classmethod
    def _validate_times(cls, v):
        return _validate_hhmm(v)

    @model_validator(mode="after")
    def _reject_cleared_fields(self):
        cleared = [
            name for name in NON_NULLABLE_FIELDS
            if name in self.model_fields_set and getattr(self, name) is None
        ]
        if cleared:
            raise ValueError(f"Fields cannot be set to null: {', '.join(cleared)}")
        return self

    def template_updates(self) -> dict:
        """Explicitly set template fields (excludes completion state and rule)."""
        data = self.model_dump(exclude_unset=True)
        return {k: v for k, v in data.items() if k in TEMPLATE_FIELDS}

    def instance_updates(self) -> dict:
        """Explicitly set fields applicable to a stored instance."""
        data = self.model_dump(exclude_unset=True)
        return {k: v for k, v in data.items() if k != "rule"}
