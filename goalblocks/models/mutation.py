"""Occurrence mutation request model and scope variants."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field

from goalblocks.models.block import BlockChanges


class MutationAction(str, Enum):
    EDIT = "edit"
    DELETE = "delete"


class MutationScope(str, Enum):
    SINGLE = "single"
    ALL = "all"


class OccurrenceMutation(BaseModel):
    """Edit/delete request for one block, possibly part of a series.

    `scope` is deliberately optional on the wire: a recurring block mutated without it
    is rejected rather than defaulted.
    """

    instance_id: str
    series_id: Optional[str] = None
    date: Optional[str] = Field(None, description="Date document holding the block (YYYY-MM-DD)")
    action: MutationAction
    scope: Optional[MutationScope] = None
    changes: Optional[BlockChanges] = None

    class Config:
        """Pydantic configuration."""
        use_enum_values = True


@dataclass(frozen=True)
class SingleOccurrence:
    instance_id: str
    date: date


@dataclass(frozen=True)
class FutureOccurrences:
    series_id: str
    from_date: date


OccurrenceScope = Union[SingleOccurrence, FutureOccurrences]
