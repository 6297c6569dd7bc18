"""Data models for goalblocks."""

from goalblocks.models.recurrence import RecurrenceRule, RecurrenceType
from goalblocks.models.block import BlockCategory, BlockTemplate, BlockInstance, BlockChanges
from goalblocks.models.schedule import ScheduleDocument, RecurringSeries
from goalblocks.models.mutation import (
    MutationAction,
    MutationScope,
    OccurrenceMutation,
    SingleOccurrence,
    FutureOccurrences,
)

__all__ = [
    "RecurrenceRule",
    "RecurrenceType",
    "BlockCategory",
    "BlockTemplate",
    "BlockInstance",
    "BlockChanges",
    "ScheduleDocument",
    "RecurringSeries",
    "MutationAction",
    "MutationScope",
    "OccurrenceMutation",
    "SingleOccurrence",
    "FutureOccurrences",
]
