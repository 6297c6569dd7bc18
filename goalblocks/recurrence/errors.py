"""Error taxonomy for the recurring scheduling engine.

Nothing here is retried automatically; retry policy belongs to the caller.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class SchedulingError(Exception):
    """Base class for scheduling engine errors."""


class ValidationError(SchedulingError, ValueError):
    """Malformed rule, missing fields, or bad date format. Raised before any write."""

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class NotFoundError(SchedulingError, LookupError):
    """Unknown instance, series, or date document."""


class ScopeRequiredError(SchedulingError):
    """A recurring instance was mutated without choosing 'single' or 'all'."""

    def __init__(self, instance_id: str, series_id: Optional[str]):
        super().__init__(
            f"Block {instance_id} is part of a recurring series; choose scope 'single' or 'all'"
        )
        self.instance_id = instance_id
        self.series_id = series_id


class PartialWriteError(SchedulingError):
    """Some per-date writes failed. Writes already committed are kept.

    `outcome` is the summary/result object of the operation; `failures` maps date -> message.
    """

    def __init__(self, outcome: Any, failures: Dict[str, str]):
        super().__init__(f"{len(failures)} date(s) failed to write: {', '.join(sorted(failures))}")
        self.outcome = outcome
        self.failures = dict(failures)
