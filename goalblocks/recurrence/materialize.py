"""Merge generated occurrences into per-date schedule documents."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from goalblocks.recurrence.generate import GeneratedOccurrence, group_by_date
from goalblocks.recurrence.store import ScheduleStore

logger = logging.getLogger(__name__)


@dataclass
class MaterializeSummary:
    """Outcome of one materialization call.

    `per_date` counts instances added per written date; `failures` maps date -> error message.
    """

    dates_written: List[str] = field(default_factory=list)
    instances_added: int = 0
    per_date: Dict[str, int] = field(default_factory=dict)
    failures: Dict[str, str] = field(default_factory=dict)

    @property
    def partial(self) -> bool:
        return bool(self.failures)

    def details(self) -> List[dict]:
        return [{"date": d, "added": n} for d, n in self.per_date.items()]


def materialize_occurrences(
    store: ScheduleStore,
    user_id: str,
    occurrences: List[GeneratedOccurrence],
) -> MaterializeSummary:
    """Append occurrences to their date documents, skipping series already present.

    Idempotent: re-materializing the same series adds nothing, because an instance is dropped
    when its `series_id` already appears on that date. Dates are written independently; a
    failed date is recorded in `summary.failures` and does not undo other dates.
    """
    summary = MaterializeSummary()

    for date_str, instances in group_by_date(occurrences).items():
        try:
            doc = store.get(user_id, date_str)
            existing_blocks = list(doc.blocks) if doc else []
            present = doc.series_ids() if doc else set()

            new_blocks = []
            for inst in instances:
                if inst.series_id and inst.series_id in present:
                    continue
                if inst.series_id:
                    present.add(inst.series_id)
                new_blocks.append(inst)

            if not new_blocks:
                logger.debug(f"Schedule {date_str}: series already present, nothing to add")
                continue

            store.upsert(user_id, date_str, existing_blocks + new_blocks)
        except Exception as e:
            logger.error(f"Failed to materialize {date_str} for user {user_id}: {type(e).__name__}: {str(e)}")
            summary.failures[date_str] = f"{type(e).__name__}: {str(e)}"
            continue

        summary.dates_written.append(date_str)
        summary.per_date[date_str] = len(new_blocks)
        summary.instances_added += len(new_blocks)

    logger.info(
        f"Materialized {summary.instances_added} instances across {len(summary.dates_written)} dates "
        f"for user {user_id} ({len(summary.failures)} failed)"
    )
    return summary
