"""Create, extend and inspect recurring series."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.orm import Session

from goalblocks.database.recurring_series_repository import RecurringSeriesRepository
from goalblocks.database.schedule_repository import ScheduleRepository
from goalblocks.models.block import BlockTemplate
from goalblocks.models.constants import DEFAULT_LOOKAHEAD_DAYS, MAX_LOOKAHEAD_DAYS
from goalblocks.recurrence.dates import format_date, parse_date_str
from goalblocks.recurrence.errors import NotFoundError, PartialWriteError, ValidationError
from goalblocks.recurrence.generate import expand_until, generate_occurrences, validate_rule
from goalblocks.recurrence.materialize import MaterializeSummary, materialize_occurrences

logger = logging.getLogger(__name__)


@dataclass
class SeriesWriteResult:
    series_id: str
    summary: MaterializeSummary


def create_recurring_series(
    db: Session,
    *,
    user_id: str,
    template: BlockTemplate,
    rule,
    start_date: str,
    lookahead_days: Optional[int] = None,
) -> SeriesWriteResult:
    """Persist a series, generate its occurrences and write them into the user's schedules.

    Validation happens before anything is written.

    Raises:
        ValidationError: bad start date, rule or lookahead window
        PartialWriteError: some dates failed; `outcome` is the SeriesWriteResult
    """
    start = parse_date_str(start_date, field="start_date")
    rule = validate_rule(rule)
    lookahead = DEFAULT_LOOKAHEAD_DAYS if lookahead_days is None else int(lookahead_days)

    series_id = str(uuid.uuid4())
    # Generate first: it validates the window and is side-effect free.
    occurrences = generate_occurrences(template, start, rule, lookahead, series_id=series_id)

    RecurringSeriesRepository(db).create(
        series_id=series_id,
        user_id=user_id,
        template=template,
        rule=rule,
        start_date=start,
        lookahead_days=lookahead,
    )
    logger.info(
        f"Created series {series_id} for user {user_id}: {rule.type} from {start_date}, "
        f"{len(occurrences)} occurrences generated"
    )

    summary = materialize_occurrences(ScheduleRepository(db), user_id, occurrences)
    result = SeriesWriteResult(series_id=series_id, summary=summary)
    if summary.partial:
        raise PartialWriteError(result, summary.failures)
    return result


def extend_series(
    db: Session,
    *,
    user_id: str,
    series_id: str,
    through_date: str,
) -> SeriesWriteResult:
    """Materialize a series up to `through_date` (e.g. when the first lookahead window runs out).

    Generation restarts at the series start so `end_occurrences` keeps counting from the first
    occurrence; dates that already hold the series are skipped by the materializer. The span of
    new dates, measured from the last materialized occurrence, is capped at MAX_LOOKAHEAD_DAYS.

    Raises:
        NotFoundError: unknown series
        ValidationError: bad date or window
        PartialWriteError: some dates failed
    """
    through = parse_date_str(through_date, field="through_date")
    series = RecurringSeriesRepository(db).get(user_id, series_id)
    if series is None:
        raise NotFoundError(f"Recurring series {series_id} not found")
    if through < series.start_date:
        raise ValidationError("through_date must be on or after the series start date", field="through_date")

    materialized = ScheduleRepository(db).list_series_dates(user_id, series_id, format_date(series.start_date))
    frontier = parse_date_str(materialized[-1]) if materialized else series.start_date
    if (through - frontier).days > MAX_LOOKAHEAD_DAYS:
        raise ValidationError(
            f"through_date may be at most {MAX_LOOKAHEAD_DAYS} days after {format_date(frontier)}",
            field="through_date",
        )

    occurrences = expand_until(series.template, series.start_date, series.rule, through, series_id=series_id)
    summary = materialize_occurrences(ScheduleRepository(db), user_id, occurrences)
    logger.info(f"Extended series {series_id} for user {user_id} through {through_date}")
    result = SeriesWriteResult(series_id=series_id, summary=summary)
    if summary.partial:
        raise PartialWriteError(result, summary.failures)
    return result


def list_recurring_instances(db: Session, user_id: str) -> List[dict]:
    """Diagnostic read: every instance tagged with a series or flagged recurring."""
    return [
        {
            "date": date_str,
            "id": block.id,
            "title": block.title,
            "recurring": block.recurring,
            "series_id": block.series_id,
            "original_date": block.original_date,
            "completed": block.completed,
        }
        for date_str, block in ScheduleRepository(db).list_recurring(user_id)
    ]
