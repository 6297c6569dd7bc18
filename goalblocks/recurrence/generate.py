"""Expand a recurrence rule into concrete, dated block instances.

Generation is pure: no storage access, same inputs give the same dates (instance ids are
fresh uuid4 values on every call).
"""

from __future__ import annotations

import uuid
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterator, List, Optional

from pydantic import ValidationError as PydanticValidationError

from goalblocks.models.block import BlockInstance, BlockTemplate
from goalblocks.models.constants import DEFAULT_LOOKAHEAD_DAYS, MAX_LOOKAHEAD_DAYS
from goalblocks.models.recurrence import RecurrenceRule, RecurrenceType
from goalblocks.recurrence.dates import (
    add_months,
    clamp_day,
    daterange,
    format_date,
    sunday_weekday,
    week_start_sunday,
)
from goalblocks.recurrence.errors import ValidationError


@dataclass(frozen=True)
class GeneratedOccurrence:
    date: date
    instance: BlockInstance

    @property
    def date_str(self) -> str:
        return format_date(self.date)


def validate_rule(data) -> RecurrenceRule:
    """Build a RecurrenceRule from raw data, raising the engine's ValidationError."""
    if isinstance(data, RecurrenceRule):
        return data
    try:
        return RecurrenceRule.model_validate(data)
    except PydanticValidationError as e:
        messages = "; ".join(err.get("msg", "") for err in e.errors())
        raise ValidationError(f"Invalid recurrence rule: {messages}", field="rule") from e


def compute_horizon(start_date: date, rule: RecurrenceRule, lookahead_days: int) -> date:
    """Last date (inclusive) a single generation call may produce."""
    window_end = start_date + timedelta(days=lookahead_days)
    if rule.end_date is not None:
        return min(rule.end_date, window_end)
    return window_end


def _daily_dates(start: date, horizon: date, interval: int) -> Iterator[date]:
    cur = start
    while cur <= horizon:
        yield cur
        cur = cur + timedelta(days=interval)


def _weekly_dates(start: date, horizon: date, interval: int, days_of_week: List[int]) -> Iterator[date]:
    # Weeks are Sunday-based and counted from the week containing `start`.
    anchor = week_start_sunday(start)
    wanted = set(days_of_week)
    for day in daterange(start, horizon):
        week_delta = (day - anchor).days // 7
        if week_delta % interval != 0:
            continue
        if sunday_weekday(day) in wanted:
            yield day


def _monthly_dates(start: date, horizon: date, interval: int, day_of_month: int) -> Iterator[date]:
    year, month = start.year, start.month
    if clamp_day(year, month, day_of_month) < start:
        year, month = add_months(year, month, 1)
    while True:
        # Short months clamp to their own last day (Jan 31 -> Feb 29 -> Mar 31).
        candidate = clamp_day(year, month, day_of_month)
        if candidate > horizon:
            return
        yield candidate
        year, month = add_months(year, month, interval)


def candidate_dates(start_date: date, rule: RecurrenceRule, horizon: date) -> Iterator[date]:
    """Dates matching the rule's base pattern, before exceptions and occurrence limits."""
    if rule.type == RecurrenceType.DAILY:
        return _daily_dates(start_date, horizon, rule.interval)
    if rule.type == RecurrenceType.WEEKLY:
        return _weekly_dates(start_date, horizon, rule.interval, rule.days_of_week)
    if rule.type == RecurrenceType.MONTHLY:
        return _monthly_dates(start_date, horizon, rule.interval, rule.day_of_month or start_date.day)
    if rule.type == RecurrenceType.CUSTOM:
        if rule.days_of_week:
            return _weekly_dates(start_date, horizon, rule.interval, rule.days_of_week)
        return _daily_dates(start_date, horizon, rule.interval)
    raise ValidationError(f"Unsupported recurrence type: {rule.type}", field="rule.type")


def build_instance(template: BlockTemplate, day: date, series_id: str) -> BlockInstance:
    return BlockInstance(
        **template.model_dump(),
        id=str(uuid.uuid4()),
        recurring=True,
        series_id=series_id,
        completed=False,
        original_date=day,
    )


def generate_occurrences(
    template: BlockTemplate,
    start_date: date,
    rule: RecurrenceRule,
    lookahead_days: int = DEFAULT_LOOKAHEAD_DAYS,
    *,
    series_id: Optional[str] = None,
) -> List[GeneratedOccurrence]:
    """Expand `rule` from `start_date` into ordered, de-duplicated occurrences.

    - Horizon is `min(rule.end_date, start_date + lookahead_days)` (inclusive).
    - Dates in `rule.exceptions` are skipped and do not count toward `end_occurrences`.
    - All instances share `series_id` (a new one is minted when not given).

    Raises:
        ValidationError: lookahead_days out of range or unsupported rule type
    """
    if lookahead_days is None or lookahead_days <= 0:
        raise ValidationError("lookahead_days must be > 0", field="lookahead_days")
    if lookahead_days > MAX_LOOKAHEAD_DAYS:
        raise ValidationError(
            f"lookahead_days must be <= {MAX_LOOKAHEAD_DAYS}", field="lookahead_days"
        )

    horizon = compute_horizon(start_date, rule, lookahead_days)
    return expand_until(template, start_date, rule, horizon, series_id=series_id)


def expand_until(
    template: BlockTemplate,
    start_date: date,
    rule: RecurrenceRule,
    horizon: date,
    *,
    series_id: Optional[str] = None,
) -> List[GeneratedOccurrence]:
    """Expand `rule` from `start_date` through `horizon` (inclusive) with no window cap.

    `rule.end_date` still bounds the walk; the caller bounds `horizon`.
    """
    if rule.end_date is not None:
        horizon = min(horizon, rule.end_date)
    series_id = series_id or str(uuid.uuid4())
    exceptions = set(rule.exceptions)
    limit = rule.end_occurrences

    out: List[GeneratedOccurrence] = []
    seen = set()
    for day in candidate_dates(start_date, rule, horizon):
        if limit is not None and len(out) >= limit:
            break
        if day in exceptions or day in seen:
            continue
        seen.add(day)
        out.append(GeneratedOccurrence(date=day, instance=build_instance(template, day, series_id)))
    return out


def group_by_date(occurrences: List[GeneratedOccurrence]) -> Dict[str, List[BlockInstance]]:
    """Group occurrences by YYYY-MM-DD, preserving generation order."""
    grouped: "OrderedDict[str, List[BlockInstance]]" = OrderedDict()
    for occ in occurrences:
        grouped.setdefault(occ.date_str, []).append(occ.instance)
    return grouped
