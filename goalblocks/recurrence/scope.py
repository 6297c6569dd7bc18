"""Apply edits and deletes to one occurrence or to a series' future occurrences.

A recurring block is never mutated without an explicit scope. Requests are turned into one of
two variants before anything is written:

- SingleOccurrence: only the target block changes. Its date is added to the series'
  exceptions so extending the series later does not recreate a default occurrence there.
- FutureOccurrences: every instance of the series dated on/after the target's date.

Series-wide sweeps touch many date documents and are not transactional: failed dates are
collected and reported through PartialWriteError once the sweep has finished.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from goalblocks.database.recurring_series_repository import RecurringSeriesRepository
from goalblocks.database.schedule_repository import ScheduleRepository
from goalblocks.models.block import BlockChanges, BlockInstance, BlockTemplate
from goalblocks.models.mutation import (
    FutureOccurrences,
    MutationAction,
    MutationScope,
    OccurrenceMutation,
    OccurrenceScope,
    SingleOccurrence,
)
from goalblocks.models.schedule import ScheduleDocument
from goalblocks.recurrence.dates import format_date, parse_date_str
from goalblocks.recurrence.errors import (
    NotFoundError,
    PartialWriteError,
    ScopeRequiredError,
    ValidationError,
)
from goalblocks.recurrence.generate import generate_occurrences
from goalblocks.recurrence.materialize import MaterializeSummary, materialize_occurrences
from goalblocks.recurrence.store import ScheduleStore

logger = logging.getLogger(__name__)


@dataclass
class MutationResult:
    action: str
    scope: Optional[str]
    instance_id: str
    series_id: Optional[str]
    dates_updated: List[str] = field(default_factory=list)
    instances_affected: int = 0
    failures: Dict[str, str] = field(default_factory=dict)
    regenerated: Optional[MaterializeSummary] = None


class OccurrenceScopeResolver:
    """Resolve and apply occurrence mutations against a ScheduleStore."""

    def __init__(self, store: ScheduleStore, series_repo: RecurringSeriesRepository):
        self.store = store
        self.series_repo = series_repo

    def resolve(self, user_id: str, request: OccurrenceMutation) -> MutationResult:
        """Apply `request` for `user_id`.

        Raises:
            NotFoundError: unknown instance, or series_id does not match the instance
            ScopeRequiredError: recurring instance without an explicit scope (nothing written)
            ValidationError: missing changes for an edit, rule change outside 'all' scope
            PartialWriteError: an 'all' sweep failed on some dates
        """
        if request.date is not None:
            parse_date_str(request.date)
        if request.action == MutationAction.EDIT and request.changes is None:
            raise ValidationError("changes are required for an edit", field="changes")

        found = self.store.find_instance(user_id, request.instance_id, request.date)
        if found is None:
            raise NotFoundError(f"Block {request.instance_id} not found")
        date_str, target = found
        if request.series_id and target.series_id != request.series_id:
            raise NotFoundError(f"Block {request.instance_id} does not belong to series {request.series_id}")

        if not target.recurring:
            # One-off blocks have no scope question.
            return self._apply_single(user_id, date_str, target, request, scope_label=None)

        scope = self.choose_scope(request, target, date_str)
        if isinstance(scope, SingleOccurrence):
            return self._apply_single(user_id, date_str, target, request, scope_label=MutationScope.SINGLE.value)
        return self._apply_future(user_id, scope, target, request)

    def choose_scope(self, request: OccurrenceMutation, target: BlockInstance, date_str: str) -> OccurrenceScope:
        if request.scope is None:
            raise ScopeRequiredError(target.id, target.series_id)
        if request.scope == MutationScope.SINGLE:
            return SingleOccurrence(instance_id=target.id, date=parse_date_str(date_str))
        if not target.series_id:
            raise ValidationError(f"Block {target.id} has no series id; only 'single' scope applies", field="scope")
        return FutureOccurrences(series_id=target.series_id, from_date=parse_date_str(date_str))

    def _apply_single(
        self,
        user_id: str,
        date_str: str,
        target: BlockInstance,
        request: OccurrenceMutation,
        *,
        scope_label: Optional[str],
    ) -> MutationResult:
        changes: Optional[BlockChanges] = request.changes
        if changes is not None and changes.rule is not None:
            raise ValidationError("A rule change requires scope 'all'", field="changes.rule")

        doc = self.store.get(user_id, date_str)
        if doc is None:
            raise NotFoundError(f"Schedule {date_str} not found")

        if request.action == MutationAction.DELETE:
            blocks = [b for b in doc.blocks if b.id != target.id]
        else:
            updated = target.model_copy(update=changes.instance_updates())
            blocks = [updated if b.id == target.id else b for b in doc.blocks]
        self.store.upsert(user_id, date_str, blocks)

        result = MutationResult(
            action=request.action,
            scope=scope_label,
            instance_id=target.id,
            series_id=target.series_id,
            dates_updated=[date_str],
            instances_affected=1,
        )

        diverged = request.action == MutationAction.DELETE or bool(changes.template_updates())
        if scope_label is not None and target.series_id and diverged:
            day = target.original_date or parse_date_str(date_str)
            if self.series_repo.add_exception(user_id, target.series_id, day) is None:
                logger.warning(f"Series {target.series_id} not found; exception for {day} not recorded")
        return result

    def _apply_future(
        self,
        user_id: str,
        scope: FutureOccurrences,
        target: BlockInstance,
        request: OccurrenceMutation,
    ) -> MutationResult:
        deleting = request.action == MutationAction.DELETE
        changes: Optional[BlockChanges] = request.changes
        replace_rule = not deleting and changes.rule is not None
        from_str = format_date(scope.from_date)

        series = self.series_repo.get(user_id, scope.series_id)
        if series is None and replace_rule:
            raise NotFoundError(f"Recurring series {scope.series_id} not found")

        template: Optional[BlockTemplate] = series.template if series else None
        if not deleting and series is not None:
            template_updates = changes.template_updates()
            if template_updates:
                template = BlockTemplate(**{**series.template.model_dump(), **template_updates})
                self.series_repo.update(user_id, scope.series_id, template=template)

        instance_updates = {} if deleting else changes.instance_updates()
        result = MutationResult(
            action=request.action,
            scope=MutationScope.ALL.value,
            instance_id=target.id,
            series_id=scope.series_id,
        )

        for date_str in self.store.list_series_dates(user_id, scope.series_id, from_str):
            try:
                doc = self.store.get(user_id, date_str)
                if doc is None:
                    continue
                blocks: List[BlockInstance] = []
                affected = 0
                for b in doc.blocks:
                    if b.series_id != scope.series_id:
                        blocks.append(b)
                    elif deleting or (replace_rule and not b.completed):
                        affected += 1
                    elif b.completed:
                        # Completed occurrences are history; leave them as they are.
                        blocks.append(b)
                    else:
                        blocks.append(b.model_copy(update=instance_updates))
                        affected += 1
                if affected:
                    self.store.upsert(user_id, date_str, blocks)
                    result.dates_updated.append(date_str)
                    result.instances_affected += affected
            except Exception as e:
                logger.error(
                    f"Failed to apply {request.action} to series {scope.series_id} on {date_str}: "
                    f"{type(e).__name__}: {str(e)}"
                )
                result.failures[date_str] = f"{type(e).__name__}: {str(e)}"

        if deleting and series is not None:
            # The rule itself is kept; it just stops before the deleted range.
            truncated = series.rule.model_copy(
                update={"end_date": scope.from_date - timedelta(days=1), "end_occurrences": None}
            )
            self.series_repo.update(user_id, scope.series_id, rule=truncated)
        elif replace_rule:
            self.series_repo.update(user_id, scope.series_id, rule=changes.rule, start_date=scope.from_date)
            occurrences = generate_occurrences(
                template,
                scope.from_date,
                changes.rule,
                series.lookahead_days,
                series_id=scope.series_id,
            )
            summary = materialize_occurrences(self.store, user_id, occurrences)
            result.regenerated = summary
            result.failures.update(summary.failures)

        logger.info(
            f"Applied {request.action} (all) to series {scope.series_id} from {from_str}: "
            f"{result.instances_affected} instances on {len(result.dates_updated)} dates"
        )
        if result.failures:
            raise PartialWriteError(result, result.failures)
        return result

    def replace_day(self, user_id: str, date_str: str, blocks: List[BlockInstance]) -> ScheduleDocument:
        """Replace a day's blocks, leaving recurring instances to scoped mutations.

        Recurring instances already on the day may be reordered or have `completed` flipped;
        removing or editing one raises ScopeRequiredError before anything is written.

        Raises:
            ScopeRequiredError: a recurring instance would be removed or changed
            ValidationError: bad date, or a new block claims to belong to a series
        """
        parse_date_str(date_str)
        doc = self.store.get(user_id, date_str)
        existing = {b.id: b for b in doc.blocks} if doc else {}
        incoming = {b.id: b for b in blocks}

        for block_id, current in existing.items():
            if not (current.recurring or current.series_id):
                continue
            replacement = incoming.get(block_id)
            if replacement is None or _series_fields(replacement) != _series_fields(current):
                raise ScopeRequiredError(current.id, current.series_id)

        for block in blocks:
            if block.id not in existing and (block.recurring or block.series_id):
                raise ValidationError(
                    f"Block {block.id} is not on {date_str}; recurring blocks are created through a series",
                    field="blocks",
                )
        return self.store.upsert(user_id, date_str, blocks)

    def toggle_completion(self, user_id: str, date_str: str, block_id: str) -> BlockInstance:
        """Flip `completed` on one block. Per-instance state, so no scope is involved."""
        parse_date_str(date_str)
        doc = self.store.get(user_id, date_str)
        target = next((b for b in doc.blocks if b.id == block_id), None) if doc else None
        if target is None:
            raise NotFoundError(f"Block {block_id} not found on {date_str}")
        updated = target.model_copy(update={"completed": not target.completed})
        self.store.upsert(user_id, date_str, [updated if b.id == block_id else b for b in doc.blocks])
        return updated


def _series_fields(block: BlockInstance) -> dict:
    return block.model_dump(exclude={"completed"})


def build_resolver(db: Session) -> OccurrenceScopeResolver:
    return OccurrenceScopeResolver(ScheduleRepository(db), RecurringSeriesRepository(db))


def resolve_occurrence_mutation(db: Session, user_id: str, request: OccurrenceMutation) -> MutationResult:
    """Resolve an occurrence mutation against the database-backed store."""
    return build_resolver(db).resolve(user_id, request)
