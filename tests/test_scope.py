"""Tests for occurrence edits/deletes with single and all scopes."""

import pytest
from datetime import date

from goalblocks.database.schedule_repository import ScheduleRepository
from goalblocks.models.mutation import OccurrenceMutation
from goalblocks.recurrence.errors import (
    NotFoundError,
    PartialWriteError,
    ScopeRequiredError,
    ValidationError,
)
from goalblocks.recurrence.scope import OccurrenceScopeResolver, build_resolver, resolve_occurrence_mutation
from goalblocks.recurrence.series import create_recurring_series, extend_series


def _daily_series(db_session, user_id, template, count=20):
    """Daily series 2024-02-01 .. 2024-02-20."""
    result = create_recurring_series(
        db_session,
        user_id=user_id,
        template=template,
        rule={"type": "daily", "end_occurrences": count},
        start_date="2024-02-01",
    )
    return result.series_id


def _series_block(repo, user_id, date_str, series_id):
    doc = repo.get(user_id, date_str)
    if doc is None:
        return None
    return next((b for b in doc.blocks if b.series_id == series_id), None)


def _dates_range(first, last):
    return [f"2024-02-{d:02d}" for d in range(first, last + 1)]


class FailingScheduleRepository(ScheduleRepository):
    def __init__(self, db, failing_dates):
        super().__init__(db)
        self.failing_dates = set(failing_dates)

    def upsert(self, user_id, date, blocks):
        if date in self.failing_dates:
            raise RuntimeError("write rejected")
        return super().upsert(user_id, date, blocks)


class TestForcedScope:
    """Recurring blocks are never mutated without an explicit scope."""

    def test_missing_scope_raises_and_writes_nothing(
        self, db_session, schedule_repo, test_user_id, workout_template
    ):
        series_id = _daily_series(db_session, test_user_id, workout_template)
        target = _series_block(schedule_repo, test_user_id, "2024-02-05", series_id)

        request = OccurrenceMutation(instance_id=target.id, action="edit", changes={"title": "Swim"})
        with pytest.raises(ScopeRequiredError) as exc:
            resolve_occurrence_mutation(db_session, test_user_id, request)

        assert exc.value.series_id == series_id
        assert exc.value.instance_id == target.id
        for date_str in _dates_range(1, 20):
            assert _series_block(schedule_repo, test_user_id, date_str, series_id).title == "Morning run"

    def test_missing_scope_on_delete(self, db_session, schedule_repo, test_user_id, workout_template):
        series_id = _daily_series(db_session, test_user_id, workout_template)
        target = _series_block(schedule_repo, test_user_id, "2024-02-05", series_id)

        with pytest.raises(ScopeRequiredError):
            resolve_occurrence_mutation(
                db_session, test_user_id, OccurrenceMutation(instance_id=target.id, action="delete")
            )
        assert _series_block(schedule_repo, test_user_id, "2024-02-05", series_id) is not None


class TestSingleScope:
    """Single-scope mutations touch one occurrence and record a series exception."""

    def test_edit_isolated(self, db_session, schedule_repo, series_repo, test_user_id, workout_template):
        series_id = _daily_series(db_session, test_user_id, workout_template)
        target = _series_block(schedule_repo, test_user_id, "2024-02-05", series_id)

        result = resolve_occurrence_mutation(
            db_session,
            test_user_id,
            OccurrenceMutation(
                instance_id=target.id,
                series_id=series_id,
                action="edit",
                scope="single",
                changes={"title": "Hill sprints", "start_time": "06:30"},
            ),
        )

        assert result.scope == "single"
        assert result.dates_updated == ["2024-02-05"]
        edited = _series_block(schedule_repo, test_user_id, "2024-02-05", series_id)
        assert edited.id == target.id
        assert edited.title == "Hill sprints"
        assert edited.start_time == "06:30"
        for date_str in _dates_range(1, 20):
            if date_str != "2024-02-05":
                assert _series_block(schedule_repo, test_user_id, date_str, series_id).title == "Morning run"
        assert series_repo.get(test_user_id, series_id).rule.exceptions == [date(2024, 2, 5)]

    def test_completion_only_edit_keeps_series_link(
        self, db_session, schedule_repo, series_repo, test_user_id, workout_template
    ):
        series_id = _daily_series(db_session, test_user_id, workout_template)
        target = _series_block(schedule_repo, test_user_id, "2024-02-05", series_id)

        resolve_occurrence_mutation(
            db_session,
            test_user_id,
            OccurrenceMutation(instance_id=target.id, action="edit", scope="single", changes={"completed": True}),
        )

        assert _series_block(schedule_repo, test_user_id, "2024-02-05", series_id).completed is True
        assert series_repo.get(test_user_id, series_id).rule.exceptions == []

    def test_delete_is_not_recreated_by_extend(
        self, db_session, schedule_repo, series_repo, test_user_id, workout_template
    ):
        series_id = _daily_series(db_session, test_user_id, workout_template)
        target = _series_block(schedule_repo, test_user_id, "2024-02-05", series_id)

        resolve_occurrence_mutation(
            db_session,
            test_user_id,
            OccurrenceMutation(instance_id=target.id, action="delete", scope="single"),
        )
        assert _series_block(schedule_repo, test_user_id, "2024-02-05", series_id) is None
        assert _series_block(schedule_repo, test_user_id, "2024-02-06", series_id) is not None

        extended = extend_series(db_session, user_id=test_user_id, series_id=series_id, through_date="2024-02-20")
        assert extended.summary.instances_added == 0
        assert _series_block(schedule_repo, test_user_id, "2024-02-05", series_id) is None

    def test_rule_change_requires_all_scope(self, db_session, schedule_repo, test_user_id, workout_template):
        series_id = _daily_series(db_session, test_user_id, workout_template)
        target = _series_block(schedule_repo, test_user_id, "2024-02-05", series_id)

        with pytest.raises(ValidationError):
            resolve_occurrence_mutation(
                db_session,
                test_user_id,
                OccurrenceMutation(
                    instance_id=target.id,
                    action="edit",
                    scope="single",
                    changes={"rule": {"type": "weekly", "days_of_week": [1]}},
                ),
            )


class TestAllScope:
    """'All' applies to the target's date and every later occurrence."""

    def test_edit_propagates_forward_only(
        self, db_session, schedule_repo, series_repo, test_user_id, workout_template
    ):
        series_id = _daily_series(db_session, test_user_id, workout_template)
        target = _series_block(schedule_repo, test_user_id, "2024-02-10", series_id)

        result = resolve_occurrence_mutation(
            db_session,
            test_user_id,
            OccurrenceMutation(
                instance_id=target.id, action="edit", scope="all", changes={"title": "Evening run"}
            ),
        )

        assert result.scope == "all"
        assert result.dates_updated == _dates_range(10, 20)
        assert result.instances_affected == 11
        for date_str in _dates_range(1, 9):
            assert _series_block(schedule_repo, test_user_id, date_str, series_id).title == "Morning run"
        for date_str in _dates_range(10, 20):
            assert _series_block(schedule_repo, test_user_id, date_str, series_id).title == "Evening run"
        assert series_repo.get(test_user_id, series_id).template.title == "Evening run"

    def test_edit_leaves_completed_instances(self, db_session, schedule_repo, test_user_id, workout_template):
        series_id = _daily_series(db_session, test_user_id, workout_template)
        done = _series_block(schedule_repo, test_user_id, "2024-02-12", series_id)
        build_resolver(db_session).toggle_completion(test_user_id, "2024-02-12", done.id)
        target = _series_block(schedule_repo, test_user_id, "2024-02-10", series_id)

        result = resolve_occurrence_mutation(
            db_session,
            test_user_id,
            OccurrenceMutation(instance_id=target.id, action="edit", scope="all", changes={"title": "Evening run"}),
        )

        assert "2024-02-12" not in result.dates_updated
        kept = _series_block(schedule_repo, test_user_id, "2024-02-12", series_id)
        assert kept.title == "Morning run"
        assert kept.completed is True

    def test_delete_removes_future_and_truncates_rule(
        self, db_session, schedule_repo, series_repo, test_user_id, workout_template
    ):
        series_id = _daily_series(db_session, test_user_id, workout_template)
        target = _series_block(schedule_repo, test_user_id, "2024-02-10", series_id)

        result = resolve_occurrence_mutation(
            db_session,
            test_user_id,
            OccurrenceMutation(instance_id=target.id, action="delete", scope="all"),
        )

        assert result.instances_affected == 11
        assert schedule_repo.list_series_dates(test_user_id, series_id) == _dates_range(1, 9)
        rule = series_repo.get(test_user_id, series_id).rule
        assert rule.end_date == date(2024, 2, 9)
        assert rule.end_occurrences is None

        extended = extend_series(db_session, user_id=test_user_id, series_id=series_id, through_date="2024-03-31")
        assert extended.summary.instances_added == 0

    def test_rule_change_regenerates_from_target(
        self, db_session, schedule_repo, series_repo, test_user_id, workout_template
    ):
        series_id = _daily_series(db_session, test_user_id, workout_template)
        target = _series_block(schedule_repo, test_user_id, "2024-02-10", series_id)

        result = resolve_occurrence_mutation(
            db_session,
            test_user_id,
            OccurrenceMutation(
                instance_id=target.id,
                action="edit",
                scope="all",
                changes={"rule": {"type": "weekly", "days_of_week": [1], "end_occurrences": 3}},
            ),
        )

        assert result.regenerated is not None
        assert result.regenerated.dates_written == ["2024-02-12", "2024-02-19", "2024-02-26"]
        dates = schedule_repo.list_series_dates(test_user_id, series_id)
        assert dates == _dates_range(1, 9) + ["2024-02-12", "2024-02-19", "2024-02-26"]

        series = series_repo.get(test_user_id, series_id)
        assert series.rule.type == "weekly"
        assert series.start_date == date(2024, 2, 10)

    def test_partial_sweep_reports_failed_dates(self, db_session, series_repo, test_user_id, workout_template):
        series_id = _daily_series(db_session, test_user_id, workout_template)
        repo = FailingScheduleRepository(db_session, failing_dates={"2024-02-15"})
        target = _series_block(repo, test_user_id, "2024-02-10", series_id)
        resolver = OccurrenceScopeResolver(repo, series_repo)

        with pytest.raises(PartialWriteError) as exc:
            resolver.resolve(
                test_user_id,
                OccurrenceMutation(
                    instance_id=target.id, action="edit", scope="all", changes={"title": "Evening run"}
                ),
            )

        outcome = exc.value.outcome
        assert list(exc.value.failures) == ["2024-02-15"]
        assert "2024-02-15" not in outcome.dates_updated
        assert len(outcome.dates_updated) == 10
        assert _series_block(repo, test_user_id, "2024-02-16", series_id).title == "Evening run"
        assert _series_block(repo, test_user_id, "2024-02-15", series_id).title == "Morning run"


class TestLookupAndOneOffs:
    def test_unknown_instance(self, db_session, test_user_id):
        with pytest.raises(NotFoundError):
            resolve_occurrence_mutation(
                db_session,
                test_user_id,
                OccurrenceMutation(instance_id="missing", action="delete", scope="single"),
            )

    def test_series_mismatch(self, db_session, schedule_repo, test_user_id, workout_template):
        series_id = _daily_series(db_session, test_user_id, workout_template)
        target = _series_block(schedule_repo, test_user_id, "2024-02-05", series_id)

        with pytest.raises(NotFoundError):
            resolve_occurrence_mutation(
                db_session,
                test_user_id,
                OccurrenceMutation(instance_id=target.id, series_id="other", action="delete", scope="single"),
            )

    def test_edit_requires_changes(self, db_session, schedule_repo, test_user_id, one_off_block):
        schedule_repo.upsert(test_user_id, "2024-02-05", [one_off_block])
        with pytest.raises(ValidationError):
            resolve_occurrence_mutation(
                db_session, test_user_id, OccurrenceMutation(instance_id=one_off_block.id, action="edit")
            )

    def test_one_off_needs_no_scope(self, db_session, schedule_repo, test_user_id, one_off_block):
        schedule_repo.upsert(test_user_id, "2024-02-05", [one_off_block])

        result = resolve_occurrence_mutation(
            db_session,
            test_user_id,
            OccurrenceMutation(instance_id=one_off_block.id, action="edit", changes={"end_time": "10:30"}),
        )

        assert result.scope is None
        assert schedule_repo.get(test_user_id, "2024-02-05").blocks[0].end_time == "10:30"

    def test_one_off_delete(self, db_session, schedule_repo, test_user_id, one_off_block):
        schedule_repo.upsert(test_user_id, "2024-02-05", [one_off_block])
        resolve_occurrence_mutation(
            db_session,
            test_user_id,
            OccurrenceMutation(instance_id=one_off_block.id, date="2024-02-05", action="delete"),
        )
        assert schedule_repo.get(test_user_id, "2024-02-05").blocks == []


class TestToggleCompletion:
    def test_toggle_round_trip(self, db_session, schedule_repo, test_user_id, workout_template):
        series_id = _daily_series(db_session, test_user_id, workout_template)
        target = _series_block(schedule_repo, test_user_id, "2024-02-05", series_id)
        resolver = build_resolver(db_session)

        assert resolver.toggle_completion(test_user_id, "2024-02-05", target.id).completed is True
        assert resolver.toggle_completion(test_user_id, "2024-02-05", target.id).completed is False

    def test_toggle_unknown_block(self, db_session, test_user_id):
        with pytest.raises(NotFoundError):
            build_resolver(db_session).toggle_completion(test_user_id, "2024-02-05", "missing")
