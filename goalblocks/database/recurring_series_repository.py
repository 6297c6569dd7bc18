"""Repository for RecurringSeries database operations."""

import logging
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from goalblocks.database.models import RecurringSeriesDB
from goalblocks.models.block import BlockTemplate
from goalblocks.models.recurrence import RecurrenceRule
from goalblocks.models.schedule import RecurringSeries

logger = logging.getLogger(__name__)


class RecurringSeriesRepository:
    def __init__(self, db: Session):
        self.db = db

    def _row(self, user_id: str, series_id: str) -> Optional[RecurringSeriesDB]:
        return (
            self.db.query(RecurringSeriesDB)
            .filter(RecurringSeriesDB.user_id == user_id, RecurringSeriesDB.id == series_id)
            .first()
        )

    def _commit(self, row: RecurringSeriesDB, action: str) -> RecurringSeries:
        try:
            self.db.commit()
            self.db.refresh(row)
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to {action} recurring series {row.id}: {type(e).__name__}: {str(e)}")
            raise

    def create(
        self,
        *,
        series_id: Optional[str] = None,
        user_id: str,
        template: BlockTemplate,
        rule: RecurrenceRule,
        start_date: date,
        lookahead_days: int,
    ) -> RecurringSeries:
        row = RecurringSeriesDB(
            id=series_id,
            user_id=user_id,
            template=template.model_dump(mode="json"),
            rule=rule.model_dump(mode="json"),
            start_date=start_date,
            lookahead_days=int(lookahead_days),
        )
        self.db.add(row)
        return self._commit(row, "create")

    def get(self, user_id: str, series_id: str) -> Optional[RecurringSeries]:
        row = self._row(user_id, series_id)
        return row.to_pydantic() if row else None

    def list_for_user(self, user_id: str) -> List[RecurringSeries]:
        rows = (
            self.db.query(RecurringSeriesDB)
            .filter(RecurringSeriesDB.user_id == user_id)
            .order_by(RecurringSeriesDB.created_at.desc())
            .all()
        )
        return [row.to_pydantic() for row in rows]

    def update(
        self,
        user_id: str,
        series_id: str,
        *,
        template: Optional[BlockTemplate] = None,
        rule: Optional[RecurrenceRule] = None,
        start_date: Optional[date] = None,
    ) -> Optional[RecurringSeries]:
        """Replace the template, rule or start date. Returns None if the series is unknown."""
        row = self._row(user_id, series_id)
        if row is None:
            return None
        if template is not None:
            row.template = template.model_dump(mode="json")
        if rule is not None:
            row.rule = rule.model_dump(mode="json")
        if start_date is not None:
            row.start_date = start_date
        row.updated_at = datetime.utcnow()
        return self._commit(row, "update")

    def add_exception(self, user_id: str, series_id: str, day: date) -> Optional[RecurringSeries]:
        """Exclude `day` from future generation of the series."""
        series = self.get(user_id, series_id)
        if series is None:
            return None
        return self.update(user_id, series_id, rule=series.rule.with_exception(day))
