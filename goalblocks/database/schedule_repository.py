"""Repository for schedule documents (SQLAlchemy implementation of ScheduleStore)."""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from goalblocks.database.models import ScheduleBlockDB, ScheduleDB
from goalblocks.models.block import BlockInstance
from goalblocks.models.schedule import ScheduleDocument
from goalblocks.recurrence.errors import ValidationError

logger = logging.getLogger(__name__)


class ScheduleRepository:
    """Repository for per-date schedule documents."""

    def __init__(self, db: Session):
        self.db = db

    def _block_rows(self, user_id: str, date: str) -> List[ScheduleBlockDB]:
        return (
            self.db.query(ScheduleBlockDB)
            .filter(ScheduleBlockDB.user_id == user_id, ScheduleBlockDB.date == date)
            .order_by(ScheduleBlockDB.start_time, ScheduleBlockDB.id)
            .all()
        )

    def _schedule_row(self, user_id: str, date: str) -> Optional[ScheduleDB]:
        return (
            self.db.query(ScheduleDB)
            .filter(ScheduleDB.user_id == user_id, ScheduleDB.date == date)
            .first()
        )

    def get(self, user_id: str, date: str) -> Optional[ScheduleDocument]:
        """Get the schedule document for a date, or None if it was never written."""
        schedule_db = self._schedule_row(user_id, date)
        if schedule_db is None:
            return None
        return ScheduleDocument(
            user_id=user_id,
            date=date,
            blocks=[row.to_pydantic() for row in self._block_rows(user_id, date)],
            updated_at=schedule_db.updated_at,
        )

    def upsert(self, user_id: str, date: str, blocks: List[BlockInstance]) -> ScheduleDocument:
        """Replace the blocks of a date document (create-on-write).

        Rows are diffed by block id so unchanged blocks are updated in place.

        Raises:
            ValidationError: two blocks in `blocks` share an id or a series_id
        """
        ids = [b.id for b in blocks]
        if len(ids) != len(set(ids)):
            raise ValidationError(f"Duplicate block ids in schedule for {date}", field="blocks")
        series_ids = [b.series_id for b in blocks if b.series_id]
        if len(series_ids) != len(set(series_ids)):
            raise ValidationError(f"A series can appear at most once in schedule for {date}", field="blocks")

        try:
            schedule_db = self._schedule_row(user_id, date)
            if schedule_db is None:
                schedule_db = ScheduleDB(user_id=user_id, date=date)
                self.db.add(schedule_db)
            else:
                schedule_db.updated_at = datetime.utcnow()

            existing: Dict[str, ScheduleBlockDB] = {row.id: row for row in self._block_rows(user_id, date)}
            keep = set(ids)
            for block_id, row in existing.items():
                if block_id not in keep:
                    self.db.delete(row)
            # Deletes first so a series moving between block ids does not trip the per-date constraint.
            self.db.flush()
            for block in blocks:
                row = existing.get(block.id)
                if row is None:
                    self.db.add(ScheduleBlockDB.from_pydantic(user_id, date, block))
                else:
                    row.apply_pydantic(block)

            self.db.commit()
            logger.debug(f"Upserted schedule {date} for user {user_id} ({len(blocks)} blocks)")
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to upsert schedule {date} for user {user_id}: {type(e).__name__}: {str(e)}")
            raise
        return self.get(user_id, date)

    def get_all(self, user_id: str) -> List[ScheduleDocument]:
        """Get every schedule document for a user, oldest date first."""
        dates = [
            row.date
            for row in self.db.query(ScheduleDB)
            .filter(ScheduleDB.user_id == user_id)
            .order_by(ScheduleDB.date)
            .all()
        ]
        return [self.get(user_id, d) for d in dates]

    def find_instance(
        self, user_id: str, instance_id: str, date: Optional[str] = None
    ) -> Optional[Tuple[str, BlockInstance]]:
        """Locate a block by id (earliest date wins when `date` is not given)."""
        query = self.db.query(ScheduleBlockDB).filter(
            ScheduleBlockDB.user_id == user_id,
            ScheduleBlockDB.id == instance_id,
        )
        if date is not None:
            query = query.filter(ScheduleBlockDB.date == date)
        row = query.order_by(ScheduleBlockDB.date).first()
        return (row.date, row.to_pydantic()) if row else None

    def list_series_dates(
        self, user_id: str, series_id: str, from_date: Optional[str] = None
    ) -> List[str]:
        """Dates (ascending) holding an instance of `series_id`, optionally on/after `from_date`."""
        query = self.db.query(ScheduleBlockDB.date).filter(
            ScheduleBlockDB.user_id == user_id,
            ScheduleBlockDB.series_id == series_id,
        )
        if from_date is not None:
            # YYYY-MM-DD strings sort chronologically.
            query = query.filter(ScheduleBlockDB.date >= from_date)
        return [row[0] for row in query.distinct().order_by(ScheduleBlockDB.date).all()]

    def list_recurring(self, user_id: str) -> List[Tuple[str, BlockInstance]]:
        """All (date, block) pairs carrying a series id or the recurring flag."""
        rows = (
            self.db.query(ScheduleBlockDB)
            .filter(
                ScheduleBlockDB.user_id == user_id,
                or_(ScheduleBlockDB.series_id.isnot(None), ScheduleBlockDB.recurring.is_(True)),
            )
            .order_by(ScheduleBlockDB.date, ScheduleBlockDB.start_time)
            .all()
        )
        return [(row.date, row.to_pydantic()) for row in rows]
