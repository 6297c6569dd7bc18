"""SQLAlchemy database models for goalblocks."""

from datetime import datetime
from typing import Type, TypeVar, Union
import uuid
from sqlalchemy import (
    Column,
    String,
    Integer,
    Boolean,
    Date,
    DateTime,
    JSON,
    ForeignKey,
    UniqueConstraint,
    Index,
)

from goalblocks.database.database import Base
from goalblocks.models.block import BlockCategory

T = TypeVar('T')


def enum_to_value(enum_obj: Union[str, T]) -> str:
    """Convert enum to string value (handles both enum and string)."""
    if hasattr(enum_obj, 'value'):
        return enum_obj.value
    return str(enum_obj)


def value_to_enum(value: str, enum_class: Type[T], default: T) -> T:
    """Convert string to enum with fallback to default."""
    if not value:
        return default
    try:
        return enum_class(value.lower())
    except (ValueError, AttributeError):
        return default


class UserDB(Base):
    """Database model for User."""

    __tablename__ = "users"

    id = Column(String, primary_key=True)

    email = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from goalblocks.models.user import User
        return User(
            id=self.id,
            email=self.email,
            name=self.name,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class ScheduleDB(Base):
    """One schedule document: a user's calendar date.

    The blocks themselves live in `schedule_blocks` keyed by (user_id, date).
    """

    __tablename__ = "schedules"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_schedule_user_date"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(String(10), nullable=False, index=True)  # YYYY-MM-DD

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)


class ScheduleBlockDB(Base):
    """Database model for a block instance on one date.

    Instances are independent rows tagged with `series_id`; series-wide operations are
    index scans on that tag.
    """

    __tablename__ = "schedule_blocks"
    __table_args__ = (
        # At most one occurrence of a series per date.
        # Note: NULL series_id values do not participate (one-off blocks are unaffected).
        UniqueConstraint("user_id", "date", "series_id", name="uq_block_series_per_date"),
        Index("ix_schedule_blocks_user_series_date", "user_id", "series_id", "date"),
    )

    # Block ids are unique per document, not globally.
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    date = Column(String(10), primary_key=True)
    id = Column(String, primary_key=True)

    title = Column(String, nullable=False)
    category = Column(String, nullable=False, default=BlockCategory.PERSONAL.value)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    goal_id = Column(String, nullable=True)
    tags = Column(JSON, nullable=False, default=list)

    completed = Column(Boolean, nullable=False, default=False)
    recurring = Column(Boolean, nullable=False, default=False, index=True)
    series_id = Column(String, nullable=True, index=True)
    original_date = Column(Date, nullable=True)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from goalblocks.models.block import BlockInstance
        return BlockInstance(
            id=self.id,
            title=self.title,
            category=value_to_enum(self.category, BlockCategory, BlockCategory.PERSONAL),
            start_time=self.start_time,
            end_time=self.end_time,
            goal_id=self.goal_id,
            tags=self.tags or [],
            completed=bool(self.completed),
            recurring=bool(self.recurring),
            series_id=self.series_id,
            original_date=self.original_date,
        )

    def apply_pydantic(self, block) -> None:
        """Copy mutable fields from a Pydantic BlockInstance onto this row."""
        self.title = block.title
        self.category = enum_to_value(block.category)
        self.start_time = block.start_time
        self.end_time = block.end_time
        self.goal_id = block.goal_id
        self.tags = list(block.tags or [])
        self.completed = bool(block.completed)
        self.recurring = bool(block.recurring)
        self.series_id = block.series_id
        self.original_date = block.original_date

    @classmethod
    def from_pydantic(cls, user_id: str, date: str, block):
        """Create database model from Pydantic model."""
        row = cls(user_id=user_id, date=date, id=block.id)
        row.apply_pydantic(block)
        return row


class RecurringSeriesDB(Base):
    """Database model for a recurring series (block template + recurrence rule)."""

    __tablename__ = "recurring_series"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    template = Column(JSON, nullable=False)
    rule = Column(JSON, nullable=False)
    start_date = Column(Date, nullable=False)
    lookahead_days = Column(Integer, nullable=False, default=90)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from goalblocks.models.schedule import RecurringSeries
        return RecurringSeries(
            id=self.id,
            user_id=self.user_id,
            template=self.template,
            rule=self.rule,
            start_date=self.start_date,
            lookahead_days=self.lookahead_days,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
