"""User data model for goalblocks."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class User(BaseModel):
    """Account that owns goals and daily schedules."""

    id: str = Field(..., description="Unique user identifier (JWT subject)")
    email: str = Field(..., description="User email address")
    name: Optional[str] = Field(None, description="User display name")
    created_at: datetime
    updated_at: datetime
