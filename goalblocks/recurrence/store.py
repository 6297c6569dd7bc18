"""Storage interface consumed by the materializer and the scope resolver."""

from __future__ import annotations

from typing import List, Optional, Protocol, Tuple

from goalblocks.models.block import BlockInstance
from goalblocks.models.schedule import ScheduleDocument


class ScheduleStore(Protocol):
    """Per-(user, date) schedule documents.

    `upsert` replaces the document's block collection and must be atomic per document.
    """

    def get(self, user_id: str, date: str) -> Optional[ScheduleDocument]:
        ...

    def upsert(self, user_id: str, date: str, blocks: List[BlockInstance]) -> ScheduleDocument:
        ...

    def find_instance(
        self, user_id: str, instance_id: str, date: Optional[str] = None
    ) -> Optional[Tuple[str, BlockInstance]]:
        ...

    def list_series_dates(
        self, user_id: str, series_id: str, from_date: Optional[str] = None
    ) -> List[str]:
        ...
