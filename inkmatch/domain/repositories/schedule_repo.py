# inkmatch/domain/repositories/schedule_repo.py

from __future__ import annotations
from typing import Optional, List
from datetime import date

from inkmatch.core.errors import ConflictError
from inkmatch.db.store import DocumentStore
from inkmatch.domain.models.schedule import ScheduleDay, schedule_doc_id
from inkmatch.domain.repositories.documents import strip_id, to_doc

class ScheduleRepo:
    """
    One document per artist-day in 'schedules' (`_id` = "<artist_id>:<YYYY-MM-DD>").
    Days are stored as ISO strings so range queries sort lexicographically.
    """

    def __init__(self, store: DocumentStore, collection_name: str = "schedules"):
        self.store = store
        self.col = collection_name

    async def get_day(self, artist_id: str, day: date) -> Optional[ScheduleDay]:
        doc = await self.store.get(self.col, schedule_doc_id(artist_id, day))
        return ScheduleDay.model_validate(strip_id(doc)) if doc else None

    async def list_days(self, artist_id: str, start: date, end: date) -> List[ScheduleDay]:
        docs = await self.store.find(
            self.col,
            {"artist_id": artist_id, "day": {"$gte": start.isoformat(), "$lte": end.isoformat()}},
            sort=[("day", 1)],
        )
        return [ScheduleDay.model_validate(strip_id(d)) for d in docs]

    async def days_with_booking(self, artist_id: str, booking_id: str) -> List[ScheduleDay]:
        docs = await self.store.find(self.col, {"artist_id": artist_id, "slots.booking_id": booking_id})
        return [ScheduleDay.model_validate(strip_id(d)) for d in docs]

    async def write_day(self, updated: ScheduleDay, expected_version: Optional[int]) -> bool:
        """
        Atomic per artist-day: insert when `expected_version` is None, otherwise
        replace only if the stored version still matches. False means a concurrent
        writer got there first.
        """
        if expected_version is None:
            try:
                await self.store.insert(self.col, updated.doc_id, to_doc(updated))
            except ConflictError:
                return False
            return True
        return await self.store.replace_if_version(self.col, updated.doc_id, expected_version, to_doc(updated))
