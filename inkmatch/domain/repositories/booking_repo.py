# inkmatch/domain/repositories/booking_repo.py

from __future__ import annotations
from typing import Optional, List, Literal
from datetime import datetime

from inkmatch.core.errors import ConflictError
from inkmatch.db.store import DocumentStore
from inkmatch.domain.models.booking import ACTIVE_STATUSES, BookingRequest, ConfirmedAppointment
from inkmatch.domain.repositories.documents import strip_id, to_doc

class BookingRepo:
    """
    Booking requests in the 'bookings' collection.
    Every write after creation goes through `replace`, guarded by the `version` token.
    """

    def __init__(self, store: DocumentStore, collection_name: str = "bookings"):
        self.store = store
        self.col = collection_name

    async def get(self, booking_id: str) -> Optional[BookingRequest]:
        doc = await self.store.get(self.col, booking_id)
        return BookingRequest.model_validate(strip_id(doc)) if doc else None

    async def insert(self, booking: BookingRequest) -> BookingRequest:
        await self.store.insert(self.col, booking.booking_id, to_doc(booking))
        return booking

    async def replace(self, updated: BookingRequest, expected_version: int) -> BookingRequest:
        """
        Compare-and-swap on `version`. The loser of a race gets ConflictError and
        must re-read before trying again.
        """
        ok = await self.store.replace_if_version(self.col, updated.booking_id, expected_version, to_doc(updated))
        if not ok:
            raise ConflictError(
                "booking was modified concurrently; re-read and retry",
                {"booking_id": updated.booking_id, "expected_version": expected_version},
            )
        return updated

    async def find_active_between(
        self,
        customer_id: str,
        artist_id: str,
        window_start: datetime,
        window_end: datetime,
    ) -> List[BookingRequest]:
        docs = await self.store.find(
            self.col,
            {
                "customer_id": customer_id,
                "artist_id": artist_id,
                "status": {"$in": [s.value for s in ACTIVE_STATUSES]},
                "details.preferred_date": {"$gte": window_start, "$lte": window_end},
            },
        )
        return [BookingRequest.model_validate(strip_id(d)) for d in docs]

    async def list_for_user(self, user_id: str, role: Literal["customer", "artist"], limit: int = 100) -> List[BookingRequest]:
        field = "customer_id" if role == "customer" else "artist_id"
        docs = await self.store.find(self.col, {field: user_id}, sort=[("created_at", -1)], limit=limit)
        return [BookingRequest.model_validate(strip_id(d)) for d in docs]


class AppointmentRepo:
    """Confirmed appointments ('appointments'), keyed by booking id."""

    def __init__(self, store: DocumentStore, collection_name: str = "appointments"):
        self.store = store
        self.col = collection_name

    async def get(self, booking_id: str) -> Optional[ConfirmedAppointment]:
        doc = await self.store.get(self.col, booking_id)
        return ConfirmedAppointment.model_validate(strip_id(doc)) if doc else None

    async def save(self, appointment: ConfirmedAppointment) -> ConfirmedAppointment:
        await self.store.upsert(self.col, appointment.booking_id, to_doc(appointment))
        return appointment
