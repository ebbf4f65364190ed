# inkmatch/domain/services/messaging_svc.py
"""
Conversation side effects of the booking flow.

The coordinator talks to a `Messenger`; the transport behind it is swappable.
`LogMessenger` only logs (local runs, tests), `StoreMessenger` persists channels
and messages in the document store so a chat front-end can read them.
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from inkmatch.core.errors import ConflictError
from inkmatch.db.store import DocumentStore
from inkmatch.domain.models.booking import (
    BookingRequest,
    BookingResponse,
    CancelAction,
    ConfirmAction,
    CounterOfferResponse,
)
from inkmatch.domain.models.messaging import DeliveryAck, MessageKind, OutgoingMessage
from inkmatch.domain.repositories.documents import to_doc

logger = logging.getLogger(__name__)

SYSTEM_SENDER = "system"

_SIZE_LABELS = {
    "small": "small (under 5cm)",
    "medium": "medium (5-15cm)",
    "large": "large (over 15cm)",
}

_RESPONSE_HEADS = {
    "accept": "Booking request accepted",
    "decline": "Booking request declined",
    "request_info": "More information needed",
}


def channel_id_for(customer_id: str, artist_id: str) -> str:
    """One conversation per pair, whoever opens it first."""
    return "_".join(sorted((customer_id, artist_id)))


class Messenger(ABC):

    @abstractmethod
    async def open_channel(self, customer_id: str, artist_id: str, purpose: str = "booking") -> str:
        """Open (or reuse) the conversation between the two parties and return its id."""

    @abstractmethod
    async def send(
        self,
        channel_id: str,
        sender_id: str,
        text: str,
        kind: MessageKind = "system",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> DeliveryAck:
        ...


class LogMessenger(Messenger):
    """Writes every message to the log instead of delivering it."""

    async def open_channel(self, customer_id: str, artist_id: str, purpose: str = "booking") -> str:
        channel_id = channel_id_for(customer_id, artist_id)
        logger.info("messenger open_channel channel_id=%s purpose=%s", channel_id, purpose)
        return channel_id

    async def send(self, channel_id, sender_id, text, kind="system", metadata=None) -> DeliveryAck:
        message_id = uuid4().hex
        logger.info(
            "messenger send channel_id=%s sender=%s kind=%s message_id=%s text=%r",
            channel_id, sender_id, kind, message_id, text,
        )
        return DeliveryAck(message_id=message_id, delivered=True)


class StoreMessenger(Messenger):
    """
    Persists conversations in 'channels' (one doc per customer/artist pair)
    and 'messages' (append-only, one doc per message).
    """

    def __init__(self, store: DocumentStore, channels_col: str = "channels", messages_col: str = "messages"):
        self.store = store
        self.channels_col = channels_col
        self.messages_col = messages_col

    async def open_channel(self, customer_id: str, artist_id: str, purpose: str = "booking") -> str:
        channel_id = channel_id_for(customer_id, artist_id)
        if await self.store.get(self.channels_col, channel_id):
            return channel_id

        now = datetime.now(timezone.utc)
        try:
            await self.store.insert(self.channels_col, channel_id, {
                "participants": sorted((customer_id, artist_id)),
                "customer_id": customer_id,
                "artist_id": artist_id,
                "purpose": purpose,
                "created_at": now,
                "last_message_at": now,
            })
        except ConflictError:
            # opened concurrently by the other party
            return channel_id

        await self.send(channel_id, SYSTEM_SENDER, "Conversation started. Feel free to ask any questions.", "system")
        return channel_id

    async def send(self, channel_id, sender_id, text, kind="system", metadata=None) -> DeliveryAck:
        message = OutgoingMessage(
            channel_id=channel_id,
            sender_id=sender_id,
            text=text,
            kind=kind,
            metadata=metadata or {},
        )
        message_id = uuid4().hex
        await self.store.insert(self.messages_col, message_id, to_doc(message))
        logger.debug("messenger stored channel_id=%s kind=%s message_id=%s", channel_id, kind, message_id)
        return DeliveryAck(message_id=message_id, delivered=True)


# ---- Message texts ----------------------------------------------------------

def _money(amount: float) -> str:
    return f"{amount:,.0f}"

def _when(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%d %H:%M %Z").strip()


def booking_request_text(booking: BookingRequest) -> str:
    d = booking.details
    lines = [
        "New booking request",
        "",
        f"Design: {d.description}",
        f"Size: {_SIZE_LABELS[d.size]}",
        f"Placement: {d.body_location}",
        f"Preferred date: {_when(d.preferred_date)}",
    ]
    if d.alternative_dates:
        lines.append("Alternatives: " + ", ".join(_when(a) for a in d.alternative_dates))
    lines.append(f"Estimated duration: {d.duration_minutes} min")
    lines.append(f"Budget: {_money(d.budget.min)} - {_money(d.budget.max)}")
    if d.has_allergies:
        lines.append(f"Allergies: {d.allergy_details or 'yes (no details given)'}")
    if d.notes:
        lines.append(f"Notes: {d.notes}")
    lines += ["", f"Booking ID: {booking.booking_id}"]
    return "\n".join(lines)


def response_text(response: BookingResponse) -> str:
    if isinstance(response, CounterOfferResponse):
        lines = ["Counter offer", ""]
        if response.proposed_date:
            lines.append(f"Proposed date: {_when(response.proposed_date)}")
        if response.proposed_price is not None:
            lines.append(f"Proposed price: {_money(response.proposed_price)}")
        if response.proposed_duration:
            lines.append(f"Estimated duration: {response.proposed_duration} min")
        if response.message:
            lines += ["", response.message]
        return "\n".join(lines)

    head = _RESPONSE_HEADS[response.kind]
    if not response.message:
        return head
    if response.kind == "decline":
        return f"{head}\nReason: {response.message}"
    return f"{head}\n{response.message}"


def confirmed_text(action: ConfirmAction) -> str:
    return (
        "Appointment confirmed\n\n"
        f"Date: {_when(action.date)}\n"
        f"Duration: {action.duration_minutes} min\n"
        f"Price: {_money(action.price)}"
    )


def cancelled_text(action: CancelAction) -> str:
    return f"Booking cancelled\nReason: {action.reason}" if action.reason else "Booking cancelled"


def completed_text() -> str:
    return "Appointment completed. Thank you!"
