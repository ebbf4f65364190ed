"""
Booking lifecycle as pure functions.

    pending      -> accepted | declined | negotiating | cancelled
    negotiating  -> accepted | declined | negotiating | cancelled
    accepted     -> confirmed | cancelled
    confirmed    -> completed | cancelled
    declined, completed, cancelled: terminal

Responses drive the first two rows; confirm/cancel/complete are explicit actions.
Once any action has been taken no further response is legal, so the status is a
fold over the response log followed by the action log. Nothing else writes it.
"""
from datetime import datetime, timezone
from typing import Iterable, Optional

from inkmatch.core.errors import InvalidTransitionError
from inkmatch.domain.models.booking import (
    BookingAction,
    BookingRequest,
    BookingResponse,
    BookingStatus,
    CancelAction,
    CompleteAction,
    ConfirmAction,
)

_RESPONSE_TARGET = {
    "accept": BookingStatus.ACCEPTED,
    "decline": BookingStatus.DECLINED,
    "counter_offer": BookingStatus.NEGOTIATING,
    "request_info": BookingStatus.NEGOTIATING,
}

_RESPONDABLE = frozenset({BookingStatus.PENDING, BookingStatus.NEGOTIATING})


def after_response(status: BookingStatus, response: BookingResponse) -> BookingStatus:
    if status not in _RESPONDABLE:
        raise InvalidTransitionError(status.value, f"respond ({response.kind}) to")
    return _RESPONSE_TARGET[response.kind]


def after_action(status: BookingStatus, action: BookingAction) -> BookingStatus:
    if isinstance(action, ConfirmAction):
        if status != BookingStatus.ACCEPTED:
            raise InvalidTransitionError(status.value, "confirm")
        return BookingStatus.CONFIRMED
    if isinstance(action, CancelAction):
        if status.is_terminal:
            raise InvalidTransitionError(status.value, "cancel")
        return BookingStatus.CANCELLED
    if isinstance(action, CompleteAction):
        if status != BookingStatus.CONFIRMED:
            raise InvalidTransitionError(status.value, "complete")
        return BookingStatus.COMPLETED
    raise TypeError(f"unknown booking action {action!r}")


def derive_status(responses: Iterable[BookingResponse], actions: Iterable[BookingAction]) -> BookingStatus:
    """Replay the logs from `pending`; raises InvalidTransitionError on an impossible history."""
    status = BookingStatus.PENDING
    for r in responses:
        status = after_response(status, r)
    for a in actions:
        status = after_action(status, a)
    return status


def apply_response(booking: BookingRequest, response: BookingResponse, now: Optional[datetime] = None) -> BookingRequest:
    status = after_response(booking.status, response)
    return booking.model_copy(update={
        "responses": [*booking.responses, response],
        "status": status,
        "version": booking.version + 1,
        "updated_at": now or datetime.now(timezone.utc),
    })


def apply_action(booking: BookingRequest, action: BookingAction, now: Optional[datetime] = None) -> BookingRequest:
    status = after_action(booking.status, action)
    return booking.model_copy(update={
        "actions": [*booking.actions, action],
        "status": status,
        "version": booking.version + 1,
        "updated_at": now or datetime.now(timezone.utc),
    })
