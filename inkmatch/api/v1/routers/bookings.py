# inkmatch/api/v1/routers/bookings.py
from fastapi import APIRouter, Depends, Query
from typing import Literal
import logging

from inkmatch.api.deps import coordinator_dep
from inkmatch.api.v1.schemas.booking import (
    BookingCreateIn,
    BookingListOut,
    CancelIn,
    CompleteIn,
    ConfirmIn,
    RespondIn,
)
from inkmatch.domain.services.negotiation_svc import NegotiationCoordinator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["bookings"])


@router.post("/bookings", status_code=201)
async def create_booking(payload: BookingCreateIn, coordinator: NegotiationCoordinator = Depends(coordinator_dep)):
    logger.info("Request: create_booking customer_id=%s artist_id=%s", payload.customer_id, payload.artist_id)
    booking = await coordinator.create_booking(payload.customer_id, payload.artist_id, payload.details)
    return booking.model_dump(mode="json")


@router.get("/bookings/{booking_id}")
async def get_booking(booking_id: str, coordinator: NegotiationCoordinator = Depends(coordinator_dep)):
    booking = await coordinator.get_booking(booking_id)
    return booking.model_dump(mode="json")


@router.get("/bookings/{booking_id}/appointment")
async def get_appointment(booking_id: str, coordinator: NegotiationCoordinator = Depends(coordinator_dep)):
    appointment = await coordinator.get_appointment(booking_id)
    return appointment.model_dump(mode="json")


@router.get("/users/{user_id}/bookings")
async def list_bookings(
    user_id: str,
    role: Literal["customer", "artist"] = Query("customer"),
    limit: int = Query(100, ge=1, le=500),
    coordinator: NegotiationCoordinator = Depends(coordinator_dep),
):
    """Bookings where the user is the customer (default) or the artist, newest first."""
    items = await coordinator.list_bookings(user_id, role, limit=limit)
    return BookingListOut(items=items, count=len(items)).model_dump(mode="json")


@router.post("/bookings/{booking_id}/responses")
async def respond(booking_id: str, payload: RespondIn, coordinator: NegotiationCoordinator = Depends(coordinator_dep)):
    logger.info("Request: respond booking_id=%s kind=%s responder_id=%s", booking_id, payload.kind, payload.responder_id)
    booking = await coordinator.respond(booking_id, payload.to_response())
    return booking.model_dump(mode="json")


@router.post("/bookings/{booking_id}/confirm")
async def confirm(booking_id: str, payload: ConfirmIn, coordinator: NegotiationCoordinator = Depends(coordinator_dep)):
    logger.info("Request: confirm booking_id=%s date=%s minutes=%s", booking_id, payload.date.isoformat(), payload.duration_minutes)
    booking = await coordinator.confirm(booking_id, payload.date, payload.price, payload.duration_minutes)
    return booking.model_dump(mode="json")


@router.post("/bookings/{booking_id}/cancel")
async def cancel(booking_id: str, payload: CancelIn, coordinator: NegotiationCoordinator = Depends(coordinator_dep)):
    logger.info("Request: cancel booking_id=%s by=%s", booking_id, payload.by)
    booking = await coordinator.cancel(booking_id, payload.by, payload.reason)
    return booking.model_dump(mode="json")


@router.post("/bookings/{booking_id}/complete")
async def complete(booking_id: str, payload: CompleteIn, coordinator: NegotiationCoordinator = Depends(coordinator_dep)):
    logger.info("Request: complete booking_id=%s by=%s", booking_id, payload.by)
    booking = await coordinator.complete(booking_id, payload.by)
    return booking.model_dump(mode="json")
