# inkmatch/domain/services/negotiation_svc.py
import time
import logging
from datetime import date, datetime, timedelta, timezone
from typing import List, Literal, Optional, Sequence
from zoneinfo import ZoneInfo

from inkmatch.core.config import Settings
from inkmatch.core.errors import ConflictError, NotFoundError, ValidationError
from inkmatch.db.store import DocumentStore
from inkmatch.domain.models.booking import (
    BookingRequest,
    BookingResponse,
    BookingStatus,
    CancelAction,
    CompleteAction,
    ConfirmAction,
    ConfirmedAppointment,
    TattooDetails,
)
from inkmatch.domain.models.messaging import MessageKind
from inkmatch.domain.models.schedule import AvailableDay, ScheduleDay, TimeSlot
from inkmatch.domain.repositories.artist_repo import ArtistRepo
from inkmatch.domain.repositories.booking_repo import AppointmentRepo, BookingRepo
from inkmatch.domain.repositories.schedule_repo import ScheduleRepo
from inkmatch.domain.services import messaging_svc as texts
from inkmatch.domain.services.booking_state import apply_action, apply_response
from inkmatch.domain.services.messaging_svc import SYSTEM_SENDER, Messenger
from inkmatch.domain.services.slots import (
    appointment_window,
    block_window,
    booked_windows,
    free_windows,
    local_day,
    release_booking,
)
from inkmatch.utils.locks import optional_lock

logger = logging.getLogger(__name__)

Role = Literal["customer", "artist"]


class NegotiationCoordinator:
    """
    Side effects of every booking transition.

    The state machine (booking_state) decides whether a transition is legal;
    this class persists it with a compare-and-swap on the booking `version`,
    mutates the artist's schedule on confirm/cancel, and posts the matching
    conversation message. Messaging is best-effort; store errors abort.
    """

    def __init__(self, store: DocumentStore, messenger: Messenger, settings: Settings, *, redis=None):
        self.settings = settings
        self.messenger = messenger
        self.redis = redis
        self.tz = ZoneInfo(settings.schedule_timezone)
        self.bookings = BookingRepo(store)
        self.appointments = AppointmentRepo(store)
        self.schedules = ScheduleRepo(store)
        self.artists = ArtistRepo(store)

    # ---- Booking lifecycle ---------------------------------------------------

    async def create_booking(self, customer_id: str, artist_id: str, details: TattooDetails) -> BookingRequest:
        t0 = time.perf_counter()
        if not customer_id or not artist_id:
            raise ValidationError("customer_id and artist_id are required")
        if customer_id == artist_id:
            raise ValidationError("an artist cannot book themselves", {"artist_id": artist_id})
        if len(details.alternative_dates) > self.settings.max_alternative_dates:
            raise ValidationError(
                f"at most {self.settings.max_alternative_dates} alternative dates are allowed",
                {"alternative_dates": len(details.alternative_dates)},
            )

        artist = await self.artists.get(artist_id)
        if artist is None or not artist.is_active:
            raise NotFoundError("artist", artist_id)

        window = timedelta(hours=self.settings.duplicate_window_hours)
        pair_key = f"booking:{customer_id}:{artist_id}"
        async with optional_lock(self.redis, pair_key, ttl=self.settings.slot_lock_ttl):
            existing = await self.bookings.find_active_between(
                customer_id, artist_id, details.preferred_date - window, details.preferred_date + window
            )
            if existing:
                raise ConflictError(
                    "an active booking request for this artist already exists around that date",
                    {"booking_id": existing[0].booking_id, "status": existing[0].status.value},
                )

            booking = await self.bookings.insert(
                BookingRequest(customer_id=customer_id, artist_id=artist_id, details=details)
            )
        logger.info(
            "booking created booking_id=%s customer_id=%s artist_id=%s time=%.3fs",
            booking.booking_id, customer_id, artist_id, time.perf_counter() - t0,
        )

        await self._notify(
            booking, customer_id, texts.booking_request_text(booking), "booking_request",
            {"booking_id": booking.booking_id},
        )
        return booking

    async def respond(self, booking_id: str, response: BookingResponse) -> BookingRequest:
        booking = await self._load(booking_id)
        self._require_participant(booking, response.responder_id)

        updated = apply_response(booking, response)
        await self.bookings.replace(updated, expected_version=booking.version)
        logger.info(
            "booking response booking_id=%s kind=%s status=%s->%s version=%s",
            booking_id, response.kind, booking.status.value, updated.status.value, updated.version,
        )

        metadata = {"booking_id": booking_id, "response_kind": response.kind}
        if response.kind == "counter_offer":
            metadata.update(response.model_dump(mode="json", include={"proposed_date", "proposed_price", "proposed_duration"}))
        await self._notify(updated, response.responder_id, texts.response_text(response), "booking_response", metadata)
        return updated

    async def confirm(self, booking_id: str, date: datetime, price: float, duration_minutes: int) -> BookingRequest:
        """
        accepted -> confirmed. Blocks [date, date + duration) on the artist's day
        first, then records the action; a lost booking race releases the window again.
        """
        t0 = time.perf_counter()
        booking = await self._load(booking_id)
        action = ConfirmAction(date=date, price=price, duration_minutes=duration_minutes)
        # validate the transition before touching the schedule
        updated = apply_action(booking, action)

        day, start, end = appointment_window(action.date, action.duration_minutes, self.tz)
        blocked = await self._block_slot(booking.artist_id, day, start, end, booking_id)

        try:
            await self.bookings.replace(updated, expected_version=booking.version)
        except ConflictError:
            if blocked:
                await self._release_slots(booking.artist_id, booking_id)
            raise

        await self.appointments.save(ConfirmedAppointment(
            booking_id=booking_id,
            customer_id=booking.customer_id,
            artist_id=booking.artist_id,
            starts_at=action.date,
            duration_minutes=action.duration_minutes,
            price=action.price,
            description=booking.details.description,
            body_location=booking.details.body_location,
        ))
        logger.info(
            "booking confirmed booking_id=%s artist_id=%s day=%s start=%s minutes=%s time=%.3fs",
            booking_id, booking.artist_id, day, start.isoformat(), duration_minutes, time.perf_counter() - t0,
        )

        await self._notify(
            updated, booking.artist_id, texts.confirmed_text(action), "booking_confirmed",
            {"booking_id": booking_id, "date": action.date.isoformat(), "price": action.price},
        )
        return updated

    async def cancel(self, booking_id: str, by: str, reason: str = "") -> BookingRequest:
        """
        Any non-terminal status -> cancelled. A confirmed booking also gives its
        window back and cancels the appointment. When that cleanup failed after
        the status was stored, cancelling again finishes it.
        """
        booking = await self._load(booking_id)
        self._require_participant(booking, by)

        if booking.status == BookingStatus.CANCELLED and await self._cleanup_pending(booking):
            logger.info("booking cancel cleanup retried booking_id=%s by=%s", booking_id, by)
            await self._release_confirmed(booking)
            return booking

        action = CancelAction(by=by, reason=reason)
        updated = apply_action(booking, action)
        await self.bookings.replace(updated, expected_version=booking.version)

        if booking.status == BookingStatus.CONFIRMED:
            await self._release_confirmed(booking)
        logger.info("booking cancelled booking_id=%s by=%s from=%s", booking_id, by, booking.status.value)

        await self._notify(
            updated, by, texts.cancelled_text(action), "booking_cancelled",
            {"booking_id": booking_id, "cancelled_by": by},
        )
        return updated

    async def complete(self, booking_id: str, by: str) -> BookingRequest:
        booking = await self._load(booking_id)
        self._require_participant(booking, by)

        updated = apply_action(booking, CompleteAction(by=by))
        await self.bookings.replace(updated, expected_version=booking.version)
        await self._set_appointment_status(booking_id, "completed")
        logger.info("booking completed booking_id=%s by=%s", booking_id, by)

        await self._notify(updated, SYSTEM_SENDER, texts.completed_text(), "booking_completed", {"booking_id": booking_id})
        return updated

    # ---- Queries ---------------------------------------------------------------

    async def get_booking(self, booking_id: str) -> BookingRequest:
        return await self._load(booking_id)

    async def list_bookings(self, user_id: str, role: Role = "customer", limit: int = 100) -> List[BookingRequest]:
        return await self.bookings.list_for_user(user_id, role, limit=limit)

    async def get_appointment(self, booking_id: str) -> ConfirmedAppointment:
        appointment = await self.appointments.get(booking_id)
        if appointment is None:
            raise NotFoundError("appointment", booking_id)
        return appointment

    async def get_schedule(self, artist_id: str, start: date, end: date) -> List[ScheduleDay]:
        if end < start:
            raise ValidationError("end must not be before start", {"start": start.isoformat(), "end": end.isoformat()})
        return await self.schedules.list_days(artist_id, start, end)

    async def find_available_slots(
        self,
        artist_id: str,
        preferred: datetime,
        duration_minutes: int,
        alternatives: Sequence[datetime] = (),
    ) -> List[AvailableDay]:
        """Free windows of at least `duration_minutes` on the preferred day and each alternative day."""
        days: List[date] = []
        for moment in (preferred, *alternatives):
            d = local_day(moment, self.tz)
            if d not in days:
                days.append(d)

        found: List[AvailableDay] = []
        for d in days:
            schedule = await self.schedules.get_day(artist_id, d)
            if schedule is None:
                continue
            slots = free_windows(schedule, duration_minutes)
            if slots:
                found.append(AvailableDay(day=d, slots=slots))
        logger.debug("available slots artist_id=%s days=%s found=%s", artist_id, len(days), len(found))
        return found

    # ---- Artist availability -------------------------------------------------

    async def set_schedule_day(
        self,
        artist_id: str,
        day: date,
        slots: List[TimeSlot],
        *,
        is_holiday: bool = False,
        note: Optional[str] = None,
    ) -> ScheduleDay:
        """
        Publish the artist's windows for one day. Booked windows are owned by
        their bookings: they are carried over and may not be changed here.
        """
        published = self._check_published_slots(day, slots)

        async with optional_lock(self.redis, self._day_lock_key(artist_id, day), ttl=self.settings.slot_lock_ttl):
            for attempt in range(1, self.settings.slot_write_attempts + 1):
                current = await self.schedules.get_day(artist_id, day)
                booked = booked_windows(current) if current else []
                for b in booked:
                    if any(s.overlaps(b.start, b.end) for s in published):
                        raise ConflictError(
                            "schedule change would drop a booked window",
                            {"day": day.isoformat(), "booking_id": b.booking_id},
                        )

                updated = ScheduleDay(
                    artist_id=artist_id,
                    day=day,
                    slots=sorted([*published, *booked], key=lambda s: (s.start, s.end)),
                    is_holiday=is_holiday,
                    note=note,
                    version=(current.version + 1) if current else 1,
                )
                if await self.schedules.write_day(updated, current.version if current else None):
                    logger.info(
                        "schedule day saved artist_id=%s day=%s slots=%s booked=%s version=%s",
                        artist_id, day, len(published), len(booked), updated.version,
                    )
                    return updated
                logger.info("schedule day stale artist_id=%s day=%s attempt=%s", artist_id, day, attempt)

        raise ConflictError("schedule changed concurrently; re-read and retry", {"day": day.isoformat()})

    def _check_published_slots(self, day: date, slots: List[TimeSlot]) -> List[TimeSlot]:
        if any(s.is_booked or s.booking_id or s.restores for s in slots):
            raise ValidationError("booked windows can only be created by confirming a booking")
        ordered = sorted(slots, key=lambda s: (s.start, s.end))
        for s in ordered:
            if local_day(s.start, self.tz) != day or local_day(s.end - timedelta(microseconds=1), self.tz) != day:
                raise ValidationError(
                    "window does not fall on the given day",
                    {"day": day.isoformat(), "start": s.start.isoformat(), "end": s.end.isoformat()},
                )
        for prev, nxt in zip(ordered, ordered[1:]):
            if nxt.start < prev.end:
                raise ValidationError(
                    "windows must not overlap",
                    {"first": prev.start.isoformat(), "second": nxt.start.isoformat()},
                )
        return ordered

    # ---- Schedule mutation ---------------------------------------------------

    @staticmethod
    def _day_lock_key(artist_id: str, day: date) -> str:
        return f"schedule:{artist_id}:{day.isoformat()}"

    async def _block_slot(self, artist_id: str, day: date, start: datetime, end: datetime, booking_id: str) -> bool:
        """
        Book [start, end) on the artist-day. True if this call wrote it, False if
        the window was already booked for this booking. ConflictError on overlap
        with another booking or when the day keeps changing underneath us.
        """
        async with optional_lock(self.redis, self._day_lock_key(artist_id, day), ttl=self.settings.slot_lock_ttl):
            for attempt in range(1, self.settings.slot_write_attempts + 1):
                current = await self.schedules.get_day(artist_id, day)
                base = current or ScheduleDay(artist_id=artist_id, day=day)
                updated = block_window(base, start, end, booking_id)
                if updated is None:
                    return False
                updated = updated.model_copy(update={"version": base.version + 1})
                if await self.schedules.write_day(updated, current.version if current else None):
                    return True
                logger.info("slot block stale artist_id=%s day=%s attempt=%s", artist_id, day, attempt)

        raise ConflictError(
            "schedule changed concurrently; re-read and retry",
            {"artist_id": artist_id, "day": day.isoformat()},
        )

    async def _release_slots(self, artist_id: str, booking_id: str) -> int:
        """Free every window tagged with `booking_id`; other windows are untouched. Returns days changed."""
        changed = 0
        for tagged in await self.schedules.days_with_booking(artist_id, booking_id):
            async with optional_lock(self.redis, self._day_lock_key(artist_id, tagged.day), ttl=self.settings.slot_lock_ttl):
                for attempt in range(1, self.settings.slot_write_attempts + 1):
                    current = await self.schedules.get_day(artist_id, tagged.day)
                    updated = release_booking(current, booking_id) if current else None
                    if updated is None:
                        break
                    updated = updated.model_copy(update={"version": current.version + 1})
                    if await self.schedules.write_day(updated, current.version):
                        changed += 1
                        break
                    logger.info("slot release stale artist_id=%s day=%s attempt=%s", artist_id, tagged.day, attempt)
                else:
                    raise ConflictError(
                        "schedule changed concurrently; re-read and retry",
                        {"artist_id": artist_id, "day": tagged.day.isoformat()},
                    )
        return changed

    async def _release_confirmed(self, booking: BookingRequest) -> None:
        released = await self._release_slots(booking.artist_id, booking.booking_id)
        await self._set_appointment_status(booking.booking_id, "cancelled")
        logger.info("booking slots released booking_id=%s days=%s", booking.booking_id, released)

    async def _cleanup_pending(self, booking: BookingRequest) -> bool:
        """True when a cancelled booking that was confirmed still holds a window or a live appointment."""
        if not any(a.kind == "confirm" for a in booking.actions):
            return False
        if await self.schedules.days_with_booking(booking.artist_id, booking.booking_id):
            return True
        appointment = await self.appointments.get(booking.booking_id)
        return appointment is not None and appointment.status == "scheduled"

    # ---- Helpers ---------------------------------------------------------------

    async def _load(self, booking_id: str) -> BookingRequest:
        booking = await self.bookings.get(booking_id)
        if booking is None:
            raise NotFoundError("booking", booking_id)
        return booking

    @staticmethod
    def _require_participant(booking: BookingRequest, user_id: str) -> None:
        if not booking.is_participant(user_id):
            raise ValidationError(
                "only the customer or the artist of a booking can act on it",
                {"booking_id": booking.booking_id, "user_id": user_id},
            )

    async def _set_appointment_status(self, booking_id: str, status: str) -> None:
        appointment = await self.appointments.get(booking_id)
        if appointment is None:
            logger.warning("appointment missing booking_id=%s status=%s", booking_id, status)
            return
        await self.appointments.save(
            appointment.model_copy(update={"status": status, "updated_at": datetime.now(timezone.utc)})
        )

    async def _notify(self, booking: BookingRequest, sender_id: str, text: str, kind: MessageKind, metadata: dict) -> None:
        # the transition is already stored; a lost message never undoes it
        try:
            channel_id = await self.messenger.open_channel(booking.customer_id, booking.artist_id, "booking")
            await self.messenger.send(channel_id, sender_id, text, kind, metadata)
        except Exception as e:
            logger.warning("booking message failed booking_id=%s kind=%s err=%s", booking.booking_id, kind, e)
