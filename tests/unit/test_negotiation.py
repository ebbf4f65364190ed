"""
Unit tests for NegotiationCoordinator against the in-memory store.
"""
import asyncio
from datetime import date, timedelta
from unittest.mock import AsyncMock

import pytest

from inkmatch.core.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    UpstreamUnavailableError,
    ValidationError,
)
from inkmatch.domain.models.booking import (
    AcceptResponse,
    BookingStatus,
    CounterOfferResponse,
    DeclineResponse,
    RequestInfoResponse,
)
from inkmatch.domain.models.schedule import TimeSlot
from inkmatch.domain.repositories.artist_repo import ArtistRepo
from inkmatch.domain.services.booking_state import derive_status
from inkmatch.domain.services.negotiation_svc import NegotiationCoordinator

DAY = date(2030, 5, 14)


@pytest.fixture
def seed_artist(store, make_artist):
    async def _seed(artist_id="artist-1", **overrides):
        return await ArtistRepo(store).save(make_artist(artist_id, **overrides))
    return _seed


@pytest.fixture
def accepted_booking(coordinator, seed_artist, make_details):
    """Create a booking for `customer_id` and have the artist accept it."""
    async def _make(customer_id="cust-1", **details):
        await seed_artist()
        booking = await coordinator.create_booking(customer_id, "artist-1", make_details(**details))
        return await coordinator.respond(booking.booking_id, AcceptResponse(responder_id="artist-1"))
    return _make


def _booked(day):
    return [(s.start.hour, s.end.hour, s.booking_id) for s in day.slots if s.is_booked]


# ---- create_booking ------------------------------------------------------------

@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_booking_stores_pending_request(coordinator, seed_artist, make_details):
    await seed_artist()
    booking = await coordinator.create_booking("cust-1", "artist-1", make_details())

    stored = await coordinator.get_booking(booking.booking_id)
    assert stored == booking
    assert stored.status == BookingStatus.PENDING
    assert stored.version == 0


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_booking_validation(coordinator, seed_artist, make_details, at):
    await seed_artist()
    with pytest.raises(ValidationError):
        await coordinator.create_booking("artist-1", "artist-1", make_details())
    with pytest.raises(ValidationError):
        await coordinator.create_booking("cust-1", "artist-1", make_details(alternative_dates=[at(h) for h in (11, 12, 13, 14)]))
    with pytest.raises(NotFoundError):
        await coordinator.create_booking("cust-1", "nobody", make_details())


@pytest.mark.unit
@pytest.mark.asyncio
async def test_duplicate_active_request_conflicts(coordinator, seed_artist, make_details, at):
    await seed_artist()
    first = await coordinator.create_booking("cust-1", "artist-1", make_details())

    with pytest.raises(ConflictError):
        await coordinator.create_booking("cust-1", "artist-1", make_details(preferred_date=at(18)))

    # outside the window, or once the first one is closed, a new request is fine
    await coordinator.create_booking("cust-1", "artist-1", make_details(preferred_date=at(10) + timedelta(days=3)))
    await coordinator.cancel(first.booking_id, "cust-1", "changed my mind")
    await coordinator.create_booking("cust-1", "artist-1", make_details(preferred_date=at(18)))


@pytest.mark.unit
@pytest.mark.asyncio
async def test_concurrent_duplicate_requests_create_one_booking(coordinator, seed_artist, make_details):
    await seed_artist()
    find_active = coordinator.bookings.find_active_between

    async def slow_find(*args, **kwargs):
        found = await find_active(*args, **kwargs)
        await asyncio.sleep(0)  # let the other request run its check
        return found

    coordinator.bookings.find_active_between = slow_find
    results = await asyncio.gather(
        coordinator.create_booking("cust-1", "artist-1", make_details()),
        coordinator.create_booking("cust-1", "artist-1", make_details()),
        return_exceptions=True,
    )

    assert sorted(type(r).__name__ for r in results) == ["BookingRequest", "ConflictError"]
    assert len(await coordinator.list_bookings("cust-1")) == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_booking_posts_summary(store, settings, seed_artist, make_details):
    messenger = AsyncMock()
    messenger.open_channel.return_value = "artist-1_cust-1"
    coordinator = NegotiationCoordinator(store, messenger, settings)
    await seed_artist()

    booking = await coordinator.create_booking("cust-1", "artist-1", make_details(has_allergies=True, allergy_details="latex"))

    messenger.open_channel.assert_awaited_once_with("cust-1", "artist-1", "booking")
    channel_id, sender, text, kind, metadata = messenger.send.await_args.args
    assert channel_id == "artist-1_cust-1"
    assert sender == "cust-1"
    assert kind == "booking_request"
    assert metadata == {"booking_id": booking.booking_id}
    assert "Allergies: latex" in text
    assert booking.booking_id in text


@pytest.mark.unit
@pytest.mark.asyncio
async def test_messaging_failure_does_not_fail_transition(store, settings, seed_artist, make_details):
    messenger = AsyncMock()
    messenger.open_channel.side_effect = RuntimeError("chat backend down")
    coordinator = NegotiationCoordinator(store, messenger, settings)
    await seed_artist()

    booking = await coordinator.create_booking("cust-1", "artist-1", make_details())
    accepted = await coordinator.respond(booking.booking_id, AcceptResponse(responder_id="artist-1"))

    assert (await coordinator.get_booking(booking.booking_id)).status == BookingStatus.ACCEPTED
    assert accepted.version == 1


# ---- respond -------------------------------------------------------------------

@pytest.mark.unit
@pytest.mark.asyncio
async def test_negotiation_rounds(coordinator, seed_artist, make_details, at):
    await seed_artist()
    booking = await coordinator.create_booking("cust-1", "artist-1", make_details())

    b = await coordinator.respond(booking.booking_id, RequestInfoResponse(responder_id="artist-1", message="Reference?"))
    assert b.status == BookingStatus.NEGOTIATING
    b = await coordinator.respond(booking.booking_id, CounterOfferResponse(responder_id="artist-1", proposed_date=at(14)))
    assert b.status == BookingStatus.NEGOTIATING
    b = await coordinator.respond(booking.booking_id, AcceptResponse(responder_id="cust-1"))
    assert b.status == BookingStatus.ACCEPTED
    assert b.version == 3

    stored = await coordinator.get_booking(booking.booking_id)
    assert [r.kind for r in stored.responses] == ["request_info", "counter_offer", "accept"]
    assert derive_status(stored.responses, stored.actions) == stored.status


@pytest.mark.unit
@pytest.mark.asyncio
async def test_respond_rejects_outsiders_and_closed_bookings(coordinator, seed_artist, make_details):
    await seed_artist()
    booking = await coordinator.create_booking("cust-1", "artist-1", make_details())

    with pytest.raises(ValidationError):
        await coordinator.respond(booking.booking_id, AcceptResponse(responder_id="stranger"))

    await coordinator.respond(booking.booking_id, DeclineResponse(responder_id="artist-1", message="Fully booked"))
    with pytest.raises(InvalidTransitionError):
        await coordinator.respond(booking.booking_id, AcceptResponse(responder_id="artist-1"))

    stored = await coordinator.get_booking(booking.booking_id)
    assert stored.status == BookingStatus.DECLINED
    assert len(stored.responses) == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_concurrent_response_loses_with_conflict(store, coordinator, seed_artist, make_details):
    await seed_artist()
    booking = await coordinator.create_booking("cust-1", "artist-1", make_details())
    stale = await coordinator.get_booking(booking.booking_id)

    await coordinator.respond(booking.booking_id, CounterOfferResponse(responder_id="artist-1", proposed_price=45000))

    # second writer still holds version 0
    coordinator.bookings.get = AsyncMock(return_value=stale)
    with pytest.raises(ConflictError):
        await coordinator.respond(booking.booking_id, AcceptResponse(responder_id="cust-1"))

    stored = await store.get("bookings", booking.booking_id)
    assert stored["status"] == "negotiating"
    assert stored["version"] == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unknown_booking(coordinator):
    with pytest.raises(NotFoundError):
        await coordinator.respond("missing", AcceptResponse(responder_id="artist-1"))


# ---- confirm / cancel / complete -----------------------------------------------

@pytest.mark.unit
@pytest.mark.asyncio
async def test_full_flow_to_completion(coordinator, accepted_booking, at):
    await coordinator.set_schedule_day("artist-1", DAY, [TimeSlot(start=at(9), end=at(18))])
    booking = await accepted_booking()

    confirmed = await coordinator.confirm(booking.booking_id, at(10), 35000, 120)
    assert confirmed.status == BookingStatus.CONFIRMED
    assert confirmed.confirmation.price == 35000

    day = (await coordinator.get_schedule("artist-1", DAY, DAY))[0]
    assert _booked(day) == [(10, 12, booking.booking_id)]
    assert [(s.start.hour, s.end.hour) for s in day.slots if s.is_free] == [(9, 10), (12, 18)]

    appointment = await coordinator.get_appointment(booking.booking_id)
    assert appointment.status == "scheduled"
    assert appointment.starts_at == at(10)

    done = await coordinator.complete(booking.booking_id, "artist-1")
    assert done.status == BookingStatus.COMPLETED
    assert (await coordinator.get_appointment(booking.booking_id)).status == "completed"
    assert derive_status(done.responses, done.actions) == BookingStatus.COMPLETED


@pytest.mark.unit
@pytest.mark.asyncio
async def test_confirm_requires_accepted(coordinator, seed_artist, make_details, at):
    await seed_artist()
    booking = await coordinator.create_booking("cust-1", "artist-1", make_details())
    with pytest.raises(InvalidTransitionError):
        await coordinator.confirm(booking.booking_id, at(10), 35000, 120)
    # nothing was blocked
    assert await coordinator.get_schedule("artist-1", DAY, DAY) == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_complete_requires_confirmed(coordinator, accepted_booking):
    booking = await accepted_booking()
    with pytest.raises(InvalidTransitionError):
        await coordinator.complete(booking.booking_id, "artist-1")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_overlapping_confirm_conflicts(coordinator, accepted_booking, at):
    first = await accepted_booking("cust-1")
    second = await accepted_booking("cust-2")

    await coordinator.confirm(first.booking_id, at(10), 35000, 120)
    with pytest.raises(ConflictError):
        await coordinator.confirm(second.booking_id, at(11), 30000, 120)

    assert (await coordinator.get_booking(second.booking_id)).status == BookingStatus.ACCEPTED
    day = (await coordinator.get_schedule("artist-1", DAY, DAY))[0]
    assert _booked(day) == [(10, 12, first.booking_id)]

    # an adjacent window is fine
    await coordinator.confirm(second.booking_id, at(12), 30000, 120)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_lost_booking_race_releases_blocked_window(coordinator, accepted_booking, at):
    booking = await accepted_booking()
    stale = await coordinator.get_booking(booking.booking_id)
    await coordinator.cancel(booking.booking_id, "cust-1")

    coordinator.bookings.get = AsyncMock(return_value=stale)
    with pytest.raises(ConflictError):
        await coordinator.confirm(booking.booking_id, at(10), 35000, 120)

    day = (await coordinator.get_schedule("artist-1", DAY, DAY))[0]
    assert _booked(day) == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_cancel_releases_only_own_window(coordinator, accepted_booking, at):
    await coordinator.set_schedule_day("artist-1", DAY, [TimeSlot(start=at(9), end=at(18))])
    first = await accepted_booking("cust-1")
    second = await accepted_booking("cust-2")
    await coordinator.confirm(first.booking_id, at(10), 35000, 120)
    await coordinator.confirm(second.booking_id, at(14), 30000, 60)

    cancelled = await coordinator.cancel(first.booking_id, "artist-1", "artist is ill")

    assert cancelled.status == BookingStatus.CANCELLED
    assert cancelled.actions[-1].reason == "artist is ill"
    day = (await coordinator.get_schedule("artist-1", DAY, DAY))[0]
    assert _booked(day) == [(14, 15, second.booking_id)]
    assert [(s.start.hour, s.end.hour) for s in day.slots if s.is_free] == [(9, 14), (15, 18)]
    assert (await coordinator.get_appointment(first.booking_id)).status == "cancelled"
    assert (await coordinator.get_appointment(second.booking_id)).status == "scheduled"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_cancel_retry_finishes_interrupted_release(coordinator, accepted_booking, at):
    await coordinator.set_schedule_day("artist-1", DAY, [TimeSlot(start=at(9), end=at(18))])
    booking = await accepted_booking()
    await coordinator.confirm(booking.booking_id, at(10), 35000, 120)

    write_day = coordinator.schedules.write_day
    coordinator.schedules.write_day = AsyncMock(side_effect=UpstreamUnavailableError("store down"))
    with pytest.raises(UpstreamUnavailableError):
        await coordinator.cancel(booking.booking_id, "cust-1")
    assert (await coordinator.get_booking(booking.booking_id)).status == BookingStatus.CANCELLED

    coordinator.schedules.write_day = write_day
    retried = await coordinator.cancel(booking.booking_id, "cust-1")

    assert retried.status == BookingStatus.CANCELLED
    day = (await coordinator.get_schedule("artist-1", DAY, DAY))[0]
    assert _booked(day) == []
    assert [(s.start.hour, s.end.hour) for s in day.slots if s.is_free] == [(9, 18)]
    assert (await coordinator.get_appointment(booking.booking_id)).status == "cancelled"
    # nothing left to clean up: the booking is terminal again
    with pytest.raises(InvalidTransitionError):
        await coordinator.cancel(booking.booking_id, "cust-1")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_cancel_on_unpublished_day_adds_no_availability(coordinator, accepted_booking, at):
    booking = await accepted_booking()
    await coordinator.confirm(booking.booking_id, at(10), 35000, 120)
    await coordinator.cancel(booking.booking_id, "artist-1")

    assert await coordinator.find_available_slots("artist-1", at(10), 60) == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_cancel_is_terminal(coordinator, accepted_booking):
    booking = await accepted_booking()
    await coordinator.cancel(booking.booking_id, "cust-1")
    with pytest.raises(InvalidTransitionError):
        await coordinator.cancel(booking.booking_id, "cust-1")
    with pytest.raises(ValidationError):
        await coordinator.cancel(booking.booking_id, "stranger")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_appointment_cannot_cross_midnight(coordinator, accepted_booking, at):
    booking = await accepted_booking()
    with pytest.raises(ValidationError):
        await coordinator.confirm(booking.booking_id, at(23), 35000, 120)
    assert (await coordinator.get_booking(booking.booking_id)).status == BookingStatus.ACCEPTED


# ---- schedule ------------------------------------------------------------------

@pytest.mark.unit
@pytest.mark.asyncio
async def test_find_available_slots(coordinator, accepted_booking, at):
    await coordinator.set_schedule_day("artist-1", DAY, [TimeSlot(start=at(9), end=at(18))])
    booking = await accepted_booking()
    await coordinator.confirm(booking.booking_id, at(10), 35000, 120)

    found = await coordinator.find_available_slots("artist-1", at(10), 120, [at(15), at(10) + timedelta(days=1)])

    assert len(found) == 1  # same day listed once; the next day has no schedule
    assert found[0].day == DAY
    assert [(s.start.hour, s.end.hour) for s in found[0].slots] == [(12, 18)]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_set_schedule_day_keeps_booked_windows(coordinator, accepted_booking, at):
    await coordinator.set_schedule_day("artist-1", DAY, [TimeSlot(start=at(9), end=at(18))])
    booking = await accepted_booking()
    await coordinator.confirm(booking.booking_id, at(10), 35000, 120)

    # shrinking the day around the appointment is fine
    day = await coordinator.set_schedule_day("artist-1", DAY, [TimeSlot(start=at(12), end=at(16))], note="short day")
    assert _booked(day) == [(10, 12, booking.booking_id)]
    assert day.note == "short day"

    # publishing over the appointment is not
    with pytest.raises(ConflictError):
        await coordinator.set_schedule_day("artist-1", DAY, [TimeSlot(start=at(9), end=at(18))])


@pytest.mark.unit
@pytest.mark.asyncio
async def test_set_schedule_day_validation(coordinator, at):
    with pytest.raises(ValidationError):
        await coordinator.set_schedule_day("artist-1", DAY, [TimeSlot(start=at(9), end=at(12)), TimeSlot(start=at(11), end=at(13))])
    with pytest.raises(ValidationError):
        await coordinator.set_schedule_day("artist-1", DAY + timedelta(days=1), [TimeSlot(start=at(9), end=at(12))])
    with pytest.raises(ValidationError):
        await coordinator.set_schedule_day("artist-1", DAY, [TimeSlot(start=at(9), end=at(12), is_booked=True, booking_id="x")])


@pytest.mark.unit
@pytest.mark.asyncio
async def test_list_bookings_newest_first(coordinator, seed_artist, make_details, at):
    await seed_artist()
    older = await coordinator.create_booking("cust-1", "artist-1", make_details())
    newer = await coordinator.create_booking("cust-1", "artist-1", make_details(preferred_date=at(10) + timedelta(days=7)))

    as_customer = await coordinator.list_bookings("cust-1", "customer")
    as_artist = await coordinator.list_bookings("artist-1", "artist")

    assert [b.booking_id for b in as_customer] == [newer.booking_id, older.booking_id]
    assert [b.booking_id for b in as_artist] == [newer.booking_id, older.booking_id]
    assert await coordinator.list_bookings("artist-1", "customer") == []
