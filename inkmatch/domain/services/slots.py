# inkmatch/domain/services/slots.py
"""Pure window arithmetic on one artist-day. No I/O; the coordinator persists the result."""
from datetime import date, datetime, timedelta
from typing import List, Optional
from zoneinfo import ZoneInfo

from inkmatch.core.errors import ConflictError, ValidationError
from inkmatch.domain.models.schedule import ScheduleDay, TimeSlot, Window


def local_day(moment: datetime, tz: ZoneInfo) -> date:
    if moment.tzinfo is None:
        return moment.date()  # already wall-clock time in `tz`
    return moment.astimezone(tz).date()


def appointment_window(start: datetime, duration_minutes: int, tz: ZoneInfo):
    """(day, start, end) for an appointment; it must not run past local midnight."""
    end = start + timedelta(minutes=duration_minutes)
    day = local_day(start, tz)
    last = local_day(end - timedelta(microseconds=1), tz)
    if last != day:
        raise ValidationError(
            "appointment must start and end on the same day",
            {"start": start.isoformat(), "end": end.isoformat(), "timezone": str(tz)},
        )
    return day, start, end


def _sorted(slots: List[TimeSlot]) -> List[TimeSlot]:
    return sorted(slots, key=lambda s: (s.start, s.end))


def block_window(day: ScheduleDay, start: datetime, end: datetime, booking_id: str) -> Optional[ScheduleDay]:
    """
    Return `day` with exactly [start, end) booked for `booking_id`.

    Free windows that overlap are split around the booked window; windows marked
    unavailable are left as they are. Overlap with a window booked by another
    booking raises ConflictError. Returns None when the window is already booked
    for this booking (replay).
    """
    for s in day.slots:
        if s.is_booked and s.overlaps(start, end):
            if s.booking_id == booking_id and s.start == start and s.end == end:
                return None
            raise ConflictError(
                "time slot already booked",
                {
                    "artist_id": day.artist_id,
                    "day": day.day.isoformat(),
                    "start": s.start.isoformat(),
                    "end": s.end.isoformat(),
                },
            )

    slots: List[TimeSlot] = []
    displaced: List[Window] = []
    for s in day.slots:
        if not (s.is_free and s.overlaps(start, end)):
            slots.append(s)
            continue
        displaced.append(Window(start=max(s.start, start), end=min(s.end, end)))
        if s.start < start:
            slots.append(s.model_copy(update={"end": start}))
        if s.end > end:
            slots.append(s.model_copy(update={"start": end}))

    slots.append(TimeSlot(
        start=start, end=end, is_available=True, is_booked=True, booking_id=booking_id,
        restores=sorted(displaced, key=lambda w: w.start),
    ))
    return day.model_copy(update={"slots": _sorted(slots)})


def release_booking(day: ScheduleDay, booking_id: str) -> Optional[ScheduleDay]:
    """
    Drop every window tagged with `booking_id` and give back only the free time
    it displaced, merged with adjacent free windows. Time that was never
    published free stays unpublished. None if nothing was tagged.
    """
    if not any(s.booking_id == booking_id for s in day.slots):
        return None

    freed: List[TimeSlot] = []
    for s in day.slots:
        if s.booking_id != booking_id:
            freed.append(s)
            continue
        freed.extend(TimeSlot(start=w.start, end=w.end) for w in s.restores)
    merged: List[TimeSlot] = []
    for s in _sorted(freed):
        prev = merged[-1] if merged else None
        if prev is not None and prev.is_free and s.is_free and prev.end >= s.start:
            merged[-1] = prev.model_copy(update={"end": max(prev.end, s.end)})
        else:
            merged.append(s)
    return day.model_copy(update={"slots": merged})


def free_windows(day: ScheduleDay, duration_minutes: int) -> List[TimeSlot]:
    if day.is_holiday:
        return []
    return [s for s in day.slots if s.is_free and s.duration_minutes >= duration_minutes]


def booked_windows(day: ScheduleDay) -> List[TimeSlot]:
    return [s for s in day.slots if s.is_booked]
