# inkmatch/api/v1/schemas/booking.py
from datetime import datetime
from pydantic import AwareDatetime, BaseModel, Field
from typing import List, Literal, Optional

from inkmatch.domain.models.booking import (
    AcceptResponse,
    BookingRequest,
    BookingResponse,
    CounterOfferResponse,
    DeclineResponse,
    RequestInfoResponse,
    TattooDetails,
)
from inkmatch.domain.models.schedule import AvailableDay, ScheduleDay, TimeSlot

_RESPONSE_TYPES = {
    "accept": AcceptResponse,
    "decline": DeclineResponse,
    "counter_offer": CounterOfferResponse,
    "request_info": RequestInfoResponse,
}


class BookingCreateIn(BaseModel):
    customer_id: str
    artist_id: str
    details: TattooDetails


class RespondIn(BaseModel):
    kind: Literal["accept", "decline", "counter_offer", "request_info"]
    responder_id: str
    message: str = ""
    proposed_date: Optional[AwareDatetime] = None
    proposed_price: Optional[float] = None
    proposed_duration: Optional[int] = None

    def to_response(self) -> BookingResponse:
        """Flat request body -> the tagged response model (validated there)."""
        fields = self.model_dump(exclude_none=True)
        return _RESPONSE_TYPES[fields.pop("kind")](**fields)


class ConfirmIn(BaseModel):
    date: AwareDatetime
    price: float = Field(ge=0)
    duration_minutes: int = Field(gt=0)


class CancelIn(BaseModel):
    by: str
    reason: str = ""


class CompleteIn(BaseModel):
    by: str


class BookingListOut(BaseModel):
    items: List[BookingRequest]
    count: int


# ---- Schedule ----------------------------------------------------------------

class WindowIn(BaseModel):
    start: AwareDatetime
    end: AwareDatetime
    is_available: bool = True

    def to_slot(self) -> TimeSlot:
        return TimeSlot(start=self.start, end=self.end, is_available=self.is_available)


class ScheduleDayIn(BaseModel):
    slots: List[WindowIn] = Field(default_factory=list)
    is_holiday: bool = False
    note: Optional[str] = None


class ScheduleOut(BaseModel):
    artist_id: str
    days: List[ScheduleDay]
    count: int


class AvailableSlotsOut(BaseModel):
    artist_id: str
    duration_minutes: int
    days: List[AvailableDay]
    count: int
    checked_at: datetime
