from __future__ import annotations
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union
from datetime import datetime, timezone
from uuid import uuid4

from pydantic import AwareDatetime, BaseModel, Field, model_validator

from inkmatch.domain.models.match import BudgetRange


def _now() -> datetime:
    return datetime.now(timezone.utc)

def _new_id() -> str:
    return uuid4().hex


class BookingStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    NEGOTIATING = "negotiating"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

TERMINAL_STATUSES = frozenset({BookingStatus.DECLINED, BookingStatus.COMPLETED, BookingStatus.CANCELLED})
ACTIVE_STATUSES = frozenset(set(BookingStatus) - TERMINAL_STATUSES)

SizeClass = Literal["small", "medium", "large"]


class TattooDetails(BaseModel):
    description: str = Field(min_length=1)
    body_location: str
    size: SizeClass = "medium"
    preferred_date: AwareDatetime
    alternative_dates: List[AwareDatetime] = []
    duration_minutes: int = Field(gt=0)
    budget: BudgetRange
    has_allergies: bool = False
    allergy_details: Optional[str] = None
    notes: Optional[str] = None
    model_config = {"frozen": True}


# ----- Responses (closed union on `kind`) -------------------------------------

class _ResponseBase(BaseModel):
    response_id: str = Field(default_factory=_new_id)
    responder_id: str
    message: str = ""
    created_at: datetime = Field(default_factory=_now)
    model_config = {"frozen": True}

class AcceptResponse(_ResponseBase):
    kind: Literal["accept"] = "accept"

class DeclineResponse(_ResponseBase):
    kind: Literal["decline"] = "decline"

class CounterOfferResponse(_ResponseBase):
    kind: Literal["counter_offer"] = "counter_offer"
    proposed_date: Optional[AwareDatetime] = None
    proposed_price: Optional[float] = Field(default=None, ge=0)
    proposed_duration: Optional[int] = Field(default=None, gt=0)

    @model_validator(mode="after")
    def _proposes_something(self):
        if self.proposed_date is None and self.proposed_price is None and self.proposed_duration is None:
            raise ValueError("a counter offer must propose a date, price or duration")
        return self

class RequestInfoResponse(_ResponseBase):
    kind: Literal["request_info"] = "request_info"

BookingResponse = Annotated[
    Union[AcceptResponse, DeclineResponse, CounterOfferResponse, RequestInfoResponse],
    Field(discriminator="kind"),
]


# ----- Actions (closed union on `kind`) ---------------------------------------

class _ActionBase(BaseModel):
    created_at: datetime = Field(default_factory=_now)
    model_config = {"frozen": True}

class ConfirmAction(_ActionBase):
    kind: Literal["confirm"] = "confirm"
    date: AwareDatetime
    price: float = Field(ge=0)
    duration_minutes: int = Field(gt=0)

class CancelAction(_ActionBase):
    kind: Literal["cancel"] = "cancel"
    by: str
    reason: str = ""

class CompleteAction(_ActionBase):
    kind: Literal["complete"] = "complete"
    by: str

BookingAction = Annotated[
    Union[ConfirmAction, CancelAction, CompleteAction],
    Field(discriminator="kind"),
]


class BookingRequest(BaseModel):
    """
    A customer's request to one artist and its negotiation log.
    `status` is only ever produced by the state machine (see booking_state);
    `version` is the optimistic-concurrency token bumped on every write.
    """
    booking_id: str = Field(default_factory=_new_id)
    customer_id: str
    artist_id: str
    details: TattooDetails
    status: BookingStatus = BookingStatus.PENDING
    responses: List[BookingResponse] = []
    actions: List[BookingAction] = []
    version: int = 0
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    model_config = {"frozen": True}

    @property
    def confirmation(self) -> Optional[ConfirmAction]:
        for a in self.actions:
            if isinstance(a, ConfirmAction):
                return a
        return None

    def is_participant(self, user_id: str) -> bool:
        return user_id in (self.customer_id, self.artist_id)


AppointmentStatus = Literal["scheduled", "completed", "cancelled"]

class ConfirmedAppointment(BaseModel):
    booking_id: str
    customer_id: str
    artist_id: str
    starts_at: datetime
    duration_minutes: int
    price: float
    description: str
    body_location: str
    status: AppointmentStatus = "scheduled"
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)
    model_config = {"frozen": True}
