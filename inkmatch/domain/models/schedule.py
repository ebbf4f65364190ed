from pydantic import AwareDatetime, BaseModel, Field, model_validator
from typing import Optional, List
from datetime import date, datetime, timedelta

class Window(BaseModel):
    start: AwareDatetime
    end: AwareDatetime
    model_config = {"frozen": True}

class TimeSlot(BaseModel):
    start: AwareDatetime
    end: AwareDatetime
    is_available: bool = True
    is_booked: bool = False
    booking_id: Optional[str] = None
    # booked slots only: the free time they displaced, handed back on release
    restores: List[Window] = []
    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _ordered(self):
        if self.end <= self.start:
            raise ValueError("slot end must be after start")
        return self

    @property
    def duration_minutes(self) -> float:
        return (self.end - self.start) / timedelta(minutes=1)

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start < end and self.end > start

    @property
    def is_free(self) -> bool:
        return self.is_available and not self.is_booked

class ScheduleDay(BaseModel):
    """One artist's windows for one calendar day; `version` guards concurrent writers."""
    artist_id: str
    day: date
    slots: List[TimeSlot] = []
    is_holiday: bool = False
    note: Optional[str] = None
    version: int = 0
    model_config = {"frozen": True}

    @property
    def doc_id(self) -> str:
        return schedule_doc_id(self.artist_id, self.day)

def schedule_doc_id(artist_id: str, day: date) -> str:
    return f"{artist_id}:{day.isoformat()}"

class AvailableDay(BaseModel):
    day: date
    slots: List[TimeSlot] = Field(default_factory=list)
