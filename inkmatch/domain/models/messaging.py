from pydantic import BaseModel, Field
from typing import Literal, Optional
from datetime import datetime, timezone

MessageKind = Literal[
    "booking_request",
    "booking_response",
    "booking_confirmed",
    "booking_cancelled",
    "booking_completed",
    "system",
]

class OutgoingMessage(BaseModel):
    channel_id: str
    sender_id: str
    text: str
    kind: MessageKind = "system"
    metadata: dict = {}
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    model_config = {"frozen": True}

class DeliveryAck(BaseModel):
    message_id: Optional[str] = None
    delivered: bool
    model_config = {"frozen": True}
