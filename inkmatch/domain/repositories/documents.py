# inkmatch/domain/repositories/documents.py
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel

def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return value.isoformat()  # BSON has no date-only type
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value

def to_doc(model: BaseModel) -> dict:
    """Model -> store document (BSON-friendly, `_id` added by the store)."""
    return _plain(model.model_dump(mode="python"))

def strip_id(doc: dict) -> dict:
    return {k: v for k, v in doc.items() if k != "_id"}
