from fastapi import Header
from typing import Literal

ApiVersion = Literal["v1"]

_KNOWN: dict[str, ApiVersion] = {"1": "v1", "v1": "v1"}

async def resolve_version(
    x_api_version: str | None = Header(default=None),
) -> ApiVersion:
    """
    Dependency to resolve API version from the 'X-API-Version' header (1/v1).
    Unknown or missing values fall back to v1. The version is part of the
    match cache key, so payloads of different versions never share entries.
    """
    return _KNOWN.get((x_api_version or "").strip().lower(), "v1")
