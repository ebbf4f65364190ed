# inkmatch/api/v1/routers/artists.py
from datetime import date, datetime, timezone
from fastapi import APIRouter, Depends, Query
from typing import List
import logging

from inkmatch.api.deps import coordinator_dep, store_dep
from inkmatch.api.v1.schemas.booking import AvailableSlotsOut, ScheduleDayIn, ScheduleOut
from inkmatch.domain.models.artist import ArtistProfile, PortfolioItem
from inkmatch.domain.services.artist_svc import get_artist_svc, replace_portfolio_item_svc, save_artist_svc
from inkmatch.domain.services.negotiation_svc import NegotiationCoordinator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["artists"])


@router.get("/artists/{artist_id}")
async def get_artist(artist_id: str, store = Depends(store_dep)):
    artist = await get_artist_svc(store, artist_id)
    return artist.model_dump(mode="json")


@router.put("/artists/{artist_id}")
async def put_artist(artist_id: str, artist: ArtistProfile, store = Depends(store_dep)):
    saved = await save_artist_svc(store, artist_id, artist)
    return saved.model_dump(mode="json")


@router.put("/artists/{artist_id}/portfolio/{item_id}")
async def put_portfolio_item(artist_id: str, item_id: str, item: PortfolioItem, store = Depends(store_dep)):
    """Replace one portfolio item, typically with a fresh visual analysis."""
    updated = await replace_portfolio_item_svc(store, artist_id, item_id, item)
    return updated.model_dump(mode="json")


@router.get("/artists/{artist_id}/schedule")
async def get_schedule(
    artist_id: str,
    start: date = Query(...),
    end: date = Query(...),
    coordinator: NegotiationCoordinator = Depends(coordinator_dep),
):
    days = await coordinator.get_schedule(artist_id, start, end)
    return ScheduleOut(artist_id=artist_id, days=days, count=len(days)).model_dump(mode="json")


@router.put("/artists/{artist_id}/schedule/{day}")
async def put_schedule_day(
    artist_id: str,
    day: date,
    payload: ScheduleDayIn,
    coordinator: NegotiationCoordinator = Depends(coordinator_dep),
):
    """Publish the artist's windows for one day; booked windows are kept as they are."""
    logger.info("Request: put_schedule_day artist_id=%s day=%s windows=%s", artist_id, day, len(payload.slots))
    saved = await coordinator.set_schedule_day(
        artist_id,
        day,
        [w.to_slot() for w in payload.slots],
        is_holiday=payload.is_holiday,
        note=payload.note,
    )
    return saved.model_dump(mode="json")


@router.get("/artists/{artist_id}/available-slots")
async def available_slots(
    artist_id: str,
    preferred: datetime = Query(..., description="Preferred start; naive values are read in the schedule timezone"),
    duration_minutes: int = Query(..., gt=0),
    alternatives: List[datetime] = Query(default=[]),
    coordinator: NegotiationCoordinator = Depends(coordinator_dep),
):
    days = await coordinator.find_available_slots(artist_id, preferred, duration_minutes, alternatives)
    return AvailableSlotsOut(
        artist_id=artist_id,
        duration_minutes=duration_minutes,
        days=days,
        count=len(days),
        checked_at=datetime.now(timezone.utc),
    ).model_dump(mode="json")
