# inkmatch/domain/repositories/artist_repo.py

from __future__ import annotations
from typing import Optional, List
from datetime import datetime, timezone
import logging

from pydantic import ValidationError as PydanticValidationError

from inkmatch.db.store import DocumentStore
from inkmatch.domain.models.artist import ArtistProfile, PortfolioItem
from inkmatch.domain.repositories.documents import strip_id, to_doc
from inkmatch.domain.services.geo import BoundingBox

logger = logging.getLogger(__name__)

class ArtistRepo:
    """
    Artist repository backed by the 'artists' collection.
    Locations are stored as location.latitude / location.longitude for range queries.
    """

    def __init__(self, store: DocumentStore, collection_name: str = "artists"):
        self.store = store
        self.col = collection_name

    async def get(self, artist_id: str) -> Optional[ArtistProfile]:
        doc = await self.store.get(self.col, artist_id)
        return ArtistProfile.model_validate(strip_id(doc)) if doc else None

    async def get_many(self, ids: List[str]) -> List[ArtistProfile]:
        if not ids:
            return []
        docs = await self.store.find(self.col, {"artist_id": {"$in": ids}})
        artists = []
        for d in docs:
            try:
                artists.append(ArtistProfile.model_validate(strip_id(d)))
            except PydanticValidationError as e:
                # a malformed profile is skipped, never fatal for a search
                logger.warning("artist doc invalid artist_id=%s err=%s", d.get("artist_id"), e)
        return artists

    async def save(self, artist: ArtistProfile) -> ArtistProfile:
        now = datetime.now(timezone.utc)
        artist = artist.model_copy(update={"updated_at": now, "created_at": artist.created_at or now})
        await self.store.upsert(self.col, artist.artist_id, to_doc(artist))
        return artist

    async def ids_in_box(self, box: BoundingBox) -> List[str]:
        """Active artists whose registered location lies inside the box (ids, sorted)."""
        ids: set[str] = set()
        for west, east in box.longitude_ranges():
            docs = await self.store.find(
                self.col,
                {
                    "is_active": True,
                    "location.latitude": {"$gte": box.south, "$lte": box.north},
                    "location.longitude": {"$gte": west, "$lte": east},
                },
            )
            ids.update(d["artist_id"] for d in docs)
        return sorted(ids)

    async def replace_portfolio_item(self, artist_id: str, item: PortfolioItem) -> Optional[ArtistProfile]:
        """
        Swap one portfolio item (e.g. after re-analysis) as a single write.
        Returns None if the artist or item does not exist.
        """
        artist = await self.get(artist_id)
        if artist is None or not any(p.item_id == item.item_id for p in artist.portfolio):
            return None
        portfolio = [item if p.item_id == item.item_id else p for p in artist.portfolio]
        return await self.save(artist.model_copy(update={"portfolio": portfolio}))
