# inkmatch/domain/services/artist_svc.py
import logging

from inkmatch.core.errors import NotFoundError, ValidationError
from inkmatch.db.store import DocumentStore
from inkmatch.domain.models.artist import ArtistProfile, PortfolioItem
from inkmatch.domain.repositories.artist_repo import ArtistRepo

logger = logging.getLogger(__name__)


async def get_artist_svc(store: DocumentStore, artist_id: str) -> ArtistProfile:
    artist = await ArtistRepo(store).get(artist_id)
    if artist is None:
        raise NotFoundError("artist", artist_id)
    return artist


async def save_artist_svc(store: DocumentStore, artist_id: str, artist: ArtistProfile) -> ArtistProfile:
    """Create or replace an artist profile (whole-document write)."""
    if artist.artist_id != artist_id:
        raise ValidationError("artist_id in body does not match the path", {"path": artist_id, "body": artist.artist_id})
    repo = ArtistRepo(store)
    existing = await repo.get(artist_id)
    if existing is not None:
        artist = artist.model_copy(update={"created_at": existing.created_at})
    saved = await repo.save(artist)
    logger.info(
        "artist saved artist_id=%s created=%s portfolio=%s specialties=%s",
        artist_id, existing is None, len(saved.portfolio), len(saved.specialties),
    )
    return saved


async def replace_portfolio_item_svc(store: DocumentStore, artist_id: str, item_id: str, item: PortfolioItem) -> ArtistProfile:
    """
    Store a new (re-)analysis result for one portfolio item. The item is
    replaced as a whole, so readers see either the old or the new descriptor.
    """
    if item.item_id != item_id:
        raise ValidationError("item_id in body does not match the path", {"path": item_id, "body": item.item_id})
    updated = await ArtistRepo(store).replace_portfolio_item(artist_id, item)
    if updated is None:
        raise NotFoundError("portfolio item", f"{artist_id}/{item_id}")
    logger.info("portfolio item replaced artist_id=%s item_id=%s analysed=%s", artist_id, item_id, item.analysis is not None)
    return updated
