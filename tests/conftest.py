"""
Shared fixtures: an in-memory store, a coordinator wired to it, and factories
for artists and booking details.
"""
from datetime import datetime, timezone

import pytest

from inkmatch.core.config import Settings
from inkmatch.db.store import InMemoryDocumentStore
from inkmatch.domain.models.artist import (
    ArtistProfile,
    GeoPoint,
    PortfolioItem,
    PriceTable,
    Specialty,
    VisualDescriptor,
)
from inkmatch.domain.models.booking import TattooDetails
from inkmatch.domain.models.match import BudgetRange
from inkmatch.domain.services.messaging_svc import LogMessenger
from inkmatch.domain.services.negotiation_svc import NegotiationCoordinator

ORIGIN = GeoPoint(latitude=35.0, longitude=139.0)
BOOKING_DAY = datetime(2030, 5, 14, tzinfo=timezone.utc)


@pytest.fixture
def settings():
    return Settings(schedule_timezone="UTC", min_match_score=0.2, match_result_limit=20)


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def messenger():
    return LogMessenger()


@pytest.fixture
def coordinator(store, messenger, settings):
    return NegotiationCoordinator(store, messenger, settings)


@pytest.fixture
def origin():
    return ORIGIN


@pytest.fixture
def at():
    """Datetime on the shared booking day (UTC)."""
    def _at(hour: int, minute: int = 0) -> datetime:
        return BOOKING_DAY.replace(hour=hour, minute=minute)
    return _at


@pytest.fixture
def descriptor():
    return VisualDescriptor(
        style="traditional",
        color_palette=["#ff0000"],
        is_colorful=True,
        motifs=["rose", "dagger", "swallow"],
        complexity="moderate",
    )


@pytest.fixture
def make_artist(descriptor):
    def _make(artist_id: str = "artist-1", **overrides) -> ArtistProfile:
        fields = dict(
            artist_id=artist_id,
            display_name=f"Artist {artist_id}",
            location=GeoPoint(latitude=35.02878, longitude=139.0),  # ~3.2 km north of ORIGIN
            price_table=PriceTable(small=20000, medium=35000, large=50000),
            rating=4.8,
            review_count=7,
            experience_years=12,
            verified=True,
            portfolio=[
                PortfolioItem(
                    item_id=f"{artist_id}-p1",
                    image_url=f"https://img.example/{artist_id}/1.jpg",
                    analysis=descriptor.model_copy(update={"motifs": ["rose", "dagger", "swallow", "anchor", "heart"]}),
                ),
            ],
        )
        fields.update(overrides)
        return ArtistProfile(**fields)
    return _make


@pytest.fixture
def make_details():
    def _make(**overrides) -> TattooDetails:
        fields = dict(
            description="Traditional rose with a dagger",
            body_location="left forearm",
            size="medium",
            preferred_date=BOOKING_DAY.replace(hour=10),
            duration_minutes=120,
            budget=BudgetRange(min=30000, max=50000),
        )
        fields.update(overrides)
        return TattooDetails(**fields)
    return _make


@pytest.fixture
def specialist(make_artist):
    """Artist with a traditional specialty at max proficiency."""
    return make_artist(
        "artist-spec",
        specialties=[Specialty(style="traditional", proficiency_level=5, experience_years=20)],
    )
