import logging
from typing import List, Optional

from inkmatch.domain.models.artist import ArtistProfile, VisualDescriptor
from inkmatch.domain.models.match import BudgetRange, CustomerQuery, MatchResult, ScoreBreakdown
from inkmatch.domain.services import constants as C
from inkmatch.domain.services.geo import bearing_deg, bearing_text, distance_km, format_distance
from inkmatch.domain.services.visual_compat import compare, rank_portfolio

logger = logging.getLogger(__name__)


def _clamp(x: float) -> float:
    return max(0.0, min(1.0, x))


def style_bonus(artist: ArtistProfile, style: str) -> float:
    specialty = artist.specialty_for(style)
    if specialty is None:
        return 0.0
    proficiency = (specialty.proficiency_level - 1) * C.PROFICIENCY_STEP
    years = min(specialty.experience_years * C.SPECIALTY_YEAR_STEP, C.SPECIALTY_YEAR_CAP)
    return proficiency + years


def design_score(artist: ArtistProfile, descriptor: VisualDescriptor) -> float:
    """Mean portfolio compatibility plus style specialization bonus; 0 without analysed work."""
    analysed = [item.analysis for item in artist.portfolio if item.analysis is not None]
    if not analysed:
        return 0.0
    average = sum(compare(descriptor, a).overall for a in analysed) / len(analysed)
    return _clamp(average + style_bonus(artist, descriptor.style))


def artist_score(artist: ArtistProfile) -> float:
    rating = (artist.rating / 5.0) * C.RATING_WEIGHT
    reviews = min(artist.review_count * C.REVIEW_STEP, C.REVIEW_CAP)
    experience = min(artist.experience_years * C.EXPERIENCE_STEP, C.EXPERIENCE_CAP)
    portfolio = min(len(artist.portfolio) * C.PORTFOLIO_STEP, C.PORTFOLIO_CAP)
    verified = C.VERIFIED_BONUS if artist.verified else 0.0
    return _clamp(rating + reviews + experience + portfolio + verified)


def price_score(artist: ArtistProfile, budget: BudgetRange) -> float:
    if artist.price_table is None:
        return C.NEUTRAL_PRICE_SCORE
    avg = artist.price_table.average()
    if avg == 0:
        return C.NEUTRAL_PRICE_SCORE

    mid = budget.midpoint
    if budget.contains(avg):
        # closer to the middle of the budget scores higher
        deviation = abs(avg - mid) / budget.width if budget.width > 0 else 0.0
        return _clamp(1.0 - deviation * C.IN_BUDGET_PENALTY)

    if mid <= 0:
        return 0.0
    return _clamp(1.0 - abs(avg - mid) / mid)


def distance_score(distance: Optional[float], max_radius_km: float) -> float:
    if distance is None or max_radius_km <= 0 or distance > max_radius_km:
        return 0.0
    return _clamp(1.0 - distance / max_radius_km)


def combine(breakdown: ScoreBreakdown) -> float:
    return _clamp(
        breakdown.design * C.W_DESIGN
        + breakdown.artist * C.W_ARTIST
        + breakdown.price * C.W_PRICE
        + breakdown.distance * C.W_DISTANCE
    )


def estimate_price(artist: ArtistProfile, descriptor: VisualDescriptor) -> float:
    table = artist.price_table
    if table is None:
        return 0.0
    hourly = artist.hourly_rate or 0
    if descriptor.complexity == "simple":
        return table.small or hourly or C.DEFAULT_PRICE_SIMPLE
    if descriptor.complexity == "complex":
        return table.large or hourly * 4 or C.DEFAULT_PRICE_COMPLEX
    return table.medium or hourly * 2 or C.DEFAULT_PRICE_MODERATE


def match_reasons(breakdown: ScoreBreakdown, artist: ArtistProfile, descriptor: VisualDescriptor) -> List[str]:
    reasons: List[str] = []

    if breakdown.design > 0.8:
        reasons.append("Their portfolio closely matches the design style you want")
    elif breakdown.design > 0.6:
        reasons.append("Good design style compatibility")

    if breakdown.artist > 0.8:
        reasons.append("Highly rated and experienced artist")
    elif breakdown.artist > 0.6:
        reasons.append("Skilled artist with solid experience")

    if breakdown.price > 0.8:
        reasons.append("Pricing fits your budget very well")
    elif breakdown.price > 0.6:
        reasons.append("Can work within your budget")

    if breakdown.distance > 0.8:
        reasons.append("Studio is close to you")

    if artist.specialty_for(descriptor.style) is not None:
        reasons.append(f"Specializes in {descriptor.style}")

    return reasons[: C.MAX_REASONS]


def score_artist(query: CustomerQuery, artist: ArtistProfile) -> MatchResult:
    """
    Score one (query, artist) pair. Pure and non-raising: missing artist data
    only lowers the sub-scores.
    """
    descriptor = query.descriptor

    dist = distance_km(query.location, artist.location) if artist.location else None
    bearing = bearing_deg(query.location, artist.location) if artist.location else None

    breakdown = ScoreBreakdown(
        design=design_score(artist, descriptor),
        artist=artist_score(artist),
        price=price_score(artist, query.budget),
        distance=distance_score(dist, query.max_radius_km),
    )

    ranked = rank_portfolio(descriptor, artist.portfolio)
    result = MatchResult(
        artist_id=artist.artist_id,
        display_name=artist.display_name,
        score=combine(breakdown),
        breakdown=breakdown,
        distance_km=dist,
        bearing_deg=bearing,
        distance_text=format_distance(dist) if dist is not None else None,
        direction=bearing_text(bearing) if bearing is not None else None,
        estimated_price=estimate_price(artist, descriptor),
        compatibility=ranked[0].match_score if ranked else 0.0,
        top_portfolio=[m.item for m in ranked[: C.TOP_PORTFOLIO_K]],
        reasons=match_reasons(breakdown, artist, descriptor),
    )
    logger.debug(
        "scored artist_id=%s score=%.3f design=%.3f artist=%.3f price=%.3f distance=%.3f dist_km=%s",
        artist.artist_id, result.score, breakdown.design, breakdown.artist, breakdown.price, breakdown.distance, dist,
    )
    return result
