"""
Unit tests for the score calculator.
"""
import pytest

from inkmatch.domain.models.artist import ArtistProfile, PriceTable, Specialty
from inkmatch.domain.models.match import BudgetRange, CustomerQuery, ScoreBreakdown
from inkmatch.domain.services.scoring_svc import (
    artist_score,
    combine,
    design_score,
    distance_score,
    estimate_price,
    match_reasons,
    price_score,
    score_artist,
    style_bonus,
)

BUDGET = BudgetRange(min=30000, max=50000)


@pytest.fixture
def query(descriptor, origin):
    return CustomerQuery(descriptor=descriptor, location=origin, max_radius_km=20, budget=BUDGET)


@pytest.mark.unit
def test_reference_scenario(query, make_artist):
    """3.2 km away, average price 35,000 in a 30-50k budget, 4.8 rating, verified, one 0.9 item."""
    result = score_artist(query, make_artist())

    assert result.distance_km == 3.2
    assert result.distance_text == "3.2km"
    assert result.direction == "N"
    assert result.breakdown.distance == pytest.approx(0.84)
    # in budget, 5,000 off the 40,000 midpoint over a 20,000 width
    assert result.breakdown.price == pytest.approx(0.925)
    assert result.breakdown.artist == pytest.approx(0.86)
    assert result.breakdown.design == pytest.approx(0.9)
    assert result.score == pytest.approx(0.887, abs=1e-3)


@pytest.mark.unit
def test_combined_score_is_exact_weighted_sum(query, make_artist, specialist):
    for artist in (make_artist(), specialist, make_artist("far", location=None, price_table=None)):
        r = score_artist(query, artist)
        b = r.breakdown
        assert r.score == pytest.approx(0.4 * b.design + 0.3 * b.artist + 0.2 * b.price + 0.1 * b.distance)
        assert 0.0 <= r.score <= 1.0


@pytest.mark.unit
def test_incomplete_artist_never_raises(query):
    bare = ArtistProfile(artist_id="bare", display_name="Bare")
    r = score_artist(query, bare)
    assert r.breakdown == ScoreBreakdown(design=0.0, artist=0.0, price=0.5, distance=0.0)
    assert r.score == pytest.approx(0.1)
    assert r.distance_km is None and r.bearing_deg is None
    assert r.distance_text is None and r.direction is None
    assert r.estimated_price == 0
    assert r.top_portfolio == []


@pytest.mark.unit
def test_style_bonus(specialist, make_artist):
    assert style_bonus(specialist, "traditional") == pytest.approx(0.3)
    assert style_bonus(specialist, "realism") == 0.0
    assert style_bonus(make_artist(), "traditional") == 0.0


@pytest.mark.unit
def test_design_score_clamped_with_bonus(specialist, descriptor):
    assert design_score(specialist, descriptor) == 1.0


@pytest.mark.unit
def test_design_score_without_analysed_work_ignores_bonus(specialist, descriptor):
    unanalysed = specialist.model_copy(update={"portfolio": []})
    assert design_score(unanalysed, descriptor) == 0.0


@pytest.mark.unit
def test_artist_score_caps(make_artist):
    veteran = make_artist(rating=5, review_count=500, experience_years=40, portfolio=[], verified=True)
    assert artist_score(veteran) == pytest.approx(1.0)
    novice = make_artist(rating=0, review_count=0, experience_years=0, portfolio=[], verified=False)
    assert artist_score(novice) == 0.0


@pytest.mark.unit
@pytest.mark.parametrize(
    "table,expected",
    [
        (None, 0.5),                                                   # no pricing -> neutral
        (PriceTable(small=0, medium=0, large=0), 0.5),                 # zero average -> neutral
        (PriceTable(small=40000, medium=40000, large=40000), 1.0),     # at midpoint
        (PriceTable(small=30000, medium=30000, large=30000), 0.85),    # budget edge
        (PriceTable(small=25000, medium=25000, large=25000), 0.625),   # below budget
        (PriceTable(small=90000, medium=90000, large=90000), 0.0),     # far above budget
    ],
)
def test_price_score(make_artist, table, expected):
    assert price_score(make_artist(price_table=table), BUDGET) == pytest.approx(expected)


@pytest.mark.unit
def test_price_score_zero_width_budget(make_artist):
    artist = make_artist(price_table=PriceTable(small=30000, medium=30000, large=30000))
    assert price_score(artist, BudgetRange(min=30000, max=30000)) == 1.0


@pytest.mark.unit
def test_distance_score():
    assert distance_score(0, 20) == 1.0
    assert distance_score(5, 20) == pytest.approx(0.75)
    assert distance_score(25, 20) == 0.0
    assert distance_score(None, 20) == 0.0


@pytest.mark.unit
@pytest.mark.parametrize(
    "complexity,table,hourly,expected",
    [
        ("simple", PriceTable(small=12000), None, 12000),
        ("simple", PriceTable(), 8000, 8000),
        ("moderate", PriceTable(), 8000, 16000),
        ("complex", PriceTable(), 8000, 32000),
        ("complex", PriceTable(), None, 60000),
        ("moderate", None, 8000, 0),
    ],
)
def test_estimate_price(make_artist, descriptor, complexity, table, hourly, expected):
    artist = make_artist(price_table=table, hourly_rate=hourly)
    assert estimate_price(artist, descriptor.model_copy(update={"complexity": complexity})) == expected


@pytest.mark.unit
def test_match_reasons_are_ordered_and_capped(specialist, descriptor):
    breakdown = ScoreBreakdown(design=0.9, artist=0.9, price=0.9, distance=0.9)
    reasons = match_reasons(breakdown, specialist, descriptor)
    assert len(reasons) == 3
    assert reasons[0].startswith("Their portfolio")
    assert "Specializes in traditional" not in reasons


@pytest.mark.unit
def test_match_reasons_mention_specialty(specialist, descriptor):
    breakdown = ScoreBreakdown(design=0.1, artist=0.1, price=0.1, distance=0.1)
    assert match_reasons(breakdown, specialist, descriptor) == ["Specializes in traditional"]


@pytest.mark.unit
def test_combine_weights():
    assert combine(ScoreBreakdown(design=1, artist=0, price=0, distance=0)) == pytest.approx(0.4)
    assert combine(ScoreBreakdown(design=0, artist=1, price=0, distance=0)) == pytest.approx(0.3)
    assert combine(ScoreBreakdown(design=0, artist=0, price=1, distance=0)) == pytest.approx(0.2)
    assert combine(ScoreBreakdown(design=0, artist=0, price=0, distance=1)) == pytest.approx(0.1)
