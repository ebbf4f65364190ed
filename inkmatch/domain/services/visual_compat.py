"""
Descriptor-to-descriptor comparison for customer references and portfolio items.

Descriptors come from the external image-analysis collaborator; nothing here
touches pixels. Malformed colors decode as black rather than failing.
"""
import re
from typing import List, NamedTuple, Sequence, Tuple

from inkmatch.domain.models.artist import PortfolioItem, VisualDescriptor

_HEX = re.compile(r"^#?([a-f\d]{2})([a-f\d]{2})([a-f\d]{2})$", re.IGNORECASE)
_COMPLEXITY_LEVEL = {"simple": 0, "moderate": 1, "complex": 2}

# weights of the overall compatibility
W_STYLE = 0.4
W_COLOR = 0.25
W_MOTIF = 0.25
W_COMPLEXITY = 0.1
COLORFUL_AGREEMENT_BONUS = 0.1


class Comparison(NamedTuple):
    style_match: float
    color_similarity: float
    motif_overlap: float
    complexity_similarity: float
    overall: float


class PortfolioMatch(NamedTuple):
    item: PortfolioItem
    comparison: Comparison
    match_score: float


def hex_to_hsl(value: str) -> Tuple[float, float, float]:
    m = _HEX.match(value.strip()) if isinstance(value, str) else None
    r, g, b = (int(x, 16) / 255 for x in m.groups()) if m else (0.0, 0.0, 0.0)
    hi, lo = max(r, g, b), min(r, g, b)
    light = (hi + lo) / 2
    if hi == lo:
        return 0.0, 0.0, light
    d = hi - lo
    sat = d / (2 - hi - lo) if light > 0.5 else d / (hi + lo)
    if hi == r:
        hue = (g - b) / d + (6 if g < b else 0)
    elif hi == g:
        hue = (b - r) / d + 2
    else:
        hue = (r - g) / d + 4
    return hue / 6 * 360, sat, light


def hsl_similarity(a: Tuple[float, float, float], b: Tuple[float, float, float]) -> float:
    raw = abs(a[0] - b[0])
    hue_diff = min(raw, 360 - raw) / 180
    sim = 1 - (hue_diff * 0.5 + abs(a[1] - b[1]) * 0.3 + abs(a[2] - b[2]) * 0.2)
    return max(0.0, sim)


def color_similarity(palette_a: Sequence[str], palette_b: Sequence[str]) -> float:
    if not palette_a and not palette_b:
        return 1.0
    if not palette_a or not palette_b:
        return 0.0
    hsl_a = [hex_to_hsl(c) for c in palette_a]
    hsl_b = [hex_to_hsl(c) for c in palette_b]
    total = sum(hsl_similarity(x, y) for x in hsl_a for y in hsl_b)
    return total / (len(hsl_a) * len(hsl_b))


def motif_overlap(motifs_a: Sequence[str], motifs_b: Sequence[str]) -> float:
    """Jaccard index of the two motif sets."""
    if not motifs_a and not motifs_b:
        return 1.0
    if not motifs_a or not motifs_b:
        return 0.0
    a, b = set(motifs_a), set(motifs_b)
    return len(a & b) / len(a | b)


def complexity_similarity(a: str, b: str) -> float:
    if a == b:
        return 1.0
    diff = abs(_COMPLEXITY_LEVEL.get(a, 1) - _COMPLEXITY_LEVEL.get(b, 1))
    return max(0.0, 1 - diff / 2)


def compare(query: VisualDescriptor, other: VisualDescriptor) -> Comparison:
    style = 1.0 if query.style == other.style else 0.0
    color = color_similarity(query.color_palette, other.color_palette)
    motif = motif_overlap(query.motifs, other.motifs)
    complexity = complexity_similarity(query.complexity, other.complexity)
    overall = style * W_STYLE + color * W_COLOR + motif * W_MOTIF + complexity * W_COMPLEXITY
    return Comparison(style, color, motif, complexity, overall)


def item_match_score(comparison: Comparison, query: VisualDescriptor, other: VisualDescriptor) -> float:
    """Overall compatibility weighted by analysis confidence, plus a colorfulness bonus."""
    score = comparison.overall * ((query.confidence + other.confidence) / 2)
    if query.is_colorful == other.is_colorful:
        score += COLORFUL_AGREEMENT_BONUS
    return min(score, 1.0)


def rank_portfolio(query: VisualDescriptor, portfolio: Sequence[PortfolioItem]) -> List[PortfolioMatch]:
    """Analysed portfolio items ordered by match score (best first, stable)."""
    matches = []
    for item in portfolio:
        if item.analysis is None:
            continue
        comparison = compare(query, item.analysis)
        matches.append(PortfolioMatch(item, comparison, item_match_score(comparison, query, item.analysis)))
    matches.sort(key=lambda m: m.match_score, reverse=True)
    return matches
