"""Rank catalog rings against a vision-model guess of a customer's photo.

Scoring is an additive weighted sum of independent factors:

    style    60 exact (40 when one name contains the other)
    shape    30
    metal    20
    features  5 each, at most 15
    CDN image 3  (tie-breaker only)

The total is clamped to 99 so no match reads as certain. Rings at or below
the threshold are dropped. When nothing clears it, the result falls back
to rings of the analysed style ("Style Match"), then to the head of the
catalog ("Catalog Item").
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from urllib.parse import urlparse

from ringbuilder.catalog.classifiers import fold
from ringbuilder.models.contracts import AnalysisResult, MatchReason, RankedRing, Ring

STYLE_EXACT_POINTS = 60
STYLE_PARTIAL_POINTS = 40
SHAPE_POINTS = 30
METAL_POINTS = 20
FEATURE_POINTS = 5
FEATURE_POINTS_CAP = 15
CDN_IMAGE_POINTS = 3

MAX_SCORE = 99
MIN_SCORE = 20
DEFAULT_LIMIT = 12

CDN_DOMAINS = ("stullercloud.com", "stuller.com")

_UNKNOWN = "unknown"
_GOLD_RE = re.compile(r"gold|\s+", re.IGNORECASE)


def _known(value: str | None) -> str:
    """Folded value, or "" when the model could not tell."""
    folded = fold(value)
    return "" if folded == _UNKNOWN else folded


def _style_points(analysis_style: str, ring: Ring) -> int:
    if not analysis_style:
        return 0
    ring_style = fold(ring.style)
    if ring_style == analysis_style:
        return STYLE_EXACT_POINTS
    if ring_style in analysis_style or analysis_style in ring_style:
        return STYLE_PARTIAL_POINTS
    return 0


def _metal_points(analysis_metal: str | None, ring: Ring) -> int:
    if not analysis_metal or fold(analysis_metal) == _UNKNOWN:
        return 0
    wanted = _GOLD_RE.sub("", analysis_metal).lower()
    if not wanted:
        return 0
    label = re.sub(r"\s+", "", ring.metal.label).lower()
    if wanted in label or wanted == ring.metal.code.lower():
        return METAL_POINTS
    return 0


def _shape_points(analysis_shape: str, ring: Ring) -> int:
    if analysis_shape and analysis_shape == fold(ring.center_shape):
        return SHAPE_POINTS
    return 0


def _feature_points(features: Sequence[str], ring: Ring) -> int:
    haystack = f"{ring.name} {ring.description} {ring.style}".lower()
    points = 0
    for feature in features:
        keyword = feature.strip().lower()
        if keyword and keyword != _UNKNOWN and keyword in haystack:
            points += FEATURE_POINTS
    return min(points, FEATURE_POINTS_CAP)


def _cdn_points(ring: Ring) -> int:
    image = ring.primary_image
    if not image:
        return 0
    host = (urlparse(image).hostname or "").lower()
    if any(host == d or host.endswith("." + d) for d in CDN_DOMAINS):
        return CDN_IMAGE_POINTS
    return 0


def score_ring(analysis: AnalysisResult, ring: Ring) -> tuple[int, list[str]]:
    """Score one ring; returns (clamped score, factors that contributed)."""
    contributions = {
        "style": _style_points(_known(analysis.style), ring),
        "metal": _metal_points(analysis.metal, ring),
        "shape": _shape_points(_known(analysis.shape), ring),
        "features": _feature_points(analysis.features, ring),
        "image": _cdn_points(ring),
    }
    total = min(sum(contributions.values()), MAX_SCORE)
    matched_on = [name for name, points in contributions.items() if points and name != "image"]
    return total, matched_on


def _ranked(ring: Ring, points: int, reason: MatchReason, matched_on: list[str]) -> RankedRing:
    return RankedRing(
        **ring.model_dump(),
        match_score=points,
        match_reason=reason,
        matched_on=matched_on,
    )


def score(
    analysis: AnalysisResult,
    catalog: Sequence[Ring],
    limit: int | None = DEFAULT_LIMIT,
) -> list[RankedRing]:
    """Top ``limit`` rings for ``analysis``, best first, ties in catalog order.

    ``limit=None`` returns every ring of the winning tier.
    """
    scored = [(ring, *score_ring(analysis, ring)) for ring in catalog]
    above = [entry for entry in scored if entry[1] > MIN_SCORE]

    if above:
        above.sort(key=lambda entry: entry[1], reverse=True)
        return [_ranked(ring, s, "AI Match", on) for ring, s, on in above[:limit]]

    style = _known(analysis.style)
    if style:
        same_style = [entry for entry in scored if fold(entry[0].style) == style]
        if same_style:
            return [_ranked(ring, s, "Style Match", on) for ring, s, on in same_style[:limit]]

    return [_ranked(ring, s, "Catalog Item", on) for ring, s, on in scored[:limit]]
