"""Catalog filtering for the configurator's list and search endpoints."""

from __future__ import annotations

from collections.abc import Iterable

from ringbuilder.catalog.classifiers import fold
from ringbuilder.models.contracts import PriceRange, Ring, SearchCriteria


def _matches_metal(ring: Ring, wanted: str) -> bool:
    return wanted in fold(ring.metal.label) or wanted == fold(ring.metal.code)


def _matches_query(ring: Ring, query: str) -> bool:
    haystacks = (ring.name, ring.style, ring.metal.label, ring.center_shape, ring.series_id)
    return any(query in h.lower() for h in haystacks)


def search(rings: Iterable[Ring], criteria: SearchCriteria) -> list[Ring]:
    """Return the rings matching every present criterion, in catalog order.

    Style and shape compare exactly after folding; metal and the free-text
    query are substring matches. Price bounds are inclusive. With a query,
    rings whose name contains it are moved ahead of the rest (stable).
    """
    results = list(rings)

    if criteria.style:
        style = fold(criteria.style)
        results = [r for r in results if fold(r.style) == style]

    if criteria.center_shape:
        shape = fold(criteria.center_shape)
        results = [r for r in results if fold(r.center_shape) == shape]

    if criteria.metal:
        metal = fold(criteria.metal)
        results = [r for r in results if _matches_metal(r, metal)]

    if criteria.min_price is not None:
        results = [r for r in results if r.price >= criteria.min_price]

    if criteria.max_price is not None:
        results = [r for r in results if r.price <= criteria.max_price]

    if criteria.query:
        query = criteria.query.strip().lower()
        if query:
            results = [r for r in results if _matches_query(r, query)]
            results.sort(key=lambda r: query not in r.name.lower())

    return results


def related_rings(rings: Iterable[Ring], ring: Ring, limit: int = 6) -> list[Ring]:
    """Other rings sharing the style or series of ``ring``."""
    related = [
        r
        for r in rings
        if r.id != ring.id and (r.style == ring.style or r.series_id == ring.series_id)
    ]
    return related[:limit]


def price_range(rings: Iterable[Ring]) -> PriceRange:
    prices = [r.price for r in rings]
    if not prices:
        return PriceRange(min=0.0, max=0.0, average=0.0)
    return PriceRange(
        min=min(prices),
        max=max(prices),
        average=round(sum(prices) / len(prices), 2),
    )
