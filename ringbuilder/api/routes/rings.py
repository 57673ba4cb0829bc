"""Catalog endpoints for the ring configurator.

Every read goes through ``CatalogCache.ensure_fresh()``, so the first
request after startup (or after the TTL lapses) waits for a refresh.
``/rings``, ``/settings`` and ``/search`` are the same listing under the
names different front-end builds call. The ``/rings/style/...`` family
narrows the catalog by one path criterion.
"""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from ringbuilder.api.deps import error_response, get_catalog
from ringbuilder.catalog.cache import CatalogCache
from ringbuilder.catalog.classifiers import METALS, SHAPES, STYLES
from ringbuilder.catalog.search import price_range, related_rings, search
from ringbuilder.models.contracts import (
    PriceRange,
    RefreshResponse,
    Ring,
    RingDetailResponse,
    RingFilterResponse,
    RingListResponse,
    SearchCriteria,
)

logger = structlog.get_logger()

router = APIRouter(tags=["rings"])

CatalogDep = Annotated[CatalogCache, Depends(get_catalog)]

RING_SIZES = [
    "4", "4.5", "5", "5.5", "6", "6.5", "7", "7.5", "8", "8.5",
    "9", "9.5", "10", "10.5", "11", "11.5", "12",
]  # fmt: skip

SHAPE_ICONS = {
    "ROUND": "○",
    "OVAL": "⬭",
    "PRINCESS": "◇",
    "CUSHION": "▢",
    "EMERALD": "▭",
    "PEAR": "◊",
    "MARQUISE": "◇",
    "RADIANT": "▣",
    "ASSCHER": "□",
    "HEART": "♡",
}

METAL_HEX = {
    "14KW": "#E8E8E8",
    "14KY": "#FFD700",
    "14KR": "#B76E79",
    "18KW": "#F0F0F0",
    "18KY": "#FFCC00",
    "18KR": "#C77B88",
    "PLAT": "#E5E4E2",
}

_ANY = {"", "all"}


def _filter_value(value: str | None) -> str | None:
    """Treat blank and "All" selectors as no filter."""
    if value is None or value.strip().lower() in _ANY:
        return None
    return value.strip()


@router.get("/rings", response_model=RingListResponse)
@router.get("/settings", response_model=RingListResponse)
@router.get("/search", response_model=RingListResponse)
async def list_rings(
    catalog: CatalogDep,
    style: str | None = None,
    metal: str | None = None,
    shape: str | None = None,
    center_shape: Annotated[str | None, Query(alias="centerShape")] = None,
    min_price: Annotated[float | None, Query(alias="minPrice", ge=0)] = None,
    max_price: Annotated[float | None, Query(alias="maxPrice", ge=0)] = None,
    q: str | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int | None, Query(ge=1, le=500)] = None,
) -> RingListResponse:
    criteria = SearchCriteria(
        style=_filter_value(style),
        metal=_filter_value(metal),
        center_shape=_filter_value(center_shape) or _filter_value(shape),
        min_price=min_price,
        max_price=max_price,
        query=q.strip() if q and q.strip() else None,
    )
    rings = await catalog.ensure_fresh()
    results = search(rings, criteria)

    if limit is None:
        return RingListResponse(
            items=results, total_count=len(results), page=1, limit=len(results), has_more=False
        )
    start = (page - 1) * limit
    return RingListResponse(
        items=results[start : start + limit],
        total_count=len(results),
        page=page,
        limit=limit,
        has_more=start + limit < len(results),
    )


@router.get("/rings/series/{series_id}", response_model=list[Ring])
async def rings_in_series(series_id: str, catalog: CatalogDep) -> list[Ring]:
    rings = await catalog.ensure_fresh()
    return [r for r in rings if r.series_id == series_id]


async def _filtered(
    catalog: CatalogCache, criterion: str, value: str, criteria: SearchCriteria
) -> RingFilterResponse:
    rings = await catalog.ensure_fresh()
    results = search(rings, criteria)
    return RingFilterResponse(criterion=criterion, value=value, count=len(results), items=results)


@router.get("/rings/style/{style}", response_model=RingFilterResponse)
@router.get("/rings/by-style/{style}", response_model=RingFilterResponse)
async def rings_by_style(style: str, catalog: CatalogDep) -> RingFilterResponse:
    return await _filtered(catalog, "style", style, SearchCriteria(style=style))


@router.get("/rings/shape/{shape}", response_model=RingFilterResponse)
@router.get("/rings/by-shape/{shape}", response_model=RingFilterResponse)
async def rings_by_shape(shape: str, catalog: CatalogDep) -> RingFilterResponse:
    return await _filtered(catalog, "shape", shape, SearchCriteria(center_shape=shape))


@router.get("/rings/metal/{metal}", response_model=RingFilterResponse)
async def rings_by_metal(metal: str, catalog: CatalogDep) -> RingFilterResponse:
    """Matches a metal code ("PLAT") or any part of a label ("rose")."""
    return await _filtered(catalog, "metal", metal, SearchCriteria(metal=metal))


@router.get("/settings/{sku}", response_model=RingDetailResponse)
async def get_setting(sku: str, catalog: CatalogDep) -> RingDetailResponse | JSONResponse:
    rings = await catalog.ensure_fresh()
    ring = catalog.get(sku)
    if ring is None:
        return error_response(404, "ring_not_found", f"Setting not found: {sku}")
    return RingDetailResponse(ring=ring, related=related_rings(rings, ring))


@router.get("/rings/{ring_id}", response_model=RingDetailResponse)
@router.get("/ring/{ring_id}", response_model=RingDetailResponse)
async def get_ring(ring_id: str, catalog: CatalogDep) -> RingDetailResponse | JSONResponse:
    rings = await catalog.ensure_fresh()
    ring = catalog.get(ring_id)
    if ring is None:
        return error_response(404, "ring_not_found", f"Ring not found: {ring_id}")
    return RingDetailResponse(ring=ring, related=related_rings(rings, ring))


@router.get("/styles")
async def list_styles(catalog: CatalogDep) -> dict:
    """All styles the classifiers know, with counts from the current catalog."""
    counts = catalog.stats()["by_style"]
    return {"data": list(STYLES), "counts": {s: counts.get(s, 0) for s in STYLES}}


@router.get("/shapes")
async def list_shapes() -> dict:
    return {
        "data": [
            {"id": shape, "name": shape.capitalize(), "icon": SHAPE_ICONS[shape]}
            for shape in SHAPES
        ]
    }


@router.get("/metals")
async def list_metals() -> dict:
    return {
        "data": [
            {**METALS[code].model_dump(), "id": code, "hex": hex_color}
            for code, hex_color in METAL_HEX.items()
        ]
    }


@router.get("/sizes")
async def list_sizes() -> dict:
    return {"data": RING_SIZES}


@router.get("/price-range", response_model=PriceRange)
async def get_price_range(catalog: CatalogDep) -> PriceRange:
    rings = await catalog.ensure_fresh()
    return price_range(rings)


@router.api_route("/refresh-cache", methods=["GET", "POST"], response_model=RefreshResponse)
async def refresh_cache(catalog: CatalogDep) -> RefreshResponse:
    """Force a full rebuild from Stuller; joins a refresh already running."""
    logger.info("refresh_cache_requested", already_refreshing=catalog.refreshing)
    rings = await catalog.refresh()
    by_style: dict[str, int] = {}
    for ring in rings:
        by_style[ring.style] = by_style.get(ring.style, 0) + 1
    refreshed_at = catalog.refreshed_at
    return RefreshResponse(
        total=len(rings),
        by_style=by_style,
        refreshed_at=refreshed_at.isoformat() if refreshed_at else None,
    )
