"""Photo-to-catalog matching: Claude reads the ring, the scorer ranks ours."""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ringbuilder.analysis.analyze_ring import (
    AnalysisUnavailableError,
    InvalidImageError,
    RingAnalyzer,
    split_image_payload,
)
from ringbuilder.api.deps import error_response, get_analyzer, get_catalog
from ringbuilder.catalog.cache import CatalogCache
from ringbuilder.matching.scorer import DEFAULT_LIMIT, score
from ringbuilder.models.contracts import AnalyzeRingRequest, AnalyzeRingResponse

logger = structlog.get_logger()

router = APIRouter(tags=["analysis"])


@router.post("/analyze-ring", response_model=AnalyzeRingResponse)
@router.post("/analyze-image", response_model=AnalyzeRingResponse)
async def analyze_ring(
    body: AnalyzeRingRequest,
    catalog: Annotated[CatalogCache, Depends(get_catalog)],
    analyzer: Annotated[RingAnalyzer | None, Depends(get_analyzer)],
) -> AnalyzeRingResponse | JSONResponse:
    try:
        image_data, mime_type = split_image_payload(body.image, body.mime_type)
    except InvalidImageError as exc:
        status = 413 if exc.code == "image_too_large" else 400
        return error_response(status, exc.code, str(exc))

    if analyzer is None:
        return error_response(
            503, "analysis_unavailable", "Image analysis is not configured (ANTHROPIC_API_KEY)"
        )

    try:
        analysis = await analyzer.analyze(image_data, mime_type)
    except AnalysisUnavailableError as exc:
        return error_response(502, "analysis_failed", str(exc), retryable=exc.retryable)

    rings = await catalog.ensure_fresh()
    ranked = score(analysis, rings, limit=None)

    logger.info(
        "analyze_ring_matched",
        catalog_size=len(rings),
        matches=len(ranked),
        top_score=ranked[0].match_score if ranked else None,
        reason=ranked[0].match_reason if ranked else None,
    )

    return AnalyzeRingResponse(
        analysis=analysis,
        matches=ranked[:DEFAULT_LIMIT],
        total_matches=len(ranked),
    )
