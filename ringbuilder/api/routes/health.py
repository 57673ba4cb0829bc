"""Health check with catalog cache stats.

Always 200 while the process is up; an empty or stale catalog is
reported, not treated as unhealthy.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from ringbuilder import __version__
from ringbuilder.analysis.analyze_ring import RingAnalyzer
from ringbuilder.api.deps import get_analyzer, get_catalog
from ringbuilder.catalog.cache import CatalogCache
from ringbuilder.config import settings
from ringbuilder.models.contracts import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(
    catalog: Annotated[CatalogCache, Depends(get_catalog)],
    analyzer: Annotated[RingAnalyzer | None, Depends(get_analyzer)],
) -> HealthResponse:
    return HealthResponse(
        version=__version__,
        environment=settings.environment,
        has_anthropic_key=analyzer is not None,
        **catalog.stats(),
    )
