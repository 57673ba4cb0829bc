"""Request-scoped access to the app's long-lived collaborators.

The catalog cache and ring analyzer are created once in the app lifespan
and stored on ``app.state``. Tests swap them via ``dependency_overrides``.
"""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse

from ringbuilder.analysis.analyze_ring import RingAnalyzer
from ringbuilder.catalog.cache import CatalogCache
from ringbuilder.models.contracts import ErrorResponse


def get_catalog(request: Request) -> CatalogCache:
    return request.app.state.catalog  # type: ignore[no-any-return]


def get_analyzer(request: Request) -> RingAnalyzer | None:
    return getattr(request.app.state, "analyzer", None)


def error_response(
    status: int, code: str, message: str, *, retryable: bool = False
) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content=ErrorResponse(error=code, message=message, retryable=retryable).model_dump(),
    )
