import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import anthropic
import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ringbuilder import __version__
from ringbuilder.analysis.analyze_ring import RingAnalyzer
from ringbuilder.api.routes import analyze, health, rings
from ringbuilder.catalog.cache import CatalogCache
from ringbuilder.config import settings
from ringbuilder.logging import configure_logging
from ringbuilder.upstream.auth import AuthConfigError, build_authenticator
from ringbuilder.upstream.stuller import StullerClient

configure_logging()

logger = structlog.get_logger()


def build_stuller_client() -> StullerClient:
    try:
        auth = build_authenticator(settings)
    except AuthConfigError as exc:
        # Keep serving; every fetch will fail closed and the catalog stays empty.
        logger.error("stuller_auth_not_configured", mode=settings.stuller_auth_mode, error=str(exc))
        auth = None
    return StullerClient(
        settings.stuller_api_base,
        auth,
        timeout=settings.stuller_timeout_seconds,
    )


def build_analyzer() -> RingAnalyzer | None:
    if not settings.anthropic_api_key:
        logger.warning("anthropic_api_key_missing")
        return None
    client = anthropic.AsyncAnthropic(
        api_key=settings.anthropic_api_key,
        timeout=settings.analysis_timeout_seconds,
    )
    return RingAnalyzer(client, settings.analysis_model)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    stuller = build_stuller_client()
    catalog = CatalogCache(
        stuller,
        ttl_seconds=settings.catalog_ttl_seconds,
        batch_size=settings.catalog_batch_size,
        request_delay=settings.catalog_request_delay_seconds,
        placeholder_entries=settings.catalog_placeholder_entries,
    )
    app.state.catalog = catalog
    app.state.analyzer = build_analyzer()

    if settings.catalog_refresh_on_startup:
        catalog.start_background_refresh()
    logger.info(
        "ringbuilder_started",
        environment=settings.environment,
        auth_mode=settings.stuller_auth_mode,
        analysis_enabled=app.state.analyzer is not None,
    )
    try:
        yield
    finally:
        await stuller.aclose()


app = FastAPI(
    title="Ring Builder API",
    version=__version__,
    docs_url="/docs",
    redoc_url=None,
    lifespan=lifespan,
)

app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Tag each request with an ID that appears in every log line it produces.

    The ID is echoed in the X-Request-ID response header so the configurator
    can quote it when reporting a problem.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


def _with_request_id(request: Request, response: JSONResponse) -> JSONResponse:
    response.headers["X-Request-ID"] = getattr(
        request.state, "request_id", request.headers.get("X-Request-ID", "")
    )
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Report validation failures in the ErrorResponse shape, not FastAPI's default."""
    messages = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err["loc"])
        messages.append(f"{loc}: {err['msg']}")
    response = JSONResponse(
        status_code=422,
        content={
            "error": "validation_error",
            "message": "; ".join(messages),
            "retryable": False,
        },
    )
    return _with_request_id(request, response)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error_type=type(exc).__name__,
        exc_info=exc,
    )
    response = JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": "An unexpected error occurred",
            "retryable": True,
        },
    )
    return _with_request_id(request, response)


app.include_router(health.router, prefix="/api")
app.include_router(rings.router, prefix="/api")
app.include_router(analyze.router, prefix="/api")
