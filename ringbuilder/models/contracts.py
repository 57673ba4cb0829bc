"""Ring Builder contract models.

Python attributes are snake_case; the JSON the configurator front-end sees
is camelCase (``seriesId``, ``centerShape``, ``totalMatches``).
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Style = Literal[
    "Solitaire",
    "Halo",
    "Hidden Halo",
    "Three Stone",
    "Vintage",
    "Pavé",
    "Cathedral",
    "Channel Set",
    "Bezel",
    "Twisted",
    "Accented",
    "Classic",
]

Shape = Literal[
    "ROUND",
    "OVAL",
    "PRINCESS",
    "CUSHION",
    "EMERALD",
    "PEAR",
    "MARQUISE",
    "RADIANT",
    "ASSCHER",
    "HEART",
]

Karat = Literal["10kt", "14kt", "18kt", "Platinum", "Silver"]
MetalColor = Literal["White", "Yellow", "Rose"]

MatchReason = Literal["AI Match", "Style Match", "Catalog Item"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# === Catalog ===


class Metal(_CamelModel):
    karat: Karat
    color: MetalColor
    label: str
    code: str  # supplier metal code: "14KW", "18KY", "PLAT", "SS"


class Ring(_CamelModel):
    """Canonical catalog entry produced by the product normalizer."""

    id: str
    series_id: str
    sku: str
    name: str
    description: str = ""
    style: Style
    center_shape: Shape = "ROUND"
    metal: Metal
    price: float = Field(ge=0, default=0.0)
    images: list[str] = []
    lead_time: int = Field(ge=0, default=4)
    in_stock: bool = False
    product_url: str | None = None

    @property
    def primary_image(self) -> str | None:
        return self.images[0] if self.images else None


class RankedRing(Ring):
    match_score: int = Field(ge=0, le=100)
    match_reason: MatchReason
    matched_on: list[str] = []


class SearchCriteria(_CamelModel):
    """Optional narrowing keys; every absent key is a no-op."""

    style: str | None = None
    metal: str | None = None
    center_shape: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    query: str | None = None


# === Image analysis ===


class AnalysisResult(_CamelModel):
    style: str = "Unknown"
    shape: str = "Unknown"
    metal: str = "Unknown"
    features: list[str] = []
    confidence: float | Literal["Unknown"] = "Unknown"
    description: str | None = None


class AnalyzeRingRequest(_CamelModel):
    image: str = ""
    mime_type: str | None = None


class AnalyzeRingResponse(_CamelModel):
    analysis: AnalysisResult
    matches: list[RankedRing]
    total_matches: int


# === API payloads ===


class RingListResponse(_CamelModel):
    items: list[Ring]
    total_count: int
    page: int
    limit: int
    has_more: bool


class RingFilterResponse(_CamelModel):
    """Rings matching a single path criterion, e.g. /rings/style/{style}."""

    criterion: Literal["style", "shape", "metal"]
    value: str
    count: int
    items: list[Ring]


class RingDetailResponse(_CamelModel):
    ring: Ring
    related: list[Ring] = []


class RefreshResponse(_CamelModel):
    total: int
    by_style: dict[str, int]
    refreshed_at: str | None = None


class PriceRange(_CamelModel):
    min: float
    max: float
    average: float


class ErrorResponse(BaseModel):
    error: str
    message: str
    retryable: bool = False
    detail: str | None = None


class HealthResponse(_CamelModel):
    status: Literal["ok"] = "ok"
    version: str
    environment: str
    has_anthropic_key: bool
    total_rings: int
    by_style: dict[str, int]
    by_metal: dict[str, int]
    by_shape: dict[str, int]
    cache_age_seconds: int | None = None
    refreshed_at: str | None = None
    refreshing: bool = False
    stale: bool = True
