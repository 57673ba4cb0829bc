"""Shared fixtures: a fake Stuller fetcher, a small catalog, and an API client.

The app under test never talks to Stuller or Anthropic. The catalog cache
is built around ``FakeFetcher`` and the analyzer is an ``AsyncMock``; both
are injected with ``app.dependency_overrides``.
"""

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest

from ringbuilder.api.deps import get_analyzer, get_catalog
from ringbuilder.catalog.cache import CatalogCache
from ringbuilder.main import app
from ringbuilder.models.contracts import AnalysisResult

CDN = "https://meteor.stullercloud.com/das/{}?$xlarge$"

HALO_SERIES = "122804"
SOLITAIRE_SERIES = "123823"
HIDDEN_HALO_SERIES = "127024"
THREE_STONE_SERIES = "122105"

TEST_SERIES = {
    "Solitaire": (SOLITAIRE_SERIES,),
    "Halo": (HALO_SERIES,),
    "Hidden Halo": (HIDDEN_HALO_SERIES,),
    "Three Stone": (THREE_STONE_SERIES,),
}


def stuller_products() -> dict[str, list[dict]]:
    """Raw Stuller records keyed by series, in the shapes the API returns."""
    return {
        SOLITAIRE_SERIES: [
            {
                "Id": 2001,
                "SKU": "123823:101:P",
                "Description": "Round Solitaire Engagement Ring Mounting",
                "Price": 950,
                "Status": "Made To Order",
                "ImageUrl": "https://images.example.com/2001.jpg",
            },
        ],
        HALO_SERIES: [
            {
                "Id": 1001,
                "SKU": "122804:100:P:14KW",
                "SeriesId": "122804",
                "Description": "Oval Halo-Style Engagement Ring Mounting",
                "GroupDescription": "14K White Oval Halo Engagement Ring",
                "Price": {"Value": 1450.0, "CurrencyCode": "USD"},
                "Status": "In Stock",
                "LeadTime": 3,
                "GroupImages": [{"ZoomUrl": CDN.format(1001)}],
            },
            # Same series and shape in yellow gold: dropped by dedup.
            {
                "Id": 1002,
                "SKU": "122804:100:P:18KY",
                "SeriesId": "122804",
                "Description": "Oval Halo-Style Engagement Ring Mounting",
                "GroupDescription": "18K Yellow Oval Halo Engagement Ring",
                "Price": {"Value": 2100.0},
                "Status": "In Stock",
            },
            {
                "Id": 1003,
                "Sku": "122804:100:P:14KR",
                "Description": "Cushion Halo Engagement Ring Mounting in 14K Rose",
                "Price": {"Value": 1325.5},
                "Images": ["https://meteor.stullercloud.com/das/1003?$xlarge$"],
            },
        ],
        HIDDEN_HALO_SERIES: [
            {
                "Id": 3001,
                "SKU": "127024:200:P:PLAT",
                "Description": "Hidden Halo Engagement Ring with Oval Center",
                "Price": {"Value": 3200.0},
                "Status": "In Stock",
            },
        ],
        THREE_STONE_SERIES: [
            {
                "Id": 4001,
                "SKU": "122105:105:P:14KY",
                "Description": "Three-Stone Engagement Ring Mounting",
                "Price": {"Value": 1800.0},
            },
        ],
    }


class FakeFetcher:
    """Records every batch it is asked for and serves canned products."""

    def __init__(self, products=None, *, fail_series=()):
        self.products = stuller_products() if products is None else products
        self.fail_series = set(fail_series)
        self.calls: list[list[str]] = []

    async def fetch_series(self, series_ids):
        self.calls.append(list(series_ids))
        # Yield so overlapping refreshes actually interleave.
        await asyncio.sleep(0)
        if self.fail_series & set(series_ids):
            raise httpx.ConnectError("connection refused")
        found = []
        for series in series_ids:
            found.extend(self.products.get(series, []))
        return found


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def catalog(fetcher):
    return CatalogCache(fetcher, series_by_style=TEST_SERIES, request_delay=0)


@pytest.fixture
def analyzer():
    """Stand-in RingAnalyzer that always sees an oval halo in white gold."""
    mock = AsyncMock()
    mock.analyze.return_value = AnalysisResult(
        style="Halo",
        shape="Oval",
        metal="White Gold",
        features=["halo"],
        confidence=0.9,
    )
    return mock


@pytest.fixture
async def client(catalog, analyzer):
    app.dependency_overrides[get_catalog] = lambda: catalog
    app.dependency_overrides[get_analyzer] = lambda: analyzer
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
