"""In-memory ring catalog with TTL-gated, single-flight refresh.

A refresh walks the curated series list batch by batch, normalizes every
returned product and dedups variants. The finished tuple of rings then
replaces the previous snapshot in a single assignment, so readers never
see a partially refreshed catalog.

Concurrent ``refresh()`` callers share one in-flight ``asyncio.Task``:
two overlapping refresh requests produce exactly one upstream pass.
"""

from __future__ import annotations

import asyncio
import time
from collections import Counter
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any, Protocol

import structlog

from ringbuilder.catalog.classifiers import DEFAULT_METAL_CODE
from ringbuilder.catalog.normalizer import normalize_product, placeholder_ring
from ringbuilder.catalog.series import CURATED_SERIES, iter_batches
from ringbuilder.models.contracts import Ring, Style

log = structlog.get_logger("catalog.cache")

DEFAULT_TTL_SECONDS = 60 * 60
DEFAULT_BATCH_SIZE = 10
DEFAULT_REQUEST_DELAY = 0.2


class CatalogFetcher(Protocol):
    """Upstream source of raw product records for a batch of series ids."""

    async def fetch_series(self, series_ids: list[str]) -> list[dict[str, Any]]: ...


def dedup_rings(rings: list[Ring]) -> list[Ring]:
    """Keep one ring per (series, center shape), preferring 14K White.

    First-seen order is preserved. A later duplicate only replaces the kept
    ring when it is 14K White and the kept one is not.
    """
    kept: dict[tuple[str, str], Ring] = {}
    for ring in rings:
        key = (ring.series_id, ring.center_shape)
        existing = kept.get(key)
        if existing is None:
            kept[key] = ring
        elif ring.metal.code == DEFAULT_METAL_CODE and existing.metal.code != DEFAULT_METAL_CODE:
            kept[key] = ring
    return list(kept.values())


class CatalogCache:
    """Owns the current ring snapshot and its refresh lifecycle."""

    def __init__(
        self,
        fetcher: CatalogFetcher,
        *,
        series_by_style: Mapping[str, tuple[str, ...]] = CURATED_SERIES,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        batch_size: int = DEFAULT_BATCH_SIZE,
        request_delay: float = DEFAULT_REQUEST_DELAY,
        placeholder_entries: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetcher = fetcher
        self._series_by_style = series_by_style
        self._ttl_seconds = ttl_seconds
        self._batch_size = batch_size
        self._request_delay = request_delay
        self._placeholder_entries = placeholder_entries
        self._clock = clock

        self._records: tuple[Ring, ...] = ()
        self._last_refreshed_at: float | None = None
        self._refreshed_at: datetime | None = None
        self._inflight: asyncio.Task[tuple[Ring, ...]] | None = None

    # --- reads ---

    @property
    def records(self) -> tuple[Ring, ...]:
        return self._records

    @property
    def refreshed_at(self) -> datetime | None:
        return self._refreshed_at

    @property
    def refreshing(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def age_seconds(self) -> float | None:
        if self._last_refreshed_at is None:
            return None
        return self._clock() - self._last_refreshed_at

    def is_stale(self) -> bool:
        age = self.age_seconds()
        return age is None or age > self._ttl_seconds

    def get(self, ring_id: str) -> Ring | None:
        """Find a ring by id, falling back to SKU then series id."""
        records = self._records
        for attr in ("id", "sku", "series_id"):
            for ring in records:
                if getattr(ring, attr) == ring_id:
                    return ring
        return None

    def stats(self) -> dict[str, Any]:
        records = self._records
        age = self.age_seconds()
        return {
            "total_rings": len(records),
            "by_style": dict(Counter(r.style for r in records)),
            "by_metal": dict(Counter(r.metal.label for r in records)),
            "by_shape": dict(Counter(r.center_shape for r in records)),
            "cache_age_seconds": round(age) if age is not None else None,
            "refreshed_at": self._refreshed_at.isoformat() if self._refreshed_at else None,
            "refreshing": self.refreshing,
            "stale": self.is_stale(),
        }

    # --- refresh ---

    async def ensure_fresh(self) -> tuple[Ring, ...]:
        """Refresh first if the catalog was never loaded or has expired."""
        if self.is_stale():
            return await self.refresh()
        return self._records

    async def refresh(self) -> tuple[Ring, ...]:
        """Rebuild the catalog, joining an in-flight refresh if one exists."""
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.create_task(self._rebuild())
        # shield: a cancelled caller must not cancel the shared rebuild
        return await asyncio.shield(self._inflight)

    def start_background_refresh(self) -> asyncio.Task[tuple[Ring, ...]]:
        """Kick off a refresh without waiting for it (app startup)."""
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.create_task(self._rebuild())
        return self._inflight

    async def _rebuild(self) -> tuple[Ring, ...]:
        started = self._clock()
        log.info(
            "catalog_refresh_start",
            styles=len(self._series_by_style),
            series=sum(len(s) for s in self._series_by_style.values()),
            batch_size=self._batch_size,
        )

        collected: list[Ring] = []
        first_call = True
        for style, series_ids in self._series_by_style.items():
            style_rings: list[Ring] = []
            for batch in iter_batches(series_ids, self._batch_size):
                if not first_call and self._request_delay > 0:
                    await asyncio.sleep(self._request_delay)
                first_call = False
                style_rings.extend(await self._fetch_batch(style, batch))

            if self._placeholder_entries:
                style_rings.extend(self._placeholders(style, series_ids, style_rings))

            log.info("catalog_style_fetched", style=style, rings=len(style_rings))
            collected.extend(style_rings)

        rings = tuple(dedup_rings(collected))
        self._records = rings
        self._last_refreshed_at = self._clock()
        self._refreshed_at = datetime.now(UTC)

        log.info(
            "catalog_refresh_complete",
            total=len(rings),
            dropped_duplicates=len(collected) - len(rings),
            by_style=dict(Counter(r.style for r in rings)),
            duration_s=round(self._clock() - started, 2),
        )
        return rings

    async def _fetch_batch(self, style: str, batch: list[str]) -> list[Ring]:
        """Fetch and normalize one batch; failures yield no rings."""
        try:
            products = await self._fetcher.fetch_series(batch)
        except Exception as exc:
            log.warning(
                "catalog_batch_failed",
                style=style,
                series=batch,
                error_type=type(exc).__name__,
                error=str(exc)[:200],
            )
            return []

        rings: list[Ring] = []
        unclassified = 0
        for product in products:
            ring = normalize_product(product, forced_style=style)  # type: ignore[arg-type]
            if ring is None:
                unclassified += 1
                continue
            rings.append(ring)

        if unclassified:
            log.info("catalog_products_skipped", style=style, skipped=unclassified)
        return rings

    @staticmethod
    def _placeholders(style: str, series_ids: tuple[str, ...], found: list[Ring]) -> list[Ring]:
        seen = {r.series_id for r in found}
        style_name: Style = style  # type: ignore[assignment]
        return [placeholder_ring(s, style_name) for s in series_ids if s not in seen]

