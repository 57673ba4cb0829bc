"""Stuller product API client.

Fails closed: timeouts, network errors, non-2xx statuses and unparsable
bodies are logged and produce an empty product list. One retry is made on
transient failures (timeout, 429, 5xx) after a short backoff.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import structlog

from ringbuilder.upstream.auth import Authenticator

log = structlog.get_logger("upstream.stuller")

PRODUCTS_PATH = "/v2/products"
PAGE_SIZE = 500
MAX_RETRIES = 1
RETRY_DELAY = 1.0
_RETRYABLE_STATUSES = (429, 500, 502, 503, 504)


class StullerClient:
    """Fetch raw product records for batches of series ids."""

    def __init__(
        self,
        base_url: str,
        auth: Authenticator | None,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            auth=auth,
            timeout=timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_series(self, series_ids: list[str]) -> list[dict[str, Any]]:
        """All orderable products in the given series (empty on failure)."""
        if not series_ids:
            return []
        payload = {
            "Include": ["All"],
            "Series": series_ids,
            "Filter": ["Orderable", "OnPriceList"],
            "PageSize": PAGE_SIZE,
            "PageNumber": 1,
        }
        data = await self._post(PRODUCTS_PATH, payload, context=",".join(series_ids))
        products = data.get("Products") if data else None
        if not isinstance(products, list):
            return []
        log.debug("stuller_series_fetched", series=series_ids, products=len(products))
        return [p for p in products if isinstance(p, dict)]

    async def _post(
        self, path: str, payload: dict[str, Any], *, context: str
    ) -> dict[str, Any] | None:
        for attempt in range(1 + MAX_RETRIES):
            try:
                resp = await self._client.post(path, json=payload)
            except httpx.TimeoutException:
                if attempt < MAX_RETRIES:
                    log.warning("stuller_timeout", context=context, attempt=attempt + 1)
                    await asyncio.sleep(RETRY_DELAY)
                    continue
                log.warning("stuller_timeout_final", context=context)
                return None
            except httpx.RequestError as exc:
                log.warning("stuller_request_error", context=context, error_type=type(exc).__name__)
                return None

            if resp.status_code in _RETRYABLE_STATUSES and attempt < MAX_RETRIES:
                log.warning(
                    "stuller_retrying",
                    status=resp.status_code,
                    context=context,
                    attempt=attempt + 1,
                )
                await asyncio.sleep(RETRY_DELAY)
                continue

            if resp.status_code >= 400:
                log.warning(
                    "stuller_fetch_failed",
                    status=resp.status_code,
                    context=context,
                    body=resp.text[:200],
                )
                return None

            try:
                data = resp.json()
            except ValueError:
                log.warning("stuller_unparsable_response", context=context, body=resp.text[:200])
                return None
            if not isinstance(data, dict):
                log.warning("stuller_unexpected_payload", context=context, type=type(data).__name__)
                return None
            return data

        return None
