"""Stuller product record -> canonical Ring.

Upstream records are inconsistent across endpoints and API versions
(``SKU`` vs ``Sku``, ``GroupImages`` vs ``Images`` vs ``ImageUrl``,
``Price.Value`` vs a bare number). ``normalize_product`` accepts any of
those shapes, never raises, and returns None for records that are not part
of the ring catalog.
"""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import ValidationError

from ringbuilder.catalog.classifiers import (
    classify_metal,
    classify_shape,
    classify_style,
    style_from_series,
)
from ringbuilder.models.contracts import Ring, Style

log = structlog.get_logger("catalog.normalizer")

CDN_IMAGE_URL = "https://meteor.stullercloud.com/das/{asset_id}?$xlarge$"
PRODUCT_PAGE_URL = "https://www.stuller.com/products/{series}/"
DEFAULT_LEAD_TIME_DAYS = 4

_GROUP_IMAGE_FIELDS = ("GroupImages", "Images")
_DIRECT_IMAGE_FIELDS = ("ImageUrl", "PrimaryImageUrl", "ZoomUrl", "FullUrl")


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def series_from_sku(sku: str | None) -> str | None:
    """First colon-delimited SKU segment: "123213:100:P:14KW" -> "123213"."""
    if not sku:
        return None
    head = sku.split(":", 1)[0].strip()
    return head or None


def build_cdn_image_url(asset_id: Any) -> str | None:
    """Synthesize the Stuller CDN image URL for a product or series id."""
    asset = _text(asset_id)
    if not asset:
        return None
    return CDN_IMAGE_URL.format(asset_id=asset)


def _image_urls(entries: Any) -> list[str]:
    if not isinstance(entries, list):
        return []
    urls: list[str] = []
    for entry in entries:
        if isinstance(entry, str):
            url = entry.strip()
        elif isinstance(entry, dict):
            url = _text(entry.get("ZoomUrl") or entry.get("FullUrl") or entry.get("Url"))
        else:
            continue
        if url and url not in urls:
            urls.append(url)
    return urls


def resolve_images(product: dict[str, Any]) -> list[str]:
    """All image URLs for a product, best source first.

    Priority: group image arrays, flat image arrays, direct URL fields,
    then a CDN URL synthesized from the product id. The first non-empty
    source wins; later sources are not mixed in.
    """
    for field in _GROUP_IMAGE_FIELDS:
        urls = _image_urls(product.get(field))
        if urls:
            return urls
    for field in _DIRECT_IMAGE_FIELDS:
        url = _text(product.get(field))
        if url:
            return [url]
    synthesized = build_cdn_image_url(product.get("ProductId") or product.get("Id"))
    return [synthesized] if synthesized else []


def resolve_primary_image(product: dict[str, Any]) -> str | None:
    images = resolve_images(product)
    return images[0] if images else None


def _price(product: dict[str, Any]) -> float:
    raw = product.get("Price")
    if isinstance(raw, dict):
        raw = raw.get("Value")
    try:
        value = float(raw) if raw is not None else 0.0
    except (TypeError, ValueError):
        return 0.0
    return value if value > 0 else 0.0


def _lead_time(product: dict[str, Any], default: int) -> int:
    try:
        value = int(product.get("LeadTime") or default)
    except (TypeError, ValueError):
        return default
    return value if value >= 0 else default


def normalize_product(
    product: dict[str, Any],
    forced_style: Style | None = None,
    forced_series_id: str | None = None,
    *,
    default_lead_time: int = DEFAULT_LEAD_TIME_DAYS,
) -> Ring | None:
    """Map one raw Stuller product to a Ring, or None to discard it.

    Style resolution: ``forced_style`` (the caller already knows the series'
    style), then the product's descriptions, then the curated series list.
    """
    if not isinstance(product, dict):
        return None

    sku = _text(product.get("SKU") or product.get("Sku"))
    series = (
        _text(forced_series_id)
        or _text(product.get("SeriesId"))
        or series_from_sku(sku)
        or ""
    )
    description = _text(product.get("Description"))
    group_description = _text(product.get("GroupDescription"))
    combined = f"{description} {group_description}".strip()

    style = forced_style or classify_style(combined) or style_from_series(series)
    if style is None:
        log.debug("product_unclassifiable", sku=sku, series=series)
        return None

    if not series and not sku:
        log.debug("product_missing_identity", product_id=product.get("Id"))
        return None

    ring_id = _text(product.get("Id")) or _text(product.get("ProductId")) or sku or series
    name = group_description or description or f"{style} Ring {series}"

    try:
        return Ring(
            id=ring_id,
            series_id=series,
            sku=sku or series,
            name=name,
            description=description or f"{style} Engagement Ring",
            style=style,
            center_shape=classify_shape(combined),
            metal=classify_metal(sku, combined),
            price=_price(product),
            images=resolve_images(product),
            lead_time=_lead_time(product, default_lead_time),
            in_stock=_text(product.get("Status")).lower() == "in stock",
            product_url=PRODUCT_PAGE_URL.format(series=series) if series else None,
        )
    except ValidationError as exc:
        log.warning("product_invalid", sku=sku, series=series, error=str(exc)[:200])
        return None


def placeholder_ring(series: str, style: Style) -> Ring:
    """Stand-in entry for a curated series the supplier returned nothing for."""
    image = build_cdn_image_url(series)
    return Ring(
        id=series,
        series_id=series,
        sku=series,
        name=f"{style} Ring {series}",
        description=f"{style} Engagement Ring",
        style=style,
        metal=classify_metal(None),
        images=[image] if image else [],
        in_stock=False,
        product_url=PRODUCT_PAGE_URL.format(series=series),
    )
