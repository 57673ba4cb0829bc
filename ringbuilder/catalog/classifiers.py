"""Keyword classifiers for free-text Stuller descriptions and SKUs.

Each classifier is an ordered list of substring checks. Order matters:
more specific phrases sit above the general ones they contain, so
"hidden halo" is tested before "halo".

Used by both the product normalizer and the match scorer.
"""

from __future__ import annotations

import re
import unicodedata

from ringbuilder.catalog.series import CURATED_SERIES
from ringbuilder.models.contracts import Metal, Shape, Style

STYLES: tuple[Style, ...] = (
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
)

SHAPES: tuple[Shape, ...] = (
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
)

_STYLE_KEYWORDS: tuple[tuple[Style, tuple[str, ...]], ...] = (
    ("Hidden Halo", ("hidden halo", "hidden-halo")),
    ("Halo", ("halo",)),
    ("Solitaire", ("solitaire",)),
    ("Three Stone", ("three stone", "three-stone", "3 stone", "3-stone")),
    ("Vintage", ("vintage",)),
    ("Pavé", ("pavé", "pave")),
    ("Cathedral", ("cathedral",)),
    ("Channel Set", ("channel",)),
    ("Bezel", ("bezel",)),
    ("Twisted", ("twist",)),
    ("Accented", ("accented",)),
    ("Classic", ("classic",)),
)

# ROUND is last: "oval halo with round accents" describes an oval center.
_SHAPE_KEYWORDS: tuple[tuple[Shape, str], ...] = (
    ("OVAL", "oval"),
    ("PRINCESS", "princess"),
    ("CUSHION", "cushion"),
    ("EMERALD", "emerald"),
    ("PEAR", "pear"),
    ("MARQUISE", "marquise"),
    ("RADIANT", "radiant"),
    ("ASSCHER", "asscher"),
    ("HEART", "heart"),
    ("ROUND", "round"),
)

METALS: dict[str, Metal] = {
    code: Metal(karat=karat, color=color, label=label, code=code)
    for code, karat, color, label in (
        ("14KW", "14kt", "White", "14K White Gold"),
        ("14KY", "14kt", "Yellow", "14K Yellow Gold"),
        ("14KR", "14kt", "Rose", "14K Rose Gold"),
        ("10KW", "10kt", "White", "10K White Gold"),
        ("10KY", "10kt", "Yellow", "10K Yellow Gold"),
        ("10KR", "10kt", "Rose", "10K Rose Gold"),
        ("18KW", "18kt", "White", "18K White Gold"),
        ("18KY", "18kt", "Yellow", "18K Yellow Gold"),
        ("18KR", "18kt", "Rose", "18K Rose Gold"),
        ("PLAT", "Platinum", "White", "Platinum"),
        ("SS", "Silver", "White", "Sterling Silver"),
    )
}

DEFAULT_METAL_CODE = "14KW"

_KARAT_TEXT_RE = re.compile(r"\b(10|14|18)\s*k(?:t|arat)?\s*(white|yellow|rose|pink)\b")
_COLOR_CODES = {"white": "W", "yellow": "Y", "rose": "R", "pink": "R"}

_FOLD_RE = re.compile(r"[\W_]+")


def fold(value: str | None) -> str:
    """Case-fold, strip accents and drop punctuation/whitespace.

    "Hidden-Halo" -> "hiddenhalo", "Pavé" -> "pave".
    """
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFKD", value.casefold())
    return _FOLD_RE.sub("", "".join(c for c in decomposed if not unicodedata.combining(c)))


def classify_style(text: str | None) -> Style | None:
    """Return the first style whose keyword appears in ``text``, else None.

    Callers must treat None as unclassifiable rather than pick a default.
    """
    if not text:
        return None
    lowered = text.lower()
    for style, keywords in _STYLE_KEYWORDS:
        if any(kw in lowered for kw in keywords):
            return style
    return None


def classify_shape(text: str | None) -> Shape:
    """Return the center-stone shape mentioned in ``text`` (ROUND if none)."""
    if not text:
        return "ROUND"
    lowered = text.lower()
    for shape, keyword in _SHAPE_KEYWORDS:
        if keyword in lowered:
            return shape
    return "ROUND"


def _metal_code_from_sku(sku: str) -> str | None:
    upper = sku.upper()
    # A bare "P" segment is a stamping option, not platinum; only ":P:P" is.
    if ":P:P" in upper:
        return "PLAT"
    segments = [s.strip() for s in upper.split(":")]
    for segment in reversed(segments):
        if segment in METALS:
            return segment
    return None


def _metal_code_from_text(text: str) -> str | None:
    lowered = text.lower()
    match = _KARAT_TEXT_RE.search(lowered)
    if match:
        return f"{match.group(1)}K{_COLOR_CODES[match.group(2)]}"
    for code in ("18KW", "18KY", "18KR", "14KW", "14KY", "14KR", "10KW", "10KY", "10KR"):
        if code.lower() in lowered:
            return code
    if "platinum" in lowered:
        return "PLAT"
    if "sterling" in lowered or "silver" in lowered:
        return "SS"
    return None


def classify_metal(*texts: str | None) -> Metal:
    """Resolve the metal from a SKU and/or description (14K White if unknown).

    Each argument is tried in order: first as a colon-delimited SKU with a
    metal-code segment, then as free text ("18K Yellow Gold", "platinum").
    """
    for text in texts:
        if not text:
            continue
        code = _metal_code_from_sku(text) if ":" in text else None
        code = code or _metal_code_from_text(text)
        if code:
            return METALS[code]
    return METALS[DEFAULT_METAL_CODE]


def style_from_series(series: str | None) -> Style | None:
    """Look up a series in the curated collection."""
    if not series:
        return None
    for style, series_ids in CURATED_SERIES.items():
        if series in series_ids:
            return style  # type: ignore[return-value]
    return None
