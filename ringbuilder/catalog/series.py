"""Curated Stuller series, grouped by the setting style they are sold as.

Series ids are the first segment of a Stuller SKU (``123213:100:P`` belongs
to series ``123213``). A refresh fetches exactly these series.
"""

from __future__ import annotations

CURATED_SERIES: dict[str, tuple[str, ...]] = {
    "Solitaire": (
        "123823", "123213", "122089", "122969", "124171", "140401", "140309",
        "126764", "124305", "123713", "122939", "126617", "122099", "126306",
        "124348", "150508", "124852", "140406", "124702", "123054", "150309",
        "122047", "126320", "170401", "122705", "124170", "170309", "122118",
        "123226", "140408", "124797", "124047",
    ),
    "Halo": (
        "122804", "123243", "122060", "123227", "123333", "123767", "122870",
        "123449", "123267", "124241", "124470", "122892", "123861", "124435",
        "123770", "123541", "123336", "121981", "124246",
    ),
    "Hidden Halo": (
        "127024", "127098", "123599", "126924", "126214", "127198",
    ),
    "Three Stone": (
        "122105", "122924", "123886", "121986", "69706", "126923", "124694",
        "126029", "120234", "124742", "123960", "122119", "122104", "123281",
        "122977", "122476", "122000", "126720", "126342", "127228", "122102",
        "123689", "126223",
    ),
}  # fmt: skip


def iter_batches(series: tuple[str, ...], size: int) -> list[list[str]]:
    """Split a series list into consecutive batches of at most ``size``."""
    if size < 1:
        raise ValueError(f"batch size must be positive, got {size}")
    return [list(series[i : i + size]) for i in range(0, len(series), size)]
