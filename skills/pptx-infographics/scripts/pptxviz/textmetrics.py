"""Text width estimation used to size label columns and paddings.

Widths are in inches. A precise path measures glyphs with Pillow when a font
file is supplied; the heuristic path is always available and both paths go
through the same clamp.
"""

from __future__ import annotations

import logging
import math
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable, Optional

logger = logging.getLogger(__name__)

_NON_NUMERIC_RE = re.compile(r"[^0-9+\-.]")


def effective_text_length(text: Any) -> float:
    """Full-width characters count 1.0, Latin-1 characters 0.5."""
    return sum(1.0 if ord(ch) > 0xFF else 0.5 for ch in str(text or ""))


def max_effective_length(labels: Iterable[Any]) -> float:
    return max((effective_text_length(s) for s in labels or []), default=0.0)


def compute_dynamic_pad_left(
    labels: Iterable[Any],
    base_pad: float,
    font_pt: float,
    *,
    fudge: float = 1.15,
    extra: float = 0.3,
    max_ratio: Optional[float] = None,
    container_w: Optional[float] = None,
) -> float:
    """Left padding wide enough for the longest label, optionally capped by a container ratio."""
    approx_char = 0.14 * (font_pt / 10)
    proposed = max_effective_length(labels) * approx_char * fudge + extra
    raw = max(max(0.0, base_pad or 0.0), proposed)
    if container_w and max_ratio:
        return min(raw, max(0.1, container_w * max_ratio))
    return raw


@lru_cache(maxsize=32)
def _load_font(font_path: str, size_px: int):
    from PIL import ImageFont

    return ImageFont.truetype(font_path, size=size_px)


def measure_text_width(text: str, font_pt: float, font_path: str, *, dpi: int = 96) -> float:
    """Rendered width of `text` in inches using Pillow glyph metrics."""
    font = _load_font(font_path, max(1, int(round(font_pt * dpi / 72))))
    return font.getlength(text) / dpi


def heuristic_text_width(text: str, font_pt: float) -> float:
    em = max(0.0, font_pt) / 72
    width = 0.0
    for ch in text:
        code = ord(ch)
        if ch == " ":
            width += em * 0.20
        elif code <= 0x7F or 0xFF61 <= code <= 0xFF9F:
            width += em * 0.35
        else:
            width += em * 0.60
    return width


def _max_label_width(labels: list[str], font_pt: float, font_path: Optional[str]) -> float:
    if font_path and Path(font_path).exists():
        try:
            return max((measure_text_width(s, font_pt, font_path) for s in labels), default=0.0)
        except OSError as exc:
            logger.debug("Font metrics unavailable for %s (%s); using heuristic widths", font_path, exc)
    return max((heuristic_text_width(s, font_pt) for s in labels), default=0.0)


def compute_label_column_width(
    labels: Iterable[Any],
    font_pt: float,
    container_w: float,
    *,
    min_ratio: float = 0.0,
    max_ratio: float = 0.25,
    fudge: float = 1.0,
    pad: float = 0.04,
    min_in: float = 0.12,
    font_path: Optional[str] = None,
) -> float:
    """Width of a left label column, clamped to ``[floor, max(min_in, container_w * max_ratio)]``."""
    texts = [str(s or "") for s in labels or []]
    proposed = _max_label_width(texts, font_pt, font_path) * fudge + pad
    floor = max(min_in, container_w * min_ratio) if min_ratio > 0 else min_in
    cap = max(min_in, container_w * max_ratio)
    return min(max(floor, proposed), cap)


def compute_label_area_width(
    labels: Iterable[Any],
    font_pt: float,
    gap: float,
    container_w: float,
    *,
    min_w: float = 0.8,
    max_ratio: float = 0.62,
    fudge: float = 1.25,
) -> float:
    approx_char = 0.14 * (font_pt / 10)
    estimated = max_effective_length(labels) * approx_char * fudge + (gap or 0.0)
    return max(min_w, min(container_w * max_ratio, estimated))


def parse_numeric(value: Any) -> float:
    """Lenient number parsing: ``"1,200 pts"`` -> 1200.0, junk -> 0.0."""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0
    text = str(value if value is not None else "").strip()
    if not text:
        return 0.0
    try:
        number = float(_NON_NUMERIC_RE.sub("", text))
    except ValueError:
        return 0.0
    return number if math.isfinite(number) else 0.0
