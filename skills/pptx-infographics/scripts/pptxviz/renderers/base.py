"""Small helpers shared by the renderer modules."""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any, Dict, Optional

from ..colors import alpha_to_transparency, blend_over_white
from ..styles import as_number, get_path, normalize_hex

logger = logging.getLogger(__name__)


def format_number(value: float) -> str:
    """``50.0`` -> ``"50"``, ``2.5`` -> ``"2.5"``."""
    if not math.isfinite(value):
        return "0"
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.10g}"


def fill_alpha(style: Dict[str, Any], default: float) -> float:
    """``alpha.barFill`` clamped to [0, 1], or `default`."""
    alpha = as_number(get_path(style, "alpha.barFill"))
    return max(0.0, min(1.0, alpha)) if alpha is not None else default


def effective_text_color(helpers, hex_color: str, alpha: float) -> str:
    """Contrast text colour for `hex_color` drawn at opacity `alpha` over white."""
    return helpers.pick_text_color(blend_over_white(hex_color, alpha * 100))


def color_token(spec: Any, fallback: Optional[str]) -> Optional[str]:
    """A template colour that may be ``"auto"``; auto or invalid gives `fallback`."""
    if isinstance(spec, str) and spec.strip().lower() != "auto":
        hex_color = normalize_hex(spec)
        if hex_color:
            return hex_color
    return fallback


def resolve_icon(raw: str, prompt: str, capabilities, *, is_path) -> Optional[Path]:
    """Local icon file for `raw`, or one generated from `prompt`; ``None`` when neither works."""
    if not raw:
        return None
    if is_path(raw):
        path = Path(raw)
        if not path.is_file():
            logger.debug("icon file not found: %s", path)
            return None
        return path
    generator = capabilities.image_generator if capabilities is not None else None
    if generator is None:
        return None
    try:
        return generator.generate(prompt, "1:1")
    except (OSError, RuntimeError, ValueError) as exc:
        logger.warning("icon generation failed for %r: %s", raw, exc)
        return None


__all__ = [
    "alpha_to_transparency",
    "color_token",
    "effective_text_color",
    "fill_alpha",
    "format_number",
    "resolve_icon",
]
