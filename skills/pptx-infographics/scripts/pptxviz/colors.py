"""Colour helpers: blending, contrast text colour and categorical palettes."""

from __future__ import annotations

from typing import Any, List, Optional, Sequence, Tuple

from .styles import get_path, normalize_hex

GOLDEN_RATIO_CONJUGATE = 0.61803398875
GOLDEN_HUE_SEED = 0.137

_DISTRIBUTIONS = {"cycle", "shufflePerVisual", "shufflePerSlide"}


def hex_to_rgb(hex_color: str) -> Tuple[int, int, int]:
    digits = (hex_color or "").lstrip("#")
    try:
        return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)
    except ValueError:
        return 0, 0, 0


def rgb_to_hex(r: float, g: float, b: float) -> str:
    return "".join(f"{max(0, min(255, int(round(c)))):02X}" for c in (r, g, b))


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def alpha_to_transparency(alpha: float) -> int:
    """Fill opacity 0..1 -> surface transparency percent (0 = opaque)."""
    return int(round((1 - clamp01(alpha)) * 100))


def transparency_to_opacity(transparency: float) -> float:
    """Surface transparency percent -> opacity percent for :func:`blend_over_white`."""
    return 100 - max(0.0, min(100.0, transparency))


def blend_over_white(hex_color: str, alpha_percent: float) -> str:
    """Effective colour of `hex_color` drawn at `alpha_percent` opacity over white."""
    alpha = max(0.0, min(100.0, alpha_percent)) / 100
    return rgb_to_hex(*(alpha * c + (1 - alpha) * 255 for c in hex_to_rgb(hex_color)))


def blend_toward(from_hex: str, to_hex: str, t: float) -> str:
    a = hex_to_rgb(from_hex)
    b = hex_to_rgb(to_hex)
    return rgb_to_hex(*(a[i] + (b[i] - a[i]) * t for i in range(3)))


def blend_from_white(hex_color: str, t: float) -> str:
    """White at t=0, the full hue at t=1."""
    return blend_toward("FFFFFF", hex_color, clamp01(t))


def _linearize(channel: float) -> float:
    return channel / 12.92 if channel <= 0.03928 else ((channel + 0.055) / 1.055) ** 2.4


def relative_luminance(hex_color: str) -> float:
    r, g, b = (_linearize(c / 255) for c in hex_to_rgb(hex_color))
    return 0.2126 * r + 0.7152 * g + 0.0722 * b


def pick_text_color_for_background(hex_color: str) -> str:
    """Black text on light backgrounds, white on dark ones."""
    return "000000" if relative_luminance(hex_color) > 0.6 else "FFFFFF"


def hsv_to_hex(h: float, s: float, v: float) -> str:
    i = int(h * 6)
    f = h * 6 - i
    p = v * (1 - s)
    q = v * (1 - f * s)
    t = v * (1 - (1 - f) * s)
    r, g, b = [(v, t, p), (q, v, p), (p, v, t), (p, q, v), (t, p, v), (v, p, q)][i % 6]
    return rgb_to_hex(r * 255, g * 255, b * 255)


def golden_palette(count: int, *, saturation: float = 0.85, value: float = 0.95) -> List[str]:
    """Deterministic distinct hues stepping the golden ratio conjugate from a fixed seed."""
    colors: List[str] = []
    hue = GOLDEN_HUE_SEED
    for _ in range(max(0, count)):
        hue = (hue + GOLDEN_RATIO_CONJUGATE) % 1
        colors.append(hsv_to_hex(hue, saturation, value))
    return colors


def golden_color(index: int) -> str:
    hue = (GOLDEN_HUE_SEED + (index + 1) * GOLDEN_RATIO_CONJUGATE) % 1
    return hsv_to_hex(hue, 0.85, 0.95)


class Palette:
    """Indexable categorical colours: theme colours when given, golden hues otherwise."""

    def __init__(self, colors: Optional[Sequence[str]] = None, distribution: str = "cycle"):
        self.colors = [c for c in (normalize_hex(c) for c in (colors or [])) if c]
        self.distribution = distribution if distribution in _DISTRIBUTIONS else "cycle"

    @classmethod
    def from_template(cls, template_config: Any) -> "Palette":
        colors = get_path(template_config, "visualStyles.palette.colors")
        distribution = get_path(template_config, "rules.paletteStrategy.distribution", "cycle")
        return cls(colors if isinstance(colors, list) else None, str(distribution))

    def get(self, index: int) -> str:
        n = len(self.colors)
        if not n:
            return golden_color(index)
        offset = 0
        if self.distribution == "shufflePerVisual":
            offset = (index * 3 + 5) % n
        elif self.distribution == "shufflePerSlide":
            offset = ((index // 10) * 7 + 3) % n
        return self.colors[(index + offset) % n]

    __call__ = get
