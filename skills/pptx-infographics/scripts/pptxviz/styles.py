"""Read `visualStyles` records from a template config with typed coercion.

Access is defensive: lookups never raise for missing keys. Renderers that need
a field for geometry or colour go through :func:`require_style`, which logs the
missing names and returns ``None`` so the caller can fail closed.
"""

from __future__ import annotations

import json
import logging
import math
import re
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from .errors import ConfigValidationError

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_PATH = Path(__file__).resolve().parent / "templates" / "default.json"

_HEX6_RE = re.compile(r"^#?[0-9a-fA-F]{6}$")
_HEX8_RE = re.compile(r"^#?[0-9a-fA-F]{8}$")
_RGBA_RE = re.compile(
    r"^rgba?\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})(?:\s*,\s*(0|1|0?\.\d+))?\s*\)$",
    re.IGNORECASE,
)

# Style keys looked up under several names, first hit wins.
_STYLE_ALIASES = {"table": ("tables", "table")}

# Keys a type inherits from its family record when it does not define them.
_FAMILY_PARENTS = {
    "comparison": "kpi",
    "kpi": "bar_chart",
    "kpi_donut": "pie_chart",
}
_INHERITED_KEYS = ("alpha",)


def get_visual_style(template_config: Any, type_name: str) -> Dict[str, Any]:
    """Return the style record for `type_name`, or an empty dict when absent."""
    visual = template_config.get("visualStyles") if isinstance(template_config, dict) else None
    if not isinstance(visual, dict):
        return {}

    style: Dict[str, Any] = {}
    for key in _STYLE_ALIASES.get(type_name, (type_name,)):
        candidate = visual.get(key)
        if isinstance(candidate, dict) and candidate:
            style = dict(candidate)
            break

    parent = _FAMILY_PARENTS.get(type_name)
    if parent:
        inherited = get_visual_style(template_config, parent)
        for key in _INHERITED_KEYS:
            if key not in style and key in inherited:
                style[key] = inherited[key]
    return style


def get_path(record: Any, path: str, default: Any = None) -> Any:
    """Walk a dotted path (``"layout.gapX"``) through nested dicts."""
    current = record
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return default
        current = current[part]
    return current


def as_number(value: Any, fallback: Optional[float] = None) -> Optional[float]:
    """Convert to a finite float, returning `fallback` otherwise."""
    if value is None or isinstance(value, bool):
        return fallback
    if isinstance(value, str) and not value.strip():
        return fallback
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    return number if math.isfinite(number) else fallback


def as_boolean(value: Any, fallback: bool) -> bool:
    if value is True or value is False:
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    return fallback


def as_string(value: Any, fallback: str) -> str:
    if isinstance(value, str) and value.strip():
        return value
    return fallback


def as_align(value: Any, fallback: str) -> str:
    """Normalize alignment strings to ``left`` / ``right`` / ``center``."""
    text = str(value or "").strip().lower()
    if text.startswith("l"):
        return "left"
    if text.startswith("r"):
        return "right"
    if text.startswith("c"):
        return "center"
    return fallback


def normalize_hex(value: Any) -> Optional[str]:
    """Return a 6-digit uppercase hex colour without ``#``, or ``None``."""
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not _HEX6_RE.match(text):
        return None
    return text.lstrip("#").upper()


def parse_color_with_alpha(value: Any) -> Optional[tuple[str, float]]:
    """Parse ``#RRGGBBAA``, ``#RRGGBB`` or ``rgba(r,g,b,a)`` into (hex, alpha 0..1)."""
    if not value:
        return None
    text = str(value).strip()
    if not text:
        return None

    if _HEX8_RE.match(text):
        digits = text.lstrip("#")
        alpha = max(0, min(255, int(digits[6:8], 16))) / 255
        return digits[:6].upper(), alpha

    if _HEX6_RE.match(text):
        return text.lstrip("#").upper(), 1.0

    m = _RGBA_RE.match(text)
    if m:
        r, g, b = (max(0, min(255, int(m.group(i)))) for i in (1, 2, 3))
        alpha = max(0.0, min(1.0, float(m.group(4)))) if m.group(4) is not None else 1.0
        return f"{r:02X}{g:02X}{b:02X}", alpha
    return None


def color_or_auto(value: Any) -> Optional[str]:
    """Resolve a colour token that may be ``"auto"``; ``None`` means pick by contrast."""
    if isinstance(value, str) and value.strip().lower() == "auto":
        return None
    return normalize_hex(value)


def require_style(
    type_name: str,
    style: Dict[str, Any],
    *,
    numbers: Iterable[str] = (),
    colors: Iterable[str] = (),
) -> Optional[Dict[str, Any]]:
    """Coerce the drawing-critical fields of a style record.

    Returns a dict keyed by the requested (dotted) names, or ``None`` after
    logging a warning that names every field that is missing or invalid.
    """
    values: Dict[str, Any] = {}
    missing: list[str] = []

    for name in numbers:
        number = as_number(get_path(style, name))
        if number is None:
            missing.append(name)
        else:
            values[name] = number

    for name in colors:
        hex_color = normalize_hex(get_path(style, name))
        if hex_color is None:
            missing.append(name)
        else:
            values[name] = hex_color

    if missing:
        logger.warning("%s: missing style values: %s", type_name, ", ".join(missing))
        return None
    return values


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_template_config(path: Optional[Path] = None, *, merge_defaults: bool = True) -> Dict[str, Any]:
    """Load a template config JSON, layered over the packaged default template."""
    default = _read_json(DEFAULT_TEMPLATE_PATH)
    if path is None:
        return default

    data = _read_json(Path(path))
    visual = data.get("visualStyles")
    if visual is not None and not isinstance(visual, dict):
        raise ConfigValidationError(
            [f"{path}: visualStyles must be an object"], title="Template validation failed"
        )
    if not merge_defaults:
        return data
    return deep_merge(default, data)


def _read_json(path: Path) -> Dict[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigValidationError([f"Template config not found: {path}"], title="Template validation failed") from exc

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigValidationError(
            [f"Invalid JSON in {path} at line {exc.lineno}, column {exc.colno}: {exc.msg}"],
            title="Template validation failed",
        ) from exc

    if not isinstance(data, dict):
        raise ConfigValidationError([f"{path}: root JSON value must be an object"], title="Template validation failed")
    return data
