"""Pure layout math shared by the renderers (no drawing here)."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import MAXYEAR, datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple


@dataclass(frozen=True)
class Region:
    """Rectangle in inches; the whole drawable area of one infographic."""

    x: float
    y: float
    w: float
    h: float

    @classmethod
    def from_dict(cls, raw: dict, default: "Region") -> "Region":
        def num(key: str, fallback: float) -> float:
            try:
                value = float(raw.get(key, fallback))
            except (TypeError, ValueError):
                return fallback
            return value if math.isfinite(value) else fallback

        return cls(num("x", default.x), num("y", default.y), num("w", default.w), num("h", default.h))


# --- Nice ticks ---


def nice_step(raw_step: float) -> float:
    """Snap a raw step to 1/2/5/10 times a power of ten."""
    if raw_step <= 0 or not math.isfinite(raw_step):
        return 1.0
    magnitude = 10 ** math.floor(math.log10(raw_step))
    normalized = raw_step / magnitude
    if normalized <= 1:
        nice = 1
    elif normalized <= 2:
        nice = 2
    elif normalized <= 5:
        nice = 5
    else:
        nice = 10
    return nice * magnitude


def nice_ticks(lo: float, hi: float, desired: int = 5) -> Tuple[float, List[float]]:
    """Return (step, ticks) covering ``[lo, hi]`` with about `desired` ticks."""
    span = max(1.0, hi - lo)
    step = nice_step(span / max(2, desired - 1))
    start = math.floor(lo / step) * step
    end = math.ceil(hi / step) * step
    ticks: List[float] = []
    value = start
    while value <= end + 1e-6:
        ticks.append(value)
        value += step
    return step, ticks


# --- Waterfall ---


@dataclass(frozen=True)
class WaterfallBar:
    label: str
    start: float
    end: float
    is_total: bool

    @property
    def delta(self) -> float:
        return self.end - self.start

    @property
    def base(self) -> float:
        """Where the bar is drawn from: totals stand on zero."""
        return 0.0 if self.is_total else self.start


def waterfall_series(steps: Iterable) -> Tuple[List[float], List[WaterfallBar]]:
    """Cumulative points (starting at 0) and per-step bars.

    Each step needs ``label``, ``delta``, ``total`` (optional) and ``is_total``.
    """
    cumulative = [0.0]
    bars: List[WaterfallBar] = []
    for step in steps:
        start = cumulative[-1]
        if step.is_total:
            end = step.total if step.total is not None else step.delta
        else:
            end = start + step.delta
        bars.append(WaterfallBar(step.label, start, end, step.is_total))
        cumulative.append(end)
    return cumulative, bars


# --- Funnel ---


def funnel_widths(values: Sequence[float], chart_w: float, *, min_w: float = 0.2) -> List[float]:
    """Band widths proportional to ``value / max(values)``, kept inside ``[0, chart_w]``."""
    max_val = max((v for v in values), default=0.0)
    if not math.isfinite(max_val) or max_val <= 0:
        max_val = 1.0
    floor = min(min_w, chart_w)
    return [min(chart_w, max(floor, chart_w * (max(0.0, v) / max_val))) for v in values]


def funnel_shade_ratio(index: int, count: int, *, min_ratio: float, max_ratio: float, gamma: float) -> float:
    """Gamma-eased share of the base colour: 1 at the top band when max_ratio is 1."""
    t_lin = 1.0 if count <= 1 else 1 - index / max(1, count - 1)
    return min_ratio + (max_ratio - min_ratio) * (t_lin ** gamma)


# --- Pyramid ---


@dataclass(frozen=True)
class PyramidBand:
    top_width: float
    bottom_width: float
    y_top: float
    y_bottom: float
    # Absolute outline: a triangle for the top band, trapezoids below.
    points: Tuple[Tuple[float, float], ...]

    def local(self) -> Tuple[float, float, float, float, List[Tuple[float, float]]]:
        """Bounding box and points relative to that box's origin."""
        xs = [p[0] for p in self.points]
        ys = [p[1] for p in self.points]
        min_x, min_y = min(xs), min(ys)
        w = (max(xs) - min_x) or 0.01
        h = (max(ys) - min_y) or 0.01
        return min_x, min_y, w, h, [(px - min_x, py - min_y) for px, py in self.points]


def pyramid_layer_count(max_layers: int, step_count: int) -> int:
    max_layers = max(1, int(max_layers))
    return min(max_layers, step_count or max_layers)


def pyramid_bands(region: Region, layers: int) -> Tuple[float, float, float, List[PyramidBand]]:
    """Fit an equilateral triangle in `region` and slice it into `layers` bands.

    Returns (tri_x, side, height, bands).
    """
    side = min(region.w, region.h * 2 / math.sqrt(3))
    height = side * math.sqrt(3) / 2
    tri_x = region.x + (region.w - side) / 2
    tri_y = region.y + (region.h - height) / 2
    band_h = height / max(1, layers)

    bands: List[PyramidBand] = []
    for i in range(layers):
        y_top = tri_y + band_h * i
        y_bottom = y_top + band_h
        w_top = max(0.0, side * i / layers)
        w_bottom = max(0.1, side * (i + 1) / layers)
        left_top = tri_x + (side - w_top) / 2
        left_bottom = tri_x + (side - w_bottom) / 2
        if i == 0:
            points = (
                (tri_x + side / 2, y_top),
                (left_bottom + w_bottom, y_bottom),
                (left_bottom, y_bottom),
            )
        else:
            points = (
                (left_top, y_top),
                (left_top + w_top, y_top),
                (left_bottom + w_bottom, y_bottom),
                (left_bottom, y_bottom),
            )
        bands.append(PyramidBand(w_top, w_bottom, y_top, y_bottom, points))
    return tri_x, side, height, bands


# --- Roadmap ---


def roadmap_tiling(avail: float, count: int, *, gap: float = 0.0, tip_ratio: float = 0.35) -> Tuple[float, float]:
    """Chevron width and x step so neighbours overlap by `tip_ratio` of a segment."""
    denom = max(0.1, count - tip_ratio * (count - 1))
    seg_w = max(0.6, (avail - gap * (count - 1)) / denom)
    epsilon = max(0.06, seg_w * 0.02) if gap <= 0.0001 else 0.0
    return seg_w, seg_w * (1 - tip_ratio) + gap - epsilon


# --- Gantt ---


def gantt_cadence(span: timedelta) -> str:
    days = span.total_seconds() / 86400
    if days >= 60:
        return "month"
    if days >= 14:
        return "week"
    if days >= 2:
        return "day"
    return "hour"


def gantt_grid_lines(min_start: datetime, max_end: datetime, unit: Optional[str] = None) -> List[datetime]:
    """Calendar-aligned grid instants, each clamped into ``[min_start, max_end]``."""
    unit = unit or gantt_cadence(max_end - min_start)

    def clamp(d: datetime) -> datetime:
        return max(min_start, min(max_end, d))

    lines: List[datetime] = []
    if unit == "month":
        year, month = min_start.year, min_start.month
        while True:
            cursor = min_start.replace(year=year, month=month, day=1, hour=0, minute=0, second=0, microsecond=0)
            if cursor > max_end:
                break
            lines.append(clamp(cursor))
            month += 1
            if month > 12:
                month = 1
                year += 1
                if year > MAXYEAR:
                    break
        return lines

    if unit == "week":
        cursor = min_start.replace(hour=0, minute=0, second=0, microsecond=0) - timedelta(days=min_start.weekday())
        step = timedelta(days=7)
    elif unit == "day":
        cursor = min_start.replace(hour=0, minute=0, second=0, microsecond=0)
        step = timedelta(days=1)
    else:
        cursor = min_start.replace(minute=0, second=0, microsecond=0)
        step = timedelta(hours=1)

    while cursor <= max_end:
        lines.append(clamp(cursor))
        cursor += step
    return lines


def time_scale(min_start: datetime, max_end: datetime, width: float):
    """Linear map from an instant to an x offset in ``[0, width]``."""
    span = max(1e-3, (max_end - min_start).total_seconds())

    def scale(d: datetime) -> float:
        return width * (d - min_start).total_seconds() / span

    return scale


# --- Images ---


def contain_box(img_w: float, img_h: float, region: Region, *, top: bool = False) -> Region:
    """Largest box with the image's aspect inside `region`, centred (or top-aligned)."""
    if img_w <= 0 or img_h <= 0:
        return region
    scale = min(region.w / img_w, region.h / img_h)
    w = max(0.1, img_w * scale)
    h = max(0.1, img_h * scale)
    x = region.x + (region.w - w) / 2
    y = region.y if top else region.y + (region.h - h) / 2
    return Region(x, y, w, h)


def cover_crop(img_w: float, img_h: float, box_w: float, box_h: float) -> Tuple[float, float, float, float]:
    """Crop fractions (left, right, top, bottom) so the image fills the box without distortion."""
    if img_w <= 0 or img_h <= 0 or box_w <= 0 or box_h <= 0:
        return 0.0, 0.0, 0.0, 0.0
    img_ratio = img_w / img_h
    box_ratio = box_w / box_h
    if img_ratio > box_ratio:
        keep = box_ratio / img_ratio
        side = (1 - keep) / 2
        return side, side, 0.0, 0.0
    keep = img_ratio / box_ratio
    side = (1 - keep) / 2
    return 0.0, 0.0, side, side


def aspect_for_region(region: Region) -> str:
    ratio = region.w / max(0.0001, region.h)
    if ratio >= 1.55:
        return "16:9"
    if ratio >= 1.20:
        return "4:3"
    if ratio >= 0.85:
        return "1:1"
    if ratio >= 0.60:
        return "3:4"
    return "9:16"


def grid_shape(count: int) -> Tuple[int, int]:
    """(columns, rows) for callout cards."""
    if count <= 0:
        return 1, 1
    if count <= 2:
        return count, 1
    if count <= 4:
        return 2, math.ceil(count / 2)
    return 3, math.ceil(count / 3)
