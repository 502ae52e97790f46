"""Typed payloads, one variant per infographic type.

Raw JSON payloads are loosely shaped. The parsers here run once at the
registry boundary so renderers receive well-typed, already-defaulted values:
missing lists become empty, missing numbers ``0``, missing strings ``""``.
Numbers given as strings are parsed leniently (``"1,200"`` -> ``1200``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from .styles import as_number
from .textmetrics import parse_numeric

logger = logging.getLogger(__name__)


def _dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _records(value: Any) -> List[Dict[str, Any]]:
    """List entries as dicts; bare strings become ``{"label": s}``."""
    out = []
    for entry in _list(value):
        if isinstance(entry, dict):
            out.append(entry)
        elif isinstance(entry, str):
            out.append({"label": entry})
        else:
            out.append({})
    return out


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _number(value: Any) -> float:
    return parse_numeric(value) if value is not None else 0.0


def _optional_number(value: Any) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_numeric(value)


# --- Measures (bullet, progress) ---


@dataclass
class MeasureItem:
    label: str = ""
    value: float = 0.0
    target: Optional[float] = None


@dataclass
class MeasurePayload:
    items: List[MeasureItem] = field(default_factory=list)


def parse_measures(raw: Any) -> MeasurePayload:
    items = [
        MeasureItem(_text(it.get("label")), _number(it.get("value")), _optional_number(it.get("target")))
        for it in _records(_dict(raw).get("items"))
    ]
    return MeasurePayload(items)


# --- Waterfall ---


@dataclass
class WaterfallStep:
    label: str = ""
    delta: float = 0.0
    total: Optional[float] = None
    is_total: bool = False


@dataclass
class WaterfallPayload:
    items: List[WaterfallStep] = field(default_factory=list)


def parse_waterfall(raw: Any) -> WaterfallPayload:
    data = _dict(raw)
    entries = _records(data.get("items") if "items" in data else data.get("steps"))
    steps = []
    for it in entries:
        is_total = it.get("isTotal") is True or it.get("setAsTotal") is True or _text(it.get("type")).lower() == "total"
        steps.append(
            WaterfallStep(
                label=_text(it.get("label")),
                delta=_number(it.get("delta")),
                total=_optional_number(it.get("total")),
                is_total=is_total,
            )
        )
    return WaterfallPayload(steps)


# --- Venn ---


@dataclass
class Venn2Payload:
    a_label: str = ""
    b_label: str = ""
    overlap: float = 0.0
    overlap_label: Optional[str] = None


def parse_venn2(raw: Any) -> Venn2Payload:
    data = _dict(raw)
    overlap_label = data.get("overlapLabel")
    return Venn2Payload(
        a_label=_text(_dict(data.get("a")).get("label")),
        b_label=_text(_dict(data.get("b")).get("label")),
        overlap=max(0.0, _number(data.get("overlap"))),
        overlap_label=overlap_label.strip() if isinstance(overlap_label, str) and overlap_label.strip() else None,
    )


# --- Heatmap ---


@dataclass
class HeatmapPayload:
    x: List[str] = field(default_factory=list)
    y: List[str] = field(default_factory=list)
    z: List[List[float]] = field(default_factory=list)

    def value(self, row: int, col: int) -> float:
        if row < len(self.z) and col < len(self.z[row]):
            return self.z[row][col]
        return 0.0


def parse_heatmap(raw: Any) -> HeatmapPayload:
    data = _dict(raw)
    return HeatmapPayload(
        x=[_text(v) for v in _list(data.get("x"))],
        y=[_text(v) for v in _list(data.get("y"))],
        z=[[_number(v) for v in _list(row)] for row in _list(data.get("z"))],
    )


# --- Gantt ---


@dataclass
class GanttTask:
    label: str = ""
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @property
    def is_valid(self) -> bool:
        return self.start is not None and self.end is not None and self.end >= self.start


@dataclass
class GanttPayload:
    tasks: List[GanttTask] = field(default_factory=list)


def parse_datetime(value: Any) -> Optional[datetime]:
    """ISO 8601 date or datetime -> naive UTC datetime, ``None`` when unparseable."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.debug("Ignoring unparseable date %r", value)
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_gantt(raw: Any) -> GanttPayload:
    tasks = []
    for it in _records(_dict(raw).get("tasks")):
        start = parse_datetime(it.get("start"))
        end = parse_datetime(it.get("end"))
        duration = as_number(it.get("duration"))
        if end is None and start is not None and duration is not None and duration > 0:
            end = start + timedelta(days=int(duration))
        tasks.append(GanttTask(_text(it.get("label")), start, end))
    return GanttPayload(tasks)


# --- Labels only (checklist) ---


@dataclass
class LabelsPayload:
    items: List[str] = field(default_factory=list)


def parse_labels(raw: Any) -> LabelsPayload:
    return LabelsPayload([_text(it.get("label")) for it in _records(_dict(raw).get("items"))])


# --- Matrix ---


@dataclass
class MatrixPoint:
    label: str = ""
    x: float = 0.0
    y: float = 0.0
    z: Optional[float] = None


@dataclass
class MatrixPayload:
    x_labels: List[str] = field(default_factory=list)
    y_labels: List[str] = field(default_factory=list)
    items: List[MatrixPoint] = field(default_factory=list)


def parse_matrix(raw: Any) -> MatrixPayload:
    data = _dict(raw)
    axes = _dict(data.get("axes"))
    points = [
        MatrixPoint(_text(it.get("label")), _number(it.get("x")), _number(it.get("y")), as_number(it.get("z")))
        for it in _records(data.get("items"))
    ]
    return MatrixPayload(
        x_labels=[_text(v) for v in _list(axes.get("xLabels"))],
        y_labels=[_text(v) for v in _list(axes.get("yLabels"))],
        items=points,
    )


# --- Cards (comparison, callouts, kpi, kpi_grid) ---


@dataclass
class CardItem:
    label: str = ""
    value: str = ""
    icon: str = ""


@dataclass
class CardsPayload:
    items: List[CardItem] = field(default_factory=list)


def _card(record: Dict[str, Any]) -> CardItem:
    icon = record.get("iconPath") or record.get("icon") or record.get("iconName") or ""
    return CardItem(_text(record.get("label")), _text(record.get("value")), _text(icon).strip())


def parse_cards(raw: Any) -> CardsPayload:
    return CardsPayload([_card(it) for it in _records(_dict(raw).get("items"))])


@dataclass
class ComparisonPayload:
    a: CardItem = field(default_factory=CardItem)
    b: CardItem = field(default_factory=CardItem)


def parse_comparison(raw: Any) -> ComparisonPayload:
    data = _dict(raw)
    return ComparisonPayload(_card(_dict(data.get("a"))), _card(_dict(data.get("b"))))


# --- Steps (funnel, timeline, process, pyramid, roadmap) ---


@dataclass
class Step:
    label: str = ""
    value: float = 0.0
    date: str = ""
    detail: str = ""
    value_text: str = ""

    @property
    def secondary(self) -> str:
        """Text under a milestone heading: detail, then value, then date."""
        return self.detail or self.value_text or self.date


@dataclass
class StepsPayload:
    steps: List[Step] = field(default_factory=list)


def _step(record: Dict[str, Any]) -> Step:
    raw_value = record.get("value")
    return Step(
        label=_text(record.get("label")),
        value=_number(raw_value),
        date=_text(record.get("date")),
        detail=_text(record.get("detail")),
        value_text=_text(raw_value) if raw_value not in (None, "", 0) else "",
    )


def parse_steps(raw: Any) -> StepsPayload:
    return StepsPayload([_step(it) for it in _records(_dict(raw).get("steps"))])


def parse_milestones(raw: Any) -> StepsPayload:
    return StepsPayload([_step(it) for it in _records(_dict(raw).get("milestones"))])


# --- Map ---


@dataclass
class MapMarker:
    label: str = ""
    lon: Optional[float] = None
    lat: Optional[float] = None
    x: float = 0.0
    y: float = 0.0

    @property
    def has_lon_lat(self) -> bool:
        return self.lon is not None and self.lat is not None


@dataclass
class MapPayload:
    markers: List[MapMarker] = field(default_factory=list)
    center: Optional[Tuple[float, float]] = None  # (lat, lon)
    zoom: Optional[float] = None


def parse_map(raw: Any) -> MapPayload:
    data = _dict(raw)
    markers = []
    for it in _records(data.get("markers")):
        lon = as_number(it.get("lon", it.get("lng")))
        markers.append(MapMarker(_text(it.get("label")), lon, as_number(it.get("lat")), _number(it.get("x")), _number(it.get("y"))))
    center_raw = _dict(data.get("center"))
    c_lat, c_lon = as_number(center_raw.get("lat")), as_number(center_raw.get("lon", center_raw.get("lng")))
    center = (c_lat, c_lon) if c_lat is not None and c_lon is not None else None
    return MapPayload(markers, center, as_number(data.get("zoom")))


# --- Image ---


@dataclass
class ImagePayload:
    path: str = ""
    prompt: str = ""
    shadow: Optional[bool] = None


def parse_image(raw: Any) -> ImagePayload:
    data = _dict(raw)
    style = _dict(data.get("style"))
    shadow = bool(style["shadow"]) if "shadow" in style else None
    return ImagePayload(_text(data.get("path") or data.get("url")).strip(), _text(data.get("prompt")).strip(), shadow)


# --- Table ---


@dataclass
class TablePayload:
    headers: List[str] = field(default_factory=list)
    rows: List[List[str]] = field(default_factory=list)


def parse_table(raw: Any) -> TablePayload:
    data = _dict(raw)
    rows = []
    for row in _list(data.get("rows")):
        if isinstance(row, list):
            rows.append([_text(cell) for cell in row])
        else:
            rows.append([_text(row)])
    return TablePayload([_text(h) for h in _list(data.get("headers"))], rows)


# --- Raster charts ---


@dataclass
class ChartPayload:
    title: str = ""
    labels: List[str] = field(default_factory=list)
    data: List[Any] = field(default_factory=list)


def parse_chart(raw: Any, kind: str = "bar") -> ChartPayload:
    """Labels and data for the raster chart tool.

    Scatter and bubble keep point objects; stacked bars accept ``series`` or a
    2-D ``values`` list; everything else is a flat list of numbers.
    """
    data = _dict(raw)
    items = _records(data.get("items"))
    values = data.get("values")
    labels = [_text(v) for v in _list(data.get("labels"))]

    if kind in ("scatter", "bubble"):
        prefix = "P" if kind == "scatter" else "B"
        if not labels and not isinstance(data.get("labels"), list):
            labels = [f"{prefix}{i + 1}" for i in range(len(items))]
        points = list(values) if isinstance(values, list) else items
        return ChartPayload(_text(data.get("title")), labels, points)

    if not isinstance(data.get("labels"), list):
        labels = [_text(it.get("label")) for it in items]

    if kind == "stackedBar":
        if isinstance(data.get("series"), list):
            series = [
                {"label": _text(s.get("label")), "data": [_number(v) for v in _list(s.get("data"))]}
                for s in _records(data.get("series"))
            ]
            return ChartPayload(_text(data.get("title")), labels, series)
        if isinstance(values, list) and values and isinstance(values[0], list):
            return ChartPayload(_text(data.get("title")), labels, [[_number(v) for v in row] for row in _list(values) if isinstance(row, list)])

    if isinstance(values, list):
        numbers = [_number(v) for v in values]
    else:
        numbers = [_number(it.get("value")) for it in items]
    return ChartPayload(_text(data.get("title")), labels, numbers)
