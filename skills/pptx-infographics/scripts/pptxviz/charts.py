"""Raster chart bridge: render conventional charts to PNG and cache the bytes."""

from __future__ import annotations

import hashlib
import json
import logging
import math
from collections import OrderedDict
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .colors import golden_palette, hex_to_rgb
from .styles import as_boolean, as_number, normalize_hex

logger = logging.getLogger(__name__)

CHART_CACHE_MAX = 50
CANVAS_PX = 1200

# Infographic type -> chart kind understood by the chart tool.
CHART_KINDS = {
    "bar_chart": "bar",
    "pie_chart": "pie",
    "line_chart": "line",
    "radar_chart": "radar",
    "polar_area_chart": "polarArea",
    "scatter_chart": "scatter",
    "bubble_chart": "bubble",
    "horizontal_bar_chart": "horizontalBar",
    "stacked_bar_chart": "stackedBar",
    "area_chart": "area",
    "kpi_donut": "doughnut",
}


class ChartCache:
    """Insertion-ordered PNG cache with FIFO eviction."""

    def __init__(self, max_entries: int = CHART_CACHE_MAX):
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, bytes]" = OrderedDict()

    def get(self, key: str) -> Optional[bytes]:
        return self._entries.get(key)

    def put(self, key: str, data: bytes) -> None:
        if key in self._entries:
            return
        self._entries[key] = data
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def keys(self) -> List[str]:
        return list(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def chart_request(chart_type: str, title: str, labels: Sequence[str], data: Sequence[Any], charts_style: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "chartType": chart_type,
        "title": title or "",
        "labels": list(labels),
        "data": list(data),
        "chartsStyle": charts_style or {},
    }


def chart_cache_key(request: Dict[str, Any]) -> str:
    return json.dumps(request, sort_keys=True, ensure_ascii=False, default=str)


@dataclass
class ChartResult:
    success: bool
    image_path: Optional[Path] = None
    message: str = ""


def _rgba(hex_color: str, alpha: float):
    r, g, b = hex_to_rgb(hex_color)
    return (r / 255, g / 255, b / 255, max(0.0, min(1.0, alpha)))


_LEGEND_LOCATIONS = {"top": "upper center", "right": "center right", "bottom": "lower center", "left": "center left"}


def _value_label_style(style: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Value labels need both ``dataLabelFontSize`` and ``dataLabelColor``."""
    font_size = as_number(style.get("dataLabelFontSize"))
    color = normalize_hex(style.get("dataLabelColor"))
    if font_size is None or color is None:
        return None
    inset = as_number(style.get("dataLabelInsideOffset"), 6.0)
    return {"fontsize": font_size, "color": f"#{color}", "inset": inset}


def _point_label_style(style: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    font_size = as_number(style.get("labelFontSize"))
    color = normalize_hex(style.get("labelColor"))
    if font_size is None or color is None:
        return None
    # Canvas offsets grow downward; annotation offsets grow upward.
    return {"fontsize": font_size, "color": f"#{color}", "offset": -as_number(style.get("labelOffsetY"), -12.0)}


def _pie_value_kwargs(values: Sequence[float], value_labels: Optional[Dict[str, Any]], wedge: Dict[str, Any]) -> Dict[str, Any]:
    if value_labels is None:
        return {}
    total = sum(values) or 1.0
    ring = wedge.get("width")
    return {
        "autopct": lambda pct: f"{pct * total / 100:g}",
        "pctdistance": 1 - ring / 2 if ring else 0.6,
        "textprops": {"fontsize": value_labels["fontsize"], "color": value_labels["color"]},
    }


class MatplotlibChartTool:
    """Chart tool backed by matplotlib's Agg canvas (1200x1200 PNG)."""

    def __init__(self, output_dir: Path | str):
        self.output_dir = Path(output_dir)

    def execute(
        self,
        *,
        chart_type: str,
        title: str,
        labels: Sequence[str],
        data: Sequence[Any],
        file_name: str,
        charts_style: Optional[Dict[str, Any]] = None,
    ) -> ChartResult:
        style = charts_style or {}
        try:
            png = self.render_png(chart_type, title, list(labels), list(data), style)
            self.output_dir.mkdir(parents=True, exist_ok=True)
            out_path = self.output_dir / f"{file_name}.png"
            out_path.write_bytes(png)
        except Exception as e:
            return ChartResult(False, message=f"{chart_type} chart failed: {e}")
        return ChartResult(True, out_path)

    def render_png(self, chart_type: str, title: str, labels: List[str], data: List[Any], style: Dict[str, Any]) -> bytes:
        import matplotlib.figure
        from matplotlib.backends.backend_agg import FigureCanvasAgg

        dpi = 100
        fig = matplotlib.figure.Figure(figsize=(CANVAS_PX / dpi, CANVAS_PX / dpi), dpi=dpi)
        FigureCanvasAgg(fig)

        polar = chart_type in ("radar", "polarArea")
        ax = fig.add_subplot(111, projection="polar" if polar else None)

        count = max(len(labels), len(data), 1)
        theme = [c for c in (normalize_hex(c) for c in (style.get("colors") or [])) if c]
        colors = [theme[i % len(theme)] for i in range(count)] if theme else golden_palette(count)

        alpha_cfg = style.get("alpha") if isinstance(style.get("alpha"), dict) else {}
        alpha_pie = as_number(alpha_cfg.get("pieDoughnut"), 1.0)
        alpha_others = as_number(alpha_cfg.get("others"), 0.35)
        border_width = as_number(style.get("borderWidth"), 2.0)
        fills = [_rgba(c, alpha_others) for c in colors]
        borders = [_rgba(c, 1.0) for c in colors]

        legend_cfg = style.get("legend") if isinstance(style.get("legend"), dict) else {}
        show_legend = as_boolean(legend_cfg.get("display"), True)
        legend_pos = str(legend_cfg.get("position") or "top").lower()
        legend_loc = _LEGEND_LOCATIONS.get({"t": "top", "r": "right", "b": "bottom", "l": "left"}.get(legend_pos, legend_pos), "upper center")
        axis_fs = as_number(style.get("axisFontSize"), 18.0)
        grid_color = normalize_hex(style.get("gridColor"))
        value_labels = _value_label_style(style)
        point_labels = _point_label_style(style)
        bar_containers = []

        if chart_type in ("pie", "doughnut"):
            pie_fills = [_rgba(c, alpha_pie) for c in colors]
            wedge = {"edgecolor": "white", "linewidth": border_width}
            if chart_type == "doughnut":
                hole = as_number(style.get("holeScale"), 0.55)
                wedge["width"] = max(0.05, 1 - max(0.0, min(0.95, hole)))
            values = [max(0.0, float(v)) for v in data] or [1.0]
            ax.pie(values, colors=pie_fills[: len(values)], startangle=90, counterclock=False, wedgeprops=wedge, **_pie_value_kwargs(values, value_labels, wedge))
            ax.set_aspect("equal")
            if show_legend and labels:
                ax.legend(labels, loc=legend_loc, fontsize=axis_fs, frameon=False)
        elif chart_type == "radar":
            values = [float(v) for v in data]
            angles = [2 * math.pi * i / max(1, len(values)) for i in range(len(values))]
            if values:
                ax.plot(angles + angles[:1], values + values[:1], color=borders[0], linewidth=border_width)
                ax.fill(angles + angles[:1], values + values[:1], color=fills[0])
            ax.set_xticks(angles)
            ax.set_xticklabels(labels[: len(angles)], fontsize=axis_fs)
        elif chart_type == "polarArea":
            values = [float(v) for v in data]
            width = 2 * math.pi / max(1, len(values))
            angles = [width * i for i in range(len(values))]
            ax.bar(angles, values, width=width, color=fills[: len(values)], edgecolor=borders[: len(values)], linewidth=border_width, align="edge")
            if value_labels is not None:
                for angle, value in zip(angles, values):
                    ax.text(
                        angle + width / 2, value / 2, f"{value:g}", ha="center", va="center",
                        fontsize=value_labels["fontsize"], color=value_labels["color"],
                    )
            ax.set_xticks([a + width / 2 for a in angles])
            ax.set_xticklabels(labels[: len(angles)], fontsize=axis_fs)
        elif chart_type in ("scatter", "bubble"):
            xs, ys, sizes = [], [], []
            for point in data:
                if isinstance(point, dict):
                    xs.append(float(as_number(point.get("x"), 0.0)))
                    ys.append(float(as_number(point.get("y"), 0.0)))
                    sizes.append(float(as_number(point.get("r"), 6.0)))
                elif isinstance(point, (list, tuple)) and len(point) >= 2:
                    xs.append(float(as_number(point[0], 0.0)))
                    ys.append(float(as_number(point[1], 0.0)))
                    sizes.append(float(as_number(point[2], 6.0)) if len(point) > 2 else 6.0)
            marker_sizes = [(r * 2.2) ** 2 for r in sizes] if chart_type == "bubble" else 120
            ax.scatter(xs, ys, s=marker_sizes, c=fills[: len(xs)] or None, edgecolors=borders[: len(xs)] or None, linewidths=border_width)
            if point_labels is not None:
                prefix = "B" if chart_type == "bubble" else "P"
                for i, (px, py) in enumerate(zip(xs, ys)):
                    text = labels[i] if i < len(labels) else f"{prefix}{i + 1}"
                    ax.annotate(
                        text, (px, py), xytext=(0, point_labels["offset"]), textcoords="offset points",
                        ha="center", va="bottom", fontsize=point_labels["fontsize"], color=point_labels["color"],
                    )
        elif chart_type == "stackedBar":
            series = self._stacked_series(data)
            bottoms = [0.0] * len(labels or (series[0][1] if series else []))
            for idx, (name, values) in enumerate(series):
                values = list(values) + [0.0] * (len(bottoms) - len(values))
                color = colors[idx % len(colors)]
                bars = ax.bar(range(len(bottoms)), values[: len(bottoms)], bottom=bottoms, color=_rgba(color, alpha_others), edgecolor=_rgba(color, 1.0), linewidth=border_width, label=name)
                bar_containers.append(bars)
                bottoms = [b + v for b, v in zip(bottoms, values)]
            ax.set_xticks(range(len(labels)))
            ax.set_xticklabels(labels)
            if show_legend and series:
                ax.legend(loc=legend_loc, fontsize=axis_fs, frameon=False)
        else:
            values = [float(v) for v in data]
            positions = list(range(len(values)))
            if chart_type == "horizontalBar":
                bars = ax.barh(positions, values, color=fills[: len(values)], edgecolor=borders[: len(values)], linewidth=border_width)
                bar_containers.append(bars)
                ax.set_yticks(positions)
                ax.set_yticklabels(labels[: len(values)])
                ax.invert_yaxis()
            elif chart_type in ("line", "area"):
                ax.plot(positions, values, color=borders[0], linewidth=border_width + 1, marker="o")
                if chart_type == "area":
                    ax.fill_between(positions, values, color=fills[0])
                ax.set_xticks(positions)
                ax.set_xticklabels(labels[: len(values)])
            else:
                bar_containers.append(ax.bar(positions, values, color=fills[: len(values)], edgecolor=borders[: len(values)], linewidth=border_width))
                ax.set_xticks(positions)
                ax.set_xticklabels(labels[: len(values)])

        if not polar and chart_type not in ("pie", "doughnut"):
            ax.tick_params(labelsize=axis_fs)
            for side in ("top", "right"):
                ax.spines[side].set_visible(False)
            value_axis = "x" if chart_type == "horizontalBar" else "y"
            if grid_color:
                ax.grid(False)
                ax.grid(axis=value_axis, color=f"#{grid_color}")
            else:
                ax.grid(axis=value_axis, alpha=0.3)
        elif polar and grid_color:
            ax.grid(color=f"#{grid_color}")

        if value_labels is not None:
            # Inside the bar, just short of its end; stacked segments get centred labels.
            label_type = "center" if chart_type == "stackedBar" else "edge"
            padding = 0 if label_type == "center" else -(value_labels["fontsize"] + value_labels["inset"])
            for container in bar_containers:
                ax.bar_label(
                    container, fmt="%g", label_type=label_type, padding=padding,
                    fontsize=value_labels["fontsize"], color=value_labels["color"],
                )

        if title:
            key = "titleFontSizeBar" if chart_type in ("bar", "horizontalBar", "stackedBar") else "titleFontSizeDefault"
            ax.set_title(title, fontsize=as_number(style.get(key), 28.0))

        fig.tight_layout()
        buf = BytesIO()
        fig.savefig(buf, format="png")
        png_data = buf.getvalue()
        buf.close()
        return png_data

    @staticmethod
    def _stacked_series(data: List[Any]):
        if data and all(isinstance(s, dict) for s in data):
            return [(str(s.get("label") or ""), [float(as_number(v, 0.0)) for v in (s.get("data") or [])]) for s in data]
        if data and all(isinstance(row, list) for row in data):
            return [(f"Series {i + 1}", [float(as_number(v, 0.0)) for v in row]) for i, row in enumerate(data)]
        return [("", [float(as_number(v, 0.0)) for v in data])]


class RasterChartBridge:
    """Renders charts through a chart tool, reusing cached PNGs for identical requests."""

    def __init__(self, tool=None, *, output_dir: Path | str, cache: Optional[ChartCache] = None):
        self.output_dir = Path(output_dir)
        self.tool = tool if tool is not None else MatplotlibChartTool(self.output_dir)
        self.cache = cache if cache is not None else ChartCache()

    def render(self, chart_type: str, title: str, labels: Sequence[str], data: Sequence[Any], charts_style: Dict[str, Any]) -> Optional[Path]:
        request = chart_request(chart_type, title, labels, data, charts_style)
        key = chart_cache_key(request)
        digest = hashlib.sha1(key.encode("utf-8")).hexdigest()[:16]

        cached = self.cache.get(key)
        if cached is not None:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path = self.output_dir / f"pptchart-{digest}.png"
            path.write_bytes(cached)
            logger.debug("chart cache hit for %s (%s)", chart_type, digest)
            return path

        result = self.tool.execute(
            chart_type=chart_type,
            title=request["title"],
            labels=request["labels"],
            data=request["data"],
            file_name=f"pptchart-{digest}",
            charts_style=request["chartsStyle"],
        )
        if not result.success or result.image_path is None:
            logger.warning("%s: chart tool failed: %s", chart_type, result.message or "no image returned")
            return None

        image_path = Path(result.image_path)
        try:
            png = image_path.read_bytes()
        except OSError as exc:
            logger.warning("%s: chart tool failed: %s", chart_type, exc)
            return None
        self.cache.put(key, png)
        return image_path
