from __future__ import annotations

import sys
from pathlib import Path

import pytest

SCRIPT_DIR = Path(__file__).resolve().parents[1] / "scripts"
if str(SCRIPT_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPT_DIR))

from pptxviz.charts import (  # noqa: E402
    CHART_KINDS,
    ChartCache,
    ChartResult,
    MatplotlibChartTool,
    RasterChartBridge,
    chart_cache_key,
    chart_request,
)


def test_cache_evicts_oldest_entry_at_capacity() -> None:
    cache = ChartCache()
    for i in range(51):
        cache.put(f"k{i}", b"png")
    assert len(cache) == 50
    assert "k0" not in cache
    assert "k1" in cache
    assert cache.keys()[-1] == "k50"


def test_cache_key_is_order_independent_for_style_keys() -> None:
    a = chart_cache_key(chart_request("bar", "T", ["a"], [1], {"x": 1, "y": 2}))
    b = chart_cache_key(chart_request("bar", "T", ["a"], [1], {"y": 2, "x": 1}))
    assert a == b


class _CountingTool:
    def __init__(self, out_dir: Path):
        self.out_dir = out_dir
        self.calls = 0

    def execute(self, *, chart_type, title, labels, data, file_name, charts_style=None):
        self.calls += 1
        path = self.out_dir / f"{file_name}.png"
        path.write_bytes(b"\x89PNG fake")
        return ChartResult(True, path)


class _FailingTool:
    def execute(self, **kwargs):
        return ChartResult(False, message="boom")


def test_bridge_reuses_cached_png(tmp_path: Path) -> None:
    tool = _CountingTool(tmp_path)
    bridge = RasterChartBridge(tool, output_dir=tmp_path)
    first = bridge.render("bar", "Sales", ["a", "b"], [1, 2], {})
    second = bridge.render("bar", "Sales", ["a", "b"], [1, 2], {})
    assert tool.calls == 1
    assert first is not None and second is not None
    assert second.read_bytes() == first.read_bytes()


def test_bridge_returns_none_when_tool_fails(tmp_path: Path) -> None:
    bridge = RasterChartBridge(_FailingTool(), output_dir=tmp_path)
    assert bridge.render("pie", "", ["a"], [1], {}) is None
    assert len(bridge.cache) == 0


class _MissingFileTool:
    def __init__(self, out_dir: Path):
        self.out_dir = out_dir

    def execute(self, *, chart_type, title, labels, data, file_name, charts_style=None):
        return ChartResult(True, self.out_dir / "never-written.png")


def test_bridge_treats_missing_png_as_failure(tmp_path: Path) -> None:
    bridge = RasterChartBridge(_MissingFileTool(tmp_path), output_dir=tmp_path)
    assert bridge.render("bar", "", ["a"], [1], {}) is None
    assert len(bridge.cache) == 0


POINTS = [{"x": 1, "y": 2, "r": 3}, {"x": 2, "y": 1, "r": 5}]
SERIES = [{"label": "North", "data": [1, 2, 3]}, {"label": "South", "data": [4, 5, 6]}]


def _sample_data(kind: str) -> list:
    if kind in ("scatter", "bubble"):
        return POINTS
    if kind == "stackedBar":
        return SERIES
    return [3, 5, 2]


@pytest.mark.parametrize("kind", sorted(set(CHART_KINDS.values())))
def test_matplotlib_tool_renders_every_kind(tmp_path: Path, kind: str) -> None:
    tool = MatplotlibChartTool(tmp_path)
    result = tool.execute(chart_type=kind, title="Sales", labels=["a", "b", "c"], data=_sample_data(kind), file_name=kind)
    assert result.success, result.message
    assert result.image_path.read_bytes().startswith(b"\x89PNG")


@pytest.mark.parametrize("kind", sorted(set(CHART_KINDS.values())))
def test_matplotlib_tool_accepts_empty_data(tmp_path: Path, kind: str) -> None:
    result = MatplotlibChartTool(tmp_path).execute(chart_type=kind, title="", labels=[], data=[], file_name=kind)
    assert result.success, result.message


def test_stacked_bar_pads_short_series(tmp_path: Path) -> None:
    data = [{"label": "North", "data": [1, 2, 3]}, {"label": "South", "data": [4]}]
    result = MatplotlibChartTool(tmp_path).execute(
        chart_type="stackedBar", title="", labels=["a", "b", "c"], data=data, file_name="ragged"
    )
    assert result.success, result.message


@pytest.mark.parametrize("kind", ["bar", "horizontalBar", "stackedBar", "pie", "doughnut", "polarArea", "scatter", "bubble"])
def test_matplotlib_tool_draws_value_labels_and_grid_color(tmp_path: Path, kind: str) -> None:
    style = {
        "dataLabelFontSize": 14,
        "dataLabelColor": "#FFFFFF",
        "labelFontSize": 12,
        "labelColor": "333333",
        "gridColor": "#E5E7EB",
    }
    result = MatplotlibChartTool(tmp_path).execute(
        chart_type=kind, title="", labels=["a", "b", "c"], data=_sample_data(kind), file_name=kind, charts_style=style
    )
    assert result.success, result.message
