from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest

SCRIPT_DIR = Path(__file__).resolve().parents[1] / "scripts"
if str(SCRIPT_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPT_DIR))

from pptxviz.geometry import Region  # noqa: E402
from pptxviz.registry import Capabilities, RenderArgs, build_default_registry  # noqa: E402
from pptxviz.styles import load_template_config  # noqa: E402
from pptxviz.surface import RecordingSurface  # noqa: E402

REGION = Region(0.5, 1.0, 8.0, 4.0)

PAYLOADS = {
    "bullet": {"items": [{"label": "Revenue", "value": 70, "target": 80}]},
    "waterfall": {"items": [{"label": "Start", "delta": 10}, {"label": "Loss", "delta": -4}]},
    "venn2": {"a": {"label": "A"}, "b": {"label": "B"}, "overlap": 30},
    "heatmap": {"x": ["Q1", "Q2"], "y": ["North"], "z": [[1, -2]]},
    "progress": {"items": [{"label": "A", "value": 50, "target": 100}]},
    "gantt": {"tasks": [{"label": "Build", "start": "2024-01-01", "end": "2024-02-15"}]},
    "checklist": {"items": [{"label": "Plan"}, {"label": "Ship"}]},
    "matrix": {"axes": {"xLabels": ["Low", "High"], "yLabels": ["Low", "High"]}, "items": [{"label": "P", "x": 0.5, "y": -0.2}]},
    "comparison": {"a": {"label": "Before", "value": "10"}, "b": {"label": "After", "value": "20"}},
    "callouts": {"items": [{"label": "Speed", "value": "2x"}, {"label": "Cost", "value": "-30%"}]},
    "kpi": {"items": [{"label": "NPS", "value": "62"}]},
    "kpi_grid": {"items": [{"label": "Users", "value": "1.2M"}]},
    "funnel": {"steps": [{"label": "Visit", "value": 100}, {"label": "Buy", "value": 40}]},
    "timeline": {"steps": [{"label": "Kickoff", "date": "2024-01"}, {"label": "Launch"}]},
    "process": {"steps": [{"label": "Plan"}, {"label": "Do"}, {"label": "Check"}]},
    "roadmap": {"milestones": [{"label": "Alpha", "date": "Q1"}, {"label": "Beta", "date": "Q2"}]},
    "pyramid": {"steps": [{"label": "Vision"}, {"label": "Strategy"}, {"label": "Tactics"}]},
    "map_markers": {"markers": [{"label": "HQ", "x": 0.4, "y": 0.5}]},
    "table": {"headers": ["Name", "Score"], "rows": [["A", "1"], ["B", "2"], ["C", "3"]]},
}

FAIL_CLOSED_TYPES = [
    "bullet", "waterfall", "venn2", "heatmap", "checklist", "matrix", "comparison", "callouts",
    "kpi", "kpi_grid", "timeline", "process", "pyramid", "map_markers", "table",
]


@pytest.fixture(scope="module")
def template() -> dict:
    return load_template_config()


@pytest.fixture(scope="module")
def registry():
    return build_default_registry(Capabilities())


def _render(registry, type_name: str, payload, template_config, region: Region = REGION):
    surface = RecordingSurface()
    ok = registry.render(
        RenderArgs(surface=surface, type=type_name, payload=payload, region=region, template_config=template_config)
    )
    return ok, surface


@pytest.mark.parametrize("type_name", sorted(PAYLOADS))
def test_every_renderer_draws_with_default_template(registry, template, type_name: str) -> None:
    ok, surface = _render(registry, type_name, PAYLOADS[type_name], template)
    assert ok is True
    assert surface.primitives


@pytest.mark.parametrize("type_name", FAIL_CLOSED_TYPES)
def test_renderers_fail_closed_without_style(registry, caplog, type_name: str) -> None:
    with caplog.at_level(logging.WARNING):
        ok, surface = _render(registry, type_name, PAYLOADS[type_name], {"visualStyles": {}})
    assert ok is False
    assert surface.primitives == []
    assert "missing style values" in caplog.text


def test_image_requires_sizing(registry) -> None:
    ok, surface = _render(registry, "image", {"path": "/nonexistent.png"}, {"visualStyles": {"image": {}}})
    assert ok is False
    assert surface.primitives == []


def test_image_with_missing_local_file_fails(registry, template, tmp_path: Path) -> None:
    ok, surface = _render(registry, "image", {"path": str(tmp_path / "nope.png")}, template)
    assert ok is False
    assert surface.primitives == []


def test_image_places_existing_file(registry, template, tmp_path: Path) -> None:
    image = tmp_path / "photo.png"
    image.write_bytes(b"\x89PNG")
    ok, surface = _render(registry, "image", {"path": str(image)}, template)
    assert ok is True
    (placed,) = surface.of_kind("image")
    assert placed.options["sizing"] == "contain"
    assert (placed.x, placed.y, placed.w, placed.h) == (REGION.x, REGION.y, REGION.w, REGION.h)


def test_progress_outline_and_achieved_widths(registry, template) -> None:
    payload = {"items": [{"label": "A", "value": 50, "target": 100}, {"label": "B", "value": 100, "target": 200}]}
    ok, surface = _render(registry, "progress", payload, template)
    assert ok is True

    rects = surface.of_kind("rect")
    tracks = [p for p in rects if p.options["line"].width == 0.5]
    outlines = [p for p in rects if p.options["line"].width == 2]
    achieved = [p for p in rects if p.options["fill"].transparency == 80]
    assert len(tracks) == len(outlines) == len(achieved) == 2

    bar_area_w = tracks[0].w
    assert outlines[0].w == pytest.approx(bar_area_w * 100 / 200)
    assert outlines[1].w == pytest.approx(bar_area_w)
    for outline, bar in zip(outlines, achieved):
        assert bar.w == pytest.approx(outline.w / 2)
        assert bar.x == pytest.approx(outline.x)
    assert "50%" in surface.texts()


def test_funnel_band_widths_follow_values(registry, template) -> None:
    ok, surface = _render(registry, "funnel", PAYLOADS["funnel"], template)
    assert ok is True
    bands = surface.of_kind("trapezoid")
    assert len(bands) == 2
    assert bands[1].w == pytest.approx(bands[0].w * 40 / 100)


def test_funnel_without_steps_draws_nothing(registry, template) -> None:
    ok, surface = _render(registry, "funnel", {"steps": []}, template)
    assert ok is True
    assert surface.primitives == []


def test_pyramid_draws_one_band_per_step(registry, template) -> None:
    ok, surface = _render(registry, "pyramid", PAYLOADS["pyramid"], template)
    assert ok is True
    assert len(surface.of_kind("freeform")) == 3
    assert surface.texts() == ["Vision", "Strategy", "Tactics"]


def test_waterfall_skips_grid_when_disabled(registry, template) -> None:
    styled = load_template_config()
    styled["visualStyles"]["waterfall"]["grid"] = False
    _, with_grid = _render(registry, "waterfall", PAYLOADS["waterfall"], template)
    _, without_grid = _render(registry, "waterfall", PAYLOADS["waterfall"], styled)
    assert len(with_grid.of_kind("line")) > len(without_grid.of_kind("line"))


def test_bullet_caps_rows_at_five(registry, template) -> None:
    payload = {"items": [{"label": f"Row {i}", "value": i * 10, "target": 50} for i in range(8)]}
    ok, surface = _render(registry, "bullet", payload, template)
    assert ok is True
    labels = [t for t in surface.texts() if t.startswith("Row ")]
    assert labels == [f"Row {i}" for i in range(5)]


class _FakeBridge:
    def __init__(self, path: Path):
        self.path = path
        self.requests = []

    def render(self, kind, title, labels, data, style):
        self.requests.append((kind, title, list(labels), list(data)))
        return self.path


def test_raster_chart_is_contain_fit_and_top_aligned(template, tmp_path: Path) -> None:
    png = tmp_path / "chart.png"
    png.write_bytes(b"\x89PNG")
    bridge = _FakeBridge(png)
    registry = build_default_registry(Capabilities(chart_bridge=bridge))
    region = Region(1, 1, 6, 3)
    ok, surface = _render(registry, "bar_chart", {"title": "Sales", "labels": ["a", "b"], "values": [3, 4]}, template, region)
    assert ok is True
    assert bridge.requests[0][0] == "bar"
    (image,) = surface.of_kind("image")
    assert (image.x, image.y, image.w, image.h) == pytest.approx((2.5, 1, 3, 3))


def test_raster_chart_without_bridge_still_counts_as_rendered(registry, template) -> None:
    ok, surface = _render(registry, "pie_chart", {"labels": ["a"], "values": [1]}, template)
    assert ok is True
    assert surface.primitives == []


def test_map_markers_simple_map_without_fetcher(registry, template) -> None:
    payload = {"markers": [{"label": "Paris", "lat": 48.85, "lon": 2.35}, {"label": "Box", "x": 0.1, "y": 0.9}]}
    ok, surface = _render(registry, "map_markers", payload, template)
    assert ok is True
    assert len(surface.of_kind("rect")) == 1
    assert len(surface.of_kind("ellipse")) == 2
    assert set(surface.texts()) == {"Paris", "Box"}


def test_table_alternates_row_fills(registry, template) -> None:
    ok, surface = _render(registry, "table", PAYLOADS["table"], template)
    assert ok is True
    (table,) = surface.of_kind("table")
    rows = table.options["rows"]
    assert rows[0][0].bold is True
    assert rows[1][0].fill == "FFFFFF"
    assert rows[2][0].fill == "F3F4F6"
    assert rows[3][0].fill == "FFFFFF"


def test_heatmap_shades_both_sides_of_zero(registry, template) -> None:
    payload = {"x": ["Up", "Down", "Flat"], "y": ["North"], "z": [[4, -2, 0]]}
    ok, surface = _render(registry, "heatmap", payload, template)
    assert ok is True
    fills = [p.options["fill"].color for p in surface.of_kind("rect")]
    style = template["visualStyles"]["heatmap"]
    assert fills == [style["baseColor"], style["negativeColor"], "FFFFFF"]


def test_heatmap_flat_matrix_uses_unit_scale(registry, template) -> None:
    ok, surface = _render(registry, "heatmap", {"x": ["a", "b"], "y": ["r"], "z": [[0, 0]]}, template)
    assert ok is True
    assert [p.options["fill"].color for p in surface.of_kind("rect")] == ["FFFFFF", "FFFFFF"]


def test_callout_icon_uses_configured_size(registry, tmp_path: Path) -> None:
    from PIL import Image

    icon = tmp_path / "bolt.png"
    Image.new("RGB", (32, 32), (20, 20, 20)).save(icon)
    styled = load_template_config()
    styled["visualStyles"]["callouts"]["icon"] = {"enabled": True, "size": 0.4, "padding": 0.08}
    payload = {"items": [{"label": "Speed", "value": "2x", "icon": str(icon)}]}
    ok, surface = _render(registry, "callouts", payload, styled)
    assert ok is True
    (placed,) = surface.of_kind("image")
    assert placed.w == pytest.approx(0.4)
    assert placed.h == pytest.approx(0.4)
