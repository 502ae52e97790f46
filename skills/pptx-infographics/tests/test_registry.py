from __future__ import annotations

import sys
from pathlib import Path

SCRIPT_DIR = Path(__file__).resolve().parents[1] / "scripts"
if str(SCRIPT_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPT_DIR))

from pptxviz.charts import CHART_KINDS  # noqa: E402
from pptxviz.geometry import Region  # noqa: E402
from pptxviz.payloads import MeasurePayload, parse_measures  # noqa: E402
from pptxviz.registry import Capabilities, Registry, RenderArgs, build_default_registry  # noqa: E402
from pptxviz.surface import RecordingSurface  # noqa: E402


def _args(type_name: str, payload=None) -> RenderArgs:
    return RenderArgs(
        surface=RecordingSurface(),
        type=type_name,
        payload=payload,
        region=Region(0, 0, 8, 4),
        template_config={},
    )


def test_unregistered_type_returns_false_without_calling_anything() -> None:
    calls = []
    registry = Registry()
    registry.register("bullet", lambda args: calls.append(args) or True)

    assert registry.render(_args("does_not_exist")) is False
    assert calls == []


def test_last_registration_wins() -> None:
    registry = Registry()
    registry.register("bullet", lambda args: False)
    registry.register("bullet", lambda args: True)
    assert registry.render(_args("bullet")) is True


def test_payload_is_parsed_and_helpers_injected() -> None:
    seen = {}

    def renderer(args: RenderArgs) -> bool:
        seen["payload"] = args.payload
        seen["helpers"] = args.helpers
        seen["capabilities"] = args.capabilities
        return True

    capabilities = Capabilities()
    registry = Registry(capabilities)
    registry.register("progress", renderer, parse_measures)
    assert registry.render(_args("progress", {"items": [{"label": "A", "value": "42"}]})) is True

    payload = seen["payload"]
    assert isinstance(payload, MeasurePayload)
    assert payload.items[0].value == 42.0
    assert seen["helpers"] is not None
    assert seen["helpers"].pick_text_color("000000") == "FFFFFF"
    assert seen["capabilities"] is capabilities


def test_default_registry_covers_every_builtin_type() -> None:
    registry = build_default_registry()
    expected = {
        "bullet", "waterfall", "venn2", "heatmap", "progress", "gantt", "checklist", "matrix",
        "comparison", "callouts", "kpi", "kpi_grid", "funnel", "timeline", "process", "roadmap",
        "pyramid", "map_markers", "image", "table",
    } | set(CHART_KINDS)
    assert expected <= set(registry.types())
    assert "kpi_donut" in registry
