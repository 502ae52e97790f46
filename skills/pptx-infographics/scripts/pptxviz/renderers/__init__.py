"""Built-in infographic renderers."""

from __future__ import annotations

from functools import partial

from .. import payloads
from ..charts import CHART_KINDS
from .bars import render_bullet, render_funnel, render_progress, render_waterfall
from .cards import render_callouts, render_comparison, render_kpi, render_venn2
from .flows import render_gantt, render_process, render_pyramid, render_roadmap, render_timeline
from .grids import render_checklist, render_heatmap, render_kpi_grid, render_matrix, render_table
from .media import render_image, render_kpi_donut, render_map_markers, render_raster_chart

BUILTINS = {
    "bullet": (render_bullet, payloads.parse_measures),
    "waterfall": (render_waterfall, payloads.parse_waterfall),
    "venn2": (render_venn2, payloads.parse_venn2),
    "heatmap": (render_heatmap, payloads.parse_heatmap),
    "progress": (render_progress, payloads.parse_measures),
    "gantt": (render_gantt, payloads.parse_gantt),
    "checklist": (render_checklist, payloads.parse_labels),
    "matrix": (render_matrix, payloads.parse_matrix),
    "comparison": (render_comparison, payloads.parse_comparison),
    "callouts": (render_callouts, payloads.parse_cards),
    "kpi": (render_kpi, payloads.parse_cards),
    "kpi_grid": (render_kpi_grid, payloads.parse_cards),
    "funnel": (render_funnel, payloads.parse_steps),
    "timeline": (render_timeline, payloads.parse_steps),
    "process": (render_process, payloads.parse_steps),
    "roadmap": (render_roadmap, payloads.parse_milestones),
    "pyramid": (render_pyramid, payloads.parse_steps),
    "map_markers": (render_map_markers, payloads.parse_map),
    "image": (render_image, payloads.parse_image),
    "table": (render_table, payloads.parse_table),
}


def register_builtins(registry) -> None:
    for type_name, (renderer, parser) in BUILTINS.items():
        registry.register(type_name, renderer, parser)
    for type_name, kind in CHART_KINDS.items():
        renderer = render_kpi_donut if type_name == "kpi_donut" else render_raster_chart
        registry.register(type_name, renderer, partial(payloads.parse_chart, kind=kind))
