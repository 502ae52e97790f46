"""Sequence renderers: gantt, timeline, process, roadmap and pyramid."""

from __future__ import annotations

import logging

from ..geometry import gantt_grid_lines, pyramid_bands, pyramid_layer_count, roadmap_tiling, time_scale
from ..payloads import GanttPayload, StepsPayload
from ..registry import RenderArgs
from ..styles import as_number, get_visual_style, normalize_hex, require_style
from ..surface import Fill, Line
from ..textmetrics import compute_label_column_width
from .base import alpha_to_transparency, color_token, effective_text_color, fill_alpha

logger = logging.getLogger(__name__)


def render_gantt(args: RenderArgs) -> bool:
    payload: GanttPayload = args.payload
    surface, helpers = args.surface, args.helpers
    rx, ry, rw, rh = args.region.x, args.region.y, args.region.w, args.region.h

    visible = payload.tasks[:10]
    tasks = [t for t in visible if t.is_valid]
    if not tasks:
        return True
    row_h = max(0.1, min(0.35, rh / max(1, len(visible)) - 0.08))
    min_start = min(t.start for t in tasks)
    max_end = max(t.end for t in tasks)

    st = get_visual_style(args.template_config, "gantt")
    label_fs = as_number(st.get("labelFontSize"), 12.0)
    grid_color = normalize_hex(st.get("gridColor")) or "9AA3AF"
    grid_w = as_number(st.get("gridWidth"), 1.2)
    label_w = compute_label_column_width(
        [t.label for t in tasks],
        label_fs,
        rw,
        min_ratio=max(0.0, as_number(st.get("labelMinRatio"), 0.08)),
        max_ratio=as_number(st.get("labelMaxRatio"), 0.34),
        fudge=as_number(st.get("labelFudge"), 1.06),
        pad=0.12,
        min_in=as_number(st.get("labelMinIn"), 0.36),
    )
    gap = 0.06
    right_pad = max(0.3, rw * 0.07)
    bar_x0 = rx + label_w + gap
    bar_w = max(0.2, rw - (label_w + gap) - right_pad)
    scale = time_scale(min_start, max_end, bar_w)

    for instant in gantt_grid_lines(min_start, max_end):
        surface.add_shape("line", x=bar_x0 + scale(instant), y=ry, w=0, h=rh, line=Line(grid_color, grid_w))

    raw_bar = str(st.get("barColor") or "").strip().lower()
    min_bar_w = as_number(st.get("minBarWidth"), 0.05)
    date_fs = as_number(st.get("dateLabelFontSize"))
    date_color = normalize_hex(st.get("dateLabelColor"))

    for i, task in enumerate(tasks):
        y = ry + i * (row_h + 0.12)
        surface.add_text(task.label, x=rx, y=y, w=label_w, h=row_h, font_size=label_fs, align="right", valign="middle", fit="resize", wrap=False)

        fill_hex = helpers.palette_color(i) if raw_bar in ("", "auto") else (normalize_hex(st.get("barColor")) or "E6E6E6")
        line_hex = normalize_hex(st.get("barLineColor")) or fill_hex
        x = bar_x0 + scale(task.start)
        w = max(min_bar_w, scale(task.end) - scale(task.start))
        surface.add_shape("rect", x=x, y=y, w=w, h=row_h, fill=Fill(fill_hex), line=Line(line_hex, 0.5))

        if date_fs is not None and date_color:
            surface.add_text(
                task.start.date().isoformat(),
                x=x, y=y - as_number(st.get("dateLabelOffsetY"), 0.18),
                w=as_number(st.get("dateLabelWidth"), 1.6), h=as_number(st.get("dateLabelHeight"), 0.2),
                font_size=date_fs, color=date_color, align="left", valign="bottom", fit="resize", wrap=False,
            )
    return True


def render_timeline(args: RenderArgs) -> bool:
    payload: StepsPayload = args.payload
    surface = args.surface
    rx, ry, rw, rh = args.region.x, args.region.y, args.region.w, args.region.h
    st = get_visual_style(args.template_config, "timeline")
    req = require_style(
        "timeline",
        st,
        numbers=("axisLineWidth", "pointSize", "labelFontSize"),
        colors=("axisLineColor", "pointFill", "pointLine"),
    )
    if req is None:
        return False
    point = req["pointSize"]
    axis_y = ry + rh / 2
    label_color = color_token(st.get("labelColor"), "111111")
    date_fs = as_number(st.get("dateFontSize"))

    surface.add_shape("line", x=rx, y=axis_y, w=rw, h=0, line=Line(req["axisLineColor"], req["axisLineWidth"]))
    seg = rw / max(1, len(payload.steps))
    for i, step in enumerate(payload.steps[:6]):
        cx = rx + i * seg + seg / 2
        surface.add_shape(
            "ellipse",
            x=cx - point / 2, y=axis_y - point / 2, w=point, h=point,
            fill=Fill(req["pointFill"]),
            line=Line(req["pointLine"], 0.8),
        )
        label_x = max(rx, cx - 0.9)
        label_w = min(1.8, rw)
        surface.add_text(step.label, x=label_x, y=axis_y + 0.18, w=label_w, h=0.32, font_size=req["labelFontSize"], color=label_color, align="center", fit="resize", wrap=False)
        if date_fs is not None and step.date:
            surface.add_text(step.date, x=label_x, y=axis_y + 0.52, w=label_w, h=0.28, font_size=date_fs, color=label_color, align="center", fit="resize", wrap=False)
    return True


def render_process(args: RenderArgs) -> bool:
    payload: StepsPayload = args.payload
    surface, helpers = args.surface, args.helpers
    rx, ry, rw, rh = args.region.x, args.region.y, args.region.w, args.region.h
    st = get_visual_style(args.template_config, "process")
    req = require_style(
        "process",
        st,
        numbers=("maxSteps", "gapX", "stepWidthMax", "stepHeightMax", "startYRatio", "labelFontSize"),
        colors=("arrowColor",),
    )
    if req is None:
        return False

    max_steps = max(1, int(req["maxSteps"]))
    gap = req["gapX"]
    step_w = min(req["stepWidthMax"], (rw - gap * max(0, max_steps - 1)) / max_steps)
    step_h = min(rh * 0.6, req["stepHeightMax"])
    start_y = ry + rh * req["startYRatio"]
    label_color = color_token(st.get("labelColor"), "111111")
    arrow = req["arrowColor"]

    count = min(max_steps, len(payload.steps) or max_steps)
    for i in range(count):
        x = rx + i * (step_w + gap)
        surface.add_shape("rect", x=x, y=start_y, w=step_w, h=step_h, fill=Fill(helpers.palette_color(i)), line=Line("FFFFFF", 0.5))
        label = payload.steps[i].label if i < len(payload.steps) else ""
        surface.add_text(
            label,
            x=x + 0.08, y=start_y + 0.14, w=step_w - 0.16, h=step_h - 0.28,
            font_size=req["labelFontSize"], color=label_color, align="center", valign="middle",
        )
        if i < count - 1:
            surface.add_shape(
                "chevron",
                x=x + step_w + (gap - 0.4) / 2, y=start_y + (step_h - 0.4) / 2, w=0.4, h=0.4,
                fill=Fill(arrow),
                line=Line(arrow, 0),
            )
    return True


def render_roadmap(args: RenderArgs) -> bool:
    """Overlapping chevrons, one per milestone (at most eight)."""
    payload: StepsPayload = args.payload
    surface, helpers = args.surface, args.helpers
    rx, ry, rw, rh = args.region.x, args.region.y, args.region.w, args.region.h
    milestones = payload.steps[:8]
    if not milestones:
        return True

    st = get_visual_style(args.template_config, "roadmap")
    label_fs = as_number(st.get("labelFontSize")) or 16
    sub_fs = as_number(st.get("dateFontSize")) or 11
    gap = as_number(st.get("gapX"), 0.0)
    alpha = fill_alpha(st, 0.2)
    outer_pad = 0.10
    box_h = max(0.4, rh * 0.60)
    y = ry + (rh - box_h) / 2
    seg_w, step = roadmap_tiling(rw - outer_pad * 2, len(milestones), gap=gap, tip_ratio=0.35)

    layout = []
    for i, milestone in enumerate(milestones):
        base_hex = helpers.palette_color(i)
        layout.append((rx + outer_pad + i * step, base_hex, effective_text_color(helpers, base_hex, alpha), milestone))

    # Chevrons first so every label sits above every overlapping tip.
    for x, base_hex, _, _ in layout:
        surface.add_shape("chevron", x=x, y=y, w=seg_w, h=box_h, fill=Fill(base_hex, alpha_to_transparency(alpha)), line=Line(base_hex, 0))

    for x, _, text_color, milestone in layout:
        head_x = x + seg_w * 0.46
        surface.add_text(
            milestone.label,
            x=head_x, y=y + box_h * 0.26 - 0.1, w=max(0.2, seg_w - (head_x - x) - 0.12), h=box_h * 0.36,
            font_size=label_fs, color=text_color, bold=True, align="left", valign="middle",
        )
        tail = milestone.secondary
        if tail:
            tail_x = x + seg_w * 0.38
            surface.add_text(
                tail,
                x=tail_x, y=y + box_h * 0.62 - 0.06, w=max(0.2, seg_w - (tail_x - x) - 0.12), h=box_h * 0.28,
                font_size=sub_fs, color=text_color, align="left", valign="top",
            )
    return True


def render_pyramid(args: RenderArgs) -> bool:
    payload: StepsPayload = args.payload
    surface, helpers = args.surface, args.helpers
    st = get_visual_style(args.template_config, "pyramid")
    req = require_style("pyramid", st, numbers=("maxLayers", "labelFontSize"))
    if req is None:
        return False

    layers = pyramid_layer_count(int(req["maxLayers"]), len(payload.steps))
    tri_x, side, _, bands = pyramid_bands(args.region, layers)
    alpha = fill_alpha(st, 0.35)
    border_w = as_number(st.get("borderWidth"), 1.0)
    label_override = color_token(st.get("labelColor"), None)

    for i, band in enumerate(bands):
        color = helpers.palette_color(i)
        x, y, w, h, points = band.local()
        surface.add_freeform(points, x=x, y=y, w=w, h=h, fill=Fill(color, alpha_to_transparency(alpha)), line=Line(color, border_w))

        band_h = band.y_bottom - band.y_top
        label_w = max(band.top_width, band.bottom_width) * 0.92
        label = payload.steps[i].label if i < len(payload.steps) else ""
        surface.add_text(
            label,
            x=tri_x + (side - label_w) / 2, y=band.y_top + band_h * 0.22, w=max(0.1, label_w), h=band_h * 0.56,
            font_size=req["labelFontSize"], color=label_override or effective_text_color(helpers, color, alpha),
            align="center", valign="middle", fit="resize", wrap=False,
        )
    return True
