"""Grid-shaped renderers: heatmap, matrix, checklist, kpi_grid and table."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..colors import blend_from_white
from ..payloads import CardsPayload, HeatmapPayload, LabelsPayload, MatrixPayload, TablePayload
from ..registry import RenderArgs
from ..styles import as_number, get_visual_style, normalize_hex, require_style
from ..surface import Fill, Line, TableCell
from ..textmetrics import compute_dynamic_pad_left

logger = logging.getLogger(__name__)

CHECKBOX_IMAGE = Path("images") / "checkBox.png"


def render_heatmap(args: RenderArgs) -> bool:
    payload: HeatmapPayload = args.payload
    surface = args.surface
    rx, ry, rw, rh = args.region.x, args.region.y, args.region.w, args.region.h
    style = get_visual_style(args.template_config, "heatmap")
    req = require_style(
        "heatmap",
        style,
        numbers=("padLeft", "padTop", "labelFontSize"),
        colors=("baseColor", "borderColor"),
    )
    if req is None:
        return False
    base_hex, border_hex = req["baseColor"], req["borderColor"]
    neg_hex = normalize_hex(style.get("negativeColor")) or "E67E22"
    label_fs = req["labelFontSize"]

    cols = max(1, len(payload.x))
    rows = max(1, len(payload.y))
    pad_left = compute_dynamic_pad_left(payload.y, req["padLeft"], label_fs, fudge=1.15, extra=0.3, max_ratio=0.4, container_w=rw)
    grid_x = rx + pad_left
    grid_y = ry + req["padTop"]
    cell_w = max(0.1, rw - pad_left) / cols
    cell_h = max(0.1, rh - req["padTop"]) / rows

    values = [payload.value(r, c) for r in range(rows) for c in range(cols)]
    min_z, max_z = min(values), max(values)
    if min_z == max_z:
        min_z, max_z = 0.0, 1.0
    pos_max = max(0.0, max_z)
    neg_min = min(0.0, min_z)

    for c in range(cols):
        label = payload.x[c] if c < len(payload.x) else ""
        surface.add_text(label, x=grid_x + c * cell_w, y=ry + 0.05, w=cell_w, h=0.35, font_size=label_fs, align="center")
    for r in range(rows):
        label = payload.y[r] if r < len(payload.y) else ""
        surface.add_text(
            label,
            x=rx + 0.05, y=grid_y + r * cell_h + (cell_h - 0.3) / 2, w=max(0.2, pad_left - 0.1), h=0.3,
            font_size=label_fs, align="right", fit="resize", wrap=False,
        )

    for r in range(rows):
        for c in range(cols):
            value = payload.value(r, c)
            if value >= 0:
                color = blend_from_white(base_hex, value / pos_max if pos_max > 0 else 0.0)
            else:
                color = blend_from_white(neg_hex, abs(value) / abs(neg_min) if neg_min < 0 else 0.0)
            surface.add_shape(
                "rect",
                x=grid_x + c * cell_w, y=grid_y + r * cell_h, w=cell_w, h=cell_h,
                fill=Fill(color),
                line=Line(border_hex, 0.75),
            )
    return True


def _checkbox_image(style, capabilities) -> Optional[Path]:
    explicit = style.get("checkboxImage")
    if isinstance(explicit, str) and explicit.strip():
        path = Path(explicit.strip())
    elif capabilities is not None and capabilities.assets_dir is not None:
        path = Path(capabilities.assets_dir) / CHECKBOX_IMAGE
    else:
        return None
    return path if path.is_file() else None


def render_checklist(args: RenderArgs) -> bool:
    payload: LabelsPayload = args.payload
    surface = args.surface
    rx, ry, rw = args.region.x, args.region.y, args.region.w
    st = get_visual_style(args.template_config, "checklist")

    font_size = as_number(st.get("fontSize"), as_number(st.get("fontSizeInitial"), 18.0))
    req = require_style(
        "checklist",
        st,
        numbers=("gapY", "markSize", "baseRowHeight"),
        colors=("markLineColor", "markFillColor", "textColor"),
    )
    if req is None:
        return False
    gap_y, mark, row_h = req["gapY"], req["markSize"], req["baseRowHeight"]
    mark_line, mark_fill = req["markLineColor"], req["markFillColor"]

    image = _checkbox_image(st, args.capabilities)
    aspect = as_number(st.get("markAspect"))
    y = ry
    for label in payload.items[:10]:
        box_y = y + (row_h - mark) / 2
        if image is not None:
            if aspect is not None and aspect > 0:
                surface.add_image(image, x=rx, y=box_y, w=mark * aspect, h=mark)
            else:
                surface.add_image(image, x=rx, y=box_y, w=mark, h=mark, sizing="contain")
        else:
            surface.add_shape("rect", x=rx, y=box_y, w=mark, h=mark, fill=Fill("FFFFFF"), line=Line(mark_line, 1), rect_radius=4)
            surface.add_shape(
                "chevron",
                x=rx + 0.04, y=box_y + 0.06, w=mark - 0.08, h=mark - 0.12,
                fill=Fill(mark_fill),
                line=Line(mark_fill, 0),
            )
        surface.add_text(label, x=rx + mark + 0.2, y=y, w=rw - (mark + 0.4), h=row_h, font_size=font_size, color=req["textColor"])
        y += row_h + gap_y
    return True


def render_matrix(args: RenderArgs) -> bool:
    """2x2 positioning matrix; points live in [-1, 1] on both axes."""
    payload: MatrixPayload = args.payload
    surface = args.surface
    rx, ry, rw, rh = args.region.x, args.region.y, args.region.w, args.region.h
    st = get_visual_style(args.template_config, "matrix")
    req = require_style(
        "matrix",
        st,
        numbers=("axisFontSize", "pointSize", "labelFontSize"),
        colors=("frameLineColor", "axisLineColor", "pointFill", "pointLine"),
    )
    if req is None:
        return False
    axis_fs, point_size, label_fs = req["axisFontSize"], req["pointSize"], req["labelFontSize"]

    # Axis label bands sit outside the grid but inside the region.
    band = max(0.28, min(0.6, axis_fs / 18))
    gx, gy = rx + band, ry + band
    gw = max(0.2, rw - 2 * band)
    gh = max(0.2, rh - 2 * band)

    surface.add_shape("rect", x=gx, y=gy, w=gw, h=gh, fill=Fill("FFFFFF"), line=Line(req["frameLineColor"], 1))
    surface.add_shape("line", x=gx + gw / 2, y=gy, w=0, h=gh, line=Line(req["axisLineColor"], 1))
    surface.add_shape("line", x=gx, y=gy + gh / 2, w=gw, h=0, line=Line(req["axisLineColor"], 1))

    y_labels = payload.y_labels + ["", ""]
    x_labels = payload.x_labels + ["", ""]
    surface.add_text(y_labels[0], x=gx, y=ry + max(0.0, (band - 0.3) / 2), w=gw, h=band, font_size=axis_fs, align="center", valign="top")
    surface.add_text(y_labels[1], x=gx, y=gy + gh + max(0.0, (band - 0.3) / 2), w=gw, h=band, font_size=axis_fs, align="center", valign="bottom")
    surface.add_text(x_labels[0], x=rx + max(0.0, (band - 0.6) / 2), y=gy, w=band, h=gh, font_size=axis_fs, align="left", valign="middle")
    surface.add_text(x_labels[1], x=gx + gw + max(0.0, (band - 0.6) / 2), y=gy, w=band, h=gh, font_size=axis_fs, align="right", valign="middle")

    def norm(v: float) -> float:
        return (max(-1.0, min(1.0, v)) + 1) / 2

    for point in payload.items[:12]:
        cx = gx + norm(point.x) * gw
        cy = gy + norm(point.y) * gh
        size = point_size
        if point.z is not None:
            size = point_size * 0.6 + max(0.0, min(1.0, point.z)) * point_size
        surface.add_shape(
            "ellipse",
            x=cx - size / 2, y=cy - size / 2, w=size, h=size,
            fill=Fill(req["pointFill"]),
            line=Line(req["pointLine"], 0.75),
        )
        surface.add_text(point.label, x=cx + 0.12, y=cy - 0.12, w=min(1.8, gw / 2 - 0.3), h=0.3, font_size=label_fs)
    return True


def render_kpi_grid(args: RenderArgs) -> bool:
    payload: CardsPayload = args.payload
    surface, helpers = args.surface, args.helpers
    rx, ry, rw, rh = args.region.x, args.region.y, args.region.w, args.region.h
    st = get_visual_style(args.template_config, "kpi_grid")
    req = require_style(
        "kpi_grid",
        st,
        numbers=("labelFontSize", "valueFontSize", "borderWidth", "gap"),
        colors=("borderColor",),
    )
    if req is None:
        return False

    card_w = min((rw - 0.8) / 2, 2.6)
    card_h = min(rh / 2 - 0.2, 1.35)
    gap = req["gap"]
    for idx, item in enumerate(payload.items[:4]):
        row, col = divmod(idx, 2)
        x = rx + 0.2 + col * (card_w + gap)
        y = ry + 0.2 + row * (card_h + gap)
        fill_hex = helpers.palette_color(idx)
        surface.add_shape("rect", x=x, y=y, w=card_w, h=card_h, fill=Fill(fill_hex), line=Line(req["borderColor"], req["borderWidth"]))
        text_color = helpers.pick_text_color(fill_hex)
        surface.add_text(item.value, x=x + 0.2, y=y + 0.2, w=card_w - 0.4, h=card_h * 0.55, font_size=req["valueFontSize"], color=text_color, align="center", bold=True)
        surface.add_text(item.label, x=x + 0.2, y=y + card_h * 0.65, w=card_w - 0.4, h=card_h * 0.3, font_size=req["labelFontSize"], color=text_color, align="center")
    return True


def render_table(args: RenderArgs) -> bool:
    payload: TablePayload = args.payload
    st = get_visual_style(args.template_config, "table")
    req = require_style("table", st, colors=("headerFill", "headerColor", "rowFillA", "rowFillB"))
    if req is None:
        return False

    rows = []
    if payload.headers:
        rows.append([TableCell(h, fill=req["headerFill"], color=req["headerColor"], bold=True, align="center") for h in payload.headers])
    for i, row in enumerate(payload.rows):
        fill = req["rowFillB"] if i % 2 == 1 else req["rowFillA"]
        rows.append([TableCell(cell, fill=fill) for cell in row])

    if rows:
        region = args.region
        args.surface.add_table(rows, x=region.x, y=region.y, w=region.w, h=region.h, border=Line("E6E6E6", 1))
    return True
