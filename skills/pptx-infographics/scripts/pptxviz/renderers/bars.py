"""Bar-like renderers: bullet, waterfall, progress and funnel."""

from __future__ import annotations

import logging

from ..colors import blend_toward, golden_color
from ..geometry import funnel_shade_ratio, funnel_widths, nice_step, nice_ticks, waterfall_series
from ..payloads import MeasurePayload, StepsPayload, WaterfallPayload
from ..registry import RenderArgs
from ..styles import as_align, as_boolean, as_number, get_path, get_visual_style, normalize_hex, require_style
from ..surface import Fill, Line
from ..textmetrics import compute_label_area_width, compute_label_column_width
from .base import alpha_to_transparency, effective_text_color, fill_alpha, format_number

logger = logging.getLogger(__name__)


def render_bullet(args: RenderArgs) -> bool:
    payload: MeasurePayload = args.payload
    surface, helpers = args.surface, args.helpers
    rx, ry, rw, rh = args.region.x, args.region.y, args.region.w, args.region.h

    style = get_visual_style(args.template_config, "bullet")
    req = require_style(
        "bullet",
        style,
        numbers=("labelFontSize", "valueFontSize", "targetFontSize", "valueBoxWidth", "valueOutsidePad", "targetOffsetY"),
    )
    if req is None:
        return False
    label_fs, value_fs, target_fs = req["labelFontSize"], req["valueFontSize"], req["targetFontSize"]
    value_box_w, outside_pad, target_dy = req["valueBoxWidth"], req["valueOutsidePad"], req["targetOffsetY"]
    label_align = as_align(style.get("labelAlign"), "right")
    value_text_override = normalize_hex(style.get("valueTextColor"))

    items = payload.items[:5]
    row_h = max(0.1, min(0.45, rh / max(1, len(items)) - 0.08))
    label_w = compute_label_area_width([it.label for it in items], label_fs, 0.08, rw, min_w=0.8, max_ratio=0.62, fudge=1.25)
    bar_x = rx + label_w
    bar_w = max(0.6, rw - label_w)

    bar_bg = normalize_hex(style.get("barBgColor"))
    bar_border = normalize_hex(style.get("barBorderColor"))
    target_line_color = normalize_hex(style.get("targetLineColor"))
    target_line_w = as_number(style.get("targetLineWidth"))

    for i, it in enumerate(items):
        y = ry + i * (row_h + 0.12)
        surface.add_text(it.label, x=rx + 0.1, y=y, w=label_w - 0.1, h=row_h, font_size=label_fs, align=label_align, valign="middle", fit="resize", wrap=False)

        if bar_bg or bar_border:
            surface.add_shape(
                "rect",
                x=bar_x, y=y, w=bar_w, h=row_h,
                fill=Fill(bar_bg) if bar_bg else None,
                line=Line(bar_border, as_number(style.get("barBorderWidth"), 0.5)) if bar_border else None,
            )

        value = it.value
        target = it.target or 0.0
        denom = max(1.0, value, target, 100.0)
        value_w = max(0.0, min(bar_w, bar_w * value / denom))
        target_x = bar_x + max(0.0, min(bar_w, bar_w * target / denom))
        bar_hex = helpers.palette_color(i)
        surface.add_shape("rect", x=bar_x, y=y, w=value_w, h=row_h, fill=Fill(bar_hex))

        if target_line_color and target_line_w is not None:
            surface.add_shape("line", x=target_x, y=y, w=0, h=row_h, line=Line(target_line_color, target_line_w))

        value_label = format_number(value)
        if value_w > value_box_w:
            color = value_text_override or helpers.pick_text_color(bar_hex)
            surface.add_text(value_label, x=bar_x + max(0.0, value_w - value_box_w), y=y, w=value_box_w, h=row_h, font_size=value_fs, color=color, align="right", valign="middle", fit="resize", wrap=False)
        else:
            surface.add_text(value_label, x=bar_x + value_w + outside_pad, y=y, w=value_box_w, h=row_h, font_size=value_fs, color="333333", valign="middle", fit="resize", wrap=False)

        target_text_w = max(0.36, value_box_w)
        target_text_x = min(bar_x + bar_w - target_text_w, max(bar_x + 0.04, target_x + 0.04))
        surface.add_text(format_number(target), x=target_text_x, y=y + target_dy, w=target_text_w, h=row_h, font_size=target_fs, color="333333", valign="middle", fit="resize", wrap=False)
    return True


def _waterfall_color(bar, style, template_config):
    positive = normalize_hex(style.get("positiveColor"))
    if bar.is_total:
        accent = normalize_hex(get_path(template_config, "tokens.accent")) or normalize_hex(
            get_path(template_config, "tokens.palette.accent.base")
        )
        return normalize_hex(style.get("totalColor")) or accent or positive
    return positive if bar.delta >= 0 else normalize_hex(style.get("negativeColor"))


def render_waterfall(args: RenderArgs) -> bool:
    payload: WaterfallPayload = args.payload
    surface = args.surface
    base_x, ry, base_w, rh = args.region.x, args.region.y, args.region.w, args.region.h
    st = get_visual_style(args.template_config, "waterfall")

    max_items = as_number(st.get("maxItems"))
    steps = payload.items[: int(max_items)] if max_items and max_items > 0 else payload.items
    cumulative, bars = waterfall_series(steps)

    colors = [_waterfall_color(bar, st, args.template_config) for bar in bars]
    if any(c is None for c in colors):
        logger.warning("waterfall: missing style values: positiveColor, negativeColor")
        return False

    count = max(1, len(bars))
    gap = 0.2
    min_cum, max_cum = min(cumulative + [0.0]), max(cumulative + [0.0])
    margin = min(0.2, rh * 0.08)
    usable_h = max(0.4, rh - 2 * margin)
    span = max(1.0, max_cum - min_cum)

    def y_for(value: float) -> float:
        return ry + margin + (max_cum - value) * (usable_h / span)

    y_zero = y_for(0)
    grid_color = normalize_hex(st.get("gridColor")) or "9AA3AF"
    grid_w = as_number(st.get("gridWidth"), 1.0)
    label_fs = as_number(st.get("labelFontSize"), 10.0)
    label_color = normalize_hex(st.get("labelTextColor")) or "333333"
    show_grid = st.get("grid") is True

    ticks = []
    if show_grid:
        levels = as_number(st.get("gridLevels"))
        _, ticks = nice_ticks(min_cum, max_cum, int(levels) if levels is not None and levels >= 2 else 5)

    approx_char = 0.07 * (label_fs / 10)
    widest = max([0.45] + [len(str(round(t))) * approx_char + 0.18 for t in ticks])
    inner_left = min(1.8, max(0.8, widest + 0.2))
    rx = base_x + inner_left
    rw = max(0.6, base_w - inner_left - 0.4)

    for tick in ticks:
        y = y_for(tick)
        surface.add_shape("line", x=rx, y=y, w=rw, h=0, line=Line(grid_color, grid_w))
        lab_w = max(0.55, inner_left - 0.10)
        surface.add_text(str(round(tick)), x=rx - lab_w - 0.06, y=max(ry, y - 0.13), w=lab_w, h=0.3, font_size=label_fs, color=label_color, align="right")
    surface.add_shape("line", x=rx, y=y_zero, w=rw, h=0, line=Line(grid_color, grid_w + 0.4))
    surface.add_shape("line", x=rx, y=ry + margin, w=0, h=usable_h, line=Line(grid_color, grid_w))

    bar_w = max(0.2, (rw - gap * (count - 1)) / count)
    rotate = any(len(bar.label) * 0.08 > bar_w - 0.2 for bar in bars)
    value_fs = as_number(st.get("valueFontSize"), 10.0)
    value_color = normalize_hex(st.get("valueTextColor")) or "000000"
    x_label_color = normalize_hex(st.get("labelTextColor")) or "000000"

    x = rx
    for bar, color in zip(bars, colors):
        y = y_for(max(bar.base, bar.end))
        h = max(0.12, abs(y_for(bar.base) - y_for(bar.end)))
        surface.add_shape("rect", x=x, y=y, w=bar_w, h=h, fill=Fill(color), line=Line("FFFFFF", 0.5))

        delta = bar.delta
        value_text = format_number(bar.end) if bar.is_total else ("+" if delta >= 0 else "") + format_number(delta)
        value_y = y - 0.24 if delta >= 0 or bar.is_total else y + h + 0.06
        surface.add_text(value_text, x=x - 0.2, y=value_y, w=bar_w + 0.4, h=0.3, font_size=value_fs, color=value_color, align="center")

        label_y = min(ry + rh - 0.3, y_zero + 0.24)
        surface.add_text(
            bar.label,
            x=x - 0.3, y=label_y, w=bar_w + 0.6, h=0.6 if rotate else 0.36,
            font_size=label_fs, color=x_label_color, align="center",
            rotate=-30 if rotate else None,
        )
        x += bar_w + gap
    return True


def render_progress(args: RenderArgs) -> bool:
    payload: MeasurePayload = args.payload
    surface = args.surface
    rx, ry, rw = args.region.x, args.region.y, args.region.w
    rh = max(0.2, args.region.h - 0.05)
    style = get_visual_style(args.template_config, "progress")

    label_align = as_align(style.get("labelAlign"), "right")
    label_fs = as_number(style.get("labelFontSize"), 14.0)
    label_gap = as_number(style.get("labelGap"), 0.08)
    bar_cfg = style.get("bar") if isinstance(style.get("bar"), dict) else {}
    bar_h_max = as_number(bar_cfg.get("heightMax"), 0.4)
    bar_bg = normalize_hex(bar_cfg.get("bg")) or "EAEAEA"
    bar_bg_line = normalize_hex(bar_cfg.get("bgLine")) or "DDDDDD"
    show_track = bar_cfg.get("showTrack") is not False
    val_cfg = style.get("value") if isinstance(style.get("value"), dict) else {}
    show_value = val_cfg.get("show") is not False
    suffix = val_cfg["suffix"] if isinstance(val_cfg.get("suffix"), str) else "%"
    value_fs = as_number(val_cfg.get("fontSize"), 12.0)
    value_color = normalize_hex(val_cfg.get("color")) or "111111"

    items = payload.items[:8]
    label_w = compute_label_column_width(
        [it.label for it in payload.items],
        label_fs,
        rw,
        min_ratio=max(0.0, as_number(style.get("labelMinRatio"), 0.12)),
        max_ratio=as_number(style.get("labelMaxRatio"), 0.38),
        fudge=as_number(style.get("labelFudge"), 1.06),
        pad=max(0.1, label_gap or 0.08),
        min_in=as_number(style.get("labelMinIn"), 0.30),
    )
    bar_x = rx + label_w
    bar_area_w = max(0.6, rw - label_w)
    rows = max(1, len(items))
    bar_h = min(bar_h_max, (rh - 0.12 * (rows - 1)) / rows)
    transparency = alpha_to_transparency(fill_alpha(style, 0.2))

    max_target = 100.0
    for it in payload.items:
        max_target = max(max_target, max(1.0, it.target if it.target is not None else 100.0))

    for i, it in enumerate(items):
        y = ry + i * (bar_h + 0.12)
        surface.add_text(it.label, x=rx, y=y, w=max(0.2, label_w - label_gap), h=bar_h, font_size=label_fs, align=label_align, valign="middle", fit="resize", wrap=False)
        if show_track:
            surface.add_shape("rect", x=bar_x, y=y, w=bar_area_w, h=bar_h, fill=Fill(bar_bg), line=Line(bar_bg_line, 0.5))

        target = max(1.0, it.target if it.target is not None else 100.0)
        raw_value = max(0.0, it.value)
        target_w = bar_area_w * (target / max_target)
        value_w = bar_area_w * (min(raw_value, target) / max_target)
        hue = golden_color(i)

        surface.add_shape("rect", x=bar_x, y=y, w=target_w, h=bar_h, fill=Fill(bar_bg), line=Line(hue, 2))
        surface.add_shape("rect", x=bar_x, y=y, w=value_w, h=bar_h, fill=Fill(hue, transparency), line=Line(hue, 1))
        if target_w > value_w + 0.02:
            surface.add_shape(
                "rect",
                x=bar_x + value_w, y=y, w=max(0.0, target_w - value_w), h=bar_h,
                fill=Fill(hue, min(100, transparency + 40)),
                line=Line(hue, 1),
            )

        if not show_value:
            continue
        pct = round(raw_value / max(1.0, target) * 100)
        if value_w > 0.3:
            surface.add_text(f"{pct}{suffix}", x=bar_x + 0.06, y=y, w=max(0.4, value_w - 0.12), h=bar_h, font_size=value_fs, color=value_color, valign="middle")
        else:
            surface.add_text(f"{pct}{suffix}", x=bar_x + value_w + 0.04, y=y, w=0.6, h=bar_h, font_size=value_fs, color=value_color, valign="middle")
        if value_w > 0.4:
            surface.add_text(str(round(raw_value)), x=bar_x + 0.06, y=y, w=max(0.36, value_w - 0.12), h=bar_h, font_size=value_fs, color=value_color, align="right", valign="middle")
        else:
            surface.add_text(str(round(raw_value)), x=bar_x + value_w + 0.04, y=y, w=0.6, h=bar_h, font_size=value_fs, color=value_color, valign="middle")
        surface.add_text(str(round(target)), x=bar_x + max(0.0, target_w - 0.8 - 0.04), y=y, w=0.8, h=bar_h, font_size=value_fs, color=value_color, align="right", valign="middle")

    axis = style.get("axis") if isinstance(style.get("axis"), dict) else {}
    if axis.get("show") is False:
        return True
    axis_color = normalize_hex(axis.get("color")) or "666666"
    grid_color = normalize_hex(axis.get("gridColor")) or "E0E6ED"
    tick_fs = as_number(axis.get("fontSize"), 10.0) or 10.0
    desired = as_number(axis.get("ticks"), 6.0) or 6.0

    axis_y = min(ry + (rows - 1) * (bar_h + 0.12) + bar_h + 0.10, ry + rh - 0.24)
    step = nice_step(max_target / max(2, desired))
    surface.add_shape("line", x=bar_x, y=axis_y, w=bar_area_w, h=0, line=Line(axis_color, 1))
    tick = 0.0
    while tick <= max_target + 1e-6:
        x = bar_x + bar_area_w * min(1.0, max(0.0, tick / max_target))
        surface.add_shape("line", x=x, y=axis_y, w=0, h=0.06, line=Line(axis_color, 1))
        if as_boolean(axis.get("grid"), False):
            surface.add_shape("line", x=x, y=ry - 0.04, w=0, h=axis_y - (ry - 0.04), line=Line(grid_color, 0.5))
        surface.add_text(str(round(tick)), x=x - 0.4, y=axis_y + 0.06, w=0.8, h=0.24, font_size=tick_fs, color=axis_color, align="center")
        tick += step
    return True


def render_funnel(args: RenderArgs) -> bool:
    payload: StepsPayload = args.payload
    surface, helpers = args.surface, args.helpers
    rx, ry, rw = args.region.x, args.region.y, args.region.w
    rh = max(0.2, args.region.h - 0.05)
    st = get_visual_style(args.template_config, "funnel")

    steps = payload.steps[:12]
    if not steps:
        return True
    n = len(steps)
    label_fs = max(as_number(st.get("labelFontSize")) or 14.0, 18.0)
    value_fs = max(as_number(st.get("valueFontSize")) or label_fs + 2, 20.0)

    label_w = compute_label_area_width([s.label for s in steps], label_fs, 0.10, rw, min_w=1.0, max_ratio=0.25, fudge=1.25)
    right_pad = 0.2
    if rw < 3:
        label_w = min(label_w, max(0.8, rw * 0.2))
        chart_w = max(1.5, rw - label_w - right_pad)
        chart_x = rx + (rw - chart_w) / 2
    else:
        chart_w = max(rw * 0.6, rw - label_w - right_pad)
        chart_x = rx + label_w

    seg_gap = 0.04
    seg_h = (rh - seg_gap * (n - 1)) / n
    values = [max(0.0, s.value) for s in steps]
    widths = funnel_widths(values, chart_w)

    base_hex = (
        normalize_hex(st.get("baseColor"))
        or normalize_hex(get_path(args.template_config, "tokens.primary"))
        or helpers.palette_color(0)
    )
    top_hex = normalize_hex(st.get("gradientTopColor")) or "FFFFFF"
    alpha = fill_alpha(st, 0.2)
    min_r = as_number(st.get("gradientMinRatio"))
    min_r = min_r if min_r is not None and 0 < min_r < 1 else 0.1
    max_r = as_number(st.get("gradientMaxRatio"))
    max_r = max_r if max_r is not None and 0 < max_r <= 1 else 1.0
    gamma = as_number(st.get("gradientGamma"))
    gamma = gamma if gamma is not None and gamma > 0 else 1.0
    border_w = as_number(st.get("borderWidth"), 0.5)

    for i, (step, value, w) in enumerate(zip(steps, values, widths)):
        y = ry + i * (seg_h + seg_gap)
        x = chart_x + (chart_w - w) / 2
        ratio = funnel_shade_ratio(i, n, min_ratio=min_r, max_ratio=max_r, gamma=gamma)
        color = blend_toward(base_hex, top_hex, 1 - ratio)
        line_color = normalize_hex(st.get("borderColor")) or color
        surface.add_shape(
            "trapezoid",
            x=x, y=y, w=w, h=seg_h,
            fill=Fill(color, alpha_to_transparency(alpha)),
            line=Line(line_color, border_w),
            flip_v=True,
        )
        surface.add_text(
            format_number(value), x=x, y=y, w=w, h=seg_h, font_size=value_fs,
            color=effective_text_color(helpers, color, alpha), align="center", valign="middle", fit="resize", wrap=False,
        )
        surface.add_text(
            step.label, x=rx, y=y, w=max(0.2, label_w - 0.1), h=seg_h, font_size=label_fs,
            color="000000", align="right", valign="middle", fit="resize", wrap=False,
        )
    return True
