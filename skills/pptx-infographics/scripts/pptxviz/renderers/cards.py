"""Card-style renderers: venn2, comparison, callouts and kpi."""

from __future__ import annotations

import logging
import math
import re

from ..capabilities import ensure_transparent
from ..colors import alpha_to_transparency, blend_over_white
from ..geometry import grid_shape
from ..payloads import CardItem, CardsPayload, ComparisonPayload, Venn2Payload
from ..registry import RenderArgs
from ..styles import as_number, get_path, get_visual_style, normalize_hex, parse_color_with_alpha, require_style
from ..surface import Fill, Line
from .base import color_token, effective_text_color, fill_alpha, format_number, resolve_icon

logger = logging.getLogger(__name__)

_IMAGE_SUFFIX_RE = re.compile(r"\.(png|jpe?g)$", re.IGNORECASE)


def render_venn2(args: RenderArgs) -> bool:
    payload: Venn2Payload = args.payload
    surface, helpers = args.surface, args.helpers
    rx, ry, rw, rh = args.region.x, args.region.y, args.region.w, args.region.h
    st = get_visual_style(args.template_config, "venn2")
    req = require_style(
        "venn2",
        st,
        numbers=("aFillAlpha", "bFillAlpha"),
        colors=("aFillColor", "bFillColor", "aLineColor", "bLineColor"),
    )
    if req is None:
        return False

    r = min(rw, rh) / 3
    cx1 = rx + rw / 2 - r * 0.6
    cx2 = rx + rw / 2 + r * 0.6
    cy = ry + rh / 2
    # Alphas here are transparency percentages.
    a_tr = max(0.0, min(100.0, req["aFillAlpha"]))
    b_tr = max(0.0, min(100.0, req["bFillAlpha"]))
    surface.add_shape("ellipse", x=cx1 - r, y=cy - r, w=2 * r, h=2 * r, fill=Fill(req["aFillColor"], a_tr), line=Line(req["aLineColor"], 1))
    surface.add_shape("ellipse", x=cx2 - r, y=cy - r, w=2 * r, h=2 * r, fill=Fill(req["bFillColor"], b_tr), line=Line(req["bLineColor"], 1))

    mid = (cx1 + cx2) / 2
    overlap_fs = as_number(st.get("overlapFontSize"))
    overlap_color = normalize_hex(st.get("overlapTextColor"))
    if overlap_fs is not None and overlap_color:
        if payload.overlap_label:
            surface.add_text(payload.overlap_label, x=mid - 0.6, y=cy - 0.18, w=1.2, h=0.36, font_size=overlap_fs, color=overlap_color, align="center")
        elif payload.overlap > 0 and st.get("showOverlapPercent") is True:
            surface.add_text(f"{format_number(payload.overlap)}%", x=mid - 0.4, y=cy - 0.15, w=0.8, h=0.3, font_size=overlap_fs, color=overlap_color, align="center")

    label_fs = as_number(st.get("labelFontSize"))
    if label_fs is not None:
        col_a = helpers.pick_text_color(blend_over_white(req["aFillColor"], 100 - a_tr))
        col_b = helpers.pick_text_color(blend_over_white(req["bFillColor"], 100 - b_tr))
        label_y = cy - label_fs / 200
        # Inside each circle, away from the overlap.
        surface.add_text(payload.a_label, x=cx1 - r * 0.35 - 0.6, y=label_y - 0.18, w=1.2, h=0.36, font_size=label_fs, color=col_a, align="center")
        surface.add_text(payload.b_label, x=cx2 + r * 0.35 - 0.6, y=label_y - 0.18, w=1.2, h=0.36, font_size=label_fs, color=col_b, align="center")
    return True


def _comparison_card(surface, helpers, card: CardItem, x, y, w, h, *, fill_hex, alpha, st, req, label_bg):
    pad_x, pad_y = req["layoutPolicy.padX"], req["layoutPolicy.padY"]
    label_h = as_number(st.get("labelHeight"))
    label_box_h = label_h if label_h is not None else 0.36

    surface.add_shape("rect", x=x, y=y, w=w, h=h, fill=Fill("FFFFFF"), line=Line("FFFFFF", 0), rect_radius=6)
    surface.add_shape("rect", x=x, y=y, w=w, h=h, fill=Fill(fill_hex, alpha_to_transparency(alpha)), line=Line(fill_hex, 2), rect_radius=6)

    if label_bg is not None and label_h is not None:
        bg_hex, bg_alpha = label_bg
        surface.add_shape(
            "rect",
            x=x + pad_x, y=y + pad_y, w=w - pad_x * 2, h=label_h,
            fill=Fill(bg_hex, alpha_to_transparency(bg_alpha)),
            line=Line(bg_hex, 0),
        )

    label_color = normalize_hex(st.get("labelColor")) or helpers.pick_text_color(fill_hex)
    align = str(st.get("labelAlign") or "").lower()
    surface.add_text(
        card.label,
        x=x + pad_x, y=y + pad_y, w=w - pad_x * 2, h=label_box_h,
        font_size=req["labelFontSize"], color=label_color, bold=st.get("labelBold") is True,
        align=align if align in ("left", "right", "center") else "left", valign="middle",
    )
    offset_y = as_number(st.get("valueOffsetY"), 0.0)
    surface.add_text(
        card.value,
        x=x + pad_x, y=y + pad_y + label_box_h + offset_y, w=w - pad_x * 2, h=h - (pad_y + label_box_h),
        font_size=req["valueFontSize"], color=effective_text_color(helpers, fill_hex, alpha),
        align="center", valign="top",
    )


def render_comparison(args: RenderArgs) -> bool:
    payload: ComparisonPayload = args.payload
    rx, ry, rw, rh = args.region.x, args.region.y, args.region.w, args.region.h
    st = get_visual_style(args.template_config, "comparison")
    req = require_style(
        "comparison",
        st,
        numbers=("labelFontSize", "valueFontSize", "layoutPolicy.gapX", "layoutPolicy.padX", "layoutPolicy.padY"),
        colors=("leftFill", "rightFill", "boxLineColor"),
    )
    if req is None:
        return False

    gap_x = req["layoutPolicy.gapX"]
    box_w = (rw - gap_x) / 2
    alpha = fill_alpha(st, fill_alpha(get_visual_style(args.template_config, "bar_chart"), 0.2))

    raw_bg = st.get("labelBackground", st.get("labelBg"))
    label_bg = None
    if raw_bg:
        label_bg = parse_color_with_alpha(raw_bg)
        if label_bg is None:
            logger.debug("comparison: ignoring unparseable labelBackground %r", raw_bg)

    for card, x, fill_hex in ((payload.a, rx, req["leftFill"]), (payload.b, rx + box_w + gap_x, req["rightFill"])):
        _comparison_card(args.surface, args.helpers, card, x, ry, box_w, rh, fill_hex=fill_hex, alpha=alpha, st=st, req=req, label_bg=label_bg)
    return True


def _is_icon_path(raw: str) -> bool:
    return "/" in raw or "\\" in raw or bool(_IMAGE_SUFFIX_RE.search(raw))


def render_callouts(args: RenderArgs) -> bool:
    payload: CardsPayload = args.payload
    surface, helpers = args.surface, args.helpers
    rx, ry, rw, rh = args.region.x, args.region.y, args.region.w, args.region.h
    st = get_visual_style(args.template_config, "callouts")
    req = require_style(
        "callouts",
        st,
        numbers=("labelFontSize", "valueFontSize", "icon.size", "icon.padding"),
        colors=("boxBgColor", "boxLineColor"),
    )
    if req is None:
        return False
    count = len(payload.items)
    if count == 0:
        return True

    bg = req["boxBgColor"]
    icon_enabled = get_path(st, "icon.enabled") is True
    corner = as_number(st.get("cornerRadius")) or 10
    border_w = as_number(st.get("borderWidth")) or 3
    accent_ratio = as_number(st.get("accentHeightRatio")) or 0.28
    accent_alpha = max(0.0, min(1.0, as_number(st.get("accentAlpha")) or 0.25))
    label_color = color_token(st.get("labelColor"), helpers.pick_text_color(bg))
    value_color = color_token(st.get("valueColor"), helpers.pick_text_color(bg))

    columns, rows = grid_shape(count)
    outer, gap_x, gap_y = 0.08, 0.16, 0.16
    box_w = max(0.6, (rw - outer * 2 - gap_x * (columns - 1)) / columns)
    box_h = max(0.6, (rh - outer * 2 - gap_y * (rows - 1)) / rows)

    for i, item in enumerate(payload.items):
        row, col = divmod(i, columns)
        x = rx + outer + col * (box_w + gap_x)
        y = ry + outer + row * (box_h + gap_y)
        accent = helpers.palette_color(i)
        surface.add_shape("rect", x=x, y=y, w=box_w, h=box_h, fill=Fill(bg), line=Line(accent, border_w), rect_radius=corner)

        # Right triangle in the bottom-right corner, legs along the card edges.
        acc_size = max(0.2, min(box_w, box_h) * accent_ratio)
        tri_x = x + box_w - acc_size
        tri_y = y + box_h - acc_size
        surface.add_shape(
            "rt_triangle",
            x=tri_x, y=tri_y, w=acc_size, h=acc_size,
            fill=Fill(accent, alpha_to_transparency(accent_alpha)),
            line=Line(accent, 2),
            flip_h=True,
        )

        icon_path = None
        if icon_enabled and item.icon:
            prompt = f"{item.icon}, minimal line icon, monochrome, transparent background"
            icon_path = resolve_icon(item.icon, prompt, args.capabilities, is_path=_is_icon_path)
            if icon_path is not None:
                icon_path = ensure_transparent(icon_path)

        surface.add_text(item.label, x=x + 0.16, y=y + 0.18, w=box_w - 0.32, h=0.4, font_size=req["labelFontSize"], color=label_color, bold=True, align="center")
        if icon_path is not None:
            # Centred on the triangle's centroid, padded inside the accent.
            icon_box = max(0.1, min(req["icon.size"], acc_size - 2 * req["icon.padding"]))
            cx = tri_x + 2 * acc_size / 3
            cy = tri_y + 2 * acc_size / 3
            surface.add_image(icon_path, x=cx - icon_box / 2, y=cy - icon_box / 2, w=icon_box, h=icon_box, sizing="contain")
        surface.add_text(item.value, x=x + 0.22, y=y + 0.58, w=box_w - 0.44, h=box_h - 1.1, font_size=req["valueFontSize"], color=value_color, align="left", valign="top")
    return True


def render_kpi(args: RenderArgs) -> bool:
    payload: CardsPayload = args.payload
    surface, helpers = args.surface, args.helpers
    rx, ry, rw, rh = args.region.x, args.region.y, args.region.w, args.region.h
    count = min(6, len(payload.items))
    if not count:
        return True
    columns = 1 if count <= 3 else 2
    rows = math.ceil(count / columns)

    st = get_visual_style(args.template_config, "kpi")
    suffix = "1Col" if columns == 1 else "2Col"
    req = require_style(
        "kpi",
        st,
        numbers=(
            f"layout.gap{suffix}",
            f"layout.outerMargin{suffix}",
            "layout.innerPadX",
            "labelFontSize",
            "valueFontSize",
            "labelTopOffset",
            "labelHeight",
            "valueTopOffset",
            "valueBottomPad",
        ),
    )
    if req is None:
        return False
    gap, outer = req[f"layout.gap{suffix}"], req[f"layout.outerMargin{suffix}"]
    inner_pad = req["layout.innerPadX"]
    card_w = max(0.8, (rw - (columns - 1) * gap - outer * 2) / columns)
    card_h = (rh - (rows - 1) * gap - outer * 2) / rows
    alpha = fill_alpha(st, 0.2)

    icon_cfg = st.get("icon") if isinstance(st.get("icon"), dict) else {}
    icon_enabled = icon_cfg.get("enabled") is True
    icon_size = as_number(icon_cfg.get("size")) or 0.36
    icon_pad = as_number(icon_cfg.get("padding")) or 0.08
    fixed = icon_cfg.get("fixed") if isinstance(icon_cfg.get("fixed"), dict) else {}
    glyph = str(fixed.get("glyph") or "black")
    background = str(fixed.get("background") or "white")
    icon_style = str(icon_cfg.get("style") or "line")
    monochrome = ", monochrome" if icon_cfg.get("monochrome") is not False else ""

    for idx, item in enumerate(payload.items[:count]):
        row, col = divmod(idx, columns)
        x = rx + outer + col * (card_w + gap)
        y = ry + outer + row * (card_h + gap)
        base_hex = helpers.palette_color(idx)
        # White underlay keeps the pastel fill from mixing with the slide background.
        surface.add_shape("rect", x=x, y=y, w=card_w, h=card_h, fill=Fill("FFFFFF"), line=Line("FFFFFF", 0), rect_radius=6)
        surface.add_shape("rect", x=x, y=y, w=card_w, h=card_h, fill=Fill(base_hex, alpha_to_transparency(alpha)), line=Line(base_hex, 2), rect_radius=6)
        text_color = effective_text_color(helpers, base_hex, alpha)

        icon_rendered = False
        if icon_enabled and item.icon:
            prompt = f"{item.icon}, minimal {icon_style} icon{monochrome}, solid {glyph} glyph on {background} square background, centered, no text"
            icon_path = resolve_icon(item.icon, prompt, args.capabilities, is_path=lambda raw: "." in raw or "/" in raw)
            if icon_path is not None:
                iw = min(icon_size, card_w * 0.3)
                # Overlaps the top-left corner, half outside the card.
                ix, iy = x - iw * 0.5, y - iw * 0.5
                surface.add_shape("rect", x=ix, y=iy, w=iw, h=iw, fill=Fill("FFFFFF"), line=Line("FFFFFF", 0))
                surface.add_image(icon_path, x=ix, y=iy, w=iw, h=iw, sizing="contain")
                icon_rendered = True

        label_top = req["labelTopOffset"]
        if icon_rendered:
            label_top = max(label_top, icon_pad + icon_size + 0.06)
        txt_x = x + inner_pad
        txt_w = max(0.5, card_w - inner_pad * 2)
        surface.add_text(item.label, x=txt_x, y=y + label_top, w=txt_w, h=req["labelHeight"], font_size=req["labelFontSize"], color=text_color, bold=True, align="center", valign="top")
        surface.add_text(
            item.value,
            x=txt_x, y=y + req["valueTopOffset"], w=txt_w,
            h=max(0.2, card_h - (req["valueTopOffset"] + req["valueBottomPad"])),
            font_size=req["valueFontSize"], color=text_color, align="center", valign="top",
        )
    return True
