"""Image-backed renderers: the raster chart family, kpi_donut, map_markers and image."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

import requests

from ..capabilities import MAX_MAP_MARKERS, download_image, is_url
from ..charts import CANVAS_PX, CHART_KINDS
from ..geometry import Region, aspect_for_region, contain_box
from ..payloads import ChartPayload, ImagePayload, MapPayload
from ..registry import RenderArgs
from ..styles import as_number, get_path, get_visual_style, require_style
from ..surface import Fill, Line

logger = logging.getLogger(__name__)


def _chart_image(args: RenderArgs, charts_style):
    payload: ChartPayload = args.payload
    bridge = args.capabilities.chart_bridge if args.capabilities is not None else None
    if bridge is None:
        logger.debug("%s: no chart bridge configured", args.type)
        return None
    return bridge.render(CHART_KINDS[args.type], payload.title, payload.labels, payload.data, charts_style)


def render_raster_chart(args: RenderArgs) -> bool:
    """Conventional charts drawn by the chart tool, contain-fit and top-aligned.

    A failed chart leaves the region blank but still counts as rendered.
    """
    charts_style = get_path(args.template_config, f"visualStyles.{args.type}")
    charts_style = charts_style if isinstance(charts_style, dict) else {}
    image = _chart_image(args, charts_style)
    if image is not None:
        box = contain_box(CANVAS_PX, CANVAS_PX, args.region, top=True)
        args.surface.add_image(image, x=box.x, y=box.y, w=box.w, h=box.h, shadow=bool(charts_style.get("shadow")))
    return True


def render_kpi_donut(args: RenderArgs) -> bool:
    # Inherits alpha from pie_chart when it has none of its own.
    charts_style = get_visual_style(args.template_config, "kpi_donut")
    image = _chart_image(args, charts_style)
    if image is not None:
        region = args.region
        pad = max(0.0, as_number(charts_style.get("pad")) or 0.12)
        # Square placement keeps the ring round.
        side = min(max(0.2, region.w - pad * 2), max(0.2, region.h - pad * 2))
        args.surface.add_image(
            image,
            x=region.x + (region.w - side) / 2, y=region.y + pad, w=side, h=side,
            shadow=bool(charts_style.get("shadow")),
        )
    return True


def render_map_markers(args: RenderArgs) -> bool:
    payload: MapPayload = args.payload
    surface = args.surface
    rx, ry, rw, rh = args.region.x, args.region.y, args.region.w, args.region.h
    st = get_visual_style(args.template_config, "map_markers")

    geo = [m for m in payload.markers if m.has_lon_lat]
    fetcher = args.capabilities.map_fetcher if args.capabilities is not None else None
    if geo and fetcher is not None:
        try:
            image = fetcher.fetch([(m.lat, m.lon) for m in geo], payload.center, payload.zoom, st)
        except OSError as exc:
            logger.warning("map_markers: static map fetch failed; falling back to simple map: %s", exc)
            image = None
        if image is not None:
            surface.add_image(image, x=rx, y=ry, w=rw, h=rh, sizing="cover")
            return True

    req = require_style(
        "map_markers",
        st,
        numbers=("dotSize", "labelFontSize"),
        colors=("bgColor", "borderColor", "dotFill", "dotLine"),
    )
    if req is None:
        return False
    dot = req["dotSize"]
    surface.add_shape("rect", x=rx, y=ry, w=rw, h=rh, fill=Fill(req["bgColor"]), line=Line(req["borderColor"], 1))
    for marker in payload.markers[:MAX_MAP_MARKERS]:
        if marker.has_lon_lat:
            # Equirectangular projection over the whole region.
            px = rx + (marker.lon + 180) / 360 * rw
            py = ry + (1 - (marker.lat + 90) / 180) * rh
        else:
            px = rx + max(0.0, min(1.0, marker.x)) * rw
            py = ry + max(0.0, min(1.0, marker.y)) * rh
        surface.add_shape(
            "ellipse",
            x=px - dot / 2, y=py - dot / 2, w=dot, h=dot,
            fill=Fill(req["dotFill"]),
            line=Line(req["dotLine"], 0.8),
        )
        if marker.label:
            surface.add_text(marker.label, x=px + 0.1, y=py - 0.06, w=1.6, h=0.24, font_size=req["labelFontSize"])
    return True


def _download_dir(capabilities) -> Path:
    if capabilities is not None and capabilities.assets_dir is not None:
        return Path(capabilities.assets_dir) / "downloads"
    return Path(tempfile.gettempdir()) / "pptx-infographics"


def render_image(args: RenderArgs) -> bool:
    payload: ImagePayload = args.payload
    region: Region = args.region
    st = get_visual_style(args.template_config, "image")
    sizing = st.get("sizing")
    if not isinstance(sizing, str) or not sizing.strip():
        logger.warning("image: missing style values: sizing")
        return False
    sizing = sizing.strip()

    if payload.path:
        shadow = payload.shadow if payload.shadow is not None else bool(st.get("shadow"))
        if is_url(payload.path):
            try:
                path = download_image(payload.path, _download_dir(args.capabilities))
            except (requests.RequestException, OSError) as exc:
                logger.warning("image: download failed for %s: %s", payload.path, exc)
                return False
        else:
            path = Path(os.path.expanduser(payload.path))
            if not path.is_file():
                logger.warning("image: file not found: %s", path)
                return False
        args.surface.add_image(path, x=region.x, y=region.y, w=region.w, h=region.h, sizing=sizing, shadow=shadow)
        return True

    if not payload.prompt:
        logger.warning("image: neither path nor prompt provided")
        return False

    generator = args.capabilities.image_generator if args.capabilities is not None else None
    try:
        generated = generator.generate(payload.prompt, aspect_for_region(region), st.get("negativePrompt")) if generator else None
    except (OSError, RuntimeError, ValueError) as exc:
        logger.warning("image: generation failed: %s", exc)
        return False
    if generated is None:
        logger.warning("image: generation failed for prompt %r", payload.prompt)
        return False
    args.surface.add_image(generated, x=region.x, y=region.y, w=region.w, h=region.h, sizing=sizing, shadow=bool(st.get("shadow")))
    return True
