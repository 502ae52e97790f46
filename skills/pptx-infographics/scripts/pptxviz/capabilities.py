"""Optional I/O capabilities used by decorating renderers.

Renderers depend on the `ImageGenerator` and `MapFetcher` interfaces; the
defaults do nothing and return ``None``, so a missing capability simply drops
the decoration. Concrete implementations:

- `PlaceholderImageGenerator` draws a deterministic Pillow image for a prompt.
- `StaticMapFetcher` downloads a Google Static Maps image with `requests`.
"""

from __future__ import annotations

import logging
import math
import random
import time
import zlib
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple
from urllib.parse import urlparse

import requests

from .colors import golden_color, hex_to_rgb

logger = logging.getLogger(__name__)

USER_AGENT = "pptx-infographics/0.1"
STATIC_MAP_URL = "https://maps.googleapis.com/maps/api/staticmap"
MAP_API_KEY_ENV = "GOOGLE_MAP_API_KEY"
MAX_MAP_MARKERS = 50

_ASPECT_PX = {
    "16:9": (1600, 900),
    "4:3": (1600, 1200),
    "1:1": (1200, 1200),
    "3:4": (1200, 1600),
    "9:16": (900, 1600),
}


def _requests_session() -> requests.Session:
    session = requests.Session()
    session.headers.update({"User-Agent": USER_AGENT})
    return session


class ImageGenerator:
    """Turns a prompt into an image file. The base implementation generates nothing."""

    def generate(self, prompt: str, aspect_ratio: str, negative_prompt: Optional[str] = None) -> Optional[Path]:
        return None


class MapFetcher:
    """Fetches a static map image for markers. The base implementation fetches nothing."""

    def fetch(
        self,
        markers: Sequence[Tuple[float, float]],
        center: Optional[Tuple[float, float]] = None,
        zoom: Optional[float] = None,
        style: Optional[Dict[str, Any]] = None,
    ) -> Optional[Path]:
        return None


class PlaceholderImageGenerator(ImageGenerator):
    """Deterministic gradient image with the prompt written on it."""

    def __init__(self, output_dir: Path | str):
        self.output_dir = Path(output_dir)

    def generate(self, prompt: str, aspect_ratio: str, negative_prompt: Optional[str] = None) -> Optional[Path]:
        from PIL import Image, ImageDraw, ImageFont

        w_px, h_px = _ASPECT_PX.get(aspect_ratio, _ASPECT_PX["1:1"])
        seed = zlib.crc32(prompt.encode("utf-8")) if prompt else 0
        rng = random.Random(seed)
        accent = hex_to_rgb(golden_color(seed % 97))
        start = (248, 250, 252)

        img = Image.new("RGB", (w_px, h_px), start)
        draw = ImageDraw.Draw(img)
        end = tuple(max(0, min(c + rng.randint(-20, 20), 255)) for c in accent)
        for y in range(h_px):
            t = y / max(1, h_px - 1)
            row = tuple(int(start[i] * (1 - t) + end[i] * t) for i in range(3))
            draw.line([(0, y), (w_px, y)], fill=row)

        font_size = max(14, int(min(w_px, h_px) * 0.05))
        font_path = Path("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf")
        try:
            font = ImageFont.truetype(str(font_path), size=font_size) if font_path.exists() else ImageFont.load_default()
        except OSError:
            font = ImageFont.load_default()
        label = prompt[:60]
        bbox = draw.textbbox((0, 0), label, font=font)
        draw.text(((w_px - (bbox[2] - bbox[0])) / 2, (h_px - (bbox[3] - bbox[1])) / 2), label, fill=(15, 23, 42), font=font)

        self.output_dir.mkdir(parents=True, exist_ok=True)
        out_path = self.output_dir / f"generated-{seed:08x}-{aspect_ratio.replace(':', 'x')}.png"
        img.save(out_path)
        return out_path


def static_map_zoom(lons: Sequence[float], lats: Sequence[float], *, padding: float = 1.2) -> int:
    """Zoom level that fits the marker span, clamped to [3, 18]."""
    pad = max(1.0, padding)
    span_lon = max(0.0001, (max(lons) - min(lons)) * pad)
    span_lat = max(0.0001, (max(lats) - min(lats)) * pad)
    zoom = math.floor(math.log2(360 / max(span_lon, span_lat, 0.0001)))
    return max(3, min(18, zoom - 1))


def static_map_params(
    markers: Sequence[Tuple[float, float]],
    center: Optional[Tuple[float, float]],
    zoom: Optional[float],
    style: Optional[Dict[str, Any]],
    api_key: str,
) -> list[tuple[str, str]]:
    """Query parameters for a Static Maps request; markers are (lat, lon)."""
    style = style or {}
    lats = [m[0] for m in markers]
    lons = [m[1] for m in markers]
    if center is None:
        center = ((min(lats) + max(lats)) / 2, (min(lons) + max(lons)) / 2)
    if zoom is not None:
        zoom_level = int(max(3, min(18, zoom)))
    else:
        try:
            padding = float(style.get("zoomPaddingKm") or 1.2)
        except (TypeError, ValueError):
            padding = 1.2
        zoom_level = static_map_zoom(lons, lats, padding=padding)

    google = style.get("google") if isinstance(style.get("google"), dict) else {}
    params = [
        ("center", f"{center[0]:.6f},{center[1]:.6f}"),
        ("zoom", str(zoom_level)),
        ("size", "640x640"),
        ("scale", "2"),
        ("maptype", str(google.get("mapType") or "roadmap")),
    ]
    letters = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    for i, (lat, lon) in enumerate(list(markers)[:MAX_MAP_MARKERS]):
        params.append(("markers", f"color:red|label:{letters[i % len(letters)]}|{lat:.6f},{lon:.6f}"))
    params.append(("key", api_key))
    return params


def _image_extension(data: bytes, content_type: str) -> Optional[str]:
    is_png = len(data) > 8 and data[:4] == b"\x89PNG"
    is_jpg = len(data) > 2 and data[:2] == b"\xff\xd8"
    if not (is_png or is_jpg) or not any(t in content_type.lower() for t in ("image/png", "image/jpeg")):
        return None
    return ".jpg" if is_jpg else ".png"


class StaticMapFetcher(MapFetcher):
    """Google Static Maps over HTTPS."""

    def __init__(self, api_key: str, output_dir: Path | str, *, timeout: float = 30):
        self.api_key = api_key
        self.output_dir = Path(output_dir)
        self.timeout = timeout

    def fetch(self, markers, center=None, zoom=None, style=None) -> Optional[Path]:
        if not markers:
            return None
        params = static_map_params(markers, center, zoom, style, self.api_key)
        try:
            resp = _requests_session().get(STATIC_MAP_URL, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("map_markers: static map request failed: %s", exc)
            return None

        ext = _image_extension(resp.content, resp.headers.get("content-type", ""))
        if resp.status_code >= 400 or ext is None:
            preview = resp.content[:200].decode("utf-8", errors="replace")
            logger.warning(
                "map_markers: non-image response from Google Static Maps (status=%s, type=%s, bytes=%d): %s",
                resp.status_code,
                resp.headers.get("content-type", ""),
                len(resp.content),
                preview,
            )
            return None

        self.output_dir.mkdir(parents=True, exist_ok=True)
        out_path = self.output_dir / f"gmap-{int(time.time() * 1000)}{ext}"
        out_path.write_bytes(resp.content)
        return out_path


def is_url(path: str) -> bool:
    return urlparse(path).scheme in ("http", "https")


def download_image(url: str, dest_dir: Path | str, *, timeout: float = 30) -> Path:
    """Download an image URL into `dest_dir` and return the local path."""
    resp = _requests_session().get(url, timeout=timeout)
    resp.raise_for_status()
    ext = _image_extension(resp.content, resp.headers.get("content-type", "")) or (Path(urlparse(url).path).suffix or ".png")
    dest = Path(dest_dir)
    dest.mkdir(parents=True, exist_ok=True)
    out_path = dest / f"download-{zlib.crc32(url.encode('utf-8')):08x}{ext}"
    out_path.write_bytes(resp.content)
    return out_path


def ensure_transparent(path: Path | str, *, threshold: int = 245) -> Path:
    """Make near-white pixels transparent; returns the PNG path (or the input on failure)."""
    from PIL import Image

    src = Path(path)
    try:
        with Image.open(src) as im:
            rgba = im.convert("RGBA")
        pixels = [
            (r, g, b, 0) if r > threshold and g > threshold and b > threshold else (r, g, b, a)
            for r, g, b, a in rgba.getdata()
        ]
        rgba.putdata(pixels)
        out_path = src.with_suffix(".png")
        rgba.save(out_path)
        return out_path
    except OSError as exc:
        logger.debug("Could not make %s transparent: %s", src, exc)
        return src
