"""Drawing surfaces: the primitive operations renderers draw with.

All coordinates and sizes are inches; colours are 6-digit hex strings. Fill
transparency is a percentage where 0 is opaque.

`SlideSurface` draws onto a python-pptx slide. `RecordingSurface` keeps the
primitives in memory instead, which is what ``--dry-run`` and the tests use.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pptx.dml.color import RGBColor
from pptx.enum.shapes import MSO_AUTO_SHAPE_TYPE, MSO_CONNECTOR
from pptx.enum.text import MSO_ANCHOR, MSO_AUTO_SIZE, PP_ALIGN
from pptx.oxml.ns import qn
from pptx.util import Emu, Inches, Pt

from .geometry import Region, contain_box, cover_crop

logger = logging.getLogger(__name__)

DEFAULT_FONT_FACE = "Noto Sans JP"

SHAPE_KINDS = ("rect", "rounded_rect", "ellipse", "line", "chevron", "trapezoid", "triangle", "rt_triangle")


@dataclass(frozen=True)
class Fill:
    color: str
    transparency: float = 0.0


@dataclass(frozen=True)
class Line:
    color: Optional[str] = None
    width: float = 0.0


@dataclass
class TableCell:
    text: str
    fill: Optional[str] = None
    color: Optional[str] = None
    bold: bool = False
    font_size: float = 12
    align: str = "left"


@dataclass
class Primitive:
    kind: str
    x: float
    y: float
    w: float
    h: float
    text: Optional[str] = None
    options: Dict[str, Any] = field(default_factory=dict)


def _hex(color: Optional[str]) -> Optional[str]:
    if not color:
        return None
    return str(color).lstrip("#").upper()


class Surface:
    """Primitive drawing contract shared by every surface."""

    font_face = DEFAULT_FONT_FACE

    def add_shape(
        self,
        kind: str,
        *,
        x: float,
        y: float,
        w: float,
        h: float,
        fill: Optional[Fill] = None,
        line: Optional[Line] = None,
        rect_radius: Optional[float] = None,
        flip_h: bool = False,
        flip_v: bool = False,
        rotate: Optional[float] = None,
        shadow: bool = False,
    ) -> Any:
        raise NotImplementedError

    def add_freeform(
        self,
        points: Sequence[Tuple[float, float]],
        *,
        x: float,
        y: float,
        w: float,
        h: float,
        fill: Optional[Fill] = None,
        line: Optional[Line] = None,
    ) -> Any:
        raise NotImplementedError

    def add_text(
        self,
        text: str,
        *,
        x: float,
        y: float,
        w: float,
        h: float,
        font_size: float,
        color: Optional[str] = None,
        align: str = "left",
        valign: str = "top",
        bold: bool = False,
        fit: Optional[str] = None,
        wrap: bool = True,
        rotate: Optional[float] = None,
    ) -> Any:
        raise NotImplementedError

    def add_image(
        self,
        path: Path | str,
        *,
        x: float,
        y: float,
        w: float,
        h: float,
        sizing: Optional[str] = None,
        shadow: bool = False,
    ) -> Any:
        raise NotImplementedError

    def add_table(
        self,
        rows: List[List[TableCell]],
        *,
        x: float,
        y: float,
        w: float,
        h: float,
        border: Optional[Line] = None,
    ) -> Any:
        raise NotImplementedError


class RecordingSurface(Surface):
    """Collects primitives instead of drawing them."""

    def __init__(self) -> None:
        self.primitives: List[Primitive] = []

    def _record(self, kind: str, x: float, y: float, w: float, h: float, text: Optional[str] = None, **options) -> Primitive:
        primitive = Primitive(kind, x, y, w, h, text, {k: v for k, v in options.items() if v is not None})
        self.primitives.append(primitive)
        return primitive

    def of_kind(self, *kinds: str) -> List[Primitive]:
        return [p for p in self.primitives if p.kind in kinds]

    def texts(self) -> List[str]:
        return [p.text or "" for p in self.of_kind("text")]

    def add_shape(self, kind, *, x, y, w, h, fill=None, line=None, rect_radius=None, flip_h=False, flip_v=False, rotate=None, shadow=False):
        if kind not in SHAPE_KINDS:
            raise ValueError(f"Unsupported shape kind: {kind}")
        return self._record(
            kind, x, y, w, h,
            fill=fill, line=line, rect_radius=rect_radius,
            flip_h=flip_h or None, flip_v=flip_v or None, rotate=rotate, shadow=shadow or None,
        )

    def add_freeform(self, points, *, x, y, w, h, fill=None, line=None):
        return self._record("freeform", x, y, w, h, points=list(points), fill=fill, line=line)

    def add_text(self, text, *, x, y, w, h, font_size, color=None, align="left", valign="top", bold=False, fit=None, wrap=True, rotate=None):
        return self._record(
            "text", x, y, w, h, str(text),
            font_size=font_size, color=_hex(color), align=align, valign=valign,
            bold=bold or None, fit=fit, wrap=wrap, rotate=rotate,
        )

    def add_image(self, path, *, x, y, w, h, sizing=None, shadow=False):
        return self._record("image", x, y, w, h, path=str(path), sizing=sizing, shadow=shadow or None)

    def add_table(self, rows, *, x, y, w, h, border=None):
        return self._record("table", x, y, w, h, rows=rows, border=border)


class SlideSurface(Surface):
    """Draws primitives onto a python-pptx slide."""

    AUTO_SHAPES = {
        "rect": MSO_AUTO_SHAPE_TYPE.RECTANGLE,
        "rounded_rect": MSO_AUTO_SHAPE_TYPE.ROUNDED_RECTANGLE,
        "ellipse": MSO_AUTO_SHAPE_TYPE.OVAL,
        "chevron": MSO_AUTO_SHAPE_TYPE.CHEVRON,
        "trapezoid": MSO_AUTO_SHAPE_TYPE.TRAPEZOID,
        "triangle": MSO_AUTO_SHAPE_TYPE.ISOSCELES_TRIANGLE,
        "rt_triangle": MSO_AUTO_SHAPE_TYPE.RIGHT_TRIANGLE,
    }

    ALIGNMENTS = {"left": PP_ALIGN.LEFT, "center": PP_ALIGN.CENTER, "right": PP_ALIGN.RIGHT}
    ANCHORS = {"top": MSO_ANCHOR.TOP, "middle": MSO_ANCHOR.MIDDLE, "bottom": MSO_ANCHOR.BOTTOM}

    def __init__(self, slide, *, font_face: str = DEFAULT_FONT_FACE):
        self.slide = slide
        self.font_face = font_face

    # --- shapes ---

    def add_shape(self, kind, *, x, y, w, h, fill=None, line=None, rect_radius=None, flip_h=False, flip_v=False, rotate=None, shadow=False):
        if kind == "line":
            return self._add_line(x, y, w, h, line)

        if kind not in self.AUTO_SHAPES:
            raise ValueError(f"Unsupported shape kind: {kind}")
        if kind == "rect" and rect_radius:
            kind = "rounded_rect"

        shape = self.slide.shapes.add_shape(
            self.AUTO_SHAPES[kind],
            Inches(x),
            Inches(y),
            Inches(max(0.0, w)),
            Inches(max(0.0, h)),
        )
        if kind == "rounded_rect":
            # rect_radius is in points; the adjustment is a fraction of the short side.
            short_side = max(0.01, min(w, h))
            shape.adjustments[0] = max(0.0, min(0.5, ((rect_radius or 6) / 72) / short_side))

        self._apply_fill(shape, fill)
        self._apply_line(shape, line)
        if flip_h or flip_v:
            xfrm = shape._element.spPr.get_or_add_xfrm()
            if flip_h:
                xfrm.set("flipH", "1")
            if flip_v:
                xfrm.set("flipV", "1")
        if rotate:
            shape.rotation = rotate % 360
        if shadow:
            self._apply_outer_shadow(shape)
        # Shapes carry no text of their own.
        shape.text_frame.text = ""
        return shape

    def _add_line(self, x: float, y: float, w: float, h: float, line: Optional[Line]):
        connector = self.slide.shapes.add_connector(
            MSO_CONNECTOR.STRAIGHT,
            Inches(x),
            Inches(y),
            Inches(x + w),
            Inches(y + h),
        )
        line = line or Line("000000", 1)
        color = _hex(line.color)
        if color:
            connector.line.color.rgb = RGBColor.from_string(color)
        connector.line.width = Pt(line.width if line.width > 0 else 0.75)
        return connector

    def add_freeform(self, points, *, x, y, w, h, fill=None, line=None):
        pts = list(points)
        if len(pts) < 3:
            raise ValueError("A freeform polygon needs at least three points")
        # Points are relative to the polygon's own bounding box at (x, y).
        builder = self.slide.shapes.build_freeform(pts[0][0], pts[0][1], scale=Inches(1))
        builder.add_line_segments(pts[1:], close=True)
        shape = builder.convert_to_shape(Inches(x), Inches(y))
        self._apply_fill(shape, fill)
        self._apply_line(shape, line)
        return shape

    def _apply_fill(self, shape, fill: Optional[Fill]) -> None:
        if fill is None:
            shape.fill.background()
            return
        shape.fill.solid()
        shape.fill.fore_color.rgb = RGBColor.from_string(_hex(fill.color) or "FFFFFF")
        if fill.transparency:
            self._apply_alpha(shape, fill.transparency)

    def _apply_alpha(self, shape, transparency: float) -> None:
        # python-pptx has no fill alpha API; add <a:alpha> under the solid fill colour.
        solid = shape._element.spPr.find(qn("a:solidFill"))
        srgb = solid.find(qn("a:srgbClr")) if solid is not None else None
        if srgb is None:
            return
        for old in srgb.findall(qn("a:alpha")):
            srgb.remove(old)
        opacity = max(0.0, min(100.0, 100 - transparency))
        srgb.append(srgb.makeelement(qn("a:alpha"), {"val": str(int(round(opacity * 1000)))}))

    def _apply_line(self, shape, line: Optional[Line]) -> None:
        if line is None or line.width <= 0 or not line.color:
            shape.line.fill.background()
            return
        shape.line.color.rgb = RGBColor.from_string(_hex(line.color))
        shape.line.width = Pt(line.width)

    def _apply_outer_shadow(self, shape) -> None:
        sp_pr = shape._element.spPr
        for old in sp_pr.findall(qn("a:effectLst")):
            sp_pr.remove(old)
        effects = sp_pr.makeelement(qn("a:effectLst"), {})
        outer = effects.makeelement(
            qn("a:outerShdw"),
            {
                "blurRad": str(Pt(12)),
                "dist": str(Pt(4)),
                "dir": str(45 * 60000),
                "algn": "tl",
                "rotWithShape": "0",
            },
        )
        color = outer.makeelement(qn("a:srgbClr"), {"val": "000000"})
        color.append(color.makeelement(qn("a:alpha"), {"val": "45000"}))
        outer.append(color)
        effects.append(outer)
        sp_pr.append(effects)

    # --- text ---

    def add_text(self, text, *, x, y, w, h, font_size, color=None, align="left", valign="top", bold=False, fit=None, wrap=True, rotate=None):
        box = self.slide.shapes.add_textbox(Inches(x), Inches(y), Inches(max(0.01, w)), Inches(max(0.01, h)))
        tf = box.text_frame
        tf.word_wrap = wrap
        tf.vertical_anchor = self.ANCHORS.get(valign, MSO_ANCHOR.TOP)
        tf.margin_left = tf.margin_right = Inches(0.04)
        tf.margin_top = tf.margin_bottom = Inches(0.02)
        if fit == "resize":
            tf.auto_size = MSO_AUTO_SIZE.TEXT_TO_FIT_SHAPE

        p = tf.paragraphs[0]
        p.alignment = self.ALIGNMENTS.get(align, PP_ALIGN.LEFT)
        run = p.add_run()
        run.text = str(text)
        run.font.size = Pt(font_size)
        run.font.bold = bool(bold)
        run.font.name = self.font_face
        rgb = _hex(color)
        if rgb:
            run.font.color.rgb = RGBColor.from_string(rgb)
        if rotate:
            box.rotation = rotate % 360
        return box

    # --- images ---

    def add_image(self, path, *, x, y, w, h, sizing=None, shadow=False):
        img_path = Path(path)
        box = Region(x, y, w, h)
        if sizing == "contain":
            size = _image_size(img_path)
            if size:
                box = contain_box(size[0], size[1], box)

        picture = self.slide.shapes.add_picture(str(img_path), Inches(box.x), Inches(box.y), Inches(box.w), Inches(box.h))

        if sizing == "cover":
            size = _image_size(img_path)
            if size:
                left, right, top, bottom = cover_crop(size[0], size[1], w, h)
                picture.crop_left, picture.crop_right = left, right
                picture.crop_top, picture.crop_bottom = top, bottom
        if shadow:
            self._apply_outer_shadow(picture)
        return picture

    # --- tables ---

    def add_table(self, rows, *, x, y, w, h, border=None):
        n_rows = len(rows)
        n_cols = max((len(r) for r in rows), default=0)
        if not n_rows or not n_cols:
            return None

        graphic = self.slide.shapes.add_table(n_rows, n_cols, Inches(x), Inches(y), Inches(w), Inches(h))
        table = graphic.table
        table.first_row = False
        table.horz_banding = False
        for r_idx, row in enumerate(rows):
            for c_idx in range(n_cols):
                cell = table.cell(r_idx, c_idx)
                spec = row[c_idx] if c_idx < len(row) else TableCell("")
                if border is not None and border.color:
                    _set_cell_border(cell, _hex(border.color), border.width or 1)
                if spec.fill:
                    cell.fill.solid()
                    cell.fill.fore_color.rgb = RGBColor.from_string(_hex(spec.fill))
                cell.text = spec.text
                para = cell.text_frame.paragraphs[0]
                para.alignment = self.ALIGNMENTS.get(spec.align, PP_ALIGN.LEFT)
                for run in para.runs:
                    run.font.size = Pt(spec.font_size)
                    run.font.bold = spec.bold
                    run.font.name = self.font_face
                    if spec.color:
                        run.font.color.rgb = RGBColor.from_string(_hex(spec.color))
        return graphic


def _set_cell_border(cell, color: str, width_pt: float) -> None:
    tc_pr = cell._tc.get_or_add_tcPr()
    for idx, tag in enumerate(("a:lnL", "a:lnR", "a:lnT", "a:lnB")):
        for old in tc_pr.findall(qn(tag)):
            tc_pr.remove(old)
        ln = tc_pr.makeelement(qn(tag), {"w": str(Emu(Pt(width_pt))), "cap": "flat", "cmpd": "sng", "algn": "ctr"})
        solid = ln.makeelement(qn("a:solidFill"), {})
        solid.append(solid.makeelement(qn("a:srgbClr"), {"val": color}))
        ln.append(solid)
        tc_pr.insert(idx, ln)


def _image_size(path: Path) -> Optional[Tuple[int, int]]:
    from PIL import Image

    try:
        with Image.open(path) as im:
            return im.size
    except OSError as exc:
        logger.debug("Could not read image size for %s: %s", path, exc)
        return None
