"""Deck driver: turns a JSON deck description into a .pptx of infographic slides."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from pptx import Presentation
from pptx.dml.color import RGBColor
from pptx.util import Inches, Pt

from .capabilities import MAP_API_KEY_ENV, PlaceholderImageGenerator, StaticMapFetcher
from .charts import RasterChartBridge
from .errors import ConfigValidationError
from .geometry import Region, grid_shape
from .registry import Capabilities, Helpers, Registry, RenderArgs, build_default_registry
from .styles import deep_merge, load_template_config
from .surface import RecordingSurface, SlideSurface, Surface
from .validation import validate_config, validate_config_file

logger = logging.getLogger(__name__)


@dataclass
class RegionResult:
    slide_index: int
    type: str
    rendered: bool
    error: Optional[str] = None


class InfographicDeck:
    """Render infographic slides from a deck JSON config."""

    SLIDE_WIDTH = Inches(10)
    SLIDE_HEIGHT = Inches(5.625)

    # Body area below the title textbox.
    BODY_REGION = Region(0.5, 1.2, 9.0, 4.1)
    REGION_GAP = 0.3

    FALLBACK_TEXT_COLOR = "666666"

    def __init__(
        self,
        config_path: str,
        template_config_path: Optional[str] = None,
        assets_dir: Optional[str] = None,
        *,
        dry_run: bool = False,
        registry: Optional[Registry] = None,
    ):
        self.config_path = Path(config_path)
        self.config, _ = validate_config_file(self.config_path)
        self.config_dir = self.config_path.resolve().parent
        self._setup(template_config_path, assets_dir, dry_run=dry_run, registry=registry)

    @classmethod
    def from_dict(
        cls,
        config: Dict[str, Any],
        template_config_path: Optional[str] = None,
        assets_dir: Optional[str] = None,
        *,
        dry_run: bool = False,
        registry: Optional[Registry] = None,
        config_dir: Optional[Path] = None,
    ) -> "InfographicDeck":
        instance = object.__new__(cls)
        instance.config, _ = validate_config(config)
        instance.config_path = None
        instance.config_dir = config_dir
        instance._setup(template_config_path, assets_dir, dry_run=dry_run, registry=registry)
        return instance

    def _setup(
        self,
        template_config_path: Optional[str],
        assets_dir: Optional[str],
        *,
        dry_run: bool,
        registry: Optional[Registry],
    ) -> None:
        self.presentation_config = self.config.get("presentation", self.config)
        self.assets_dir = Path(assets_dir).resolve() if assets_dir else None
        self.dry_run = dry_run
        self.template_config = self._load_template_config(template_config_path)
        self.helpers = Helpers.from_template(self.template_config)
        self.registry = registry or build_default_registry(self._build_capabilities())
        self.results: List[RegionResult] = []
        self.recordings: List[RecordingSurface] = []

        self.prs = Presentation()
        self.prs.slide_width = self.SLIDE_WIDTH
        self.prs.slide_height = self.SLIDE_HEIGHT

    def _assets_output_dir(self) -> Path:
        if self.assets_dir is not None:
            return self.assets_dir
        base = self.config_dir or Path.cwd()
        return base / "infographic-assets"

    def _build_capabilities(self) -> Capabilities:
        out_dir = self._assets_output_dir()
        capabilities = Capabilities(
            image_generator=PlaceholderImageGenerator(out_dir / "generated"),
            chart_bridge=RasterChartBridge(output_dir=out_dir / "charts"),
            assets_dir=out_dir,
        )
        api_key = os.environ.get(MAP_API_KEY_ENV, "").strip()
        if api_key:
            capabilities.map_fetcher = StaticMapFetcher(api_key, out_dir / "maps")
        else:
            logger.debug("%s not set; map_markers will draw the simple map", MAP_API_KEY_ENV)
        return capabilities

    def _resolve_fs_path(self, path_like: str) -> Path:
        path = Path(os.path.expanduser(path_like))
        if not path.is_absolute() and self.config_dir is not None:
            path = self.config_dir / path
        return path

    def _load_template_config(self, template_config_path: Optional[str]) -> Dict[str, Any]:
        # --template-config wins over the deck's own templateConfig entry.
        if template_config_path:
            return load_template_config(Path(template_config_path))

        inline = self.presentation_config.get("templateConfig")
        if isinstance(inline, str) and inline.strip():
            return load_template_config(self._resolve_fs_path(inline.strip()))
        if isinstance(inline, dict):
            visual = inline.get("visualStyles")
            if visual is not None and not isinstance(visual, dict):
                raise ConfigValidationError(
                    ["templateConfig.visualStyles must be an object"], title="Template validation failed"
                )
            return deep_merge(load_template_config(), inline)
        return load_template_config()

    def _get_blank_layout(self):
        try:
            return self.prs.slide_layouts[6]
        except IndexError:
            return self.prs.slide_layouts[-1]

    def _add_title_textbox(self, slide, title: str) -> None:
        title_box = slide.shapes.add_textbox(Inches(0.5), Inches(0.3), Inches(9), Inches(0.7))
        title_frame = title_box.text_frame
        title_frame.text = title
        title_frame.paragraphs[0].font.size = Pt(28)
        title_frame.paragraphs[0].font.bold = True
        title_frame.paragraphs[0].font.color.rgb = RGBColor(15, 23, 42)

    def default_regions(self, count: int) -> List[Region]:
        """Tile the body area for infographics that carry no region of their own."""
        body = self.BODY_REGION
        columns, rows = grid_shape(count)
        gap = self.REGION_GAP
        cell_w = (body.w - gap * (columns - 1)) / columns
        cell_h = (body.h - gap * (rows - 1)) / rows
        regions = []
        for i in range(count):
            col, row = i % columns, i // columns
            regions.append(Region(body.x + col * (cell_w + gap), body.y + row * (cell_h + gap), cell_w, cell_h))
        return regions

    def _draw_fallback(self, surface: Surface, type_name: str, region: Region) -> None:
        surface.add_text(
            type_name or "infographic",
            x=region.x, y=region.y, w=region.w, h=region.h,
            font_size=14, color=self.FALLBACK_TEXT_COLOR, align="center", valign="middle",
        )

    def render_region(self, surface: Surface, slide_index: int, item: Dict[str, Any], region: Region) -> RegionResult:
        type_name = str(item.get("type") or "").strip()
        args = RenderArgs(
            surface=surface,
            type=type_name,
            payload=item.get("payload"),
            region=region,
            template_config=self.template_config,
            helpers=self.helpers,
        )
        try:
            rendered = self.registry.render(args)
            result = RegionResult(slide_index, type_name, rendered)
        except Exception as exc:
            # One broken region must not take the rest of the slide down.
            logger.exception("slides[%d]: %s render failed", slide_index, type_name)
            result = RegionResult(slide_index, type_name, False, error=str(exc))

        if not result.rendered:
            if result.error is None and type_name not in self.registry:
                logger.warning("slides[%d]: unknown infographic type %r", slide_index, type_name)
            self._draw_fallback(surface, type_name, region)
        self.results.append(result)
        return result

    def generate(self) -> List[RegionResult]:
        self.results = []
        self.recordings = []
        deck_title = str(self.presentation_config.get("title") or "").strip()
        if deck_title:
            logger.info("rendering deck %r", deck_title)

        for slide_index, slide_config in enumerate(self.presentation_config.get("slides", [])):
            if self.dry_run:
                surface: Surface = RecordingSurface()
                self.recordings.append(surface)
            else:
                slide = self.prs.slides.add_slide(self._get_blank_layout())
                title = str(slide_config.get("title") or "").strip()
                if title:
                    self._add_title_textbox(slide, title)
                surface = SlideSurface(slide)

            items = slide_config.get("infographics") or []
            defaults = self.default_regions(len(items)) if items else []
            for item, default in zip(items, defaults):
                raw_region = item.get("region")
                region = Region.from_dict(raw_region, default) if isinstance(raw_region, dict) else default
                self.render_region(surface, slide_index, item, region)

        failed = [r for r in self.results if not r.rendered]
        if failed:
            logger.warning("%d of %d infographics fell back to placeholder text", len(failed), len(self.results))
        return self.results

    def summary(self) -> str:
        """Human-readable per-region outcome, one line each."""
        lines = []
        for result in self.results:
            status = "ok" if result.rendered else "fallback"
            line = f"slides[{result.slide_index}] {result.type or '?'}: {status}"
            if self.dry_run and result.slide_index < len(self.recordings):
                line += f" ({len(self.recordings[result.slide_index].primitives)} primitives on slide)"
            if result.error:
                line += f" - {result.error}"
            lines.append(line)
        return "\n".join(lines)

    def save(self, output_path: str) -> Path:
        if self.dry_run:
            raise RuntimeError("Dry-run decks have no slides to save")
        out_path = Path(output_path)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        self.prs.save(str(out_path))
        logger.info("saved %s", out_path)
        return out_path

