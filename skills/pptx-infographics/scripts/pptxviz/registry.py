"""Renderer registry: maps an infographic type to its renderer and payload parser."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .capabilities import ImageGenerator, MapFetcher
from .charts import RasterChartBridge
from .colors import Palette, pick_text_color_for_background
from .geometry import Region
from .surface import Surface

logger = logging.getLogger(__name__)


class Helpers:
    """Palette and contrast helpers handed to every renderer call."""

    def __init__(self, palette: Palette):
        self.palette = palette

    @classmethod
    def from_template(cls, template_config: Any) -> "Helpers":
        return cls(Palette.from_template(template_config))

    def palette_color(self, index: int) -> str:
        return self.palette.get(index)

    @staticmethod
    def pick_text_color(hex_color: str) -> str:
        return pick_text_color_for_background(hex_color)


@dataclass
class Capabilities:
    image_generator: ImageGenerator = field(default_factory=ImageGenerator)
    map_fetcher: MapFetcher = field(default_factory=MapFetcher)
    chart_bridge: Optional[RasterChartBridge] = None
    assets_dir: Optional[Path] = None


@dataclass
class RenderArgs:
    surface: Surface
    type: str
    payload: Any
    region: Region
    template_config: Dict[str, Any]
    helpers: Optional[Helpers] = None
    capabilities: Optional[Capabilities] = None


Renderer = Callable[[RenderArgs], bool]
Parser = Callable[[Any], Any]


class Registry:
    def __init__(self, capabilities: Optional[Capabilities] = None):
        self.capabilities = capabilities or Capabilities()
        self._renderers: Dict[str, Renderer] = {}
        self._parsers: Dict[str, Optional[Parser]] = {}

    def register(self, type_name: str, renderer: Renderer, parser: Optional[Parser] = None) -> None:
        """Register `renderer` for `type_name`; the last registration wins."""
        self._renderers[type_name] = renderer
        self._parsers[type_name] = parser

    def types(self) -> List[str]:
        return sorted(self._renderers)

    def __contains__(self, type_name: object) -> bool:
        return type_name in self._renderers

    def render(self, args: RenderArgs) -> bool:
        """Parse the payload and dispatch to the renderer for ``args.type``.

        Returns False for unregistered types without invoking anything.
        Exceptions raised by the drawing surface propagate to the caller.
        """
        logger.debug("render dispatch: %s", args.type)
        renderer = self._renderers.get(args.type)
        if renderer is None:
            return False

        parser = self._parsers.get(args.type)
        payload = parser(args.payload) if parser is not None else (args.payload if args.payload is not None else {})
        call_args = replace(
            args,
            payload=payload,
            template_config=args.template_config if isinstance(args.template_config, dict) else {},
            helpers=args.helpers or Helpers.from_template(args.template_config),
            capabilities=args.capabilities or self.capabilities,
        )
        return bool(renderer(call_args))


def build_default_registry(capabilities: Optional[Capabilities] = None) -> Registry:
    """A fresh registry with every built-in renderer registered."""
    from .renderers import register_builtins

    registry = Registry(capabilities)
    register_builtins(registry)
    return registry
