"""Infographic layout engine: renderers, registry and deck driver for PPTX slides."""

from .api import render_deck_from_config, write_config
from .cli import run_cli
from .deck import InfographicDeck, RegionResult
from .errors import ConfigValidationError
from .geometry import Region
from .registry import Capabilities, Helpers, Registry, RenderArgs, build_default_registry
from .styles import get_visual_style, load_template_config
from .surface import Fill, Line, RecordingSurface, SlideSurface, Surface
from .validation import validate_config, validate_config_file

__all__ = [
    "Capabilities",
    "ConfigValidationError",
    "Fill",
    "Helpers",
    "InfographicDeck",
    "Line",
    "RecordingSurface",
    "Region",
    "RegionResult",
    "Registry",
    "RenderArgs",
    "SlideSurface",
    "Surface",
    "build_default_registry",
    "get_visual_style",
    "load_template_config",
    "render_deck_from_config",
    "run_cli",
    "validate_config",
    "validate_config_file",
    "write_config",
]
