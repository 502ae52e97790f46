"""Public API helpers for programmatic infographic deck rendering."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional


def render_deck_from_config(
    *,
    deck_cls,
    config_path: Path,
    output_path: Path,
    template_config_path: Optional[Path] = None,
    assets_dir: Optional[Path] = None,
) -> Path:
    """Render a PPTX from a validated deck config file via the provided deck class."""
    deck = deck_cls(
        str(config_path),
        template_config_path=str(template_config_path) if template_config_path else None,
        assets_dir=str(assets_dir) if assets_dir else None,
    )
    deck.generate()
    return deck.save(str(output_path))


def write_config(config: Dict[str, Any], path: Path) -> Path:
    """Write a JSON config to disk and return the path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return path
