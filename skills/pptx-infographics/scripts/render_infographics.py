#!/usr/bin/env python3
"""
Infographic PPTX Renderer

Renders infographic slides (bullet charts, waterfalls, funnels, gantt charts,
KPI cards, maps, raster charts and more) from a JSON deck description.

Usage:
    python render_infographics.py --config deck.json --output deck.pptx
    python render_infographics.py --config deck.json --dry-run
    python render_infographics.py --list-types
"""

from __future__ import annotations

import sys
from pathlib import Path

SCRIPT_DIR = Path(__file__).resolve().parent
if str(SCRIPT_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPT_DIR))

from pptxviz.cli import run_cli  # noqa: E402
from pptxviz.deck import InfographicDeck  # noqa: E402


def main() -> None:
    run_cli(InfographicDeck)


if __name__ == "__main__":
    main()
