"""CLI orchestration for the infographic deck renderer."""

from __future__ import annotations

import argparse
import logging
import traceback
from pathlib import Path

from .errors import ConfigValidationError
from .registry import build_default_registry

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Render infographic PPTX slides from a JSON deck description")
    parser.add_argument("--config", help="Path to JSON deck configuration file")
    parser.add_argument("--output", help="Output PPTX file path")
    parser.add_argument(
        "--template-config",
        default=None,
        help="Optional template config JSON layered over the packaged default styles",
    )
    parser.add_argument(
        "--assets-dir",
        default=None,
        help="Directory for generated, fetched and chart images (default: <output-stem>-assets next to the PPTX)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Render every region without writing a PPTX and print the per-region outcome",
    )
    parser.add_argument("--list-types", action="store_true", help="Print the registered infographic types and exit")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=_LOG_LEVELS,
        type=str.upper,
        help="Logging level (default: WARNING)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Show full traceback for unexpected errors (implies --log-level DEBUG)",
    )
    return parser


def run_cli(deck_cls) -> None:
    parser = _build_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else getattr(logging, args.log_level),
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.list_types:
        for type_name in build_default_registry().types():
            print(type_name)
        return

    if not args.config:
        parser.error("--config is required")
    if not args.output and not args.dry_run:
        parser.error("--output is required unless --dry-run is given")

    try:
        config_path = Path(args.config).resolve()
        output_path = Path(args.output).resolve() if args.output else config_path.with_suffix(".pptx")
        assets_dir = Path(args.assets_dir).resolve() if args.assets_dir else output_path.parent / f"{output_path.stem}-assets"

        deck = deck_cls(
            str(config_path),
            template_config_path=args.template_config,
            assets_dir=str(assets_dir),
            dry_run=args.dry_run,
        )
        deck.generate()

        if args.dry_run:
            print(deck.summary())
            return

        saved = deck.save(str(output_path))
        print(saved)
    except ConfigValidationError as e:
        raise SystemExit(str(e)) from e
    except Exception as e:
        if args.debug:
            traceback.print_exc()
        raise SystemExit(f"Infographic rendering failed: {e}") from e
