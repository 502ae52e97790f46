from __future__ import annotations

import sys
from pathlib import Path

import pytest
from pptx import Presentation

SCRIPT_DIR = Path(__file__).resolve().parents[1] / "scripts"
if str(SCRIPT_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPT_DIR))

from pptxviz import InfographicDeck, Registry, render_deck_from_config, write_config  # noqa: E402
from pptxviz.errors import ConfigValidationError  # noqa: E402
from pptxviz.geometry import Region  # noqa: E402


def _deck_config() -> dict:
    return {
        "presentation": {
            "title": "Deck",
            "slides": [
                {"title": "Funnel", "infographics": [{"type": "funnel", "payload": {"steps": [{"label": "A", "value": 10}]}}]},
                {"infographics": [{"type": "table", "payload": {"headers": ["H"], "rows": [["1"]]}}]},
                {"title": "Mystery", "infographics": [{"type": "hologram", "payload": {}}]},
            ],
        }
    }


def test_deck_writes_one_slide_per_entry(tmp_path: Path) -> None:
    deck = InfographicDeck.from_dict(_deck_config(), assets_dir=str(tmp_path / "assets"))
    results = deck.generate()
    out = deck.save(str(tmp_path / "deck.pptx"))

    prs = Presentation(str(out))
    assert len(prs.slides) == 3
    assert [r.rendered for r in results] == [True, True, False]


def test_unknown_type_draws_fallback_text(tmp_path: Path) -> None:
    deck = InfographicDeck.from_dict(_deck_config(), assets_dir=str(tmp_path), dry_run=True)
    deck.generate()
    assert "hologram" in deck.recordings[2].texts()
    assert "slides[2] hologram: fallback" in deck.summary()


def test_failing_renderer_only_aborts_its_region(tmp_path: Path) -> None:
    def explode(args) -> bool:
        raise RuntimeError("surface exploded")

    registry = Registry()
    registry.register("boom", explode)
    registry.register("ok", lambda args: args.surface.add_text("drawn", x=0, y=0, w=1, h=1, font_size=12) is not None)

    config = {"slides": [{"infographics": [{"type": "boom"}, {"type": "ok"}]}]}
    deck = InfographicDeck.from_dict(config, assets_dir=str(tmp_path), dry_run=True, registry=registry)
    results = deck.generate()

    assert [r.rendered for r in results] == [False, True]
    assert results[0].error == "surface exploded"
    assert deck.recordings[0].texts() == ["boom", "drawn"]


def test_regions_default_to_a_tiled_body(tmp_path: Path) -> None:
    deck = InfographicDeck.from_dict(_deck_config(), assets_dir=str(tmp_path), dry_run=True)
    regions = deck.default_regions(2)
    body = InfographicDeck.BODY_REGION
    assert regions[0].x == pytest.approx(body.x)
    assert regions[1].x + regions[1].w == pytest.approx(body.x + body.w)
    assert regions[0].h == pytest.approx(body.h)


def test_explicit_region_is_used(tmp_path: Path) -> None:
    seen = []
    registry = Registry()
    registry.register("probe", lambda args: seen.append(args.region) or True)
    config = {"slides": [{"infographics": [{"type": "probe", "region": {"x": 1, "y": 2, "w": 3, "h": 1.5}}]}]}
    InfographicDeck.from_dict(config, assets_dir=str(tmp_path), dry_run=True, registry=registry).generate()
    assert seen == [Region(1, 2, 3, 1.5)]


def test_inline_template_config_overrides_defaults(tmp_path: Path) -> None:
    config = _deck_config()
    config["presentation"]["templateConfig"] = {"visualStyles": {"funnel": {"labelFontSize": 30}}}
    deck = InfographicDeck.from_dict(config, assets_dir=str(tmp_path), dry_run=True)
    assert deck.template_config["visualStyles"]["funnel"]["labelFontSize"] == 30
    assert deck.template_config["visualStyles"]["funnel"]["valueFontSize"] == 16


def test_dry_run_deck_cannot_be_saved(tmp_path: Path) -> None:
    deck = InfographicDeck.from_dict(_deck_config(), assets_dir=str(tmp_path), dry_run=True)
    deck.generate()
    with pytest.raises(RuntimeError):
        deck.save(str(tmp_path / "x.pptx"))


def test_invalid_deck_raises_validation_error() -> None:
    with pytest.raises(ConfigValidationError):
        InfographicDeck.from_dict({"presentation": {"slides": []}})


def test_render_deck_from_config_round_trip(tmp_path: Path) -> None:
    config_path = write_config(_deck_config(), tmp_path / "deck.json")
    out = render_deck_from_config(
        deck_cls=InfographicDeck,
        config_path=config_path,
        output_path=tmp_path / "out" / "deck.pptx",
        assets_dir=tmp_path / "assets",
    )
    assert out.exists()
    assert len(Presentation(str(out)).slides) == 3
