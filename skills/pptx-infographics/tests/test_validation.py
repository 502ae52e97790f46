from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

SCRIPT_DIR = Path(__file__).resolve().parents[1] / "scripts"
if str(SCRIPT_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPT_DIR))

from pptxviz import ConfigValidationError, validate_config, validate_config_file  # noqa: E402
from pptxviz.styles import load_template_config  # noqa: E402


def test_validate_config_accepts_sample_deck() -> None:
    sample_path = Path(__file__).resolve().parents[1] / "assets" / "sample_deck.json"
    payload = json.loads(sample_path.read_text(encoding="utf-8"))
    validated, wrapped = validate_config(payload)
    assert wrapped is True
    assert isinstance(validated, dict)


def test_validate_config_accepts_unwrapped_form() -> None:
    cfg = {"slides": [{"infographics": [{"type": "bullet", "payload": {"items": []}}]}]}
    validated, wrapped = validate_config(cfg)
    assert wrapped is False
    assert validated is cfg


def test_validate_config_rejects_non_list_slides() -> None:
    bad = {"presentation": {"slides": "not-a-list"}}
    with pytest.raises(ConfigValidationError) as exc:
        validate_config(bad)
    assert "slides is required and must be a list" in str(exc.value)


def test_validate_config_collects_every_issue() -> None:
    bad = {
        "presentation": {
            "title": 3,
            "slides": [
                {"infographics": [{"payload": {}}, "oops"]},
                {"title": "No list", "infographics": {}},
            ],
        }
    }
    with pytest.raises(ConfigValidationError) as exc:
        validate_config(bad)
    issues = exc.value.issues
    assert "presentation.title must be a string when provided" in issues
    assert "presentation.slides[0].infographics[0].type is required and must be a non-empty string" in issues
    assert "presentation.slides[0].infographics[1] must be an object with type + payload" in issues
    assert "presentation.slides[1].infographics is required and must be a list" in issues
    assert str(exc.value).startswith("Configuration validation failed:\n- ")


def test_validate_config_checks_region_fields() -> None:
    bad = {
        "presentation": {
            "slides": [{"infographics": [{"type": "funnel", "region": {"x": 0, "y": "top", "w": 0, "h": 2}}]}]
        }
    }
    with pytest.raises(ConfigValidationError) as exc:
        validate_config(bad)
    text = str(exc.value)
    assert "infographics[0].region.y must be a number" in text
    assert "infographics[0].region.w must be positive" in text


def test_unknown_type_is_not_a_validation_error() -> None:
    cfg = {"presentation": {"slides": [{"infographics": [{"type": "hologram", "payload": {}}]}]}}
    validate_config(cfg)


def test_validate_config_file_reports_missing_and_invalid_json(tmp_path: Path) -> None:
    with pytest.raises(ConfigValidationError) as exc:
        validate_config_file(tmp_path / "missing.json")
    assert "Config file not found" in str(exc.value)

    broken = tmp_path / "broken.json"
    broken.write_text('{"presentation": ', encoding="utf-8")
    with pytest.raises(ConfigValidationError) as exc:
        validate_config_file(broken)
    assert "Invalid JSON at line 1" in str(exc.value)


def test_template_config_merges_over_defaults(tmp_path: Path) -> None:
    partial = tmp_path / "brand.json"
    partial.write_text(json.dumps({"visualStyles": {"bullet": {"labelFontSize": 20}}}), encoding="utf-8")
    merged = load_template_config(partial)
    assert merged["visualStyles"]["bullet"]["labelFontSize"] == 20
    assert merged["visualStyles"]["bullet"]["valueFontSize"] == 11
    assert "waterfall" in merged["visualStyles"]


def test_template_config_rejects_non_object_visual_styles(tmp_path: Path) -> None:
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"visualStyles": []}), encoding="utf-8")
    with pytest.raises(ConfigValidationError) as exc:
        load_template_config(bad)
    assert str(exc.value).startswith("Template validation failed:")
