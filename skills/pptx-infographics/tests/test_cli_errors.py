from __future__ import annotations

import subprocess
import sys
from pathlib import Path

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "render_infographics.py"
SAMPLE = Path(__file__).resolve().parents[1] / "assets" / "sample_deck.json"


def _run(*args: str) -> subprocess.CompletedProcess:
    return subprocess.run([sys.executable, str(SCRIPT), *args], capture_output=True, text=True)


def test_cli_shows_clean_validation_error(tmp_path: Path) -> None:
    bad_config = tmp_path / "bad.json"
    bad_config.write_text('{"presentation": {"slides": "oops"}}', encoding="utf-8")

    result = _run("--config", str(bad_config), "--output", str(tmp_path / "out.pptx"))

    assert result.returncode == 1
    assert "Configuration validation failed" in result.stderr
    assert "Traceback" not in result.stderr


def test_cli_reports_missing_template_config(tmp_path: Path) -> None:
    result = _run(
        "--config", str(SAMPLE),
        "--output", str(tmp_path / "out.pptx"),
        "--template-config", str(tmp_path / "nope.json"),
    )

    assert result.returncode == 1
    assert "Template validation failed" in result.stderr
    assert "Traceback" not in result.stderr


def test_cli_lists_types() -> None:
    result = _run("--list-types")

    assert result.returncode == 0
    types = result.stdout.split()
    assert "waterfall" in types
    assert "bar_chart" in types


def test_cli_dry_run_prints_region_outcomes(tmp_path: Path) -> None:
    result = _run("--config", str(SAMPLE), "--dry-run", "--assets-dir", str(tmp_path / "assets"))

    assert result.returncode == 0
    assert "slides[0] waterfall: ok" in result.stdout
    assert not list(tmp_path.glob("*.pptx"))


def test_cli_writes_pptx(tmp_path: Path) -> None:
    output = tmp_path / "deck.pptx"
    result = _run("--config", str(SAMPLE), "--output", str(output))

    assert result.returncode == 0, result.stderr
    assert output.exists()
