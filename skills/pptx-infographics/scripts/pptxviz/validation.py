"""Config validation for the infographic deck JSON input."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

from .errors import ConfigValidationError

_REGION_FIELDS = ("x", "y", "w", "h")


def _is_non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_region(region: Any, prefix: str, issues: list[str]) -> None:
    if not isinstance(region, dict):
        issues.append(f"{prefix}.region must be an object with x, y, w, h when provided")
        return
    for field in _REGION_FIELDS:
        if not _is_number(region.get(field)):
            issues.append(f"{prefix}.region.{field} must be a number")
    for field in ("w", "h"):
        value = region.get(field)
        if _is_number(value) and value <= 0:
            issues.append(f"{prefix}.region.{field} must be positive")


def _check_infographic(item: Dict[str, Any], prefix: str, issues: list[str]) -> None:
    if not _is_non_empty_str(item.get("type")):
        issues.append(f"{prefix}.type is required and must be a non-empty string")

    # Payload shape is checked per type by the registry; only the container matters here.
    payload = item.get("payload")
    if payload is not None and not isinstance(payload, (dict, list)):
        issues.append(f"{prefix}.payload must be an object or list when provided")

    if "region" in item:
        _check_region(item.get("region"), prefix, issues)


def _check_slide(slide: Dict[str, Any], idx: int, issues: list[str], prefix: str) -> None:
    slide_prefix = f"{prefix}.slides[{idx}]"
    if "title" in slide and not isinstance(slide.get("title"), str):
        issues.append(f"{slide_prefix}.title must be a string when provided")

    infographics = slide.get("infographics")
    if not isinstance(infographics, list):
        issues.append(f"{slide_prefix}.infographics is required and must be a list")
        return

    for i_idx, item in enumerate(infographics):
        item_prefix = f"{slide_prefix}.infographics[{i_idx}]"
        if not isinstance(item, dict):
            issues.append(f"{item_prefix} must be an object with type + payload")
            continue
        _check_infographic(item, item_prefix, issues)


def _check_presentation(presentation: Dict[str, Any], issues: list[str], prefix: str) -> None:
    if "title" in presentation and not isinstance(presentation.get("title"), str):
        issues.append(f"{prefix}.title must be a string when provided")

    template = presentation.get("templateConfig")
    if template is not None and not isinstance(template, (str, dict)):
        issues.append(f"{prefix}.templateConfig must be a path string or object when provided")

    slides = presentation.get("slides")
    if not isinstance(slides, list):
        issues.append(f"{prefix}.slides is required and must be a list")
        return
    if not slides:
        issues.append(f"{prefix}.slides must contain at least one slide")
        return

    for idx, slide in enumerate(slides):
        if not isinstance(slide, dict):
            issues.append(f"{prefix}.slides[{idx}] must be an object")
            continue
        _check_slide(slide, idx, issues, prefix)


def validate_config(config: Dict[str, Any]) -> tuple[Dict[str, Any], bool]:
    """Validate a deck config dict and return (config, wrapped)."""
    if not isinstance(config, dict):
        raise ConfigValidationError(["Root JSON value must be an object"])

    wrapped = "presentation" in config
    presentation = config.get("presentation") if wrapped else config

    if not isinstance(presentation, dict):
        raise ConfigValidationError(["'presentation' must be an object"])

    issues: list[str] = []
    _check_presentation(presentation, issues, "presentation" if wrapped else "root")

    if issues:
        raise ConfigValidationError(issues)

    return config, wrapped


def validate_config_file(config_path: Path) -> tuple[Dict[str, Any], bool]:
    """Load and validate a JSON deck file."""
    try:
        raw = config_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigValidationError([f"Config file not found: {config_path}"]) from exc

    try:
        data: Dict[str, Any] = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigValidationError([f"Invalid JSON at line {exc.lineno}, column {exc.colno}: {exc.msg}"]) from exc

    return validate_config(data)
