from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml

_SCORING_CONFIG_CACHE: dict[str, Any] | None = None
_DEFAULT_SCORING_CONFIG_PATH = Path(__file__).resolve().parents[3] / "config" / "scoring.yaml"


def _config_path() -> Path:
    override = (os.getenv("SCORING_CONFIG_PATH") or "").strip()
    return Path(override) if override else _DEFAULT_SCORING_CONFIG_PATH


def get_scoring_config() -> dict[str, Any]:
    """Load thresholds and weights from config/scoring.yaml and cache them."""
    global _SCORING_CONFIG_CACHE

    if _SCORING_CONFIG_CACHE is not None:
        return _SCORING_CONFIG_CACHE

    path = _config_path()
    if not path.exists():
        raise RuntimeError(f"Scoring config not found at '{path}'. Expected file: config/scoring.yaml")

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RuntimeError(f"Failed to read scoring config '{path}': {exc}") from exc

    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise RuntimeError(f"Invalid YAML in scoring config '{path}': {exc}") from exc

    if not isinstance(parsed, dict):
        raise RuntimeError(f"Invalid scoring config '{path}': expected a top-level mapping.")

    _SCORING_CONFIG_CACHE = parsed
    return _SCORING_CONFIG_CACHE


def reset_scoring_config() -> None:
    global _SCORING_CONFIG_CACHE
    _SCORING_CONFIG_CACHE = None


def get_scoring_value(path: str, default: Any = None) -> Any:
    """Get a nested value by dot path, e.g. 'tips.metrics.pass'."""
    if not path:
        return default

    current: Any = get_scoring_config()
    for key in path.split("."):
        if not isinstance(current, dict) or key not in current:
            return default
        current = current[key]
    return current


def get_scoring_float(path: str, default: float) -> float:
    value = get_scoring_value(path, default)
    try:
        return float(value)
    except (TypeError, ValueError):
        return default
