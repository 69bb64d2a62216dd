"""
Global processing configuration for the smile tracking pipeline.

This module exposes a simple dict and helper functions so the frontend can
change calibration and classification settings at runtime via an HTTP call.
New engines (one per WebSocket connection) pick up the current values.

Defaults can be overridden at import time with `SMILE_<KEY>` environment
variables, e.g. `SMILE_CALIBRATION_MODE=timed`.
"""
import os
from pathlib import Path
from typing import Any, Dict

CALIBRATION_MODES = ("timed", "per-observation")

_DEFAULTS: Dict[str, Any] = {
    "calibration_mode": "per-observation",
    "calibration_capacity": 50,
    "calibration_duration": 3.0,
    "calibration_period": None,
    "smile_threshold": 1.1,
    "track_confidence": 0.3,
    "default_baseline": None,
    "baseline_key": "neutral_mouth_width",
    "baseline_path": str(Path(__file__).resolve().parent / "settings" / "baseline.json"),
    "event_log": False,
}

# value coercion per key; optional floats accept None / "" / "none"
_TYPES = {
    "calibration_mode": str,
    "calibration_capacity": int,
    "calibration_duration": float,
    "calibration_period": "optional_float",
    "smile_threshold": float,
    "track_confidence": float,
    "default_baseline": "optional_float",
    "baseline_key": str,
    "baseline_path": str,
    "event_log": bool,
}


def _coerce(key: str, value: Any) -> Any:
    kind = _TYPES[key]
    if kind == "optional_float":
        if value is None or (isinstance(value, str) and value.strip().lower() in ("", "none", "null")):
            return None
        value = float(value)
    elif kind is bool and isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    else:
        value = kind(value)
    if key == "calibration_mode" and value not in CALIBRATION_MODES:
        raise ValueError(f"calibration_mode must be one of {CALIBRATION_MODES}, got {value!r}")
    if key == "calibration_capacity" and value < 1:
        raise ValueError("calibration_capacity must be >= 1")
    if key in ("calibration_duration", "calibration_period") and value <= 0:
        raise ValueError(f"{key} must be > 0")
    return value


def _from_env() -> Dict[str, Any]:
    cfg = dict(_DEFAULTS)
    for key in cfg:
        raw = os.environ.get(f"SMILE_{key.upper()}")
        if raw is not None:
            cfg[key] = _coerce(key, raw)
    return cfg


_config: Dict[str, Any] = _from_env()


def get_config() -> Dict[str, Any]:
    return dict(_config)


def update_config(updates: Dict[str, Any]) -> Dict[str, Any]:
    """Apply known keys (unknown ones are ignored). Nothing changes if any value is invalid."""
    staged = {k: _coerce(k, v) for k, v in updates.items() if k in _config}
    _config.update(staged)
    return get_config()


def reset_config():
    fresh = _from_env()
    _config.clear()
    _config.update(fresh)
