"""Configuration loading for sensorbars.

Loads settings from TOML config files with sensible defaults.
Search order: explicit --config path → ~/.config/sensorbars/config.toml → defaults only.
"""

from __future__ import annotations

import logging
import sys
import tomllib
from pathlib import Path
from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "poll_interval": 0.5,
    "tick_interval": 0.5,
    "quit_key": "q",
    "nvidia_smi": True,
    # Sensor ids or chip names kept out of the "Others" chart
    "hidden_sensors": [],
    "logging": {
        "level": "WARNING",
        "file": "",
    },
}

_DEFAULT_PATH = Path.home() / ".config" / "sensorbars" / "config.toml"


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Merge overlay into base. Nested dicts are merged at the first level only."""
    merged = dict(base)
    for key, value in overlay.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def _interval(config: dict[str, Any], key: str) -> float:
    value = config[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ValueError(f"{key} must be a positive number of seconds, got {value!r}")
    return float(value)


def validate_config(config: dict[str, Any]) -> dict[str, Any]:
    """Check value types and normalise them.

    Intervals become floats and the log level is upper-cased.

    Raises:
        ValueError: Naming the first offending key.
    """
    checked = dict(config)
    checked["poll_interval"] = _interval(config, "poll_interval")
    checked["tick_interval"] = _interval(config, "tick_interval")

    quit_key = config["quit_key"]
    if not isinstance(quit_key, str) or not quit_key:
        raise ValueError(f"quit_key must be a non-empty string, got {quit_key!r}")

    if not isinstance(config["nvidia_smi"], bool):
        raise ValueError(f"nvidia_smi must be true or false, got {config['nvidia_smi']!r}")

    hidden = config["hidden_sensors"]
    if not isinstance(hidden, list) or not all(isinstance(s, str) for s in hidden):
        raise ValueError("hidden_sensors must be a list of sensor ids or chip names")

    level = str(config["logging"]["level"]).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"unknown logging level: {config['logging']['level']!r}")
    checked["logging"] = {**config["logging"], "level": level}
    return checked


def _read_toml(path: Path) -> dict[str, Any]:
    return validate_config(
        _deep_merge(DEFAULT_CONFIG, tomllib.loads(path.read_text(encoding="utf-8")))
    )


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration, merging user TOML over defaults.

    Args:
        path: Explicit config file path (from --config). If None, tries the
              default location ~/.config/sensorbars/config.toml.

    Returns:
        Merged, validated configuration dict.

    Raises:
        SystemExit: If an explicit path doesn't exist, can't be parsed or
                    holds invalid values.
    """
    if path is not None:
        if not path.is_file():
            print(f"sensorbars: config file not found: {path}", file=sys.stderr)
            raise SystemExit(1)
        try:
            return _read_toml(path)
        except tomllib.TOMLDecodeError as e:
            print(f"sensorbars: invalid TOML in {path}: {e}", file=sys.stderr)
            raise SystemExit(1) from e
        except ValueError as e:
            print(f"sensorbars: invalid config in {path}: {e}", file=sys.stderr)
            raise SystemExit(1) from e

    if _DEFAULT_PATH.is_file():
        try:
            return _read_toml(_DEFAULT_PATH)
        except tomllib.TOMLDecodeError:
            print(
                f"sensorbars: warning: ignoring invalid TOML in {_DEFAULT_PATH}",
                file=sys.stderr,
            )
        except ValueError as e:
            print(
                f"sensorbars: warning: ignoring {_DEFAULT_PATH}: {e}",
                file=sys.stderr,
            )

    return dict(DEFAULT_CONFIG)


def dump_default_config() -> str:
    """Return the default configuration as a TOML string."""
    hidden = ", ".join(f'"{s}"' for s in DEFAULT_CONFIG["hidden_sensors"])
    lines = [
        "# sensorbars configuration",
        "# Place this file at ~/.config/sensorbars/config.toml",
        "",
        f"poll_interval = {DEFAULT_CONFIG['poll_interval']}",
        f"tick_interval = {DEFAULT_CONFIG['tick_interval']}",
        f'quit_key = "{DEFAULT_CONFIG["quit_key"]}"',
        f"nvidia_smi = {str(DEFAULT_CONFIG['nvidia_smi']).lower()}",
        f"hidden_sensors = [{hidden}]",
        "",
        "[logging]",
        f'level = "{DEFAULT_CONFIG["logging"]["level"]}"',
        f'file = "{DEFAULT_CONFIG["logging"]["file"]}"',
    ]
    return "\n".join(lines) + "\n"
