"""Configuration loading for cpumon.

Loads settings from TOML config files with sensible defaults.
Search order: explicit --config path → ~/.config/cpumon/config.toml → defaults only.
"""

from __future__ import annotations

import sys
import tomllib
from pathlib import Path
from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "interval": 0.5,
    "alert_threshold": 80.0,
    "bar_width": 30,
    "log": {
        "path": "cpumon.log",
        "max_bytes": 1024 * 1024,
    },
    "alerts": {
        "enabled": False,
        "host": "127.0.0.1",
        "port": 5140,
    },
}

BAR_WIDTH_RANGE = (20, 40)

_DEFAULT_PATH = Path.home() / ".config" / "cpumon" / "config.toml"


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Merge overlay into base. Nested dicts are merged at the first level only."""
    merged = dict(base)
    for key, value in overlay.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            # Merge one level: overlay sub-keys into base sub-keys
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def validate_config(config: dict[str, Any]) -> list[str]:
    """Return a list of problems with *config*; empty when it is usable."""
    problems: list[str] = []

    interval = config.get("interval")
    if not isinstance(interval, (int, float)) or isinstance(interval, bool) or interval <= 0:
        problems.append(f"interval must be a positive number, got {interval!r}")

    threshold = config.get("alert_threshold")
    if not isinstance(threshold, (int, float)) or isinstance(threshold, bool):
        problems.append(f"alert_threshold must be a number, got {threshold!r}")

    width = config.get("bar_width")
    lo, hi = BAR_WIDTH_RANGE
    if not isinstance(width, int) or isinstance(width, bool) or not lo <= width <= hi:
        problems.append(f"bar_width must be an integer in {lo}..{hi}, got {width!r}")

    log_cfg = config.get("log")
    if not isinstance(log_cfg, dict):
        problems.append(f"log must be a table, got {log_cfg!r}")
    else:
        max_bytes = log_cfg.get("max_bytes")
        if not isinstance(max_bytes, int) or isinstance(max_bytes, bool) or max_bytes <= 0:
            problems.append(f"log.max_bytes must be a positive integer, got {max_bytes!r}")
        if not isinstance(log_cfg.get("path"), str) or not log_cfg.get("path"):
            problems.append("log.path must be a non-empty string")

    alerts = config.get("alerts")
    if not isinstance(alerts, dict):
        problems.append(f"alerts must be a table, got {alerts!r}")
    else:
        enabled = alerts.get("enabled")
        if not isinstance(enabled, bool):
            problems.append(f"alerts.enabled must be true or false, got {enabled!r}")
        port = alerts.get("port")
        if not isinstance(port, int) or isinstance(port, bool) or not 0 < port < 65536:
            problems.append(f"alerts.port must be in 1..65535, got {port!r}")
        if not isinstance(alerts.get("host"), str) or not alerts.get("host"):
            problems.append("alerts.host must be a non-empty string")

    return problems


def _checked(config: dict[str, Any], source: Path) -> dict[str, Any]:
    problems = validate_config(config)
    if problems:
        for problem in problems:
            print(f"cpumon: {source}: {problem}", file=sys.stderr)
        raise SystemExit(1)
    return config


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration, merging user TOML over defaults.

    Args:
        path: Explicit config file path (from --config). If None, tries the
              default location ~/.config/cpumon/config.toml.

    Returns:
        Merged configuration dict.

    Raises:
        SystemExit: If an explicit path doesn't exist or can't be parsed, or
            if the merged values are out of range.
    """
    if path is not None:
        if not path.is_file():
            print(f"cpumon: config file not found: {path}", file=sys.stderr)
            raise SystemExit(1)
        try:
            user_config = tomllib.loads(path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            print(f"cpumon: invalid TOML in {path}: {e}", file=sys.stderr)
            raise SystemExit(1) from e
        return _checked(_deep_merge(DEFAULT_CONFIG, user_config), path)

    # Try default location silently
    if _DEFAULT_PATH.is_file():
        try:
            user_config = tomllib.loads(_DEFAULT_PATH.read_text(encoding="utf-8"))
            return _checked(_deep_merge(DEFAULT_CONFIG, user_config), _DEFAULT_PATH)
        except tomllib.TOMLDecodeError:
            print(
                f"cpumon: warning: ignoring invalid TOML in {_DEFAULT_PATH}",
                file=sys.stderr,
            )

    return dict(DEFAULT_CONFIG)


def _toml_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return f'"{value}"'
    return str(value)


def dump_default_config() -> str:
    """Return the default configuration as a TOML string."""
    lines = [
        "# cpumon configuration",
        "# Place this file at ~/.config/cpumon/config.toml",
        "",
    ]

    tables: list[tuple[str, dict[str, Any]]] = []
    for key, value in DEFAULT_CONFIG.items():
        if isinstance(value, dict):
            tables.append((key, value))
        else:
            lines.append(f"{key} = {_toml_value(value)}")
    lines.append("")

    for name, table in tables:
        lines.append(f"[{name}]")
        for key, value in table.items():
            lines.append(f"{key} = {_toml_value(value)}")
        lines.append("")

    return "\n".join(lines) + "\n"
