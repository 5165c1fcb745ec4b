"""Configuration loading for cgview.

Loads settings from TOML config files with sensible defaults.
Search order: explicit --config path → ~/.config/cgview/config.toml → defaults only.
"""

from __future__ import annotations

import sys
import tomllib
from pathlib import Path
from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "interval": 2.0,
    "cgroup_root": "/sys/fs/cgroup",
    "default_tab": "General",
    "collapse_top_level": False,
    "sort": {"field": "", "reverse": True},
    "log": {"level": "WARNING", "file": ""},
}

_DEFAULT_PATH = Path.home() / ".config" / "cgview" / "config.toml"


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Merge overlay into base. Nested dicts are merged at the first level only."""
    merged = dict(base)
    for key, value in overlay.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration, merging user TOML over defaults.

    Args:
        path: Explicit config file path (from --config). If None, tries the
              default location ~/.config/cgview/config.toml.

    Returns:
        Merged configuration dict.

    Raises:
        SystemExit: If an explicit path doesn't exist or can't be parsed.
    """
    if path is not None:
        if not path.is_file():
            print(f"cgview: config file not found: {path}", file=sys.stderr)
            raise SystemExit(1)
        try:
            user_config = tomllib.loads(path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            print(f"cgview: invalid TOML in {path}: {e}", file=sys.stderr)
            raise SystemExit(1) from e
        return _deep_merge(DEFAULT_CONFIG, user_config)

    if _DEFAULT_PATH.is_file():
        try:
            user_config = tomllib.loads(_DEFAULT_PATH.read_text(encoding="utf-8"))
            return _deep_merge(DEFAULT_CONFIG, user_config)
        except tomllib.TOMLDecodeError:
            print(
                f"cgview: warning: ignoring invalid TOML in {_DEFAULT_PATH}",
                file=sys.stderr,
            )

    return _deep_merge(DEFAULT_CONFIG, {})


def dump_default_config() -> str:
    """Return the default configuration as a TOML string."""
    sort = DEFAULT_CONFIG["sort"]
    log = DEFAULT_CONFIG["log"]
    lines = [
        "# cgview configuration",
        "# Place this file at ~/.config/cgview/config.toml",
        "",
        f"interval = {DEFAULT_CONFIG['interval']}",
        f'cgroup_root = "{DEFAULT_CONFIG["cgroup_root"]}"',
        f'default_tab = "{DEFAULT_CONFIG["default_tab"]}"',
        f"collapse_top_level = {str(DEFAULT_CONFIG['collapse_top_level']).lower()}",
        "",
        "# field: dotted field name such as cpu.usage_pct or mem.total",
        "[sort]",
        f'field = "{sort["field"]}"',
        f"reverse = {str(sort['reverse']).lower()}",
        "",
        "# file: empty means ~/.local/state/cgview/cgview.log",
        "[log]",
        f'level = "{log["level"]}"',
        f'file = "{log["file"]}"',
    ]
    return "\n".join(lines) + "\n"
