"""Load LivemarkConfig from livemark.yaml / livemark.toml if present.

Merges file config with CLI kwargs. CLI overrides file.
"""

from __future__ import annotations

import tomllib
from pathlib import Path

import yaml

from livemark.config import LivemarkConfig

_CONFIG_KEYS = frozenset({
    "dynamic", "queue_size", "subscriber_buffer", "debounce", "step",
    "force_polling", "quiet", "files",
})


def load_config(root: Path, **overrides: object) -> LivemarkConfig:
    """Load LivemarkConfig for root, optionally merging livemark.yaml.

    Looks for livemark.yaml, livemark.yml, or livemark.toml in root. If found,
    loads and merges with overrides. Overrides take precedence.
    """
    file_config = _read_livemark_config(root)
    merged = {**file_config, **overrides}
    # Normalize files to absolute Paths under the root
    if "files" in merged:
        raw = merged["files"] or ()
        merged["files"] = tuple(
            p if p.is_absolute() else root / p
            for p in (Path(str(f)) for f in raw)  # type: ignore[union-attr]
        )
    return LivemarkConfig(root=root, **merged)  # type: ignore[arg-type]


def _read_livemark_config(root: Path) -> dict[str, object]:
    """Read livemark config from yaml/toml if present. Returns empty dict otherwise."""
    for name in ("livemark.yaml", "livemark.yml"):
        path = root / name
        if path.is_file():
            return _parse_yaml(path)
    toml_path = root / "livemark.toml"
    if toml_path.is_file():
        return _parse_toml(toml_path)
    return {}


def _parse_yaml(path: Path) -> dict[str, object]:
    """Parse YAML config. Returns empty dict on error."""
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError):
        return {}
    if not isinstance(data, dict):
        return {}
    return _flatten_livemark_section(data)


def _parse_toml(path: Path) -> dict[str, object]:
    """Parse TOML config. Returns empty dict on error."""
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError):
        return {}
    return _flatten_livemark_section(data)


def _flatten_livemark_section(data: dict[str, object]) -> dict[str, object]:
    """Extract livemark.* keys into top-level config."""
    result: dict[str, object] = {}
    section = data.get("livemark")
    if isinstance(section, dict):
        for k, v in section.items():
            if k in _CONFIG_KEYS:
                result[k] = v
    for k, v in data.items():
        if k != "livemark" and k in _CONFIG_KEYS:
            result[k] = v
    return result
