from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import yaml

from .state_store import default_config


def load_config_file(path: str) -> Dict[str, Any]:
    """Read a YAML mapping of config overrides (keys as in default_config())."""

    p = Path(path).expanduser()
    if not p.exists():
        raise FileNotFoundError(path)

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ValueError("config file must be YAML")

    raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{path} must contain a mapping/object")

    unknown = sorted(set(raw) - set(default_config()))
    if unknown:
        raise ValueError(f"{path}: unknown config keys: {', '.join(unknown)}")
    return raw


def apply_overrides(state: Dict[str, Any], overrides: Dict[str, Any]) -> None:
    cfg = state.setdefault("config", {})
    for key, value in overrides.items():
        if value is not None:
            cfg[key] = value
