from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import yaml


def _manifests_root() -> Path:
    # machine_setup/lib/manifests.py -> machine_setup/manifests
    return Path(__file__).resolve().parents[1] / "manifests"


def load_yaml_rel(rel_path: str) -> Dict[str, Any]:
    """Load a YAML file relative to the bundled manifests directory."""

    p = _manifests_root() / rel_path.lstrip("/")
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Manifest must be a mapping/dict: {p}")
    return data


def load_platform_profile(platform_id: str) -> Dict[str, Any]:
    profile = load_yaml_rel(f"platforms/{platform_id}.yaml")
    packages = profile.get("packages") or []
    if not isinstance(packages, list):
        raise ValueError(f"platforms/{platform_id}.yaml: packages must be a list")
    clipboard = profile.get("clipboard") or []
    if not isinstance(clipboard, list):
        raise ValueError(f"platforms/{platform_id}.yaml: clipboard must be a list")
    tools = profile.get("vendor_tools") or []
    if not isinstance(tools, list):
        raise ValueError(f"platforms/{platform_id}.yaml: vendor_tools must be a list")
    for tool in tools:
        if not isinstance(tool, dict) or not tool.get("name") or not tool.get("url"):
            raise ValueError(f"platforms/{platform_id}.yaml: each vendor tool needs a name and a url")
    profile.setdefault("id", platform_id)
    return profile
