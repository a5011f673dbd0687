from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

import yaml

logger = logging.getLogger(__name__)


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"json", "yaml", "yml"}:
        return ext
    # Default to JSON for unknown extensions.
    return "json"


def load_state(path: str) -> Dict[str, Any]:
    p = Path(path).expanduser()
    if not p.exists():
        return {}

    fmt = _detect_format(p)
    data: Dict[str, Any]

    if fmt in {"yaml", "yml"}:
        data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    else:
        data = json.loads(p.read_text(encoding="utf-8"))

    if not isinstance(data, dict):
        raise ValueError(f"State file must be an object/dict, got {type(data)}")

    return data


def save_state(path: str, state: Dict[str, Any]) -> None:
    p = Path(path).expanduser()
    p.parent.mkdir(parents=True, exist_ok=True)

    fmt = _detect_format(p)
    if fmt in {"yaml", "yml"}:
        p.write_text(yaml.safe_dump(state, sort_keys=False) + "\n", encoding="utf-8")
    else:
        p.write_text(json.dumps(state, indent=2, sort_keys=True, default=str) + "\n", encoding="utf-8")


def default_config() -> Dict[str, Any]:
    return {
        # Dotfiles repository and the host serving it.
        "github_owner": "scowalt",
        "dotfiles_repo": "dotfiles",
        "git_host": "github.com",
        "ssh_host_alias": "github-dotfiles",
        "deploy_key_path": "~/.ssh/dotfiles-deploy-key",
        # None means GH_TOKEN_<OWNER>.
        "token_env": None,
        "max_deploy_key_retries": 5,
        "probe_timeout": 5.0,
        "interactive": True,
        # None means auto-detect.
        "platform": None,
        "install_packages": True,
        "generate_personal_key": True,
        "install_vendor_tools": True,
        "set_login_shell": True,
        "dry_run": False,
    }


def ensure_defaults(state: Dict[str, Any]) -> Dict[str, Any]:
    """Fill required keys with sane defaults (without overriding user values)."""

    state.setdefault("version", 1)
    state.setdefault("config", {})
    state.setdefault("platform", {})
    state.setdefault("execution", {})

    cfg = state["config"]
    for key, value in default_config().items():
        cfg.setdefault(key, value)

    exe = state["execution"]
    exe.setdefault("current_step", None)
    exe.setdefault("completed_steps", [])
    exe.setdefault("decisions", {})
    exe.setdefault("warnings", [])
    exe.setdefault("errors", [])

    return state


def add_warning(state: Dict[str, Any], step_id: str, message: str, **details: Any) -> None:
    logger.warning("[%s] %s", step_id, message)
    entry: Dict[str, Any] = {"step": step_id, "message": message}
    entry.update(details)
    state.setdefault("execution", {}).setdefault("warnings", []).append(entry)


def mark_step_completed(state: Dict[str, Any], step_id: str) -> None:
    exe = state.setdefault("execution", {})
    completed = exe.setdefault("completed_steps", [])
    if step_id not in completed:
        completed.append(step_id)


def is_step_completed(state: Dict[str, Any], step_id: str) -> bool:
    exe = state.get("execution") or {}
    completed = exe.get("completed_steps") or []
    return step_id in completed
