from __future__ import annotations

import base64
import logging
import shutil
from pathlib import Path
from typing import Dict, Optional

from . import vendor
from .command import run_cmd

logger = logging.getLogger(__name__)

INSTALL_SCRIPT_URL = "https://get.chezmoi.io"

GIT_CONFIG_TOML = """\
[git]
autoCommit = true
autoPush = true
autoPull = true
"""


def find_chezmoi(user_bin: Path) -> Optional[str]:
    return vendor.find_tool("chezmoi", [user_bin / "chezmoi"])


def install_chezmoi(user_bin: Path, *, timeout: float = 30.0, dry_run: bool = False) -> str:
    """Install into user_bin with the vendor script. Returns the binary path."""

    target = user_bin / "chezmoi"
    if dry_run:
        logger.info("Would install chezmoi into %s", user_bin)
        return str(target)

    user_bin.mkdir(parents=True, exist_ok=True)
    vendor.run_install_script(INSTALL_SCRIPT_URL, args=["-b", str(user_bin)], timeout=timeout)
    return str(target)


def write_git_config(config_path: Path, *, dry_run: bool = False) -> bool:
    """Write auto-commit/push/pull settings once. Returns True if written."""

    if config_path.exists():
        logger.debug("chezmoi config already exists at %s", config_path)
        return False
    logger.info("Writing chezmoi git settings to %s", config_path)
    if not dry_run:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(GIT_CONFIG_TOML, encoding="utf-8")
    return True


def token_git_env(token: str, host: str = "github.com") -> Dict[str, str]:
    """git config passed through the environment so the token never lands on disk."""

    basic = base64.b64encode(f"x-access-token:{token}".encode("utf-8")).decode("ascii")
    return {
        "GIT_CONFIG_COUNT": "1",
        "GIT_CONFIG_KEY_0": f"http.https://{host}/.extraheader",
        "GIT_CONFIG_VALUE_0": f"AUTHORIZATION: basic {basic}",
    }


def clear_broken_source(source_dir: Path, *, dry_run: bool = False) -> bool:
    """Remove a source dir that exists but is not a git checkout."""

    if source_dir.is_dir() and not (source_dir / ".git").is_dir():
        logger.warning("chezmoi source %s is not a git repository; reinitializing", source_dir)
        if not dry_run:
            shutil.rmtree(source_dir)
        return True
    return False


def init_apply(
    chezmoi: str,
    url: str,
    *,
    env: Optional[Dict[str, str]] = None,
    dry_run: bool = False,
) -> None:
    run_cmd([chezmoi, "init", "--apply", "--force", url], env=env, detach_stdin=True, dry_run=dry_run)


def update(chezmoi: str, *, env: Optional[Dict[str, str]] = None, dry_run: bool = False) -> bool:
    r = run_cmd([chezmoi, "update", "--force"], check=False, env=env, detach_stdin=True, dry_run=dry_run)
    return r.returncode == 0


def remote_url(source_dir: Path) -> Optional[str]:
    r = run_cmd(["git", "-C", str(source_dir), "remote", "get-url", "origin"], check=False, detach_stdin=True)
    if r.returncode != 0:
        return None
    return r.stdout.strip() or None


def set_remote_url(source_dir: Path, url: str, *, dry_run: bool = False) -> None:
    run_cmd(["git", "-C", str(source_dir), "remote", "set-url", "origin", url], detach_stdin=True, dry_run=dry_run)
