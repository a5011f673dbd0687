from __future__ import annotations

import logging
from typing import Dict, List, Sequence

from .command import run_cmd

logger = logging.getLogger(__name__)

# argv prefixes per package manager; queries never need root.
_QUERY: Dict[str, List[str]] = {
    "apt": ["dpkg", "-s"],
    "brew": ["brew", "list"],
    "pacman": ["pacman", "-Qi"],
}

# pacman refreshes together with a full upgrade; Arch does not support partial upgrades.
_REFRESH: Dict[str, List[str]] = {
    "apt": ["apt-get", "update"],
    "brew": ["brew", "update"],
    "pacman": ["pacman", "-Syu", "--noconfirm"],
}

_INSTALL: Dict[str, List[str]] = {
    "apt": ["apt-get", "install", "-y", "--no-install-recommends"],
    "brew": ["brew", "install"],
    "pacman": ["pacman", "-S", "--needed", "--noconfirm"],
}


def _check_manager(manager: str) -> None:
    if manager not in _INSTALL:
        raise ValueError(f"Unsupported package manager: {manager}")


def _with_sudo(argv: List[str], sudo: bool) -> List[str]:
    return ["sudo", *argv] if sudo else argv


def is_installed(manager: str, package: str) -> bool:
    _check_manager(manager)
    r = run_cmd([*_QUERY[manager], package], check=False, detach_stdin=True)
    return r.returncode == 0


def missing_packages(manager: str, packages: Sequence[str]) -> List[str]:
    missing: List[str] = []
    for p in packages:
        if is_installed(manager, p):
            logger.debug("%s is already installed", p)
        else:
            missing.append(p)
    return missing


def refresh_index(manager: str, *, sudo: bool = False, dry_run: bool = False) -> None:
    _check_manager(manager)
    run_cmd(_with_sudo(list(_REFRESH[manager]), sudo), detach_stdin=True, dry_run=dry_run)


def install_packages(
    manager: str,
    packages: Sequence[str],
    *,
    sudo: bool = False,
    dry_run: bool = False,
) -> None:
    if not packages:
        return
    _check_manager(manager)
    argv = [*_INSTALL[manager], *packages]
    if manager == "apt":
        # sudo resets the environment, so the frontend goes through env(1).
        argv = ["env", "DEBIAN_FRONTEND=noninteractive", *argv]
    run_cmd(
        _with_sudo(argv, sudo),
        detach_stdin=True,
        dry_run=dry_run,
    )
