from __future__ import annotations

import logging
import pwd
from pathlib import Path
from typing import Callable, Optional

from .command import CmdResult, run_cmd

logger = logging.getLogger(__name__)

ETC_SHELLS = Path("/etc/shells")


def current_login_shell(user: str) -> Optional[str]:
    try:
        return pwd.getpwnam(user).pw_shell or None
    except KeyError:
        return None


def shell_registered(shell: str, shells_file: Path = ETC_SHELLS) -> bool:
    """True when chsh will accept the shell (it is listed in /etc/shells)."""
    if not shells_file.exists():
        return False
    lines = shells_file.read_text(encoding="utf-8", errors="ignore").splitlines()
    return shell in (ln.strip() for ln in lines)


def register_shell(
    shell: str,
    *,
    shells_file: Path = ETC_SHELLS,
    runner: Callable[..., CmdResult] = run_cmd,
    dry_run: bool = False,
) -> None:
    logger.info("Adding %s to %s", shell, shells_file)
    runner(["sudo", "tee", "-a", str(shells_file)], input_text=shell + "\n", dry_run=dry_run)


def change_login_shell(
    user: str,
    shell: str,
    *,
    runner: Callable[..., CmdResult] = run_cmd,
    dry_run: bool = False,
) -> None:
    runner(["sudo", "chsh", "-s", shell, user], detach_stdin=True, dry_run=dry_run)
