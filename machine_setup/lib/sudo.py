from __future__ import annotations

import grp
import logging
import os
from typing import Callable, Optional, Set

from .command import CmdResult, run_cmd

logger = logging.getLogger(__name__)

ADMIN_GROUPS = frozenset({"sudo", "wheel", "admin"})


def _user_groups() -> Set[str]:
    names: Set[str] = set()
    for gid in os.getgroups():
        try:
            names.add(grp.getgrgid(gid).gr_name)
        except KeyError:
            continue
    return names


class SudoAccess:
    """Answers "can this user sudo?" at most once per run."""

    def __init__(
        self,
        *,
        runner: Callable[..., CmdResult] = run_cmd,
        groups: Callable[[], Set[str]] = _user_groups,
    ) -> None:
        self.runner = runner
        self.groups = groups
        self._cached: Optional[bool] = None

    def _check(self) -> bool:
        # Credentials already cached: no prompt needed.
        if self.runner(["sudo", "-n", "true"], check=False, detach_stdin=True).returncode == 0:
            return True
        if not (self.groups() & ADMIN_GROUPS):
            return False
        # In an admin group: prompt once (sudo reads the password from the tty itself).
        return self.runner(["sudo", "-v"], check=False).returncode == 0

    def available(self) -> bool:
        if self._cached is None:
            try:
                self._cached = self._check()
            except FileNotFoundError:
                self._cached = False
            logger.info("sudo available: %s", self._cached)
        return self._cached
