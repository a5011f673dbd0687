from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from typing import Mapping, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """stdout and stderr together, for tools that report on either stream."""
        return f"{self.stdout}\n{self.stderr}"


def _fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def command_exists(name: str) -> bool:
    return shutil.which(name) is not None


def run_cmd(
    argv: Sequence[str],
    *,
    check: bool = True,
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
    input_text: str | None = None,
    detach_stdin: bool = False,
    timeout: float | None = None,
    dry_run: bool = False,
) -> CmdResult:
    """Run a command with consistent logging.

    - Always logs the command.
    - detach_stdin connects the child to /dev/null so it cannot consume our own
      input stream (``curl ... | python -`` style invocations).
    - timeout raises subprocess.TimeoutExpired; callers decide what it means.
    - dry_run logs but does not execute.
    """

    argv_list = list(argv)
    shown = _fmt_argv(argv_list)
    logger.info("CMD %s", shown)

    if dry_run:
        return CmdResult(argv=argv_list, returncode=0, stdout="", stderr="")

    stdin = None
    if input_text is None and detach_stdin:
        stdin = subprocess.DEVNULL

    p = subprocess.run(
        argv_list,
        input=input_text,
        stdin=stdin,
        text=True,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        cwd=cwd,
        env=dict(os.environ, **(env or {})),
        timeout=timeout,
    )

    if p.stdout:
        logger.debug("STDOUT %s", p.stdout.strip())
    if p.stderr:
        logger.debug("STDERR %s", p.stderr.strip())

    if check and p.returncode != 0:
        raise RuntimeError(f"Command failed ({p.returncode}): {shown}\n{p.stderr}")

    return CmdResult(argv=argv_list, returncode=p.returncode, stdout=p.stdout, stderr=p.stderr)
