from __future__ import annotations

import logging
import os
from typing import IO, Callable, List, Mapping, Optional, Protocol, Sequence

from ..lib.command import CmdResult, command_exists, run_cmd
from .errors import HumanDeclined

logger = logging.getLogger(__name__)

TTY_PATH = "/dev/tty"


class Prompter(Protocol):
    def show(self, text: str) -> None:
        ...

    def ask(self, message: str) -> str:
        ...


class TtyPrompter:
    """Talks to the controlling terminal directly.

    stdin may be the pipe that delivered this program, so it is never read.
    """

    def __init__(self, tty_path: str = TTY_PATH) -> None:
        self.tty_path = tty_path
        self._tty: Optional[IO[str]] = None

    def _open(self) -> IO[str]:
        if self._tty is None:
            try:
                self._tty = open(self.tty_path, "r+", encoding="utf-8")
            except OSError as e:
                raise HumanDeclined(f"no controlling terminal ({e})") from e
        return self._tty

    def show(self, text: str) -> None:
        tty = self._open()
        tty.write(text + "\n")
        tty.flush()

    def ask(self, message: str) -> str:
        tty = self._open()
        tty.write(message + " ")
        tty.flush()
        line = tty.readline()
        if not line:
            raise HumanDeclined("terminal closed")
        return line.strip()

    def close(self) -> None:
        if self._tty is not None:
            self._tty.close()
            self._tty = None


class NonInteractivePrompter:
    """Used for unattended runs: every question is declined."""

    def show(self, text: str) -> None:
        logger.info("%s", text)

    def ask(self, message: str) -> str:
        raise HumanDeclined("running non-interactively")


class Clipboard:
    """First usable clipboard command from a platform's candidate list.

    Each candidate is a mapping with ``argv`` and an optional ``requires_env``
    (e.g. DISPLAY for xclip).
    """

    def __init__(
        self,
        candidates: Sequence[Mapping[str, object]],
        *,
        environ: Optional[Mapping[str, str]] = None,
        runner: Callable[..., CmdResult] = run_cmd,
        which: Callable[[str], bool] = command_exists,
    ) -> None:
        self.candidates = list(candidates)
        self.environ = os.environ if environ is None else environ
        self.runner = runner
        self.which = which

    def _pick(self) -> Optional[List[str]]:
        for c in self.candidates:
            argv = [str(a) for a in (c.get("argv") or [])]
            if not argv or not self.which(argv[0]):
                continue
            needed = c.get("requires_env")
            if needed and not self.environ.get(str(needed)):
                continue
            return argv
        return None

    def copy(self, text: str) -> bool:
        argv = self._pick()
        if argv is None:
            return False
        try:
            r = self.runner(argv, check=False, input_text=text, timeout=5)
        except Exception as e:
            logger.debug("Clipboard copy via %s failed: %s", argv[0], e)
            return False
        return r.returncode == 0
