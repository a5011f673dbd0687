from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping, Optional, Sequence

import requests

from .command import command_exists, run_cmd

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT: float = 30.0

USER_AGENT: str = "machine-setup/0.1"


def find_tool(command: str, extra_paths: Sequence[Path] = ()) -> Optional[str]:
    """Return how to invoke a tool: its name when on PATH, else the first executable extra path."""

    if command_exists(command):
        return command
    for p in extra_paths:
        if p.is_file() and os.access(p, os.X_OK):
            return str(p)
    return None


def fetch_script(url: str, *, timeout: float = DEFAULT_TIMEOUT) -> str:
    resp = requests.get(url, timeout=timeout, headers={"User-Agent": USER_AGENT})
    resp.raise_for_status()
    return resp.text


def run_install_script(
    url: str,
    *,
    shell: str = "sh",
    args: Sequence[str] = (),
    env: Optional[Mapping[str, str]] = None,
    timeout: float = DEFAULT_TIMEOUT,
    dry_run: bool = False,
) -> None:
    """Fetch a vendor install script and feed it to ``<shell> -s -- <args>``."""

    argv = [shell, "-s", "--", *args]
    if dry_run:
        logger.info("Would run %s with %s", url, " ".join(argv))
        return

    script = fetch_script(url, timeout=timeout)
    logger.info("Running install script from %s", url)
    run_cmd(argv, input_text=script, env=env)
