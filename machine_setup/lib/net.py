from __future__ import annotations

import logging

from .command import run_cmd

logger = logging.getLogger(__name__)


def is_online(host: str = "github.com", *, dry_run: bool = False) -> bool:
    """Best-effort online check (one ping to the git host)."""

    try:
        r = run_cmd(["ping", "-c", "1", host], check=False, detach_stdin=True, timeout=10, dry_run=dry_run)
        return r.returncode == 0
    except Exception as e:
        logger.debug("Online check failed: %s", e)
        return False
