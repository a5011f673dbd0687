from __future__ import annotations

import getpass
import logging
import os
from typing import Any, Dict

from ..context import SetupCtx
from ..lib.manifests import load_platform_profile
from ..lib.net import is_online
from ..lib.platform_detect import detect_platform
from ..state_store import add_warning

logger = logging.getLogger(__name__)

ROOT_GUIDANCE = """\
This setup should be run as a regular user, not root.
Create one and re-run from that account:

  useradd -m -s /bin/bash -G sudo {user}
  passwd {user}
  su - {user}
"""


class RunningAsRoot(RuntimeError):
    pass


class PreflightStep:
    step_id = "10_preflight"

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        if hasattr(os, "geteuid") and os.geteuid() == 0:
            raise RunningAsRoot(ROOT_GUIDANCE.format(user=ctx.owner))

        forced = ctx.config.get("platform") or None
        detected = detect_platform(forced=forced)
        profile = load_platform_profile(detected["id"])
        ctx.profile = profile

        state["platform"] = {
            "id": detected["id"],
            "reason": detected["reason"],
            "signals": detected["signals"],
            "package_manager": profile.get("package_manager"),
            "user": getpass.getuser(),
        }

        online = is_online(ctx.git_host, dry_run=ctx.dry_run)
        state.setdefault("execution", {}).setdefault("decisions", {})["online"] = online
        if not online:
            add_warning(state, self.step_id, f"{ctx.git_host} did not answer ping; network steps may fail")

        logger.info("Preflight done (platform=%s online=%s)", detected["id"], online)
        return state
