from __future__ import annotations

import logging
from typing import Any, Dict

from ..access import ssh
from ..access.errors import AccessError
from ..context import SetupCtx
from ..state_store import add_warning

logger = logging.getLogger(__name__)


class GitHubKnownHostsStep:
    step_id = "30_github_known_hosts"

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        known_hosts = ctx.ssh_dir / "known_hosts"
        timeout = float(ctx.config.get("probe_timeout") or 5.0)
        try:
            added = ssh.ensure_known_host(
                known_hosts,
                ctx.git_host,
                scan=lambda host: ssh.keyscan(host, timeout=timeout),
                dry_run=ctx.dry_run,
            )
        except (AccessError, OSError) as e:
            add_warning(state, self.step_id, f"Failed to add {ctx.git_host} to known_hosts: {e}")
            return state

        if added:
            logger.info("%s host keys added to %s", ctx.git_host, known_hosts)
        else:
            logger.info("%s host keys already in %s", ctx.git_host, known_hosts)
        return state
