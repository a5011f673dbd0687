from __future__ import annotations

import getpass
import logging
import socket
from typing import Any, Dict, Optional, Sequence

from ..access import ssh
from ..access.errors import AccessError
from ..access.github import GitHubClient
from ..context import SetupCtx
from ..lib.command import command_exists, run_cmd
from ..state_store import add_warning

logger = logging.getLogger(__name__)

PERSONAL_KEY = "id_ed25519"


def open_page(url: str, opener: Sequence[str]) -> bool:
    """Best effort: hand a URL to the platform's opener (open, xdg-open, ...)."""

    argv = [str(a) for a in opener]
    if not argv or not command_exists(argv[0]):
        return False
    try:
        r = run_cmd([*argv, url], check=False, detach_stdin=True, timeout=10)
    except Exception as e:
        logger.debug("Could not open %s: %s", url, e)
        return False
    return r.returncode == 0


class PersonalSSHKeyStep:
    """Make sure this user has an SSH key and say whether GitHub knows it.

    An unregistered key is a warning, not a failure: 40_dotfiles_access falls
    back to a token or a deploy key.
    """

    step_id = "25_personal_ssh_key"

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        decisions = state.setdefault("execution", {}).setdefault("decisions", {})
        local = ssh.local_public_keys(ctx.ssh_dir)
        generated = False

        if not local:
            if not bool(ctx.config.get("generate_personal_key", True)):
                logger.info("No personal SSH key and generation is disabled")
                decisions["personal_key"] = {"path": None, "generated": False, "registered": None}
                return state

            key = ctx.ssh_dir / PERSONAL_KEY
            comment = f"{getpass.getuser()}@{socket.gethostname()}"
            logger.info("No SSH key found; generating %s", key)
            try:
                ssh.generate_keypair(key, comment=comment, dry_run=ctx.dry_run)
            except (RuntimeError, OSError) as e:
                add_warning(state, self.step_id, f"Failed to generate an SSH key: {e}")
                return state
            generated = True
            local = ssh.local_public_keys(ctx.ssh_dir)

        path = local[0][0] if local else ctx.ssh_dir / f"{PERSONAL_KEY}.pub"
        registered = self._registered(ctx, state, [body for _, body in local]) if local else None

        if registered is False:
            keys_page = f"https://{ctx.git_host}/settings/keys"
            add_warning(
                state,
                self.step_id,
                f"Your public key is not registered with {ctx.git_host} user {ctx.owner}; add it at {keys_page}",
                key=str(path),
            )
            logger.info("Public key:\n%s", path.read_text(encoding="utf-8").strip())
            if ctx.interactive:
                open_page(keys_page, ctx.profile_for(state).get("opener") or [])

        decisions["personal_key"] = {"path": str(path), "generated": generated, "registered": registered}
        return state

    def _registered(self, ctx: SetupCtx, state: Dict[str, Any], bodies: Sequence[str]) -> Optional[bool]:
        timeout = float(ctx.config.get("probe_timeout") or 5.0)
        try:
            published = set(GitHubClient(timeout=timeout).published_keys(ctx.owner))
        except AccessError as e:
            add_warning(state, self.step_id, f"Could not verify the SSH key with {ctx.git_host}: {e}")
            return None
        return any(body in published for body in bodies)
