from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional, Tuple

import requests

from ..context import SetupCtx
from ..lib import chezmoi
from ..state_store import add_warning
from . import step_40_dotfiles_access as access_step

logger = logging.getLogger(__name__)


class ChezmoiStep:
    step_id = "50_chezmoi"

    def _source_url(self, ctx: SetupCtx, decision: Dict[str, Any]) -> Tuple[str, Optional[Dict[str, str]]]:
        """Clone URL matching the credential that was granted, plus any git env it needs."""

        via = decision.get("via")
        if via == "deploy_key":
            alias = str(ctx.config.get("ssh_host_alias") or "github-dotfiles")
            return f"git@{alias}:{ctx.owner}/{ctx.repo}.git", None
        if via == "environment_token":
            token = (os.environ.get(str(decision.get("token_env") or "")) or "").strip()
            if not token:
                raise RuntimeError(f"${decision.get('token_env')} disappeared since access was checked")
            return f"https://{ctx.git_host}/{ctx.owner}/{ctx.repo}.git", chezmoi.token_git_env(token, ctx.git_host)
        return f"git@{ctx.git_host}:{ctx.owner}/{ctx.repo}.git", None

    def _fix_remote_for_deploy_key(self, ctx: SetupCtx, url: str) -> None:
        src = ctx.chezmoi_source
        if not (src / ".git").is_dir():
            return
        direct = f"git@{ctx.git_host}:{ctx.owner}/{ctx.repo}.git"
        if chezmoi.remote_url(src) == direct:
            logger.info("Switching chezmoi remote to %s for deploy key access", url)
            chezmoi.set_remote_url(src, url, dry_run=ctx.dry_run)

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        decisions = state.setdefault("execution", {}).setdefault("decisions", {})
        if ctx.access is None:
            # A decision saved by an earlier run may no longer hold.
            logger.info("Dotfiles access was not checked in this run; checking now")
            ctx.access = access_step.resolve_access(ctx, state)
            decisions["dotfiles_access"] = ctx.access.to_state()
        decision = ctx.access.to_state()
        if not decision.get("granted"):
            add_warning(state, self.step_id, "Skipping dotfiles management - no access to repository")
            return state

        try:
            url, env = self._source_url(ctx, decision)

            binary = chezmoi.find_chezmoi(ctx.user_bin)
            if binary is None:
                logger.info("Installing chezmoi into %s", ctx.user_bin)
                binary = chezmoi.install_chezmoi(ctx.user_bin, dry_run=ctx.dry_run)

            src = ctx.chezmoi_source
            chezmoi.clear_broken_source(src, dry_run=ctx.dry_run)
            initialized = False
            if not (src / ".git").is_dir():
                logger.info("Initializing chezmoi with %s/%s", ctx.owner, ctx.repo)
                chezmoi.init_apply(binary, url, env=env, dry_run=ctx.dry_run)
                initialized = True

            chezmoi.write_git_config(ctx.chezmoi_config, dry_run=ctx.dry_run)

            if decision.get("via") == "deploy_key":
                self._fix_remote_for_deploy_key(ctx, url)

            updated = None
            if not initialized:
                updated = chezmoi.update(binary, env=env, dry_run=ctx.dry_run)
                if not updated:
                    add_warning(state, self.step_id, "Failed to update chezmoi dotfiles repository. Continuing anyway.")
        except (RuntimeError, OSError, requests.RequestException) as e:
            add_warning(state, self.step_id, f"chezmoi setup failed: {e}")
            return state

        decisions["chezmoi"] = {"binary": binary, "initialized": initialized, "updated": updated}
        logger.info("Dotfiles applied from %s/%s", ctx.owner, ctx.repo)
        return state
