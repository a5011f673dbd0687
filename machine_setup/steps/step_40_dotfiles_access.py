from __future__ import annotations

import logging
from typing import Any, Dict

from ..access import AccessResolver, AccessResult, Clipboard, DeployKeyStore, GitHubProber, NonInteractivePrompter, TtyPrompter
from ..access import ssh
from ..context import SetupCtx
from ..state_store import add_warning

logger = logging.getLogger(__name__)


def build_resolver(ctx: SetupCtx, state: Dict[str, Any]) -> AccessResolver:
    """Wire the resolver's capabilities for this machine."""

    cfg = ctx.config
    timeout = float(cfg.get("probe_timeout") or 5.0)
    profile = ctx.profile_for(state)

    keystore = DeployKeyStore(
        private_key=ctx.deploy_key_path,
        owner=ctx.owner,
        repo=ctx.repo,
        host=ctx.git_host,
        alias=str(cfg.get("ssh_host_alias") or "github-dotfiles"),
        ssh_dir=ctx.ssh_dir,
        scan=lambda host: ssh.keyscan(host, timeout=timeout),
        dry_run=ctx.dry_run,
    )
    prober = GitHubProber(host=ctx.git_host, ssh_dir=ctx.ssh_dir, timeout=timeout)
    prompter = TtyPrompter() if ctx.interactive else NonInteractivePrompter()

    return AccessResolver(
        prober=prober,
        keystore=keystore,
        prompter=prompter,
        clipboard=Clipboard(profile.get("clipboard") or []),
        token_env=cfg.get("token_env") or None,
        max_retries=int(cfg.get("max_deploy_key_retries") or 5),
        interactive=ctx.interactive,
    )


def resolve_access(ctx: SetupCtx, state: Dict[str, Any]) -> AccessResult:
    resolver = build_resolver(ctx, state)
    try:
        return resolver.resolve(ctx.owner, ctx.repo)
    finally:
        if isinstance(resolver.prompter, TtyPrompter):
            resolver.prompter.close()


class DotfilesAccessStep:
    step_id = "40_dotfiles_access"

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        result = resolve_access(ctx, state)
        ctx.access = result
        state.setdefault("execution", {}).setdefault("decisions", {})["dotfiles_access"] = result.to_state()

        if not result:
            add_warning(state, self.step_id, f"No access to {ctx.owner}/{ctx.repo}; dotfiles steps will be skipped")
        return state
