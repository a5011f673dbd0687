from __future__ import annotations

import argparse
import logging
from typing import Any, Dict, Optional

from .config import apply_overrides, load_config_file
from .context import SetupCtx
from .lib.env import PATHS
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .pipeline import run_pipeline
from .state_store import ensure_defaults, load_state, save_state
from .steps import (
    ChezmoiStep,
    DefaultShellStep,
    DotfilesAccessStep,
    GitHubKnownHostsStep,
    InstallPackagesStep,
    PersonalSSHKeyStep,
    PreflightStep,
    VendorToolsStep,
)
from .steps.step_10_preflight import RunningAsRoot
from .steps.step_40_dotfiles_access import resolve_access

logger = logging.getLogger(__name__)


DEFAULT_STATE_PATH = PATHS.state_default


def build_steps():
    return [
        PreflightStep(),
        InstallPackagesStep(),
        PersonalSSHKeyStep(),
        GitHubKnownHostsStep(),
        DotfilesAccessStep(),
        ChezmoiStep(),
        VendorToolsStep(),
        DefaultShellStep(),
    ]


def _prepare_state(state_path: str, config_path: Optional[str], overrides: Dict[str, Any]) -> Dict[str, Any]:
    state = ensure_defaults(load_state(state_path))
    # dry_run describes one invocation; never inherit it from a saved state.
    state["config"]["dry_run"] = False
    if config_path:
        apply_overrides(state, load_config_file(config_path))
    apply_overrides(state, overrides)
    return state


def run(
    *,
    state_path: str = DEFAULT_STATE_PATH,
    log_path: str = DEFAULT_LOG_PATH,
    config_path: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    force: bool = False,
    resume: bool = False,
) -> Dict[str, Any]:
    """Run the setup pipeline, persisting state for resume."""

    actual_log_path = configure_logging(log_path=log_path)

    state = _prepare_state(state_path, config_path, overrides or {})
    state.setdefault("execution", {}).setdefault("paths", {})["log_path_requested"] = log_path
    state.setdefault("execution", {}).setdefault("paths", {})["log_path_actual"] = actual_log_path

    ctx = SetupCtx(config=state["config"])
    steps = build_steps()

    try:
        result = run_pipeline(
            ctx=ctx,
            state=state,
            steps=steps,
            start_at=start_at,
            stop_after=stop_after,
            force=force,
            resume=resume,
        )
        state = result.state
        state.setdefault("execution", {}).setdefault("summary", {})["ran_steps"] = result.ran_steps
        state.setdefault("execution", {}).setdefault("summary", {})["skipped_steps"] = result.skipped_steps
        return state
    except RunningAsRoot:
        raise
    except Exception as e:
        logger.exception("Setup failed")
        state.setdefault("execution", {}).setdefault("errors", []).append(
            {
                "step": (state.get("execution") or {}).get("current_step"),
                "error": str(e),
            }
        )
        raise
    finally:
        save_state(state_path, state)


def check_access(
    *,
    log_path: str = DEFAULT_LOG_PATH,
    config_path: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> bool:
    """Only run the access resolver (no state is saved)."""

    configure_logging(log_path=log_path)
    state = ensure_defaults({})
    if config_path:
        apply_overrides(state, load_config_file(config_path))
    apply_overrides(state, overrides or {})
    ctx = SetupCtx(config=state["config"])
    result = resolve_access(ctx, state)
    if result:
        logger.info("Access granted via %s", result.via.describe())
    else:
        logger.warning("Access denied")
    return result.is_granted


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="machine-setup")
    p.add_argument("--config", default=None, help="YAML file with config overrides")
    p.add_argument("--state", default=DEFAULT_STATE_PATH, help="Path to setup state (json|yaml)")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to setup log")
    p.add_argument("--start-at", default=None, help="Start at step_id (e.g. 40_dotfiles_access)")
    p.add_argument("--stop-after", default=None, help="Stop after step_id")
    p.add_argument("--force", action="store_true", help="Re-run steps even if marked completed (with --resume)")
    p.add_argument("--resume", action="store_true", help="Skip steps completed by an earlier run")
    p.add_argument("--dry-run", action="store_true", help="Log commands and file changes without making them")
    p.add_argument("--platform", default=None, help="Force platform (macos|ubuntu|wsl|pi|arch)")
    p.add_argument("--owner", default=None, help="Dotfiles repository owner")
    p.add_argument("--repo", default=None, help="Dotfiles repository name")
    p.add_argument("--non-interactive", action="store_true", help="Never prompt; deploy key setup is skipped")
    p.add_argument("--skip-packages", action="store_true", help="Do not install core packages")
    p.add_argument("--check-access", action="store_true", help="Only check dotfiles access; exit 1 when denied")

    args = p.parse_args(argv)

    overrides: Dict[str, Any] = {
        "platform": args.platform,
        "github_owner": args.owner,
        "dotfiles_repo": args.repo,
    }
    if args.dry_run:
        overrides["dry_run"] = True
    if args.non_interactive:
        overrides["interactive"] = False
    if args.skip_packages:
        overrides["install_packages"] = False

    if args.check_access:
        granted = check_access(log_path=args.log, config_path=args.config, overrides=overrides)
        return 0 if granted else 1

    try:
        run(
            state_path=args.state,
            log_path=args.log,
            config_path=args.config,
            overrides=overrides,
            start_at=args.start_at,
            stop_after=args.stop_after,
            force=args.force,
            resume=args.resume,
        )
    except RunningAsRoot as e:
        logger.warning("%s", e)
    return 0
