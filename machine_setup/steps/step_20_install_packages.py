from __future__ import annotations

import logging
from typing import Any, Dict

from ..context import SetupCtx
from ..lib.command import command_exists
from ..lib.pkg import install_packages, missing_packages, refresh_index
from ..state_store import add_warning

logger = logging.getLogger(__name__)


class InstallPackagesStep:
    step_id = "20_install_packages"

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        if not bool(ctx.config.get("install_packages", True)):
            logger.info("Package installation disabled by config")
            return state

        profile = ctx.profile_for(state)
        manager = str(profile.get("package_manager") or "")
        if not manager:
            raise RuntimeError(f"platform profile {profile.get('id')} has no package_manager")

        if not command_exists(manager):
            add_warning(state, self.step_id, f"{manager} is not installed; skipping core packages")
            return state

        desired = [str(p).strip() for p in (profile.get("packages") or []) if str(p).strip()]
        missing = missing_packages(manager, desired)
        plan = state.setdefault("execution", {}).setdefault("plan", {})
        plan["packages"] = {"manager": manager, "desired": desired, "missing": missing}

        if not missing:
            logger.info("All %d core packages are already installed", len(desired))
            return state

        needs_sudo = bool(profile.get("needs_sudo", False))
        if needs_sudo and not ctx.sudo.available():
            add_warning(
                state,
                self.step_id,
                "No sudo access; cannot install core packages",
                missing=missing,
            )
            return state

        # A package failure must not stop the unrelated steps that follow.
        try:
            refresh_index(manager, sudo=needs_sudo, dry_run=ctx.dry_run)
            install_packages(manager, missing, sudo=needs_sudo, dry_run=ctx.dry_run)
        except RuntimeError as e:
            add_warning(state, self.step_id, f"Package installation failed: {e}", missing=missing)
            return state

        logger.info("Installed missing packages: %s", ", ".join(missing))
        return state
