from __future__ import annotations

import getpass
import logging
from pathlib import Path
from typing import Any, Dict

from ..context import SetupCtx
from ..lib import login_shell
from ..state_store import add_warning

logger = logging.getLogger(__name__)


class DefaultShellStep:
    step_id = "70_default_shell"

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        if not bool(ctx.config.get("set_login_shell", True)):
            logger.info("Login shell change disabled by config")
            return state

        shell = ctx.profile_for(state).get("login_shell")
        if not shell:
            return state
        shell = str(shell)

        user = getpass.getuser()
        current = login_shell.current_login_shell(user)
        decisions = state.setdefault("execution", {}).setdefault("decisions", {})
        decisions["login_shell"] = {"wanted": shell, "previous": current, "changed": False}

        if current == shell:
            logger.info("%s is already the login shell", shell)
            return state

        if not Path(shell).is_file():
            add_warning(state, self.step_id, f"{shell} is not installed; keeping {current}")
            return state

        if not ctx.sudo.available():
            add_warning(
                state,
                self.step_id,
                f"No sudo access - cannot change default shell to {shell}",
                hint=f"Ask an admin to run: sudo chsh -s {shell} {user}",
            )
            return state

        try:
            if not login_shell.shell_registered(shell):
                login_shell.register_shell(shell, dry_run=ctx.dry_run)
            login_shell.change_login_shell(user, shell, dry_run=ctx.dry_run)
        except (RuntimeError, OSError) as e:
            add_warning(state, self.step_id, f"Failed to change login shell: {e}")
            return state

        decisions["login_shell"]["changed"] = True
        logger.info("Login shell set to %s; log out and back in for it to take effect", shell)
        return state
