from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping

import requests

from ..context import SetupCtx
from ..lib import vendor
from ..lib.command import run_cmd
from ..state_store import add_warning

logger = logging.getLogger(__name__)


class VendorToolsStep:
    """Install CLI tools that ship their own install script (starship, fnm, uv).

    Each tool comes from the profile's ``vendor_tools`` list; a tool already
    on PATH or at one of its ``paths`` is left alone.
    """

    step_id = "60_vendor_tools"

    def _expand_all(self, ctx: SetupCtx, items: List[Any]) -> List[str]:
        return [str(ctx.expand(str(i))) if str(i).startswith("~") else str(i) for i in items]

    def _install(self, ctx: SetupCtx, tool: Mapping[str, Any]) -> None:
        env = {str(k): str(v) for k, v in (tool.get("env") or {}).items()}
        vendor.run_install_script(
            str(tool["url"]),
            shell=str(tool.get("shell") or "sh"),
            args=self._expand_all(ctx, list(tool.get("args") or [])),
            env=env or None,
            dry_run=ctx.dry_run,
        )
        for argv in tool.get("post_install") or []:
            run_cmd(self._expand_all(ctx, list(argv)), detach_stdin=True, dry_run=ctx.dry_run)

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        if not bool(ctx.config.get("install_vendor_tools", True)):
            logger.info("Vendor tool installation disabled by config")
            return state

        outcome: Dict[str, str] = {}
        for tool in ctx.profile_for(state).get("vendor_tools") or []:
            name = str(tool["name"])
            command = str(tool.get("command") or name)
            paths = [ctx.expand(str(p)) for p in tool.get("paths") or []]

            found = vendor.find_tool(command, paths)
            if found is not None:
                logger.info("%s already installed (%s)", name, found)
                outcome[name] = "present"
                continue

            logger.info("Installing %s", name)
            try:
                self._install(ctx, tool)
            except (RuntimeError, OSError, requests.RequestException) as e:
                add_warning(state, self.step_id, f"Failed to install {name}: {e}", tool=name)
                outcome[name] = "failed"
                continue
            outcome[name] = "installed"

        state.setdefault("execution", {}).setdefault("decisions", {})["vendor_tools"] = outcome
        return state
