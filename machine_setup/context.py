from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from .access.types import AccessResult
from .lib.env import PATHS
from .lib.manifests import load_platform_profile
from .lib.platform_detect import detect_platform
from .lib.sudo import SudoAccess


@dataclass
class SetupCtx:
    """Everything a step needs besides the persisted state.

    Replaces the process-wide flags a shell script would keep (sudo cache,
    chosen platform) with one object handed to every step.
    """

    config: Dict[str, Any]
    home: Path = field(default_factory=Path.home)
    sudo: SudoAccess = field(default_factory=SudoAccess)
    profile: Optional[Dict[str, Any]] = None
    # Resolved by 40_dotfiles_access in this invocation; never loaded from saved state.
    access: Optional[AccessResult] = None

    @property
    def dry_run(self) -> bool:
        return bool(self.config.get("dry_run", False))

    @property
    def interactive(self) -> bool:
        return bool(self.config.get("interactive", True)) and not self.dry_run

    @property
    def owner(self) -> str:
        return str(self.config["github_owner"])

    @property
    def repo(self) -> str:
        return str(self.config["dotfiles_repo"])

    @property
    def git_host(self) -> str:
        return str(self.config.get("git_host") or "github.com")

    @property
    def ssh_dir(self) -> Path:
        return self.home / ".ssh"

    def expand(self, raw: str) -> Path:
        """Expand a leading ~ against this context's home, not the process HOME."""
        if raw == "~":
            return self.home
        if raw.startswith("~/"):
            return self.home / raw[2:]
        return Path(raw)

    @property
    def deploy_key_path(self) -> Path:
        return self.expand(str(self.config.get("deploy_key_path") or PATHS.deploy_key))

    @property
    def chezmoi_source(self) -> Path:
        return self.expand(PATHS.chezmoi_source)

    @property
    def chezmoi_config(self) -> Path:
        return self.expand(PATHS.chezmoi_config)

    @property
    def user_bin(self) -> Path:
        return self.expand(PATHS.user_bin)

    def profile_for(self, state: Dict[str, Any]) -> Dict[str, Any]:
        """Platform profile, reloaded from state when preflight ran in an earlier invocation."""
        if self.profile is None:
            platform_id = (state.get("platform") or {}).get("id")
            if not platform_id:
                platform_id = detect_platform(forced=self.config.get("platform") or None)["id"]
            self.profile = load_platform_profile(str(platform_id))
        return self.profile
