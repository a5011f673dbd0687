from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Paths:
    state_default: str = "~/.local/state/machine-setup/state.json"
    log_default: str = "~/.local/state/machine-setup/machine-setup.log"
    deploy_key: str = "~/.ssh/dotfiles-deploy-key"
    chezmoi_source: str = "~/.local/share/chezmoi"
    chezmoi_config: str = "~/.config/chezmoi/chezmoi.toml"
    user_bin: str = "~/bin"


PATHS = Paths()
