from __future__ import annotations

import logging
import socket
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from ..lib.command import CmdResult, run_cmd
from . import ssh
from .types import DeployKeyRecord

logger = logging.getLogger(__name__)


@dataclass
class DeployKeyStore:
    """The single deploy key for one repository plus the ssh files that reference it."""

    private_key: Path
    owner: str
    repo: str
    host: str = "github.com"
    alias: str = "github-dotfiles"
    ssh_dir: Path = field(default_factory=lambda: Path.home() / ".ssh")
    runner: Callable[..., CmdResult] = run_cmd
    scan: Callable[[str], str] = ssh.keyscan
    dry_run: bool = False

    @property
    def public_key(self) -> Path:
        return self.private_key.with_name(self.private_key.name + ".pub")

    @property
    def config_path(self) -> Path:
        return self.ssh_dir / "config"

    @property
    def known_hosts(self) -> Path:
        return self.ssh_dir / "known_hosts"

    @property
    def settings_url(self) -> str:
        return f"https://{self.host}/{self.owner}/{self.repo}/settings/keys"

    @property
    def clone_url(self) -> str:
        return f"git@{self.alias}:{self.owner}/{self.repo}.git"

    def default_comment(self) -> str:
        return f"{self.repo}-deploy-key-{socket.gethostname()}"

    def exists(self) -> bool:
        return self.private_key.is_file()

    def record(self) -> DeployKeyRecord:
        comment = ""
        if self.public_key.is_file():
            parts = self.public_key.read_text(encoding="utf-8").split(None, 2)
            comment = parts[2].strip() if len(parts) == 3 else ""
        return DeployKeyRecord(private_key=self.private_key, public_key=self.public_key, comment=comment)

    def ensure(self) -> DeployKeyRecord:
        """Generate the keypair if absent. An existing key is never overwritten."""

        if self.exists():
            logger.info("Deploy key already exists at %s", self.private_key)
            return self.record()

        comment = self.default_comment()
        logger.info("Generating deploy key at %s", self.private_key)
        ssh.generate_keypair(self.private_key, comment=comment, runner=self.runner, dry_run=self.dry_run)
        return DeployKeyRecord(private_key=self.private_key, public_key=self.public_key, comment=comment)

    def bootstrap_ssh_config(self) -> bool:
        return ssh.ensure_host_alias(
            self.config_path,
            alias=self.alias,
            hostname=self.host,
            identity_file=self.private_key,
            label=f"{self.owner}/{self.repo}",
            dry_run=self.dry_run,
        )

    def bootstrap_known_hosts(self) -> bool:
        return ssh.ensure_known_host(self.known_hosts, self.host, scan=self.scan, dry_run=self.dry_run)
