from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Mapping, Optional, Protocol

from ..lib.command import CmdResult, run_cmd
from . import ssh
from .errors import AuthenticationRejected, CredentialAbsent
from .github import GitHubClient
from .types import CredentialSource, DeployKey, EnvironmentToken, PersonalSSHKey

logger = logging.getLogger(__name__)


class Prober(Protocol):
    def probe(self, source: CredentialSource, *, owner: str, repo: str) -> bool:
        ...


class GitHubProber:
    """Checks one credential source against a GitHub repository.

    probe() returns True on success and raises an AccessError subclass
    describing why a method failed; the resolver turns those into "try next".
    """

    def __init__(
        self,
        *,
        host: str = "github.com",
        ssh_dir: Optional[Path] = None,
        client: Optional[GitHubClient] = None,
        environ: Optional[Mapping[str, str]] = None,
        runner: Callable[..., CmdResult] = run_cmd,
        timeout: float = 5.0,
    ) -> None:
        self.host = host
        self.ssh_dir = ssh_dir or (Path.home() / ".ssh")
        self.client = client or GitHubClient(timeout=timeout)
        self.environ = os.environ if environ is None else environ
        self.runner = runner
        self.timeout = timeout

    def probe(self, source: CredentialSource, *, owner: str, repo: str) -> bool:
        if isinstance(source, PersonalSSHKey):
            return self._probe_personal_key(owner)
        if isinstance(source, EnvironmentToken):
            return self._probe_token(source, owner=owner, repo=repo)
        if isinstance(source, DeployKey):
            return self._probe_deploy_key(source)
        raise TypeError(f"Unknown credential source: {source!r}")

    def _probe_personal_key(self, owner: str) -> bool:
        local = ssh.local_public_keys(self.ssh_dir)
        if not local:
            raise CredentialAbsent(f"no personal public key in {self.ssh_dir}")

        published = set(self.client.published_keys(owner))
        registered = [p for p, body in local if body in published]
        if not registered:
            raise AuthenticationRejected(f"no local key is registered for {owner}")
        logger.debug("Registered personal key(s): %s", ", ".join(str(p) for p in registered))

        if not ssh.handshake(self.host, timeout=self.timeout, runner=self.runner):
            raise AuthenticationRejected(f"ssh handshake with {self.host} was not authenticated")
        return True

    def _probe_token(self, source: EnvironmentToken, *, owner: str, repo: str) -> bool:
        token = (self.environ.get(source.name) or "").strip()
        if not token:
            raise CredentialAbsent(f"${source.name} is not set")
        return self.client.validate_token(token, owner=owner, repo=repo)

    def _probe_deploy_key(self, source: DeployKey) -> bool:
        if not source.path.is_file():
            raise CredentialAbsent(f"no deploy key at {source.path}")
        if not ssh.handshake(self.host, identity=source.path, timeout=self.timeout, runner=self.runner):
            raise AuthenticationRejected(f"deploy key {source.path} was not accepted by {self.host}")
        return True
