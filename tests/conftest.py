"""Shared fakes for machine_setup tests.

Nothing here touches the network, a real terminal, or the user's ~/.ssh.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pytest

from machine_setup.access.types import CredentialSource, DeployKeyRecord
from machine_setup.lib.command import CmdResult

PUBLIC_KEY = "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIDeployKeyBodyForTests dotfiles-deploy-key-testhost"


class FakeProber:
    """Answers probes from a per-kind script of results.

    Each script entry is a bool or an exception instance to raise. When a
    script runs out, the last entry repeats.
    """

    def __init__(self, **scripts: Sequence[Any]) -> None:
        self.scripts: Dict[str, List[Any]] = {k: list(v) for k, v in scripts.items()}
        self.calls: List[CredentialSource] = []

    def probe(self, source: CredentialSource, *, owner: str, repo: str) -> bool:
        self.calls.append(source)
        script = self.scripts.get(source.kind) or [False]
        outcome = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return bool(outcome)

    def kinds(self) -> List[str]:
        return [c.kind for c in self.calls]


class FakeKeyStore:
    def __init__(self, private_key: Path, *, exists: bool = False) -> None:
        self.private_key = private_key
        self.settings_url = "https://github.com/scowalt/dotfiles/settings/keys"
        self.ensure_calls = 0
        self.ssh_config_calls = 0
        self.known_hosts_calls = 0
        if exists:
            self._write()

    @property
    def public_key(self) -> Path:
        return self.private_key.with_name(self.private_key.name + ".pub")

    def _write(self) -> None:
        self.private_key.parent.mkdir(parents=True, exist_ok=True)
        self.private_key.write_text("PRIVATE\n", encoding="utf-8")
        self.public_key.write_text(PUBLIC_KEY + "\n", encoding="utf-8")

    def exists(self) -> bool:
        return self.private_key.is_file()

    def ensure(self) -> DeployKeyRecord:
        self.ensure_calls += 1
        if not self.exists():
            self._write()
        return DeployKeyRecord(private_key=self.private_key, public_key=self.public_key, comment="test")

    def bootstrap_ssh_config(self) -> bool:
        self.ssh_config_calls += 1
        return True

    def bootstrap_known_hosts(self) -> bool:
        self.known_hosts_calls += 1
        return True

    @property
    def operations(self) -> int:
        return self.ensure_calls + self.ssh_config_calls + self.known_hosts_calls


class ScriptedPrompter:
    def __init__(self, answers: Optional[Sequence[str]] = None) -> None:
        self.answers = list(answers or [])
        self.shown: List[str] = []
        self.asked: List[str] = []

    def show(self, text: str) -> None:
        self.shown.append(text)

    def ask(self, message: str) -> str:
        self.asked.append(message)
        if not self.answers:
            raise AssertionError(f"unexpected prompt: {message}")
        return self.answers.pop(0)


class RecordingRunner:
    """Stands in for run_cmd; returns queued results and records argv/kwargs."""

    def __init__(self, *results: CmdResult) -> None:
        self.results = list(results)
        self.calls: List[Dict[str, Any]] = []

    def __call__(self, argv: Sequence[str], **kwargs: Any) -> CmdResult:
        self.calls.append({"argv": list(argv), **kwargs})
        if self.results:
            return self.results.pop(0)
        return CmdResult(argv=list(argv), returncode=0, stdout="", stderr="")


def cmd_result(returncode: int = 0, stdout: str = "", stderr: str = "") -> CmdResult:
    return CmdResult(argv=[], returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def home(tmp_path: Path) -> Path:
    h = tmp_path / "home"
    (h / ".ssh").mkdir(parents=True)
    return h


@pytest.fixture
def deploy_key_path(home: Path) -> Path:
    return home / ".ssh" / "dotfiles-deploy-key"
