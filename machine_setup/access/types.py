from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union


@dataclass(frozen=True)
class PersonalSSHKey:
    """The user's own account-wide key (default ssh identity)."""

    kind = "personal_ssh_key"

    def describe(self) -> str:
        return "personal SSH key"


@dataclass(frozen=True)
class EnvironmentToken:
    """A bearer token read from an environment variable."""

    name: str

    kind = "environment_token"

    def describe(self) -> str:
        return f"token from ${self.name}"


@dataclass(frozen=True)
class DeployKey:
    """A repository-scoped key at a fixed path."""

    path: Path

    kind = "deploy_key"

    def describe(self) -> str:
        return f"deploy key {self.path}"


CredentialSource = Union[PersonalSSHKey, EnvironmentToken, DeployKey]


@dataclass(frozen=True)
class AccessResult:
    """Outcome of one resolution run: Granted(via) or Denied (via is None)."""

    via: Optional[CredentialSource] = None

    @classmethod
    def granted(cls, via: CredentialSource) -> "AccessResult":
        return cls(via=via)

    @classmethod
    def denied(cls) -> "AccessResult":
        return cls(via=None)

    @property
    def is_granted(self) -> bool:
        return self.via is not None

    def __bool__(self) -> bool:
        return self.is_granted

    def to_state(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"granted": self.is_granted, "via": None}
        if self.via is not None:
            out["via"] = self.via.kind
            if isinstance(self.via, EnvironmentToken):
                out["token_env"] = self.via.name
            elif isinstance(self.via, DeployKey):
                out["key_path"] = str(self.via.path)
        return out


@dataclass(frozen=True)
class DeployKeyRecord:
    private_key: Path
    public_key: Path
    comment: str

    def read_public_key(self) -> str:
        return self.public_key.read_text(encoding="utf-8").strip()
