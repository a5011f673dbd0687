from .errors import AccessError, AuthenticationRejected, CredentialAbsent, HumanDeclined, NetworkUnreachable
from .keystore import DeployKeyStore
from .prober import GitHubProber
from .prompter import Clipboard, NonInteractivePrompter, TtyPrompter
from .resolver import AccessResolver
from .types import AccessResult, CredentialSource, DeployKey, DeployKeyRecord, EnvironmentToken, PersonalSSHKey

__all__ = [
    "AccessError",
    "AuthenticationRejected",
    "CredentialAbsent",
    "HumanDeclined",
    "NetworkUnreachable",
    "DeployKeyStore",
    "GitHubProber",
    "Clipboard",
    "NonInteractivePrompter",
    "TtyPrompter",
    "AccessResolver",
    "AccessResult",
    "CredentialSource",
    "DeployKey",
    "DeployKeyRecord",
    "EnvironmentToken",
    "PersonalSSHKey",
]
