"""Decide how (and whether) this machine can read a private repository.

Methods are tried cheapest first and the first success wins:

1. the user's personal SSH key, if it is registered with the owner's account
2. a token from the environment
3. the repository deploy key, if one exists on disk

If none works the operator is walked through registering a deploy key, with
a bounded number of retries. The resolver always returns an AccessResult;
callers skip dotfiles configuration on Denied and carry on with the rest of
the run.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Protocol

from .errors import AccessError, HumanDeclined
from .prober import Prober
from .prompter import Clipboard, Prompter
from .types import AccessResult, CredentialSource, DeployKey, DeployKeyRecord, EnvironmentToken, PersonalSSHKey

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 5

SKIP_WORD = "skip"

RULE = "-" * 64


class KeyStore(Protocol):
    @property
    def private_key(self) -> Path: ...

    @property
    def settings_url(self) -> str: ...

    def exists(self) -> bool: ...

    def ensure(self) -> DeployKeyRecord: ...

    def bootstrap_ssh_config(self) -> bool: ...

    def bootstrap_known_hosts(self) -> bool: ...


def token_env_for(owner: str) -> str:
    return "GH_TOKEN_" + "".join(c if c.isalnum() else "_" for c in owner).upper()


class AccessResolver:
    def __init__(
        self,
        *,
        prober: Prober,
        keystore: KeyStore,
        prompter: Prompter,
        clipboard: Optional[Clipboard] = None,
        token_env: Optional[str] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        interactive: bool = True,
    ) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.prober = prober
        self.keystore = keystore
        self.prompter = prompter
        self.clipboard = clipboard
        self.token_env = token_env
        self.max_retries = max_retries
        self.interactive = interactive

    def candidate_sources(self, owner: str) -> List[CredentialSource]:
        return [
            PersonalSSHKey(),
            EnvironmentToken(self.token_env or token_env_for(owner)),
            DeployKey(self.keystore.private_key),
        ]

    def resolve(self, owner: str, repo: str) -> AccessResult:
        logger.info("Checking access to %s/%s", owner, repo)
        try:
            for source in self.candidate_sources(owner):
                if isinstance(source, DeployKey) and self.keystore.exists():
                    try:
                        self.keystore.bootstrap_ssh_config()
                    except OSError as e:
                        logger.warning("Could not write ssh host alias: %s", e)
                if self._attempt(source, owner=owner, repo=repo):
                    logger.info("Access to %s/%s via %s", owner, repo, source.describe())
                    return AccessResult.granted(source)

            return self._recover(owner, repo)
        except Exception as e:
            logger.warning("Access check for %s/%s aborted: %s", owner, repo, e, exc_info=True)
            return AccessResult.denied()

    def _attempt(self, source: CredentialSource, *, owner: str, repo: str) -> bool:
        try:
            return bool(self.prober.probe(source, owner=owner, repo=repo))
        except AccessError as e:
            logger.info("No access via %s (%s: %s)", source.describe(), type(e).__name__, e)
            return False
        except OSError as e:
            logger.warning("Probing %s failed locally: %s", source.describe(), e)
            return False

    def _is_skip(self, answer: str) -> bool:
        return answer.strip().lower() == SKIP_WORD

    def _recover(self, owner: str, repo: str) -> AccessResult:
        if not self.interactive:
            logger.warning("Cannot access %s/%s and interactive setup is disabled", owner, repo)
            return AccessResult.denied()

        try:
            return self._interactive_setup(owner, repo)
        except HumanDeclined as e:
            logger.warning("Skipping %s/%s deploy key setup: %s", owner, repo, e)
            return AccessResult.denied()

    def _interactive_setup(self, owner: str, repo: str) -> AccessResult:
        p = self.prompter
        p.show("")
        p.show(f"Cannot access the {owner}/{repo} repository.")
        p.show("Let's set up a deploy key for read-only access.")
        p.show("")

        if self.keystore.exists():
            p.show(f"Step 1: Deploy key already exists at {self.keystore.private_key}")
        else:
            p.show("Step 1: Generating deploy key...")
        record = self.keystore.ensure()
        public_key = record.read_public_key()

        p.show("")
        p.show("Step 2: Add this public key to GitHub")
        p.show(f"  Go to: {self.keystore.settings_url}")
        p.show("  Click 'Add deploy key', give it a name, and paste this key:")
        p.show(RULE)
        p.show(public_key)
        p.show(RULE)
        if self.clipboard is not None and self.clipboard.copy(public_key):
            p.show("Public key copied to clipboard!")
        p.show("")

        if self._is_skip(p.ask(f"Press Enter after you've added the key (or type '{SKIP_WORD}'):")):
            raise HumanDeclined("declined at key registration")

        self.keystore.bootstrap_ssh_config()
        try:
            self.keystore.bootstrap_known_hosts()
        except (AccessError, OSError) as e:
            logger.warning("Could not record host key: %s", e)

        source = DeployKey(record.private_key)
        for attempt in range(1, self.max_retries + 1):
            p.show(f"Step 3: Testing deploy key access (attempt {attempt}/{self.max_retries})...")
            if self._attempt(source, owner=owner, repo=repo):
                p.show("Deploy key works! Continuing setup...")
                logger.info("Access to %s/%s via %s (attempt %d)", owner, repo, source.describe(), attempt)
                return AccessResult.granted(source)

            p.show("Deploy key authentication failed. Please verify:")
            p.show(f"  1. The key was added to {self.keystore.settings_url}")
            p.show("  2. You have the correct permissions on the repository")
            p.show("")

            if attempt < self.max_retries:
                answer = p.ask(f"Press Enter to retry, or type '{SKIP_WORD}' to continue without dotfiles:")
                if self._is_skip(answer):
                    raise HumanDeclined(f"declined after attempt {attempt}")
            else:
                p.show("Max retries reached. Skipping dotfiles setup.")

        logger.warning("Deploy key for %s/%s still rejected after %d attempts", owner, repo, self.max_retries)
        return AccessResult.denied()
