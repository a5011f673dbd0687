"""Tests for AccessResolver ordering, recovery, and failure mapping."""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import FakeKeyStore, FakeProber, ScriptedPrompter
from machine_setup.access.errors import (
    AuthenticationRejected,
    CredentialAbsent,
    HumanDeclined,
    NetworkUnreachable,
)
from machine_setup.access.github import GitHubClient
from machine_setup.access.prober import GitHubProber
from machine_setup.access.resolver import AccessResolver, token_env_for
from machine_setup.access.types import AccessResult, DeployKey, EnvironmentToken, PersonalSSHKey


def make_resolver(prober, keystore, prompter, **kwargs) -> AccessResolver:
    kwargs.setdefault("token_env", "GH_TOKEN_SCOWALT")
    return AccessResolver(prober=prober, keystore=keystore, prompter=prompter, **kwargs)


ALL_FAIL = dict(personal_ssh_key=[False], environment_token=[False], deploy_key=[False])


# ---------------------------------------------------------------------------
# Non-interactive probing
# ---------------------------------------------------------------------------


class TestProbeOrder:
    @pytest.mark.parametrize(
        "winner, expected_calls",
        [
            ("personal_ssh_key", ["personal_ssh_key"]),
            ("environment_token", ["personal_ssh_key", "environment_token"]),
            ("deploy_key", ["personal_ssh_key", "environment_token", "deploy_key"]),
        ],
    )
    def test_first_success_short_circuits(self, deploy_key_path: Path, winner: str, expected_calls: list) -> None:
        """A succeeding method is granted and later methods are never probed."""
        prober = FakeProber(**{**ALL_FAIL, winner: [True]})
        keystore = FakeKeyStore(deploy_key_path, exists=True)
        prompter = ScriptedPrompter()

        result = make_resolver(prober, keystore, prompter).resolve("scowalt", "dotfiles")

        assert result.is_granted
        assert result.via.kind == winner
        assert prober.kinds() == expected_calls
        assert prompter.asked == []

    def test_granted_sources_carry_their_data(self, deploy_key_path: Path) -> None:
        prober = FakeProber(**{**ALL_FAIL, "deploy_key": [True]})
        keystore = FakeKeyStore(deploy_key_path, exists=True)

        result = make_resolver(prober, keystore, ScriptedPrompter()).resolve("scowalt", "dotfiles")

        assert result == AccessResult.granted(DeployKey(deploy_key_path))

    def test_existing_deploy_key_gets_ssh_alias_before_probe(self, deploy_key_path: Path) -> None:
        prober = FakeProber(**{**ALL_FAIL, "deploy_key": [True]})
        keystore = FakeKeyStore(deploy_key_path, exists=True)

        make_resolver(prober, keystore, ScriptedPrompter()).resolve("scowalt", "dotfiles")

        assert keystore.ssh_config_calls == 1
        assert keystore.ensure_calls == 0

    @pytest.mark.parametrize(
        "error",
        [NetworkUnreachable("down"), AuthenticationRejected("no"), CredentialAbsent("none")],
    )
    def test_probe_errors_fall_through(self, deploy_key_path: Path, error: Exception) -> None:
        """Any AccessError from a probe means "try the next method"."""
        prober = FakeProber(personal_ssh_key=[error], environment_token=[True])
        keystore = FakeKeyStore(deploy_key_path)

        result = make_resolver(prober, keystore, ScriptedPrompter()).resolve("scowalt", "dotfiles")

        assert result.via == EnvironmentToken("GH_TOKEN_SCOWALT")

    def test_token_env_defaults_to_owner(self, deploy_key_path: Path) -> None:
        resolver = AccessResolver(
            prober=FakeProber(),
            keystore=FakeKeyStore(deploy_key_path),
            prompter=ScriptedPrompter(),
        )
        sources = resolver.candidate_sources("scowalt")
        assert sources == [PersonalSSHKey(), EnvironmentToken("GH_TOKEN_SCOWALT"), DeployKey(deploy_key_path)]

    def test_token_env_name_sanitizes_owner(self) -> None:
        assert token_env_for("my-org.io") == "GH_TOKEN_MY_ORG_IO"

    def test_rejects_zero_retries(self, deploy_key_path: Path) -> None:
        with pytest.raises(ValueError):
            make_resolver(FakeProber(), FakeKeyStore(deploy_key_path), ScriptedPrompter(), max_retries=0)


# ---------------------------------------------------------------------------
# Interactive recovery
# ---------------------------------------------------------------------------


class TestInteractiveRecovery:
    def test_skip_at_first_prompt_is_denied(self, deploy_key_path: Path) -> None:
        """Opting out at the registration prompt returns Denied with no retries."""
        prober = FakeProber(**ALL_FAIL)
        keystore = FakeKeyStore(deploy_key_path)
        prompter = ScriptedPrompter(["skip"])

        result = make_resolver(prober, keystore, prompter).resolve("scowalt", "dotfiles")

        assert result == AccessResult.denied()
        assert not result
        deploy_probes = [k for k in prober.kinds() if k == "deploy_key"]
        # one non-interactive probe, at most one retry
        assert len(deploy_probes) <= 2
        assert len(prompter.asked) == 1

    def test_retry_succeeds_on_third_attempt(self, deploy_key_path: Path) -> None:
        """Attempts 4 and 5 never run once attempt 3 succeeds."""
        # first deploy_key entry is the non-interactive probe
        prober = FakeProber(
            personal_ssh_key=[False],
            environment_token=[False],
            deploy_key=[False, False, False, True, False],
        )
        keystore = FakeKeyStore(deploy_key_path)
        prompter = ScriptedPrompter(["", "", ""])

        result = make_resolver(prober, keystore, prompter).resolve("scowalt", "dotfiles")

        assert result == AccessResult.granted(DeployKey(deploy_key_path))
        assert prober.kinds().count("deploy_key") == 1 + 3
        # registration confirmation + two "retry?" prompts
        assert len(prompter.asked) == 3
        assert any("attempt 3/5" in line for line in prompter.shown)
        assert not any("attempt 4/5" in line for line in prompter.shown)

    def test_key_generated_and_shown(self, deploy_key_path: Path) -> None:
        prober = FakeProber(**{**ALL_FAIL, "deploy_key": [False, True]})
        keystore = FakeKeyStore(deploy_key_path)
        prompter = ScriptedPrompter([""])

        make_resolver(prober, keystore, prompter).resolve("scowalt", "dotfiles")

        assert keystore.ensure_calls == 1
        assert keystore.ssh_config_calls == 1
        assert keystore.known_hosts_calls == 1
        assert any(line.startswith("ssh-ed25519 ") for line in prompter.shown)
        assert any(keystore.settings_url in line for line in prompter.shown)

    def test_exhausted_retries_are_denied(self, deploy_key_path: Path) -> None:
        prober = FakeProber(**ALL_FAIL)
        keystore = FakeKeyStore(deploy_key_path)
        prompter = ScriptedPrompter(["", "", ""])

        result = make_resolver(prober, keystore, prompter, max_retries=3).resolve("scowalt", "dotfiles")

        assert not result
        assert prober.kinds().count("deploy_key") == 1 + 3
        # confirmation + prompts after attempts 1 and 2; none after the last
        assert len(prompter.asked) == 3
        assert any("Max retries reached" in line for line in prompter.shown)

    def test_skip_between_attempts(self, deploy_key_path: Path) -> None:
        prober = FakeProber(**ALL_FAIL)
        prompter = ScriptedPrompter(["", "", "SKIP"])

        result = make_resolver(prober, FakeKeyStore(deploy_key_path), prompter).resolve("scowalt", "dotfiles")

        assert not result
        assert prober.kinds().count("deploy_key") == 1 + 2

    def test_no_terminal_counts_as_declined(self, deploy_key_path: Path) -> None:
        class NoTty(ScriptedPrompter):
            def ask(self, message: str) -> str:
                raise HumanDeclined("no controlling terminal")

        result = make_resolver(FakeProber(**ALL_FAIL), FakeKeyStore(deploy_key_path), NoTty()).resolve(
            "scowalt", "dotfiles"
        )
        assert not result

    def test_non_interactive_never_prompts(self, deploy_key_path: Path) -> None:
        keystore = FakeKeyStore(deploy_key_path)
        prompter = ScriptedPrompter()

        result = make_resolver(FakeProber(**ALL_FAIL), keystore, prompter, interactive=False).resolve(
            "scowalt", "dotfiles"
        )

        assert not result
        assert prompter.asked == []
        assert keystore.ensure_calls == 0

    def test_key_generation_failure_is_denied(self, deploy_key_path: Path) -> None:
        """A failing ssh-keygen does not escape the resolver."""

        class BrokenStore(FakeKeyStore):
            def ensure(self):
                raise RuntimeError("Command failed (1): ssh-keygen")

        result = make_resolver(FakeProber(**ALL_FAIL), BrokenStore(deploy_key_path), ScriptedPrompter()).resolve(
            "scowalt", "dotfiles"
        )
        assert not result

    def test_missing_keyscan_during_recovery_still_retries(self, deploy_key_path: Path) -> None:
        class NoKeyscanStore(FakeKeyStore):
            def bootstrap_known_hosts(self) -> bool:
                raise FileNotFoundError(2, "No such file or directory", "ssh-keyscan")

        prober = FakeProber(**{**ALL_FAIL, "deploy_key": [False, True]})

        result = make_resolver(prober, NoKeyscanStore(deploy_key_path), ScriptedPrompter([""])).resolve(
            "scowalt", "dotfiles"
        )

        assert result == AccessResult.granted(DeployKey(deploy_key_path))

    def test_local_os_error_in_probe_falls_through(self, deploy_key_path: Path) -> None:
        prober = FakeProber(personal_ssh_key=[PermissionError(13, "Permission denied")], environment_token=[True])

        result = make_resolver(prober, FakeKeyStore(deploy_key_path), ScriptedPrompter()).resolve("scowalt", "dotfiles")

        assert result.via == EnvironmentToken("GH_TOKEN_SCOWALT")

    def test_unexpected_error_is_denied_not_raised(self, deploy_key_path: Path) -> None:
        prober = FakeProber(personal_ssh_key=[UnicodeEncodeError("latin-1", "€", 0, 1, "ordinal not in range")])

        result = make_resolver(prober, FakeKeyStore(deploy_key_path), ScriptedPrompter()).resolve("scowalt", "dotfiles")

        assert result == AccessResult.denied()


# ---------------------------------------------------------------------------
# End to end with the real prober
# ---------------------------------------------------------------------------


class FakeResponse:
    def __init__(self, status_code: int, text: str = "") -> None:
        self.status_code = status_code
        self.text = text

    @property
    def ok(self) -> bool:
        return self.status_code < 400


class FakeSession:
    def __init__(self, responses: dict) -> None:
        self.responses = responses
        self.headers: dict = {}
        self.requests: list = []

    def get(self, url, headers=None, timeout=None):
        self.requests.append({"url": url, "headers": headers or {}, "timeout": timeout})
        return self.responses.get(url, FakeResponse(404))


class TestTokenScenario:
    def test_environment_token_granted_without_deploy_key_work(self, home: Path, deploy_key_path: Path) -> None:
        """No personal key, valid GH_TOKEN_SCOWALT, API answers 200."""
        session = FakeSession({"https://api.github.com/repos/scowalt/dotfiles": FakeResponse(200, "{}")})
        prober = GitHubProber(
            ssh_dir=home / ".ssh",
            client=GitHubClient(session=session),
            environ={"GH_TOKEN_SCOWALT": "validtoken123"},
        )
        keystore = FakeKeyStore(deploy_key_path)

        result = AccessResolver(prober=prober, keystore=keystore, prompter=ScriptedPrompter()).resolve(
            "scowalt", "dotfiles"
        )

        assert result == AccessResult.granted(EnvironmentToken("GH_TOKEN_SCOWALT"))
        assert keystore.operations == 0
        assert not deploy_key_path.exists()
        [req] = session.requests
        assert req["headers"]["Authorization"] == "Bearer validtoken123"
        assert req["timeout"] == 5.0

    def test_unencodable_token_falls_through(self, home: Path, deploy_key_path: Path) -> None:
        """A token http.client cannot put in a header is rejected, not raised."""

        class Latin1Session(FakeSession):
            def get(self, url, headers=None, timeout=None):
                for value in (headers or {}).values():
                    value.encode("latin-1")
                return super().get(url, headers=headers, timeout=timeout)

        prober = GitHubProber(
            ssh_dir=home / ".ssh",
            client=GitHubClient(session=Latin1Session({})),
            environ={"GH_TOKEN_SCOWALT": "tök€n"},
        )

        result = AccessResolver(
            prober=prober,
            keystore=FakeKeyStore(deploy_key_path),
            prompter=ScriptedPrompter(),
            interactive=False,
        ).resolve("scowalt", "dotfiles")

        assert result == AccessResult.denied()
