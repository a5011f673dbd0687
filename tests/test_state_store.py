from __future__ import annotations

from pathlib import Path

import pytest

from machine_setup.config import apply_overrides, load_config_file
from machine_setup.state_store import (
    add_warning,
    ensure_defaults,
    is_step_completed,
    load_state,
    mark_step_completed,
    save_state,
)


class TestStateFile:
    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        assert load_state(str(tmp_path / "nope.json")) == {}

    @pytest.mark.parametrize("name", ["state.json", "state.yaml"])
    def test_save_and_load(self, tmp_path: Path, name: str) -> None:
        path = tmp_path / "nested" / name
        state = ensure_defaults({})
        mark_step_completed(state, "10_preflight")

        save_state(str(path), state)
        loaded = load_state(str(path))

        assert is_step_completed(loaded, "10_preflight")
        assert loaded["config"]["github_owner"] == "scowalt"

    def test_non_mapping_is_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        path.write_text("[1, 2]\n")
        with pytest.raises(ValueError):
            load_state(str(path))


class TestDefaults:
    def test_user_values_survive(self) -> None:
        state = ensure_defaults({"config": {"github_owner": "someone"}})
        assert state["config"]["github_owner"] == "someone"
        assert state["config"]["max_deploy_key_retries"] == 5
        assert state["execution"]["warnings"] == []

    def test_mark_step_completed_once(self) -> None:
        state = ensure_defaults({})
        mark_step_completed(state, "20_install_packages")
        mark_step_completed(state, "20_install_packages")
        assert state["execution"]["completed_steps"] == ["20_install_packages"]

    def test_add_warning_keeps_details(self) -> None:
        state = ensure_defaults({})
        add_warning(state, "20_install_packages", "No sudo", missing=["git"])
        assert state["execution"]["warnings"] == [
            {"step": "20_install_packages", "message": "No sudo", "missing": ["git"]}
        ]


class TestConfigFile:
    def test_load_and_apply(self, tmp_path: Path) -> None:
        path = tmp_path / "setup.yaml"
        path.write_text("github_owner: someone\nmax_deploy_key_retries: 2\n")
        state = ensure_defaults({})

        apply_overrides(state, load_config_file(str(path)))
        apply_overrides(state, {"dotfiles_repo": None, "platform": "arch"})

        assert state["config"]["github_owner"] == "someone"
        assert state["config"]["max_deploy_key_retries"] == 2
        assert state["config"]["dotfiles_repo"] == "dotfiles"
        assert state["config"]["platform"] == "arch"

    def test_unknown_keys_are_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "setup.yaml"
        path.write_text("gihtub_owner: typo\n")
        with pytest.raises(ValueError, match="gihtub_owner"):
            load_config_file(str(path))

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config_file(str(tmp_path / "absent.yaml"))
