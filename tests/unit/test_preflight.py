"""Tests for the preflight stage."""

from __future__ import annotations

import pytest
from pydantic import SecretStr

from snapcycle.errors import ConfigurationError
from snapcycle.stages import preflight as preflight_module
from snapcycle.stages.base import StageExecutionError
from snapcycle.stages.preflight import PreflightStage


@pytest.fixture
def packer_installed(monkeypatch):
    monkeypatch.setattr(preflight_module.shutil, "which", lambda name: f"/usr/bin/{name}")


@pytest.fixture
def packer_missing(monkeypatch):
    monkeypatch.setattr(preflight_module.shutil, "which", lambda name: None)


def _cause(excinfo) -> ConfigurationError:
    cause = excinfo.value.__cause__
    assert isinstance(cause, ConfigurationError)
    return cause


class TestPreflight:
    def test_passes_with_token(self, config, console):
        result = PreflightStage(config, console=console).run_stage({})
        assert result["status"] == "passed"
        assert {c["name"] for c in result["checks"]} == {"HCLOUD_TOKEN"}

    def test_missing_token(self, config, console):
        config = config.model_copy(update={"hcloud_token": SecretStr("")})
        with pytest.raises(StageExecutionError) as excinfo:
            PreflightStage(config, console=console).run_stage({})
        assert _cause(excinfo).problems == ["HCLOUD_TOKEN environment variable not set"]

    def test_whitespace_token_counts_as_missing(self, config, console):
        config = config.model_copy(update={"hcloud_token": SecretStr("   ")})
        with pytest.raises(StageExecutionError):
            PreflightStage(config, console=console).run_stage({})

    def test_build_tool_not_checked_without_build(self, config, console, packer_missing):
        PreflightStage(config, console=console).run_stage({})

    def test_build_tool_checked_when_building(
        self, config, console, packer_installed
    ):
        result = PreflightStage(config, require_build_tool=True, console=console).run_stage({})
        names = [c["name"] for c in result["checks"]]
        assert "packer" in names
        assert str(config.template_path) in names

    def test_missing_packer(self, config, console, packer_missing):
        with pytest.raises(StageExecutionError) as excinfo:
            PreflightStage(config, require_build_tool=True, console=console).run_stage({})
        assert _cause(excinfo).problems == ["packer is required but not installed"]

    def test_missing_template(self, config, console, packer_installed, tmp_path):
        config = config.model_copy(update={"template_dir": tmp_path / "nowhere"})
        with pytest.raises(StageExecutionError) as excinfo:
            PreflightStage(config, require_build_tool=True, console=console).run_stage({})
        assert "not found" in _cause(excinfo).problems[0]

    def test_ssh_key_not_checked_without_verify(self, config, console, tmp_path):
        config = config.model_copy(update={"ssh_key_path": tmp_path / "missing_key"})
        PreflightStage(config, console=console).run_stage({})

    def test_configured_ssh_key_checked_when_verifying(self, config, console, tmp_path):
        key = tmp_path / "id_ed25519"
        key.write_text("not really a key\n")
        config = config.model_copy(update={"ssh_key_path": key})
        result = PreflightStage(config, require_ssh_key=True, console=console).run_stage({})
        assert {"name": str(key), "found": True} in result["checks"]

    def test_missing_ssh_key(self, config, console, tmp_path):
        key = tmp_path / "missing_key"
        config = config.model_copy(update={"ssh_key_path": key})
        with pytest.raises(StageExecutionError) as excinfo:
            PreflightStage(config, require_ssh_key=True, console=console).run_stage({})
        assert _cause(excinfo).problems == [f"SSH key {key} not found"]

    def test_agent_and_default_keys_need_no_check(self, config, console):
        result = PreflightStage(config, require_ssh_key=True, console=console).run_stage({})
        assert [c["name"] for c in result["checks"]] == ["HCLOUD_TOKEN"]

    def test_all_problems_reported_together(self, config, console, packer_missing):
        config = config.model_copy(update={"hcloud_token": SecretStr("")})
        with pytest.raises(StageExecutionError) as excinfo:
            PreflightStage(config, require_build_tool=True, console=console).run_stage({})
        assert len(_cause(excinfo).problems) == 2
