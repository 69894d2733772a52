"""Tests for PackerRunner with subprocess replaced."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from snapcycle.core import packer as packer_module
from snapcycle.core.packer import PackerRunner
from snapcycle.errors import BuildToolError


class _Recorder:
    def __init__(self, returncode: int = 0, exc: BaseException | None = None) -> None:
        self.returncode = returncode
        self.exc = exc
        self.calls: list[dict] = []

    def __call__(self, cmd, **kwargs):
        self.calls.append({"cmd": cmd, **kwargs})
        if self.exc is not None:
            raise self.exc
        return subprocess.CompletedProcess(cmd, self.returncode)


@pytest.fixture
def runner(tmp_path: Path) -> PackerRunner:
    return PackerRunner(tmp_path, timeout=7200, prepare_timeout=120)


class TestPackerRunner:
    def test_build_command_line(self, runner, tmp_path, monkeypatch):
        recorder = _Recorder()
        monkeypatch.setattr(packer_module.subprocess, "run", recorder)
        runner.build("hetzner-nixos.pkr.hcl", "nixos-25.11-netboot-20260101-1200")
        call = recorder.calls[0]
        assert call["cmd"] == [
            "packer",
            "build",
            "-var",
            "image_name=nixos-25.11-netboot-20260101-1200",
            "hetzner-nixos.pkr.hcl",
        ]
        assert call["cwd"] == tmp_path
        assert call["timeout"] == 7200

    def test_init_and_validate(self, runner, monkeypatch):
        recorder = _Recorder()
        monkeypatch.setattr(packer_module.subprocess, "run", recorder)
        runner.init()
        runner.validate()
        assert [c["cmd"] for c in recorder.calls] == [
            ["packer", "init", "."],
            ["packer", "validate", "."],
        ]
        assert [c["timeout"] for c in recorder.calls] == [120, 120]

    def test_nonzero_exit_raises(self, runner, monkeypatch):
        monkeypatch.setattr(packer_module.subprocess, "run", _Recorder(returncode=1))
        with pytest.raises(BuildToolError) as excinfo:
            runner.build("t.pkr.hcl", "img")
        assert excinfo.value.verb == "build"
        assert excinfo.value.returncode == 1

    def test_timeout_raises(self, runner, monkeypatch):
        exc = subprocess.TimeoutExpired(cmd=["packer"], timeout=7200)
        monkeypatch.setattr(packer_module.subprocess, "run", _Recorder(exc=exc))
        with pytest.raises(BuildToolError, match="timed out") as excinfo:
            runner.build("t.pkr.hcl", "img")
        assert excinfo.value.returncode is None

    def test_missing_binary_raises(self, runner, monkeypatch):
        exc = FileNotFoundError("No such file or directory: 'packer'")
        monkeypatch.setattr(packer_module.subprocess, "run", _Recorder(exc=exc))
        with pytest.raises(BuildToolError):
            runner.init()

    def test_available(self, runner, monkeypatch):
        monkeypatch.setattr(packer_module.shutil, "which", lambda name: None)
        assert not runner.available()
        monkeypatch.setattr(packer_module.shutil, "which", lambda name: f"/usr/bin/{name}")
        assert runner.available()
