"""Shared test fixtures for snapcycle."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import timedelta
from pathlib import Path
from typing import Any

import httpx
import pytest
from pydantic import SecretStr
from rich.console import Console

from snapcycle.core.hcloud import HcloudClient
from snapcycle.core.orchestrator import Orchestrator
from snapcycle.models.config import PipelineConfig
from snapcycle.stages import preflight
from tests.fakes import API_URL, T0, FakeHcloud, FakePacker, FakeShell


@pytest.fixture
def fake_api() -> FakeHcloud:
    return FakeHcloud()


@pytest.fixture
def client(fake_api: FakeHcloud) -> Iterator[HcloudClient]:
    c = HcloudClient("test-token", API_URL, transport=httpx.MockTransport(fake_api.handler))
    yield c
    c.close()


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    (tmp_path / "hetzner-nixos.pkr.hcl").write_text('source "hcloud" "nixos" {}\n')
    return tmp_path


@pytest.fixture
def config(template_dir: Path) -> PipelineConfig:
    return PipelineConfig(
        hcloud_token=SecretStr("test-token"),
        api_url=API_URL,
        image_name="nixos-test-20260101-1200",
        template_dir=template_dir,
        boot_wait_seconds=60,
    )


@pytest.fixture
def console() -> Console:
    return Console(record=True, width=120)


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def make_orchestrator(
    config: PipelineConfig,
    client: HcloudClient,
    console: Console,
    sleeps: list[float],
) -> Callable[..., Orchestrator]:
    """Factory fixture: an Orchestrator wired to the fakes."""

    def _factory(
        *,
        packer: FakePacker | None = None,
        shell: FakeShell | None = None,
        config_overrides: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> Orchestrator:
        cfg = config.model_copy(update=config_overrides or {})
        return Orchestrator(
            cfg,
            client=client,
            packer=packer or FakePacker(),
            shell=shell or FakeShell(),
            console=console,
            sleep=sleeps.append,
            **kwargs,
        )

    return _factory


@pytest.fixture
def five_snapshots(fake_api: FakeHcloud) -> list[int]:
    """Five tagged snapshots created at T1 < T2 < T3 < T4 < T5 (ids 1..5)."""
    for i in range(1, 6):
        fake_api.add_image(i, T0 + timedelta(hours=i))
    return [1, 2, 3, 4, 5]


@pytest.fixture
def packer_on_path(monkeypatch) -> None:
    """Make preflight find a ``packer`` binary."""
    monkeypatch.setattr(preflight.shutil, "which", lambda name: f"/usr/bin/{name}")


@pytest.fixture
def build_registers_snapshot(fake_api: FakeHcloud) -> FakePacker:
    """A FakePacker whose build adds snapshot 10, newer than any other."""

    def register(image_name: str) -> None:
        fake_api.add_image(10, T0 + timedelta(days=1), description=image_name)

    return FakePacker(on_build=register)
