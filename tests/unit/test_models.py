"""Tests for the Pydantic models: artifacts, instances, reports and plans."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from snapcycle.models.config import default_image_name
from snapcycle.models.images import EphemeralInstance, ImageArtifact, InstanceState
from snapcycle.models.reports import (
    CommandOutput,
    DeleteFailure,
    ProbeResult,
    ReconcileReport,
    VerificationReport,
)
from snapcycle.models.stages import PLANS, STAGE_DISPLAY_NAMES
from tests.fakes import T0, image_payload


class TestImageArtifact:
    def test_decodes_api_payload(self):
        artifact = ImageArtifact.model_validate(image_payload(42, T0, size=2.25))
        assert artifact.id == 42
        assert artifact.size == 2.25
        assert artifact.created_at == T0
        assert artifact.description == "nixos-42"
        assert artifact.has_label("created_by", "packer")

    def test_absent_values_decode_to_none_or_empty(self):
        raw = image_payload(7, T0, size=None)
        raw["description"] = None
        raw["labels"] = None
        artifact = ImageArtifact.model_validate(raw)
        assert artifact.size is None
        assert artifact.description == ""
        assert artifact.labels == {}
        assert not artifact.has_label("created_by", "packer")

    def test_label_value_must_match(self):
        artifact = ImageArtifact.model_validate(image_payload(1, T0, tagged=False))
        assert not artifact.has_label("created_by", "packer")
        assert artifact.has_label("created_by", "someone-else")

    def test_frozen(self):
        artifact = ImageArtifact.model_validate(image_payload(1, T0))
        with pytest.raises(ValidationError):
            artifact.id = 2


class TestEphemeralInstance:
    def test_decodes_server_payload(self):
        instance = EphemeralInstance.model_validate(
            {
                "id": 9,
                "name": "test-nixos-1",
                "status": "running",
                "public_net": {"ipv4": {"ip": "198.51.100.4"}},
            }
        )
        assert instance.id == 9
        assert instance.public_address == "198.51.100.4"
        assert instance.state == InstanceState.RUNNING

    def test_missing_address_is_none(self):
        instance = EphemeralInstance.model_validate(
            {"id": 9, "status": "initializing", "public_net": {}}
        )
        assert instance.public_address is None

    def test_unknown_status_maps_to_starting(self):
        instance = EphemeralInstance.model_validate({"id": 9, "status": "initializing"})
        assert instance.state == InstanceState.STARTING


class TestReports:
    def test_command_output_ok(self):
        assert CommandOutput(label="a", command="true", exit_code=0).ok
        assert not CommandOutput(label="a", command="false", exit_code=1).ok

    def test_warnings_ignore_skipped_probes(self):
        report = VerificationReport(
            artifact_id=1,
            ssh_probe=ProbeResult(name="ssh", ok=False, message="refused"),
            installation_probe=ProbeResult(
                name="installation", ok=False, skipped=True, message="skipped"
            ),
        )
        assert report.warnings == ["ssh: refused"]

    def test_no_warnings_when_probes_pass(self):
        report = VerificationReport(
            artifact_id=1,
            ssh_probe=ProbeResult(name="ssh", ok=True),
            installation_probe=ProbeResult(name="installation", ok=True),
        )
        assert report.warnings == []

    def test_reconcile_report_ok(self):
        report = ReconcileReport(retention_count=3)
        assert report.ok
        report.failed.append(DeleteFailure(artifact_id=1, error="boom"))
        assert not report.ok


class TestPlans:
    def test_every_planned_stage_has_a_display_name(self):
        assert PLANS["all"] == ["preflight", "build", "verify", "reconcile"]
        for plan in PLANS.values():
            assert all(stage_id in STAGE_DISPLAY_NAMES for stage_id in plan)

    def test_test_plan_discovers_instead_of_building(self):
        assert PLANS["test"] == ["preflight", "discover", "verify"]
        assert "build" not in PLANS["clean"]


def test_default_image_name():
    now = datetime(2026, 3, 4, 5, 6, tzinfo=timezone.utc)
    assert default_image_name("nixos-25.11-netboot", now) == "nixos-25.11-netboot-20260304-0506"
