"""Tests for HcloudClient against an in-memory API."""

from __future__ import annotations

import json
from datetime import timedelta

import httpx
import pytest

from snapcycle.core.hcloud import HcloudClient
from snapcycle.errors import ApiError, ArtifactNotFoundError, InstanceCreationError
from tests.fakes import API_URL, T0


class TestSnapshots:
    def test_list_follows_pagination(self, client, fake_api):
        for i in range(60):
            fake_api.add_image(i + 1, T0 + timedelta(minutes=i))
        snapshots = client.list_snapshots()
        assert len(snapshots) == 60
        assert fake_api.requests.count(("GET", "/v1/images")) == 2

    def test_list_is_newest_first(self, client, fake_api):
        fake_api.add_image(1, T0)
        fake_api.add_image(2, T0 + timedelta(days=1))
        fake_api.add_image(3, T0 - timedelta(days=1))
        assert [s.id for s in client.list_snapshots()] == [2, 1, 3]

    def test_list_empty(self, client):
        assert client.list_snapshots() == []

    def test_label_selector_forwarded(self, fake_api):
        seen: list[httpx.QueryParams] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.params)
            return fake_api.handler(request)

        with HcloudClient("t", API_URL, transport=httpx.MockTransport(handler)) as c:
            c.list_snapshots(label_selector="created_by=packer")
        assert seen[0]["label_selector"] == "created_by=packer"
        assert seen[0]["type"] == "snapshot"

    def test_latest_snapshot(self, client, five_snapshots):
        assert client.latest_snapshot().id == 5

    def test_latest_snapshot_with_label_selector(self, client, fake_api, five_snapshots):
        fake_api.add_image(99, T0 + timedelta(days=30), tagged=False)
        assert client.latest_snapshot().id == 99
        assert client.latest_snapshot(label_selector="created_by=packer").id == 5

    def test_latest_snapshot_empty_registry(self, client):
        with pytest.raises(ArtifactNotFoundError, match="No snapshot found"):
            client.latest_snapshot()

    def test_delete_image(self, client, fake_api, five_snapshots):
        client.delete_image(3)
        assert fake_api.deleted_images == [3]
        assert [s.id for s in client.list_snapshots()] == [5, 4, 2, 1]


class TestErrors:
    def test_error_body_becomes_api_error(self, client, fake_api, five_snapshots):
        fake_api.failing_image_deletes.add(2)
        with pytest.raises(ApiError) as excinfo:
            client.delete_image(2)
        assert excinfo.value.status_code == 500
        assert excinfo.value.code == "server_error"
        assert "image delete failed" in str(excinfo.value)

    def test_transport_failure_becomes_api_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with HcloudClient("t", API_URL, transport=httpx.MockTransport(handler)) as c:
            with pytest.raises(ApiError) as excinfo:
                c.list_snapshots()
        assert excinfo.value.status_code is None

    def test_non_json_error_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="Bad Gateway")

        with HcloudClient("t", API_URL, transport=httpx.MockTransport(handler)) as c:
            with pytest.raises(ApiError, match="Bad Gateway"):
                c.delete_image(1)

    def test_non_json_success_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, text="<html>OK</html>", headers={"Content-Type": "text/html"}
            )

        with HcloudClient("t", API_URL, transport=httpx.MockTransport(handler)) as c:
            with pytest.raises(ApiError, match="unreadable body") as excinfo:
                c.delete_server(1000)
        assert excinfo.value.status_code == 200

    def test_success_body_not_an_object(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[1, 2])

        with HcloudClient("t", API_URL, transport=httpx.MockTransport(handler)) as c:
            with pytest.raises(ApiError, match="expected an object"):
                c.list_snapshots()

    def test_error_body_not_an_object(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json=["boom"])

        with HcloudClient("t", API_URL, transport=httpx.MockTransport(handler)) as c:
            with pytest.raises(ApiError) as excinfo:
                c.delete_image(1)
        assert excinfo.value.status_code == 500
        assert excinfo.value.code is None


class TestServers:
    def test_create_server_request(self, client, fake_api):
        instance = client.create_server(
            "test-nixos-1",
            image_id=5,
            server_type="cx22",
            location="nbg1",
            labels={"purpose": "testing"},
        )
        assert instance.id == 1000
        assert instance.public_address == "203.0.113.10"
        body = fake_api.created_servers[0]
        assert body["image"] == 5
        assert body["server_type"] == "cx22"
        assert body["location"] == "nbg1"
        assert body["start_after_create"] is True
        assert body["labels"] == {"purpose": "testing"}

    def test_create_without_id_raises(self, client, fake_api):
        fake_api.create_server_body = {"server": None}
        with pytest.raises(InstanceCreationError) as excinfo:
            client.create_server("x", image_id=1, server_type="cx22", location="nbg1")
        assert excinfo.value.instance_id is None

    def test_create_rejected_by_api(self, client, fake_api):
        fake_api.create_server_status = 422
        with pytest.raises(ApiError) as excinfo:
            client.create_server("x", image_id=1, server_type="cx22", location="nbg1")
        assert excinfo.value.code == "invalid_input"

    def test_delete_server(self, client, fake_api):
        client.delete_server(1234)
        assert fake_api.deleted_servers == [1234]


def test_bearer_token_sent():
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, content=json.dumps({"images": []}).encode())

    with HcloudClient("s3cret", API_URL, transport=httpx.MockTransport(handler)) as c:
        c.list_snapshots()
    assert captured[0].headers["Authorization"] == "Bearer s3cret"
