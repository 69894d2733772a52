"""Hetzner Cloud API client: the image registry and compute endpoints.

Only the handful of operations the pipeline needs are wrapped.  Every request
carries the bearer token and an explicit timeout; non-2xx responses and
bodies that are not a JSON object raise ``ApiError``.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from snapcycle.errors import ApiError, ArtifactNotFoundError, InstanceCreationError
from snapcycle.models.config import PipelineConfig
from snapcycle.models.images import EphemeralInstance, ImageArtifact

logger = logging.getLogger(__name__)

_PAGE_SIZE = 50


class HcloudClient:
    """Thin synchronous wrapper around the Hetzner Cloud REST API.

    Parameters
    ----------
    token:
        API bearer token.
    base_url:
        API root, e.g. ``https://api.hetzner.cloud/v1``.
    timeout:
        Per-request timeout in seconds.
    transport:
        Optional httpx transport; tests pass an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.hetzner.cloud/v1",
        *,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
            },
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    @classmethod
    def from_config(
        cls,
        config: PipelineConfig,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> HcloudClient:
        return cls(
            config.hcloud_token.get_secret_value(),
            config.api_url,
            timeout=config.http_timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HcloudClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        logger.debug("%s %s params=%s", method, path, params)
        try:
            response = self._client.request(method, path, params=params, json=json)
        except httpx.HTTPError as exc:
            raise ApiError(f"{method} {path} failed: {exc}") from exc

        if response.is_error:
            code: str | None = None
            message = response.text
            try:
                error = response.json().get("error") or {}
                code = error.get("code")
                message = error.get("message") or message
            except (ValueError, AttributeError):
                pass
            raise ApiError(
                f"{method} {path} returned {response.status_code}: {message}",
                status_code=response.status_code,
                code=code,
            )

        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as exc:
            raise ApiError(
                f"{method} {path} returned an unreadable body: {exc}",
                status_code=response.status_code,
            ) from exc
        if not isinstance(body, dict):
            raise ApiError(
                f"{method} {path} returned {type(body).__name__}, expected an object",
                status_code=response.status_code,
            )
        return body

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def list_snapshots(self, label_selector: str | None = None) -> list[ImageArtifact]:
        """Return all snapshot images, newest first.

        Follows ``meta.pagination.next_page`` until exhausted.  The result is
        re-sorted locally so callers can rely on the ordering.
        """
        params: dict[str, Any] = {
            "type": "snapshot",
            "sort": "created:desc",
            "per_page": _PAGE_SIZE,
        }
        if label_selector:
            params["label_selector"] = label_selector

        images: list[ImageArtifact] = []
        page: int | None = 1
        while page is not None:
            params["page"] = page
            body = self._request("GET", "/images", params=params)
            for raw in body.get("images") or []:
                images.append(ImageArtifact.model_validate(raw))
            pagination = (body.get("meta") or {}).get("pagination") or {}
            page = pagination.get("next_page")

        images.sort(key=lambda image: image.created_at, reverse=True)
        return images

    def latest_snapshot(self, label_selector: str | None = None) -> ImageArtifact:
        """Return the most recently created snapshot.

        With *label_selector*, only snapshots carrying that label count.
        Raises ``ArtifactNotFoundError`` if the registry holds none.
        """
        params: dict[str, Any] = {"type": "snapshot", "sort": "created:desc", "per_page": 1}
        if label_selector:
            params["label_selector"] = label_selector
        body = self._request("GET", "/images", params=params)
        images = body.get("images") or []
        if not images:
            raise ArtifactNotFoundError("No snapshot found")
        return ImageArtifact.model_validate(images[0])

    def delete_image(self, image_id: int) -> None:
        self._request("DELETE", f"/images/{image_id}")

    # ------------------------------------------------------------------
    # Servers
    # ------------------------------------------------------------------

    def create_server(
        self,
        name: str,
        *,
        image_id: int,
        server_type: str,
        location: str,
        labels: dict[str, str] | None = None,
    ) -> EphemeralInstance:
        """Create and start a server from *image_id*.

        Raises ``InstanceCreationError`` if the response carries no server id.
        An id without a public address is returned as-is; the caller decides.
        """
        body = self._request(
            "POST",
            "/servers",
            json={
                "name": name,
                "server_type": server_type,
                "image": image_id,
                "location": location,
                "start_after_create": True,
                "labels": labels or {},
            },
        )
        server = body.get("server") or {}
        if server.get("id") is None:
            raise InstanceCreationError(f"Failed to create test server {name}: {body}")
        try:
            return EphemeralInstance.model_validate(server)
        except ValidationError as exc:
            raise InstanceCreationError(
                f"Unreadable server in create response: {exc}",
                instance_id=server.get("id"),
            ) from exc

    def delete_server(self, server_id: int) -> None:
        self._request("DELETE", f"/servers/{server_id}")
