"""Client for the remote project-data API."""

from __future__ import annotations

from typing import Any

import httpx


class RemoteSyncError(RuntimeError):
    """Raised when the project-data API can't be reached or rejects a request."""


class ProjectDataClient:
    """Reads and patches a project's data document.

    Endpoints:
        GET   /projects/{id}/data
        PATCH /projects/{id}/data?merge=true|false
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    async def __aenter__(self) -> ProjectDataClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> dict[str, Any]:
        try:
            response = await self.client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RemoteSyncError(
                f"{method} {url} failed with status {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise RemoteSyncError(f"{method} {url} failed: {e}") from e

        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as e:
            raise RemoteSyncError(f"{method} {url} returned invalid JSON") from e
        return body if isinstance(body, dict) else {"data": body}

    async def get_data(self, project_id: str) -> dict[str, Any]:
        """Fetch the project's data document (the ``data`` member when wrapped)."""
        body = await self._request("GET", f"/projects/{project_id}/data")
        data = body.get("data", body)
        return data if isinstance(data, dict) else {}

    async def update_data(
        self, project_id: str, updates: dict[str, Any], merge: bool = True
    ) -> dict[str, Any]:
        """Patch the project's data document.

        Args:
            project_id: Project identifier
            updates: Top-level keys to write, e.g. ``{"technical_sections": [...]}``
            merge: Merge into the stored document instead of replacing it
        """
        return await self._request(
            "PATCH",
            f"/projects/{project_id}/data",
            params={"merge": "true" if merge else "false"},
            json=updates,
        )
