"""Async GitHub REST client for the Actions endpoints the analysis flow uses."""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

from app.config.settings import GitHubConfig

logger = logging.getLogger(__name__)

_GITHUB_ACCEPT = "application/vnd.github.v3+json"


def _dict_items(data: dict[str, Any], key: str) -> list[dict[str, Any]]:
    items = data.get(key)
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]


class GitHubApiError(RuntimeError):
    """Raised when a GitHub API call fails at the transport or HTTP level."""

    def __init__(self, message: str, *, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class GitHubActionsClient:
    """Thin facade over the repository dispatch, runs, artifacts and gists APIs."""

    def __init__(
        self,
        config: GitHubConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        headers = {
            "Accept": _GITHUB_ACCEPT,
            "User-Agent": "babycry-analysis-backend",
        }
        if config.token is not None:
            headers["Authorization"] = f"Bearer {config.token.get_secret_value()}"
        self._client = httpx.AsyncClient(
            base_url=config.api_url,
            headers=headers,
            timeout=config.request_timeout_seconds,
            follow_redirects=True,
            transport=transport,
        )

    async def __aenter__(self) -> "GitHubActionsClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise GitHubApiError(f"{method} {url} failed: {exc}") from exc

        if response.is_error:
            body = response.text[:500]
            raise GitHubApiError(
                f"{method} {url} returned HTTP {response.status_code}",
                status_code=response.status_code,
                body=body,
            )
        return response

    async def _request_json(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        """Like `_request`, but a 2xx body that is not a JSON object is also an API error."""

        response = await self._request(method, url, **kwargs)
        try:
            data = response.json()
        except ValueError as exc:
            raise GitHubApiError(
                f"{method} {url} returned a body that is not JSON",
                status_code=response.status_code,
                body=response.text[:500],
            ) from exc
        if not isinstance(data, dict):
            raise GitHubApiError(
                f"{method} {url} returned {type(data).__name__}, expected a JSON object",
                status_code=response.status_code,
                body=response.text[:500],
            )
        return data

    async def create_dispatch(self, event_type: str, client_payload: Mapping[str, Any]) -> None:
        """Fire a `repository_dispatch` event (GitHub answers 204 No Content)."""

        await self._request(
            "POST",
            f"{self._config.repo_path}/dispatches",
            json={"event_type": event_type, "client_payload": dict(client_payload)},
        )

    async def list_workflow_runs(
        self,
        *,
        event: str = "repository_dispatch",
        per_page: int = 5,
    ) -> list[dict[str, Any]]:
        """Return the newest workflow runs triggered by `event`."""

        data = await self._request_json(
            "GET",
            f"{self._config.repo_path}/actions/runs",
            params={"event": event, "per_page": per_page},
        )
        return _dict_items(data, "workflow_runs")

    async def list_run_artifacts(self, run_id: int) -> list[dict[str, Any]]:
        data = await self._request_json(
            "GET",
            f"{self._config.repo_path}/actions/runs/{run_id}/artifacts",
        )
        return _dict_items(data, "artifacts")

    async def download_artifact(self, download_url: str) -> bytes:
        """Download an artifact archive, following the redirect to blob storage."""

        response = await self._request("GET", download_url)
        return response.content

    async def create_gist(self, *, filename: str, content: str, description: str) -> dict[str, Any]:
        """Create a secret gist holding a single file."""

        return await self._request_json(
            "POST",
            "/gists",
            json={
                "description": description,
                "public": False,
                "files": {filename: {"content": content}},
            },
        )

    async def delete_gist(self, gist_id: str) -> None:
        await self._request("DELETE", f"/gists/{gist_id}")


__all__ = ["GitHubActionsClient", "GitHubApiError"]
