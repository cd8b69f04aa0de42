"""Shared fixtures for the analysis pipeline tests."""

from __future__ import annotations

import io
import json
import sys
import zipfile
from pathlib import Path
from typing import Any

import pytest
import respx

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from app.config.settings import GitHubConfig, PollingConfig  # noqa: E402
from app.services.storage import StorageError  # noqa: E402

API_URL = "https://api.github.com"
REPO_PATH = "/repos/octo/cry"


def make_zip(files: dict[str, Any]) -> bytes:
    """Build an in-memory ZIP; dict/list values are written as JSON."""

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as bundle:
        for name, content in files.items():
            if isinstance(content, (dict, list)):
                content = json.dumps(content)
            if isinstance(content, str):
                content = content.encode("utf-8")
            bundle.writestr(name, content)
    return buffer.getvalue()


def run_payload(run_id: int, status: str = "completed", conclusion: str | None = "success") -> dict[str, Any]:
    return {
        "id": run_id,
        "status": status,
        "conclusion": conclusion,
        "event": "repository_dispatch",
        "run_started_at": "2024-05-01T10:00:00Z",
    }


def artifact_payload(name: str, artifact_id: int = 77, expired: bool = False) -> dict[str, Any]:
    return {
        "id": artifact_id,
        "name": name,
        "expired": expired,
        "archive_download_url": f"{API_URL}{REPO_PATH}/actions/artifacts/{artifact_id}/zip",
    }


class FakeClock:
    """Monotonic clock that only advances when the poller sleeps."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def github_config() -> GitHubConfig:
    return GitHubConfig(token="test-token", owner="octo", repo="cry", api_url=API_URL)


@pytest.fixture
def polling_config() -> PollingConfig:
    return PollingConfig(interval_seconds=5, timeout_seconds=30, runs_per_page=5)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def github_api():
    """Intercept every httpx call made to the GitHub API."""

    with respx.mock(base_url=API_URL, assert_all_called=False) as mock:
        yield mock


class FakeStore:
    """In-memory stand-in for :class:`app.services.storage.S3PayloadStore`."""

    def __init__(self, *, fail_put=False, fail_presign=False, fail_delete=False):
        self.objects: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self.fail_put = fail_put
        self.fail_presign = fail_presign
        self.fail_delete = fail_delete

    async def put_payload(self, object_key, data, *, content_type="application/octet-stream"):
        if self.fail_put:
            raise StorageError("bucket unavailable")
        self.objects[object_key] = data

    async def presigned_url(self, object_key, *, expires_in):
        if self.fail_presign:
            raise StorageError("presign failed")
        return f"https://bucket.s3.amazonaws.com/{object_key}?X-Amz-Expires={expires_in}"

    async def delete_payload(self, object_key):
        if self.fail_delete:
            raise StorageError("delete failed")
        self.deleted.append(object_key)
        self.objects.pop(object_key, None)
