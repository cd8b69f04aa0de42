"""Payload staging strategies and the cleanup guard around them.

``inline`` embeds the base64 audio in the dispatch event itself. ``s3`` and
``gist`` write it to a private store and hand the workflow a URL; those
objects are deleted by :func:`staged_payload` on every exit path.
"""

from __future__ import annotations

import base64
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional, Protocol

from app.config.settings import S3Config, StagingConfig
from app.services.github_actions import GitHubActionsClient, GitHubApiError
from app.services.storage import S3PayloadStore, StorageError
from app.telemetry import record_cleanup

from .errors import ConfigError, StageError
from .types import AnalysisRequest, StagedPayload

logger = logging.getLogger("app.pipelines.analysis")


class PayloadStager(Protocol):
    strategy: str

    async def stage(self, request: AnalysisRequest) -> StagedPayload:
        ...

    async def unstage(self, staged: Optional[StagedPayload]) -> None:
        ...

    def dispatch_fields(self, staged: StagedPayload) -> dict[str, Any]:
        ...


def _encode(payload: bytes) -> str:
    return base64.b64encode(payload).decode("ascii")


class InlineStager:
    """Embed the payload in ``client_payload.audio``; nothing to delete."""

    strategy = "inline"

    async def stage(self, request: AnalysisRequest) -> StagedPayload:
        return StagedPayload(reference=_encode(request.payload), backing="inline", strategy=self.strategy)

    async def unstage(self, staged: Optional[StagedPayload]) -> None:
        return None

    def dispatch_fields(self, staged: StagedPayload) -> dict[str, Any]:
        return {"audio": staged.reference}


class S3Stager:
    """Upload to a private bucket and pass a presigned GET URL."""

    strategy = "s3"

    def __init__(self, store: S3PayloadStore, *, prefix: str = "payloads", url_expires_seconds: int = 900) -> None:
        self._store = store
        self._prefix = prefix.strip("/")
        self._url_expires_seconds = url_expires_seconds

    def _object_key(self, correlation_id: str) -> str:
        if not self._prefix:
            return f"{correlation_id}.bin"
        return f"{self._prefix}/{correlation_id}.bin"

    async def stage(self, request: AnalysisRequest) -> StagedPayload:
        object_key = self._object_key(request.correlation_id)
        try:
            await self._store.put_payload(object_key, request.payload)
        except StorageError as exc:
            raise StageError(str(exc)) from exc

        try:
            url = await self._store.presigned_url(object_key, expires_in=self._url_expires_seconds)
        except StorageError as exc:
            # The object exists but the workflow could never reach it.
            await self._delete(object_key)
            raise StageError(str(exc)) from exc

        logger.info("Payload staged request=%s strategy=s3 key=%s", request.correlation_id, object_key)
        return StagedPayload(reference=url, backing="external", strategy=self.strategy, handle=object_key)

    async def unstage(self, staged: Optional[StagedPayload]) -> None:
        if staged is None or staged.handle is None:
            return
        await self._delete(staged.handle)

    async def _delete(self, object_key: str) -> None:
        try:
            await self._store.delete_payload(object_key)
        except StorageError:
            logger.exception("Failed to delete staged payload %s", object_key)
            record_cleanup(self.strategy, "error")
            return
        record_cleanup(self.strategy, "deleted")

    def dispatch_fields(self, staged: StagedPayload) -> dict[str, Any]:
        return {"audio_url": staged.reference}


class GistStager:
    """Store the base64 payload in a secret gist and pass its raw URL."""

    strategy = "gist"

    def __init__(self, client: GitHubActionsClient) -> None:
        self._client = client

    async def stage(self, request: AnalysisRequest) -> StagedPayload:
        filename = f"{request.correlation_id}.b64"
        try:
            gist = await self._client.create_gist(
                filename=filename,
                content=_encode(request.payload),
                description=f"analysis payload {request.correlation_id}",
            )
        except GitHubApiError as exc:
            raise StageError(exc.body or str(exc)) from exc

        gist_id = gist.get("id")
        raw_url = ((gist.get("files") or {}).get(filename) or {}).get("raw_url")
        if not gist_id:
            raise StageError("Gist API response did not include an id")
        staged = StagedPayload(reference=raw_url or "", backing="external", strategy=self.strategy, handle=str(gist_id))
        if not raw_url:
            await self.unstage(staged)
            raise StageError("Gist API response did not include a raw_url")

        logger.info("Payload staged request=%s strategy=gist gist=%s", request.correlation_id, gist_id)
        return staged

    async def unstage(self, staged: Optional[StagedPayload]) -> None:
        if staged is None or staged.handle is None:
            return
        try:
            await self._client.delete_gist(staged.handle)
        except GitHubApiError as exc:
            if exc.status_code == 404:
                logger.debug("Gist %s already gone", staged.handle)
                record_cleanup(self.strategy, "missing")
                return
            logger.error("Failed to delete staged gist %s: %s", staged.handle, exc)
            record_cleanup(self.strategy, "error")
            return
        record_cleanup(self.strategy, "deleted")

    def dispatch_fields(self, staged: StagedPayload) -> dict[str, Any]:
        return {"audio_url": staged.reference}


def build_stager(
    staging: StagingConfig,
    s3_config: S3Config,
    client: GitHubActionsClient,
    *,
    store: Optional[S3PayloadStore] = None,
) -> PayloadStager:
    """Return the stager selected by ``STAGING_STRATEGY``."""

    if staging.strategy == "inline":
        return InlineStager()
    if staging.strategy == "gist":
        return GistStager(client)
    if staging.strategy == "s3":
        if store is None:
            if not staging.s3_bucket:
                raise ConfigError(
                    "STAGING_S3_BUCKET is required for the s3 staging strategy",
                    error="Staging bucket not configured",
                    hint="Set STAGING_S3_BUCKET or use STAGING_STRATEGY=inline",
                )
            store = S3PayloadStore(staging.s3_bucket, s3_config)
        return S3Stager(store, prefix=staging.s3_prefix, url_expires_seconds=staging.url_expires_seconds)
    raise ConfigError(
        f"Unknown staging strategy {staging.strategy!r}",
        error="Staging strategy not supported",
        hint="Use inline, s3 or gist",
    )


async def release_staged_payload(stager: PayloadStager, staged: Optional[StagedPayload]) -> None:
    """Unstage without ever raising; failures are logged only."""

    try:
        await stager.unstage(staged)
    except Exception:
        logger.exception("Unexpected error while releasing staged payload (%s)", stager.strategy)


@asynccontextmanager
async def staged_payload(stager: PayloadStager, request: AnalysisRequest) -> AsyncIterator[StagedPayload]:
    """Stage ``request`` and release it exactly once when the block exits.

    A :class:`StageError` on enter propagates untouched: nothing was
    created, so there is nothing to release.
    """

    staged = await stager.stage(request)
    try:
        yield staged
    finally:
        await release_staged_payload(stager, staged)
        logger.info("Staged payload released request=%s strategy=%s", request.correlation_id, stager.strategy)


__all__ = [
    "GistStager",
    "InlineStager",
    "PayloadStager",
    "S3Stager",
    "build_stager",
    "release_staged_payload",
    "staged_payload",
]
