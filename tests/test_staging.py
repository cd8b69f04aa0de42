"""Tests for payload staging strategies and the release guard."""

from __future__ import annotations

import asyncio
import base64
import json
from unittest.mock import MagicMock

import httpx
import pytest
from botocore.exceptions import ClientError

from app.config.settings import S3Config, StagingConfig
from app.pipelines.analysis import (
    ConfigError,
    GistStager,
    InlineStager,
    S3Stager,
    StageError,
    StagedPayload,
    build_stager,
    new_analysis_request,
    staged_payload,
)
from app.services.github_actions import GitHubActionsClient
from app.services.storage import S3PayloadStore, StorageError
from conftest import FakeStore


class RecordingStager(InlineStager):
    def __init__(self):
        self.released = 0

    async def unstage(self, staged):
        self.released += 1


@pytest.fixture
def request_():
    return new_analysis_request(b"RIFF-fake-wav-bytes")


class TestInlineStager:
    @pytest.mark.asyncio
    async def test_embeds_base64_payload(self, request_):
        stager = InlineStager()

        staged = await stager.stage(request_)

        assert staged.backing == "inline"
        assert staged.handle is None
        assert base64.b64decode(staged.reference) == request_.payload
        assert stager.dispatch_fields(staged) == {"audio": staged.reference}

    @pytest.mark.asyncio
    async def test_unstage_is_a_noop(self, request_):
        stager = InlineStager()
        staged = await stager.stage(request_)

        await stager.unstage(staged)
        await stager.unstage(staged)
        await stager.unstage(None)


class TestS3Stager:
    @pytest.mark.asyncio
    async def test_round_trip_leaves_no_objects(self, request_):
        store = FakeStore()
        stager = S3Stager(store, prefix="payloads/", url_expires_seconds=600)

        staged = await stager.stage(request_)

        key = f"payloads/{request_.correlation_id}.bin"
        assert staged.backing == "external"
        assert staged.handle == key
        assert store.objects[key] == request_.payload
        assert stager.dispatch_fields(staged) == {"audio_url": staged.reference}
        assert "X-Amz-Expires=600" in staged.reference

        await stager.unstage(staged)
        await stager.unstage(staged)

        assert store.objects == {}
        assert store.deleted == [key, key]

    @pytest.mark.asyncio
    async def test_put_failure_is_a_stage_error(self, request_):
        stager = S3Stager(FakeStore(fail_put=True))

        with pytest.raises(StageError):
            await stager.stage(request_)

    @pytest.mark.asyncio
    async def test_presign_failure_removes_the_uploaded_object(self, request_):
        store = FakeStore(fail_presign=True)
        stager = S3Stager(store)

        with pytest.raises(StageError):
            await stager.stage(request_)

        assert store.objects == {}

    @pytest.mark.asyncio
    async def test_delete_failure_is_logged_not_raised(self, request_, caplog):
        store = FakeStore(fail_delete=True)
        stager = S3Stager(store)
        staged = await stager.stage(request_)

        await stager.unstage(staged)

        assert "Failed to delete staged payload" in caplog.text

    @pytest.mark.asyncio
    async def test_unstage_without_handle_is_a_noop(self):
        store = FakeStore()

        await S3Stager(store).unstage(None)

        assert store.deleted == []


class TestS3PayloadStore:
    @pytest.mark.asyncio
    async def test_put_presign_delete_use_configured_bucket(self):
        client = MagicMock()
        client.generate_presigned_url.return_value = "https://signed"
        store = S3PayloadStore("cry-bucket", S3Config(), client=client)

        await store.put_payload("payloads/a.bin", b"abc")
        url = await store.presigned_url("payloads/a.bin", expires_in=300)
        await store.delete_payload("payloads/a.bin")

        assert url == "https://signed"
        client.put_object.assert_called_once_with(
            Bucket="cry-bucket", Key="payloads/a.bin", Body=b"abc", ContentType="application/octet-stream"
        )
        client.generate_presigned_url.assert_called_once_with(
            "get_object", Params={"Bucket": "cry-bucket", "Key": "payloads/a.bin"}, ExpiresIn=300
        )
        client.delete_object.assert_called_once_with(Bucket="cry-bucket", Key="payloads/a.bin")

    @pytest.mark.asyncio
    async def test_client_errors_become_storage_errors(self):
        client = MagicMock()
        client.put_object.side_effect = ClientError({"Error": {"Code": "AccessDenied", "Message": "no"}}, "PutObject")
        store = S3PayloadStore("cry-bucket", S3Config(), client=client)

        with pytest.raises(StorageError):
            await store.put_payload("k", b"abc")

    def test_bucket_is_required(self):
        with pytest.raises(StorageError):
            S3PayloadStore("", S3Config(), client=MagicMock())


class TestGistStager:
    @pytest.mark.asyncio
    async def test_stage_and_unstage(self, request_, github_api, github_config):
        def create_gist(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            assert body["public"] is False
            (filename, file_body), = body["files"].items()
            assert base64.b64decode(file_body["content"]) == request_.payload
            return httpx.Response(
                201,
                json={"id": "g123", "files": {filename: {"raw_url": f"https://gist.githubusercontent.com/raw/{filename}"}}},
            )

        github_api.post("/gists").mock(side_effect=create_gist)
        delete_route = github_api.delete("/gists/g123").mock(return_value=httpx.Response(204))

        async with GitHubActionsClient(github_config) as client:
            stager = GistStager(client)
            staged = await stager.stage(request_)
            await stager.unstage(staged)

        assert staged.handle == "g123"
        assert staged.reference.endswith(f"{request_.correlation_id}.b64")
        assert stager.dispatch_fields(staged) == {"audio_url": staged.reference}
        assert delete_route.call_count == 1

    @pytest.mark.asyncio
    async def test_already_deleted_gist_is_not_an_error(self, request_, github_api, github_config):
        route = github_api.delete("/gists/gone").mock(return_value=httpx.Response(404, json={"message": "Not Found"}))
        staged = StagedPayload(reference="https://x", backing="external", strategy="gist", handle="gone")

        async with GitHubActionsClient(github_config) as client:
            await GistStager(client).unstage(staged)

        assert route.call_count == 1

    @pytest.mark.asyncio
    async def test_create_failure_is_a_stage_error(self, request_, github_api, github_config):
        github_api.post("/gists").mock(return_value=httpx.Response(403, text="gist scope missing"))

        async with GitHubActionsClient(github_config) as client:
            with pytest.raises(StageError, match="gist scope missing"):
                await GistStager(client).stage(request_)


class TestStagedPayloadGuard:
    @pytest.mark.asyncio
    async def test_releases_once_on_success(self, request_):
        stager = RecordingStager()

        async with staged_payload(stager, request_) as staged:
            assert staged.backing == "inline"

        assert stager.released == 1

    @pytest.mark.asyncio
    async def test_releases_once_on_error(self, request_):
        stager = RecordingStager()

        with pytest.raises(RuntimeError):
            async with staged_payload(stager, request_):
                raise RuntimeError("boom")

        assert stager.released == 1

    @pytest.mark.asyncio
    async def test_releases_once_on_cancellation(self, request_):
        stager = RecordingStager()

        with pytest.raises(asyncio.CancelledError):
            async with staged_payload(stager, request_):
                raise asyncio.CancelledError()

        assert stager.released == 1

    @pytest.mark.asyncio
    async def test_stage_error_skips_release(self, request_):
        class FailingStager(RecordingStager):
            async def stage(self, request):
                raise StageError("nope")

        stager = FailingStager()

        with pytest.raises(StageError):
            async with staged_payload(stager, request_):
                pytest.fail("body must not run")

        assert stager.released == 0

    @pytest.mark.asyncio
    async def test_release_never_raises(self, request_, caplog):
        class ExplodingStager(InlineStager):
            async def unstage(self, staged):
                raise ValueError("cleanup exploded")

        async with staged_payload(ExplodingStager(), request_):
            pass

        assert "Unexpected error while releasing staged payload" in caplog.text


class TestBuildStager:
    def test_inline_is_the_default(self):
        assert isinstance(build_stager(StagingConfig(strategy="inline"), S3Config(), client=MagicMock()), InlineStager)

    def test_gist(self):
        assert isinstance(build_stager(StagingConfig(strategy="gist"), S3Config(), client=MagicMock()), GistStager)

    def test_s3_with_injected_store(self):
        stager = build_stager(StagingConfig(strategy="s3"), S3Config(), client=MagicMock(), store=FakeStore())

        assert isinstance(stager, S3Stager)

    def test_s3_without_bucket_is_a_config_error(self):
        with pytest.raises(ConfigError) as excinfo:
            build_stager(StagingConfig(strategy="s3", s3_bucket=None), S3Config(), client=MagicMock())

        assert excinfo.value.payload()["error"] == "Staging bucket not configured"
