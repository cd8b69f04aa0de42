"""S3 storage helpers for staged analysis payloads."""

from __future__ import annotations

from typing import Any

from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from app.config.settings import S3Config
from app.services.aws import create_boto3_client


class StorageError(RuntimeError):
    """Raised when S3 payload persistence fails."""


class S3PayloadStore:
    """Put, presign and delete short-lived payload objects in one bucket."""

    def __init__(self, bucket: str, s3_config: S3Config, *, client: Any | None = None) -> None:
        if not bucket:
            raise StorageError("S3 bucket name is not configured.")
        self._bucket = bucket
        self._client = client or create_boto3_client("s3", s3_config)

    @property
    def bucket(self) -> str:
        return self._bucket

    async def put_payload(
        self,
        object_key: str,
        data: bytes,
        *,
        content_type: str = "application/octet-stream",
    ) -> None:
        if not data:
            raise StorageError("Payload for upload was empty.")
        try:
            await run_in_threadpool(
                self._client.put_object,
                Bucket=self._bucket,
                Key=object_key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Failed to upload payload: {exc}") from exc

    async def presigned_url(self, object_key: str, *, expires_in: int) -> str:
        """Return a time-limited GET URL for a private object."""

        try:
            return await run_in_threadpool(
                self._client.generate_presigned_url,
                "get_object",
                Params={"Bucket": self._bucket, "Key": object_key},
                ExpiresIn=expires_in,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Failed to presign payload URL: {exc}") from exc

    async def delete_payload(self, object_key: str) -> None:
        """Delete an object; S3 treats deleting a missing key as success."""

        try:
            await run_in_threadpool(
                self._client.delete_object,
                Bucket=self._bucket,
                Key=object_key,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Failed to delete payload: {exc}") from exc


__all__ = ["S3PayloadStore", "StorageError"]
