"""Shared AWS helpers for service clients."""

from __future__ import annotations

from typing import Any

import boto3

from app.config.settings import S3Config


def create_boto3_client(
    service_name: str,
    s3_config: S3Config,
    *,
    region_name: str | None = None,
) -> boto3.client:
    """Instantiate a boto3 client using configured credentials if available."""

    region = region_name or s3_config.region
    client_kwargs: dict[str, Any] = {"region_name": region}
    if s3_config.access_key and s3_config.secret_key:
        client_kwargs["aws_access_key_id"] = s3_config.access_key
        client_kwargs["aws_secret_access_key"] = s3_config.secret_key
    return boto3.client(service_name, **client_kwargs)


__all__ = ["create_boto3_client"]
