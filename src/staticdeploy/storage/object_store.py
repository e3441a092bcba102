from __future__ import annotations

from typing import Any, BinaryIO, Mapping

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError
from staticdeploy.config.deploy_config import ConfigGroup
from staticdeploy.exceptions import StorageTransportError
from staticdeploy.logging_config import get_logger


logger = get_logger(__name__)


def build_s3_client(group: ConfigGroup):
    client_kwargs: dict[str, Any] = {
        "config": Config(signature_version="s3v4"),
        "region_name": group.region or "us-east-1",
    }
    if group.endpoint:
        client_kwargs["endpoint_url"] = group.endpoint
    if group.access_key:
        client_kwargs["aws_access_key_id"] = group.access_key
    if group.secret_key:
        client_kwargs["aws_secret_access_key"] = group.secret_key
    return boto3.client("s3", **client_kwargs)


class ObjectStore:
    """Thin wrapper over a boto3 S3 client bound to one bucket.

    The client is built once here, or injected (tests, shared connection pools).
    boto3 clients are thread-safe, so one store may serve concurrent uploads.
    """

    def __init__(self, group: ConfigGroup, client=None):
        self.bucket_name = group.bucket
        self.client = client if client is not None else build_s3_client(group)

    def put_object(
        self,
        key: str,
        body: BinaryIO | bytes,
        content_type: str,
        content_encoding: str | None = None,
        cache_control: str | None = None,
        metadata: Mapping[str, str] | None = None,
        content_length: int | None = None,
    ) -> dict[str, Any]:
        request: dict[str, Any] = {
            "Bucket": self.bucket_name,
            "Key": key,
            "Body": body,
            "ContentType": content_type,
        }
        # botocore rejects None for optional members, so only send what is set.
        if content_encoding:
            request["ContentEncoding"] = content_encoding
        if cache_control:
            request["CacheControl"] = cache_control
        if metadata:
            request["Metadata"] = dict(metadata)
        if content_length is not None:
            request["ContentLength"] = content_length
        try:
            response = self.client.put_object(**request)
        except (ClientError, BotoCoreError) as e:
            raise StorageTransportError(f"Error putting object {key} to bucket {self.bucket_name}: {e}") from e
        logger.debug("Put object: bucket=%s key=%s", self.bucket_name, key)
        return response
