"""S3 backend implementing IConfigStore."""

from __future__ import annotations

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from nmwguard.core.exceptions import ConfigurationError


class S3ConfigStore:
    """Production IConfigStore backed by S3.

    The version stamp combines ETag and LastModified from a HEAD request, so
    an unchanged object is never downloaded twice.
    """

    def __init__(self, bucket: str, prefix: str = "", region: str = "eu-west-2",
                 endpoint_url: str | None = None) -> None:
        self._bucket = bucket
        self._prefix = prefix
        self._region = region
        self._endpoint_url = endpoint_url
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._client = boto3.client("s3", **kwargs)

    def _key(self, name: str) -> str:
        return f"{self._prefix}{name}"

    def read(self, name: str) -> bytes:
        try:
            resp = self._client.get_object(Bucket=self._bucket, Key=self._key(name))
            return resp["Body"].read()
        except (ClientError, BotoCoreError) as exc:
            raise ConfigurationError(name, f"S3 read failed for s3://{self._bucket}/{self._key(name)}: {exc}") from exc

    def version(self, name: str) -> str:
        try:
            resp = self._client.head_object(Bucket=self._bucket, Key=self._key(name))
        except (ClientError, BotoCoreError) as exc:
            raise ConfigurationError(name, f"S3 head failed for s3://{self._bucket}/{self._key(name)}: {exc}") from exc
        etag = resp.get("ETag", "").strip('"')
        return f"{etag}@{resp['LastModified'].isoformat()}"
