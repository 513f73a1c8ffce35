"""AWS S3 object store."""

import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from sealstore.errors import NotFoundError, UnavailableError
from sealstore.kv.base import Service, check_key, check_value

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"NoSuchKey", "NotFound", "404"}


def _error_code(e: ClientError) -> str:
    return str(e.response.get("Error", {}).get("Code", ""))


class S3Service(Service):
    """Stores each value as the object ``<prefix><key>`` in one bucket."""

    def __init__(self, region: str, bucket: str, prefix: str = "", client: Any = None):
        """Initialize the S3 store.

        Args:
            region: AWS region of the bucket
            bucket: Bucket name
            prefix: Object key prefix shared by all values
            client: Pre-built S3 client (default: boto3 client for the region)
        """
        self.region = region
        self.bucket = bucket
        self.prefix = prefix
        self._client = client or boto3.client("s3", region_name=region)

    @property
    def name(self) -> str:
        return f"s3://{self.bucket}/{self.prefix} ({self.region})"

    def get(self, key: str) -> bytes:
        object_key = self.prefix + check_key(key)
        try:
            resp = self._client.get_object(Bucket=self.bucket, Key=object_key)
            return resp["Body"].read()
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                raise NotFoundError(key) from e
            raise UnavailableError(f"S3 get {object_key} failed: {e}") from e
        except BotoCoreError as e:
            raise UnavailableError(f"S3 get {object_key} failed: {e}") from e

    def set(self, key: str, value: bytes) -> None:
        object_key = self.prefix + check_key(key)
        try:
            self._client.put_object(Bucket=self.bucket, Key=object_key, Body=check_value(value))
        except (ClientError, BotoCoreError) as e:
            raise UnavailableError(f"S3 put {object_key} failed: {e}") from e
        logger.debug(f"Stored {object_key} in {self.name}")

    def delete(self, key: str) -> None:
        object_key = self.prefix + check_key(key)
        try:
            # S3 reports success for missing objects
            self._client.delete_object(Bucket=self.bucket, Key=object_key)
        except (ClientError, BotoCoreError) as e:
            raise UnavailableError(f"S3 delete {object_key} failed: {e}") from e

    def list(self, prefix: str = "") -> list[str]:
        keys = []
        try:
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=self.prefix + prefix):
                for obj in page.get("Contents", []):
                    keys.append(obj["Key"][len(self.prefix) :])
        except (ClientError, BotoCoreError) as e:
            raise UnavailableError(f"S3 list {self.bucket} failed: {e}") from e
        return sorted(keys)
