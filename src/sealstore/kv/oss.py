"""Alibaba Cloud Object Storage Service (OSS) store.

OSS exposes an S3-compatible API, so this is the S3 store pointed at an
OSS endpoint with Alibaba Cloud credentials.
"""

from typing import Any

import boto3
from botocore.config import Config

from sealstore.kv.s3 import S3Service


class OSSService(S3Service):
    """Stores each value as the object ``<prefix><key>`` in one OSS bucket."""

    def __init__(
        self,
        endpoint: str,
        access_key_id: str,
        access_key_secret: str,
        bucket: str,
        prefix: str = "",
        client: Any = None,
    ):
        """Initialize the OSS store.

        Args:
            endpoint: OSS endpoint (e.g., https://oss-eu-central-1.aliyuncs.com)
            access_key_id: Alibaba Cloud access key ID
            access_key_secret: Alibaba Cloud access key secret
            bucket: Bucket name
            prefix: Object key prefix shared by all values
            client: Pre-built S3-compatible client (default: built from the arguments)
        """
        self.endpoint = endpoint
        client = client or boto3.client(
            "s3",
            endpoint_url=endpoint,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=access_key_secret,
            # OSS only serves virtual-hosted-style requests
            config=Config(signature_version="s3", s3={"addressing_style": "virtual"}),
        )
        super().__init__(region="", bucket=bucket, prefix=prefix, client=client)

    @property
    def name(self) -> str:
        return f"oss://{self.bucket}/{self.prefix}"
