"""Google Cloud Storage object store."""

import logging
from typing import Any

from google.api_core import exceptions as gexc
from google.auth.exceptions import GoogleAuthError
from google.cloud import storage

from sealstore.errors import NotFoundError, UnavailableError
from sealstore.kv.base import Service, check_key, check_value

logger = logging.getLogger(__name__)

_TRANSIENT = (gexc.GoogleAPIError, GoogleAuthError)


class GCSService(Service):
    """Stores each value as the blob ``<prefix><key>`` in one bucket."""

    def __init__(self, bucket: str, prefix: str = "", client: Any = None):
        """Initialize the GCS store.

        Args:
            bucket: Bucket name
            prefix: Blob name prefix shared by all values
            client: Pre-built storage client (default: application default credentials)
        """
        self.bucket_name = bucket
        self.prefix = prefix
        try:
            self._client = client or storage.Client()
        except GoogleAuthError as e:
            raise UnavailableError(f"cannot create GCS client: {e}") from e
        self._bucket = self._client.bucket(bucket)

    @property
    def name(self) -> str:
        return f"gs://{self.bucket_name}/{self.prefix}"

    def get(self, key: str) -> bytes:
        blob_name = self.prefix + check_key(key)
        try:
            return self._bucket.blob(blob_name).download_as_bytes()
        except gexc.NotFound as e:
            raise NotFoundError(key) from e
        except _TRANSIENT as e:
            raise UnavailableError(f"GCS download {blob_name} failed: {e}") from e

    def set(self, key: str, value: bytes) -> None:
        blob_name = self.prefix + check_key(key)
        try:
            self._bucket.blob(blob_name).upload_from_string(check_value(value))
        except _TRANSIENT as e:
            raise UnavailableError(f"GCS upload {blob_name} failed: {e}") from e
        logger.debug(f"Stored {blob_name} in {self.name}")

    def delete(self, key: str) -> None:
        blob_name = self.prefix + check_key(key)
        try:
            self._bucket.blob(blob_name).delete()
        except gexc.NotFound:
            pass
        except _TRANSIENT as e:
            raise UnavailableError(f"GCS delete {blob_name} failed: {e}") from e

    def list(self, prefix: str = "") -> list[str]:
        try:
            blobs = self._client.list_blobs(self.bucket_name, prefix=self.prefix + prefix)
            return sorted(blob.name[len(self.prefix) :] for blob in blobs)
        except _TRANSIENT as e:
            raise UnavailableError(f"GCS list {self.bucket_name} failed: {e}") from e
