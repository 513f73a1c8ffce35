"""Google Cloud KMS, through the discovery-based Cloud KMS v1 API."""

import base64
import logging
from typing import Any

import google.auth
from google.auth.exceptions import GoogleAuthError
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from httplib2 import HttpLib2Error

from sealstore.errors import DecryptionError, EncryptionError, UnavailableError
from sealstore.kms.base import KeyManager

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/cloudkms"]

_TRANSIENT_STATUS = {429, 500, 502, 503, 504}
_TRANSPORT_ERRORS = (HttpLib2Error, GoogleAuthError, OSError)


class GoogleCloudKMS(KeyManager):
    """Encrypts payloads with a Cloud KMS symmetric crypto key."""

    def __init__(
        self,
        project: str,
        location: str,
        key_ring: str,
        crypto_key: str,
        client: Any = None,
    ):
        """Initialize the key manager.

        Args:
            project: GCP project ID
            location: KMS location (e.g., global, europe-west1)
            key_ring: Key ring name
            crypto_key: Crypto key name
            client: Pre-built ``cloudkms`` v1 service resource
        """
        self.key_name = (
            f"projects/{project}/locations/{location}/keyRings/{key_ring}/cryptoKeys/{crypto_key}"
        )
        if client is None:
            try:
                credentials, _ = google.auth.default(scopes=SCOPES)
            except GoogleAuthError as e:
                raise UnavailableError(f"cannot load Google credentials: {e}") from e
            client = build("cloudkms", "v1", credentials=credentials, cache_discovery=False)
        self._keys = client.projects().locations().keyRings().cryptoKeys()

    @property
    def name(self) -> str:
        return f"gckms:{self.key_name}"

    def _execute(self, method: str, body: dict[str, str], error_cls: type[Exception]) -> dict:
        request = getattr(self._keys, method)(name=self.key_name, body=body)
        try:
            return request.execute()
        except HttpError as e:
            if e.resp.status in _TRANSIENT_STATUS:
                raise UnavailableError(f"Cloud KMS {method} failed: {e}") from e
            raise error_cls(f"Cloud KMS {method} with {self.key_name} failed: {e}") from e
        except _TRANSPORT_ERRORS as e:
            raise UnavailableError(f"Cloud KMS {method} failed: {e}") from e

    def encrypt(self, plaintext: bytes) -> bytes:
        body = {"plaintext": base64.b64encode(plaintext).decode("ascii")}
        resp = self._execute("encrypt", body, EncryptionError)
        return base64.b64decode(resp["ciphertext"])

    def decrypt(self, ciphertext: bytes) -> bytes:
        body = {"ciphertext": base64.b64encode(ciphertext).decode("ascii")}
        resp = self._execute("decrypt", body, DecryptionError)
        # Cloud KMS omits the field for an empty plaintext
        return base64.b64decode(resp.get("plaintext", ""))
