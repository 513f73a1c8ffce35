"""AWS Key Management Service."""

import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from sealstore.errors import DecryptionError, EncryptionError, UnavailableError
from sealstore.kms.base import KeyManager

logger = logging.getLogger(__name__)

DEFAULT_ENCRYPTION_CONTEXT = {"Tool": "sealstore"}

# Codes that mean "try again later" rather than "this key refuses"
_TRANSIENT_CODES = {
    "ThrottlingException",
    "RequestLimitExceeded",
    "KMSInternalException",
    "DependencyTimeoutException",
}


class AWSKMS(KeyManager):
    """Encrypts payloads directly with a KMS key.

    Every ciphertext is bound to an encryption context, so a blob copied into
    another tool's storage cannot be decrypted there.
    """

    def __init__(
        self,
        region: str,
        key_id: str,
        encryption_context: dict[str, str] | None = None,
        client: Any = None,
    ):
        """Initialize the key manager.

        Args:
            region: AWS region of the key
            key_id: Key ID, ARN or alias
            encryption_context: Additional authenticated data bound to ciphertexts
            client: Pre-built KMS client (default: boto3 client for the region)
        """
        self.region = region
        self.key_id = key_id
        self.encryption_context = dict(encryption_context or DEFAULT_ENCRYPTION_CONTEXT)
        self._client = client or boto3.client("kms", region_name=region)

    @property
    def name(self) -> str:
        return f"awskms:{self.key_id} ({self.region})"

    def encrypt(self, plaintext: bytes) -> bytes:
        try:
            resp = self._client.encrypt(
                KeyId=self.key_id,
                Plaintext=plaintext,
                EncryptionContext=self.encryption_context,
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in _TRANSIENT_CODES:
                raise UnavailableError(f"AWS KMS encrypt failed: {e}") from e
            raise EncryptionError(f"AWS KMS encrypt with {self.key_id} failed: {e}") from e
        except BotoCoreError as e:
            raise UnavailableError(f"AWS KMS encrypt failed: {e}") from e
        return resp["CiphertextBlob"]

    def decrypt(self, ciphertext: bytes) -> bytes:
        try:
            resp = self._client.decrypt(
                KeyId=self.key_id,
                CiphertextBlob=ciphertext,
                EncryptionContext=self.encryption_context,
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in _TRANSIENT_CODES:
                raise UnavailableError(f"AWS KMS decrypt failed: {e}") from e
            raise DecryptionError(f"AWS KMS decrypt with {self.key_id} failed: {e}") from e
        except BotoCoreError as e:
            raise UnavailableError(f"AWS KMS decrypt failed: {e}") from e
        return resp["Plaintext"]
