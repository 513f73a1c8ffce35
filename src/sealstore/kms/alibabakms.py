"""Alibaba Cloud Key Management Service.

Calls the KMS RPC API (version 2016-01-20) with httpx. Requests are signed
with the access key secret (HMAC-SHA1 over the sorted, percent-encoded
parameters).
"""

import base64
import binascii
import hashlib
import hmac
import logging
import uuid
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

import httpx

from sealstore.errors import DecryptionError, EncryptionError, UnavailableError
from sealstore.kms.base import KeyManager

logger = logging.getLogger(__name__)

API_VERSION = "2016-01-20"


def _percent_encode(value: str) -> str:
    return quote(value, safe="~")


def sign(params: dict[str, str], access_key_secret: str, method: str = "POST") -> str:
    """Compute the RPC signature of a request's parameters."""
    canonical = "&".join(
        f"{_percent_encode(k)}={_percent_encode(v)}" for k, v in sorted(params.items())
    )
    string_to_sign = f"{method}&{_percent_encode('/')}&{_percent_encode(canonical)}"
    digest = hmac.new(
        f"{access_key_secret}&".encode("utf-8"), string_to_sign.encode("utf-8"), hashlib.sha1
    ).digest()
    return base64.b64encode(digest).decode("ascii")


class AlibabaKMS(KeyManager):
    """Encrypts payloads with an Alibaba Cloud KMS customer master key.

    KMS only accepts text plaintexts, so payloads are base64 encoded before
    encryption. The stored ciphertext is the ``CiphertextBlob`` string KMS
    returns.
    """

    def __init__(
        self,
        region: str,
        access_key_id: str,
        access_key_secret: str,
        key_id: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the key manager.

        Args:
            region: KMS region ID (e.g., eu-central-1)
            access_key_id: Alibaba Cloud access key ID
            access_key_secret: Alibaba Cloud access key secret
            key_id: KMS key ID
            timeout: HTTP timeout in seconds
            transport: Custom httpx transport (tests)
        """
        self.region = region
        self.key_id = key_id
        self.endpoint = f"https://kms.{region}.aliyuncs.com"
        self._access_key_id = access_key_id
        self._access_key_secret = access_key_secret
        self.client = httpx.Client(base_url=self.endpoint, timeout=timeout, transport=transport)

    @property
    def name(self) -> str:
        return f"alibabakms:{self.key_id} ({self.region})"

    def _call(self, action: str, error_cls: type[Exception], **params: str) -> dict[str, Any]:
        query = {
            "Action": action,
            "Format": "JSON",
            "Version": API_VERSION,
            "AccessKeyId": self._access_key_id,
            "SignatureMethod": "HMAC-SHA1",
            "SignatureVersion": "1.0",
            "SignatureNonce": uuid.uuid4().hex,
            "Timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            **params,
        }
        query["Signature"] = sign(query, self._access_key_secret)

        try:
            response = self.client.post("/", data=query)
        except httpx.RequestError as e:
            raise UnavailableError(f"Alibaba KMS {action} failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.status_code == 200:
            return body

        code = str(body.get("Code", ""))
        detail = body.get("Message", response.text)
        message = f"Alibaba KMS {action} with {self.key_id} failed: {code} {detail}"
        if response.status_code >= 500 or code.startswith("Throttling"):
            raise UnavailableError(message)
        raise error_cls(message)

    def encrypt(self, plaintext: bytes) -> bytes:
        resp = self._call(
            "Encrypt",
            EncryptionError,
            KeyId=self.key_id,
            Plaintext=base64.b64encode(plaintext).decode("ascii"),
        )
        return resp["CiphertextBlob"].encode("ascii")

    def decrypt(self, ciphertext: bytes) -> bytes:
        resp = self._call(
            "Decrypt",
            DecryptionError,
            CiphertextBlob=ciphertext.decode("ascii", errors="replace"),
        )
        try:
            return base64.b64decode(resp["Plaintext"], validate=True)
        except (KeyError, binascii.Error) as e:
            raise DecryptionError(f"Alibaba KMS returned an unexpected plaintext: {e}") from e

    def close(self) -> None:
        self.client.close()
