"""Azure Key Vault secret store.

Talks to the Key Vault REST API directly with httpx, authenticating with
an ``azure-identity`` credential. Key Vault encrypts secrets at rest with
vault-managed keys, so this store is used on its own rather than behind an
envelope wrapper.
"""

import base64
import binascii
import logging
import re
from typing import Any

import httpx
from azure.core.exceptions import ClientAuthenticationError
from azure.identity import DefaultAzureCredential

from sealstore.errors import NotFoundError, UnavailableError
from sealstore.kv.base import Service, check_key, check_value

logger = logging.getLogger(__name__)

API_VERSION = "7.4"
VAULT_SCOPE = "https://vault.azure.net/.default"

# Secret tag holding the caller's key, which secret names cannot always spell
KEY_TAG = "sealstore-key"

_INVALID_NAME_CHARS = re.compile(r"[^0-9A-Za-z-]")


def secret_name(key: str) -> str:
    """Map a key onto the characters Key Vault accepts in secret names."""
    return _INVALID_NAME_CHARS.sub("-", check_key(key))


def _item_key(item: dict[str, Any]) -> str:
    tags = item.get("tags") or {}
    return tags.get(KEY_TAG) or item["id"].rstrip("/").rsplit("/", 1)[-1]


class AzureKeyVaultService(Service):
    """Stores values as base64 secrets in an Azure Key Vault.

    Secret names only allow letters, digits and dashes, so keys are stored
    under their :func:`secret_name` and carry the original key in the
    ``sealstore-key`` tag. ``list`` reports the tagged keys. Keys that differ
    only in characters outside that alphabet (``a_b`` and ``a.b``) share one
    secret.
    """

    def __init__(
        self,
        vault_name: str,
        credential: Any = None,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the Key Vault store.

        Args:
            vault_name: Key Vault name; the URL is https://<name>.vault.azure.net
            credential: Token credential (default: DefaultAzureCredential)
            timeout: HTTP timeout in seconds
            transport: Custom httpx transport (tests)
        """
        self.vault_name = vault_name
        self.vault_url = f"https://{vault_name}.vault.azure.net"
        self.credential = credential or DefaultAzureCredential()
        self.client = httpx.Client(
            base_url=self.vault_url,
            params={"api-version": API_VERSION},
            timeout=timeout,
            transport=transport,
        )

    @property
    def name(self) -> str:
        return self.vault_url

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            # azure-identity caches tokens until shortly before expiry
            token = self.credential.get_token(VAULT_SCOPE).token
        except ClientAuthenticationError as e:
            raise UnavailableError(f"Key Vault authentication failed: {e}") from e
        try:
            return self.client.request(
                method, url, headers={"Authorization": f"Bearer {token}"}, **kwargs
            )
        except httpx.RequestError as e:
            raise UnavailableError(f"Failed to connect to {self.vault_url}: {e}") from e

    def get(self, key: str) -> bytes:
        response = self._request("GET", f"/secrets/{secret_name(key)}")

        if response.status_code == 404:
            raise NotFoundError(key)
        if response.status_code != 200:
            raise UnavailableError(
                f"Key Vault get {key} failed: {response.status_code} - {response.text}"
            )
        try:
            return base64.b64decode(response.json().get("value", ""), validate=True)
        except binascii.Error as e:
            raise UnavailableError(f"Key Vault secret {key} is not base64 encoded") from e

    def set(self, key: str, value: bytes) -> None:
        encoded = base64.b64encode(check_value(value)).decode("ascii")
        response = self._request(
            "PUT",
            f"/secrets/{secret_name(key)}",
            json={"value": encoded, "tags": {KEY_TAG: key}},
        )

        if response.status_code != 200:
            raise UnavailableError(
                f"Key Vault set {key} failed: {response.status_code} - {response.text}"
            )

    def delete(self, key: str) -> None:
        # Soft-deleted secrets stay recoverable until the vault's retention ends
        response = self._request("DELETE", f"/secrets/{secret_name(key)}")

        if response.status_code not in (200, 404):
            raise UnavailableError(f"Key Vault delete {key} failed: {response.status_code}")

    def list(self, prefix: str = "") -> list[str]:
        names: list[str] = []
        url: str | None = "/secrets"
        while url:
            response = self._request("GET", url)
            if response.status_code != 200:
                raise UnavailableError(f"Key Vault list failed: {response.status_code}")
            body = response.json()
            names.extend(_item_key(item) for item in body["value"])
            url = body.get("nextLink")
        return sorted(n for n in names if n.startswith(prefix))

    def close(self) -> None:
        self.client.close()
