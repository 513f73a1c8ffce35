"""HashiCorp Vault KV v2 store.

Keeps unseal material of one Vault inside another (typically a central,
already-unsealed Vault). Supports:
- Static token authentication (or VAULT_TOKEN env var)
- Kubernetes service account authentication
"""

import base64
import binascii
import logging
import os
from pathlib import Path
from typing import Any

import httpx

from sealstore.errors import ConfigurationError, NotFoundError, UnavailableError
from sealstore.kv.base import Service, check_key, check_value

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_PATH = "/var/run/secrets/kubernetes.io/serviceaccount/token"


class VaultService(Service):
    """Stores each value as a KV v2 secret ``<unseal_keys_path>/<key>``.

    The value is base64 encoded in the secret's ``value`` field.
    """

    def __init__(
        self,
        address: str,
        unseal_keys_path: str,
        role: str = "",
        auth_path: str = "kubernetes",
        token_path: str = DEFAULT_TOKEN_PATH,
        token: str = "",
        namespace: str | None = None,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the Vault store and authenticate.

        Args:
            address: Vault server address
            unseal_keys_path: ``<mount>/<path>`` under which keys are stored
            role: Kubernetes auth role (enables Kubernetes login when set)
            auth_path: Mount path of the Kubernetes auth method
            token_path: Service account JWT location
            token: Static Vault token (or use VAULT_TOKEN env var)
            namespace: Vault namespace (enterprise feature)
            timeout: HTTP timeout in seconds
            transport: Custom httpx transport (tests)
        """
        mount, _, path = unseal_keys_path.strip("/").partition("/")
        if not mount:
            raise ConfigurationError("Vault unseal keys path must include a mount point")

        self.address = address
        self.mount_point = mount
        self.path = path
        self.role = role
        self.auth_path = auth_path.strip("/")

        headers = {}
        if namespace:
            headers["X-Vault-Namespace"] = namespace
        self.client = httpx.Client(
            base_url=address,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

        try:
            if role:
                vault_token = self._kubernetes_login(token_path)
            else:
                vault_token = token or os.getenv("VAULT_TOKEN")
            if not vault_token:
                raise ConfigurationError(
                    "Vault token required (set VAULT_TOKEN, pass a token, or configure a role)"
                )
        except Exception:
            self.client.close()
            raise
        self.client.headers["X-Vault-Token"] = vault_token

    @property
    def name(self) -> str:
        return f"{self.address}/v1/{self.mount_point}/{self.path}"

    def _kubernetes_login(self, token_path: str) -> str:
        """Exchange the service account JWT for a Vault token."""
        try:
            jwt = Path(token_path).read_text().strip()
        except OSError as e:
            raise ConfigurationError(f"cannot read service account token {token_path}: {e}") from e

        response = self._request(
            "POST",
            f"/v1/auth/{self.auth_path}/login",
            json={"role": self.role, "jwt": jwt},
        )
        if response.status_code != 200:
            raise ConfigurationError(
                f"Vault Kubernetes login failed: {response.status_code} - {response.text}"
            )
        logger.info(f"Authenticated to {self.address} with role {self.role!r}")
        return response.json()["auth"]["client_token"]

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return self.client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            raise UnavailableError(f"Failed to connect to Vault: {e}") from e

    def _secret_path(self, kind: str, key: str = "") -> str:
        parts = [self.mount_point, kind, self.path, key]
        return "/v1/" + "/".join(p for p in parts if p)

    def get(self, key: str) -> bytes:
        response = self._request("GET", self._secret_path("data", check_key(key)))

        if response.status_code == 404:
            raise NotFoundError(key)
        if response.status_code != 200:
            raise UnavailableError(f"Vault error: {response.status_code} - {response.text}")

        # KV v2 nests data under data.data
        secret_data = (response.json().get("data") or {}).get("data") or {}
        if "value" not in secret_data:
            raise NotFoundError(key)
        try:
            return base64.b64decode(secret_data["value"], validate=True)
        except binascii.Error as e:
            raise UnavailableError(f"Vault secret {key} is not base64 encoded") from e

    def set(self, key: str, value: bytes) -> None:
        payload = {"data": {"value": base64.b64encode(check_value(value)).decode("ascii")}}
        response = self._request("POST", self._secret_path("data", check_key(key)), json=payload)

        if response.status_code not in (200, 204):
            raise UnavailableError(
                f"Failed to store secret: {response.status_code} - {response.text}"
            )

    def delete(self, key: str) -> None:
        # Deleting metadata removes every version of the secret
        response = self._request("DELETE", self._secret_path("metadata", check_key(key)))

        if response.status_code not in (200, 204, 404):
            raise UnavailableError(f"Failed to delete secret: {response.status_code}")

    def list(self, prefix: str = "") -> list[str]:
        response = self._request("LIST", self._secret_path("metadata"))

        if response.status_code == 404:
            return []
        if response.status_code != 200:
            raise UnavailableError(f"Failed to list secrets: {response.status_code}")

        keys = response.json().get("data", {}).get("keys", [])
        # Trailing slashes mark sub-folders, which are not keys
        return sorted(k for k in keys if k.startswith(prefix) and not k.endswith("/"))

    def close(self) -> None:
        self.client.close()
