"""Kubernetes Secret store.

All keys live in the ``data`` map of a single Secret object, which is
created on the first write.
"""

import base64
import logging
from typing import Any

from kubernetes import client as k8s_client
from kubernetes import config as k8s_config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import HTTPError

from sealstore.errors import ConfigurationError, NotFoundError, UnavailableError
from sealstore.kv.base import Service, check_key, check_value

logger = logging.getLogger(__name__)


def _load_api() -> Any:
    """Build a CoreV1Api client, preferring in-cluster credentials."""
    try:
        k8s_config.load_incluster_config()
    except ConfigException:
        try:
            k8s_config.load_kube_config()
        except (ConfigException, OSError) as e:
            raise ConfigurationError(f"no Kubernetes configuration found: {e}") from e
    return k8s_client.CoreV1Api()


class KubernetesSecretService(Service):
    """Stores values in one Kubernetes Secret."""

    def __init__(
        self,
        namespace: str,
        secret_name: str,
        labels: dict[str, str] | None = None,
        api: Any = None,
    ):
        """Initialize the Secret store.

        Args:
            namespace: Namespace of the Secret
            secret_name: Name of the Secret
            labels: Labels applied when the Secret is created
            api: Pre-built ``CoreV1Api`` (default: in-cluster, then kubeconfig)
        """
        self.namespace = namespace
        self.secret_name = secret_name
        self.labels = dict(labels or {})
        self._api = api or _load_api()

    @property
    def name(self) -> str:
        return f"k8s://{self.namespace}/{self.secret_name}"

    def _read(self) -> Any | None:
        try:
            return self._api.read_namespaced_secret(self.secret_name, self.namespace)
        except ApiException as e:
            if e.status == 404:
                return None
            raise UnavailableError(f"reading secret {self.name} failed: {e.reason}") from e
        except HTTPError as e:
            raise UnavailableError(f"reading secret {self.name} failed: {e}") from e

    def get(self, key: str) -> bytes:
        check_key(key)
        secret = self._read()
        data = (secret.data or {}) if secret is not None else {}
        if key not in data:
            raise NotFoundError(key)
        return base64.b64decode(data[key])

    def set(self, key: str, value: bytes) -> None:
        check_key(key)
        encoded = base64.b64encode(check_value(value)).decode("ascii")
        try:
            if self._read() is None:
                try:
                    self._create({key: encoded})
                    logger.info(f"Created secret {self.name}")
                    return
                except ApiException as e:
                    # Someone else created it first; fall through to patch
                    if e.status != 409:
                        raise
            self._api.patch_namespaced_secret(
                self.secret_name, self.namespace, {"data": {key: encoded}}
            )
        except ApiException as e:
            raise UnavailableError(f"writing secret {self.name} failed: {e.reason}") from e
        except HTTPError as e:
            raise UnavailableError(f"writing secret {self.name} failed: {e}") from e

    def _create(self, data: dict[str, str]) -> None:
        body = k8s_client.V1Secret(
            metadata=k8s_client.V1ObjectMeta(name=self.secret_name, labels=self.labels or None),
            type="Opaque",
            data=data,
        )
        self._api.create_namespaced_secret(self.namespace, body)

    def delete(self, key: str) -> None:
        check_key(key)
        secret = self._read()
        if secret is None or key not in (secret.data or {}):
            return
        try:
            # A null value removes the entry under strategic merge patch
            self._api.patch_namespaced_secret(
                self.secret_name, self.namespace, {"data": {key: None}}
            )
        except ApiException as e:
            if e.status == 404:
                return
            raise UnavailableError(f"deleting {key} from {self.name} failed: {e.reason}") from e
        except HTTPError as e:
            raise UnavailableError(f"deleting {key} from {self.name} failed: {e}") from e

    def list(self, prefix: str = "") -> list[str]:
        secret = self._read()
        if secret is None:
            return []
        return sorted(k for k in (secret.data or {}) if k.startswith(prefix))
