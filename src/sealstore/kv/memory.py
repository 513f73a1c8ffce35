"""In-memory store used by the ``dev`` mode and in tests."""

import logging
import threading
from pathlib import Path

from sealstore.errors import NotFoundError
from sealstore.kv.base import Service, check_key, check_value

logger = logging.getLogger(__name__)

ROOT_TOKEN_KEY = "vault-root"
DEV_TOKEN_PATH = Path.home() / ".vault-token"


class MemoryService(Service):
    """Process-local dictionary store.

    NOT DURABLE - values vanish with the process. Only for development
    against ``vault server -dev`` and for tests.
    """

    def __init__(self, initial: dict[str, bytes] | None = None):
        self._data: dict[str, bytes] = dict(initial or {})
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "memory"

    def get(self, key: str) -> bytes:
        check_key(key)
        with self._lock:
            try:
                return self._data[key]
            except KeyError:
                raise NotFoundError(key) from None

    def set(self, key: str, value: bytes) -> None:
        check_key(key)
        value = check_value(value)
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        check_key(key)
        with self._lock:
            self._data.pop(key, None)

    def list(self, prefix: str = "") -> list[str]:
        with self._lock:
            return sorted(k for k in self._data if k.startswith(prefix))


def dev_service(token_path: Path | None = None) -> MemoryService:
    """Create the development store.

    A Vault dev server writes its root token to ``~/.vault-token``; when that
    file exists the token is exposed as ``vault-root``.

    Args:
        token_path: Token file location (default: ~/.vault-token)
    """
    path = token_path or DEV_TOKEN_PATH
    initial: dict[str, bytes] = {}
    if path.exists():
        initial[ROOT_TOKEN_KEY] = path.read_bytes().strip()
        logger.info(f"Loaded dev root token from {path}")
    return MemoryService(initial)
