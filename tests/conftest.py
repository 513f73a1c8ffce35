"""Pytest configuration and shared fixtures."""

from cryptography.fernet import Fernet
import pytest

from sealstore.config.schema import StoreConfig
from sealstore.errors import UnavailableError
from sealstore.kms.fernet import FernetKeyManager
from sealstore.kv.base import Service
from sealstore.kv.memory import MemoryService


class FlakyService(Service):
    """Memory-backed store that can be switched to fail every call."""

    def __init__(self, label: str, fail: bool = False):
        self.label = label
        self.fail = fail
        self.backing = MemoryService()
        self.closed = False
        self.calls: list[str] = []

    @property
    def name(self) -> str:
        return self.label

    def _check(self, op: str) -> None:
        self.calls.append(op)
        if self.fail:
            raise UnavailableError(f"{self.label} is down")

    def get(self, key: str) -> bytes:
        self._check("get")
        return self.backing.get(key)

    def set(self, key: str, value: bytes) -> None:
        self._check("set")
        self.backing.set(key, value)

    def delete(self, key: str) -> None:
        self._check("delete")
        self.backing.delete(key)

    def list(self, prefix: str = "") -> list[str]:
        self._check("list")
        return self.backing.list(prefix)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def default_config() -> StoreConfig:
    """Provide a default configuration for tests."""
    return StoreConfig()


@pytest.fixture
def memory_store() -> MemoryService:
    """Provide an empty in-memory store."""
    return MemoryService()


@pytest.fixture
def fernet_key() -> bytes:
    """Provide a fresh Fernet key."""
    return Fernet.generate_key()


@pytest.fixture
def fernet(fernet_key) -> FernetKeyManager:
    """Provide a local key manager."""
    return FernetKeyManager(fernet_key)


@pytest.fixture
def flaky():
    """Factory for named stores that can be taken offline."""
    return FlakyService
