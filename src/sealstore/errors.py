"""Error taxonomy shared by every storage backend.

Callers distinguish outcomes by class:

- ``NotFoundError``: the key was never written (or was deleted)
- ``UnavailableError``: the substrate could not be reached, retry later
- ``EncryptionError`` / ``DecryptionError``: the key-management boundary
  rejected the operation, usually needs an operator
- ``ConfigurationError``: raised only while building a store
- ``PartialReplicationError``: an aggregate write reached some replicas only
"""


class SealStoreError(Exception):
    """Base class for all sealstore errors.

    Attributes:
        failures: Per-member causes when the error summarises several stores
    """

    def __init__(self, message: str, failures: dict[str, Exception] | None = None):
        super().__init__(message)
        self.failures: dict[str, Exception] = dict(failures or {})


class NotFoundError(SealStoreError):
    """The requested key does not exist."""

    def __init__(
        self,
        key: str,
        message: str | None = None,
        failures: dict[str, Exception] | None = None,
    ):
        super().__init__(message or f"key not found: {key}", failures)
        self.key = key


class UnavailableError(SealStoreError):
    """The storage substrate or key-management service could not be reached."""


class EncryptionError(SealStoreError):
    """The key-management service refused to encrypt."""


class DecryptionError(SealStoreError):
    """Stored ciphertext could not be turned back into plaintext."""


class ConfigurationError(SealStoreError):
    """Invalid, missing or inconsistent configuration."""


class PartialReplicationError(SealStoreError):
    """An aggregate write or delete failed on at least one member."""


def describe_failures(failures: dict[str, Exception]) -> str:
    """Render per-member failures as ``name: error`` pairs."""
    return "; ".join(f"{name}: {err}" for name, err in failures.items())
