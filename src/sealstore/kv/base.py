"""The storage contract every backend implements."""

from abc import ABC, abstractmethod

from sealstore.errors import NotFoundError


class Service(ABC):
    """Abstract base class for secret key-value stores.

    Values are opaque byte strings. Implementations translate their
    substrate's failures into :mod:`sealstore.errors` classes so callers
    never see SDK-specific exceptions.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable location of this store, used in logs and reports."""

    @abstractmethod
    def get(self, key: str) -> bytes:
        """Retrieve the value stored under a key.

        Args:
            key: Secret key

        Returns:
            Stored value

        Raises:
            NotFoundError: If the key is absent
            UnavailableError: If the substrate cannot be reached
            DecryptionError: If stored ciphertext cannot be decrypted
        """

    @abstractmethod
    def set(self, key: str, value: bytes) -> None:
        """Store a value, replacing any existing one.

        Args:
            key: Secret key
            value: Value to store

        Raises:
            UnavailableError: If the substrate cannot be reached
            EncryptionError: If the key-management service rejects the value
        """

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete a key. Deleting an absent key is not an error.

        Args:
            key: Secret key
        """

    @abstractmethod
    def list(self, prefix: str = "") -> list[str]:
        """List stored keys.

        Args:
            prefix: Optional key prefix filter

        Returns:
            Sorted list of matching keys
        """

    def exists(self, key: str) -> bool:
        """Check whether a key is present.

        Other errors than ``NotFoundError`` propagate, so an outage is never
        mistaken for absence.
        """
        try:
            self.get(key)
        except NotFoundError:
            return False
        return True

    def close(self) -> None:
        """Release connections held by this store."""

    def __enter__(self) -> "Service":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


def check_key(key: str) -> str:
    """Reject empty keys before they reach a substrate."""
    if not isinstance(key, str) or not key:
        raise ValueError("key must be a non-empty string")
    return key


def check_value(value: bytes) -> bytes:
    """Reject values that are not bytes."""
    if not isinstance(value, (bytes, bytearray)):
        raise TypeError(f"value must be bytes, not {type(value).__name__}")
    return bytes(value)
