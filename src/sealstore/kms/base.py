"""Envelope encryption: any key manager in front of any store."""

import logging
from abc import ABC, abstractmethod

from sealstore.errors import DecryptionError, EncryptionError, UnavailableError
from sealstore.kv.base import Service, check_key, check_value

logger = logging.getLogger(__name__)


class KeyManager(ABC):
    """Abstract base class for external key-management services.

    Implementations raise ``EncryptionError``/``DecryptionError`` when the
    service rejects an operation and ``UnavailableError`` when it cannot be
    reached. Key material never leaves the service.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier of the key, e.g. a key ARN or resource path."""

    @abstractmethod
    def encrypt(self, plaintext: bytes) -> bytes:
        """Encrypt a payload.

        Args:
            plaintext: Data to encrypt

        Returns:
            Ciphertext, including whatever envelope metadata the provider needs
        """

    @abstractmethod
    def decrypt(self, ciphertext: bytes) -> bytes:
        """Decrypt a payload produced by :meth:`encrypt`.

        Args:
            ciphertext: Data to decrypt

        Returns:
            Original plaintext
        """

    def close(self) -> None:
        """Release client resources."""


class EnvelopeService(Service):
    """Encrypts values with a key manager before handing them to a store.

    Only ciphertext ever reaches the inner store. If encryption fails
    nothing is written; if the inner write fails the key manager has no
    durable side effect, so the caller observes an all-or-nothing ``set``.
    """

    def __init__(self, inner: Service, key_manager: KeyManager):
        """Initialize the envelope.

        Args:
            inner: Store that receives ciphertext
            key_manager: Service performing encrypt/decrypt
        """
        self.inner = inner
        self.key_manager = key_manager

    @property
    def name(self) -> str:
        return f"{self.key_manager.name} -> {self.inner.name}"

    def get(self, key: str) -> bytes:
        ciphertext = self.inner.get(check_key(key))
        try:
            return self.key_manager.decrypt(ciphertext)
        except (DecryptionError, UnavailableError):
            raise
        except Exception as e:
            raise DecryptionError(f"cannot decrypt {key} with {self.key_manager.name}: {e}") from e

    def set(self, key: str, value: bytes) -> None:
        check_key(key)
        plaintext = check_value(value)
        try:
            ciphertext = self.key_manager.encrypt(plaintext)
        except (EncryptionError, UnavailableError):
            raise
        except Exception as e:
            raise EncryptionError(f"cannot encrypt {key} with {self.key_manager.name}: {e}") from e
        self.inner.set(key, ciphertext)
        logger.debug(f"Stored encrypted {key} in {self.inner.name}")

    def delete(self, key: str) -> None:
        self.inner.delete(key)

    def list(self, prefix: str = "") -> list[str]:
        return self.inner.list(prefix)

    def close(self) -> None:
        try:
            self.key_manager.close()
        finally:
            self.inner.close()
