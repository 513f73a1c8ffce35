"""Local Fernet key manager for development and tests.

NOT A KEY CUSTODIAN - the key lives in process memory (and wherever the
caller got it from). Production deployments use a cloud KMS or an HSM.
"""

import logging

from cryptography.fernet import Fernet, InvalidToken

from sealstore.errors import DecryptionError
from sealstore.kms.base import KeyManager

logger = logging.getLogger(__name__)


class FernetKeyManager(KeyManager):
    """AES-128-CBC + HMAC-SHA256 authenticated encryption with a local key."""

    def __init__(self, key: bytes | str | None = None):
        """Initialize the key manager.

        Args:
            key: URL-safe base64 Fernet key. A fresh key is generated if omitted.
        """
        if key is None:
            key = Fernet.generate_key()
            logger.warning("No Fernet key supplied, generated an ephemeral one")
        self._fernet = Fernet(key)

    @property
    def name(self) -> str:
        return "fernet:local"

    def encrypt(self, plaintext: bytes) -> bytes:
        return self._fernet.encrypt(plaintext)

    def decrypt(self, ciphertext: bytes) -> bytes:
        try:
            return self._fernet.decrypt(ciphertext)
        except InvalidToken as e:
            raise DecryptionError(
                "ciphertext was tampered with or encrypted under another key"
            ) from e
