"""PKCS#11 session handling (python-pkcs11).

A session is opened once against a token (found by slot ID or label),
logged in with a PIN, and an RSA key pair with a given label is used for
RSA-OAEP encrypt/decrypt. The pair is generated on the token if missing.
"""

import logging
import threading
from typing import Any

import pkcs11
from pkcs11 import Attribute, KeyType, Mechanism, ObjectClass
from pkcs11.exceptions import NoSuchKey, PKCS11Error

from sealstore.config.schema import HSMConfig
from sealstore.errors import (
    ConfigurationError,
    DecryptionError,
    EncryptionError,
    UnavailableError,
)

logger = logging.getLogger(__name__)

DATA_APPLICATION = "sealstore"
OAEP = Mechanism.RSA_PKCS_OAEP


class PKCS11Session:
    """A logged-in PKCS#11 session and the key pair used for encryption.

    Hardware sessions are not reentrant, so every operation holds a lock.
    Opening the session is the only step that can fail for configuration
    reasons; it raises ``ConfigurationError``.
    """

    def __init__(
        self,
        module_path: str,
        pin: str,
        key_label: str,
        slot_id: int | None = None,
        token_label: str = "",
        key_bits: int = 2048,
    ):
        """Open the session.

        Args:
            module_path: Path of the vendor PKCS#11 shared library
            pin: User PIN of the token
            key_label: Label of the RSA key pair
            slot_id: Slot holding the token
            token_label: Token label, used when no slot ID is given
            key_bits: Modulus size when the key pair has to be generated
        """
        self.key_label = key_label
        self.token_label = token_label
        self._lock = threading.Lock()
        self._closed = False

        try:
            lib = pkcs11.lib(module_path)
            token = self._find_token(lib, slot_id, token_label)
            self._session = token.open(rw=True, user_pin=pin)
        except (PKCS11Error, RuntimeError, OSError) as e:
            raise ConfigurationError(f"cannot open HSM session via {module_path}: {e!r}") from e

        try:
            self._public, self._private = self._find_or_generate_keys(key_bits)
        except PKCS11Error as e:
            self._session.close()
            raise ConfigurationError(f"cannot load HSM key {key_label!r}: {e!r}") from e

        logger.info(f"Opened HSM session on token {self.token_label!r} with key {key_label!r}")

    @classmethod
    def from_config(cls, config: HSMConfig) -> "PKCS11Session":
        return cls(
            module_path=config.module_path,
            pin=config.pin.get_secret_value(),
            key_label=config.key_label,
            slot_id=config.slot_id,
            token_label=config.token_label,
        )

    def _find_token(self, lib: Any, slot_id: int | None, token_label: str) -> Any:
        if slot_id is None:
            return lib.get_token(token_label=token_label)

        for slot in lib.get_slots(token_present=True):
            if slot.slot_id == slot_id:
                token = slot.get_token()
                if token_label and token.label != token_label:
                    raise ConfigurationError(
                        f"token in slot {slot_id} is {token.label!r}, expected {token_label!r}"
                    )
                self.token_label = token.label
                return token
        raise ConfigurationError(f"no token present in HSM slot {slot_id}")

    def _find_or_generate_keys(self, key_bits: int) -> tuple[Any, Any]:
        try:
            public = self._session.get_key(
                object_class=ObjectClass.PUBLIC_KEY, key_type=KeyType.RSA, label=self.key_label
            )
            private = self._session.get_key(
                object_class=ObjectClass.PRIVATE_KEY, key_type=KeyType.RSA, label=self.key_label
            )
            return public, private
        except NoSuchKey:
            logger.info(f"HSM key {self.key_label!r} not found, generating RSA-{key_bits} pair")
            return self._session.generate_keypair(
                KeyType.RSA, key_bits, label=self.key_label, store=True
            )

    def encrypt(self, plaintext: bytes) -> bytes:
        with self._lock:
            try:
                return self._public.encrypt(plaintext, mechanism=OAEP)
            except PKCS11Error as e:
                raise EncryptionError(f"HSM encrypt failed: {e!r}") from e

    def decrypt(self, ciphertext: bytes) -> bytes:
        with self._lock:
            try:
                return self._private.decrypt(ciphertext, mechanism=OAEP)
            except PKCS11Error as e:
                raise DecryptionError(f"HSM decrypt failed: {e!r}") from e

    def _data_objects(self, label: str | None = None) -> list[Any]:
        template = {
            Attribute.CLASS: ObjectClass.DATA,
            Attribute.APPLICATION: DATA_APPLICATION,
        }
        if label is not None:
            template[Attribute.LABEL] = label
        return list(self._session.get_objects(template))

    def load(self, label: str) -> bytes | None:
        """Read the on-token DATA object with a label, or None."""
        with self._lock:
            try:
                objects = self._data_objects(label)
                return bytes(objects[0][Attribute.VALUE]) if objects else None
            except PKCS11Error as e:
                raise UnavailableError(f"HSM read of {label} failed: {e!r}") from e

    def store(self, label: str, value: bytes) -> None:
        """Create or replace an on-token DATA object."""
        with self._lock:
            try:
                previous = self._data_objects(label)
                # New object first, so a failed write leaves the old value
                self._session.create_object(
                    {
                        Attribute.CLASS: ObjectClass.DATA,
                        Attribute.APPLICATION: DATA_APPLICATION,
                        Attribute.LABEL: label,
                        Attribute.VALUE: value,
                        Attribute.TOKEN: True,
                        Attribute.PRIVATE: True,
                    }
                )
                for obj in previous:
                    obj.destroy()
            except PKCS11Error as e:
                raise UnavailableError(f"HSM write of {label} failed: {e!r}") from e

    def remove(self, label: str) -> None:
        with self._lock:
            try:
                for obj in self._data_objects(label):
                    obj.destroy()
            except PKCS11Error as e:
                raise UnavailableError(f"HSM delete of {label} failed: {e!r}") from e

    def labels(self) -> list[str]:
        with self._lock:
            try:
                return sorted({obj[Attribute.LABEL] for obj in self._data_objects()})
            except PKCS11Error as e:
                raise UnavailableError(f"HSM listing failed: {e!r}") from e

    def close(self) -> None:
        """Log out and close the session. Safe to call more than once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._session.close()
        logger.info(f"Closed HSM session on token {self.token_label!r}")
