"""HSM-backed key manager and store.

Two compositions are supported:

- with an inner store, values are encrypted on the HSM and the ciphertext
  is kept in that store (e.g. a Kubernetes Secret, mode ``hsm-k8s``)
- without one, ciphertext is kept on the token itself as private DATA
  objects (mode ``hsm``)

Example:
    >>> from sealstore.hsm import HSMService
    >>> store = HSMService(config.hsm)
    >>> store.set("vault-root", token)
    >>> store.close()   # logs out of the token
"""

from typing import Protocol

from sealstore.config.schema import HSMConfig
from sealstore.errors import ConfigurationError, NotFoundError
from sealstore.kms.base import EnvelopeService, KeyManager
from sealstore.kv.base import Service, check_key, check_value


class HSMSession(Protocol):
    """Operations the HSM store needs from an open token session."""

    key_label: str
    token_label: str

    def encrypt(self, plaintext: bytes) -> bytes: ...

    def decrypt(self, ciphertext: bytes) -> bytes: ...

    def load(self, label: str) -> bytes | None: ...

    def store(self, label: str, value: bytes) -> None: ...

    def remove(self, label: str) -> None: ...

    def labels(self) -> list[str]: ...

    def close(self) -> None: ...


class HSMKeyManager(KeyManager):
    """Key manager backed by an HSM session."""

    def __init__(self, session: HSMSession):
        self.session = session

    @property
    def name(self) -> str:
        return f"hsm:{self.session.token_label}/{self.session.key_label}"

    def encrypt(self, plaintext: bytes) -> bytes:
        return self.session.encrypt(plaintext)

    def decrypt(self, ciphertext: bytes) -> bytes:
        return self.session.decrypt(ciphertext)

    def close(self) -> None:
        self.session.close()


class HSMService(Service):
    """Store whose values are encrypted by an HSM.

    With ``inner`` it is an envelope over that store; without, ciphertext is
    kept on the token.
    """

    def __init__(
        self,
        config: HSMConfig | None = None,
        inner: Service | None = None,
        session: HSMSession | None = None,
    ):
        """Initialize the HSM store.

        Args:
            config: HSM connection settings (ignored when ``session`` is given)
            inner: Store that receives ciphertext, or None for on-token storage
            session: Already opened session
        """
        if session is None:
            if config is None:
                raise ConfigurationError("HSMService needs a config or an open session")
            from sealstore.hsm.session import PKCS11Session

            session = PKCS11Session.from_config(config)
        self.session = session
        self.key_manager = HSMKeyManager(session)
        self._envelope = EnvelopeService(inner, self.key_manager) if inner is not None else None

    @property
    def name(self) -> str:
        if self._envelope is not None:
            return self._envelope.name
        return self.key_manager.name

    def get(self, key: str) -> bytes:
        if self._envelope is not None:
            return self._envelope.get(key)
        ciphertext = self.session.load(check_key(key))
        if ciphertext is None:
            raise NotFoundError(key)
        return self.key_manager.decrypt(ciphertext)

    def set(self, key: str, value: bytes) -> None:
        if self._envelope is not None:
            return self._envelope.set(key, value)
        check_key(key)
        self.session.store(key, self.key_manager.encrypt(check_value(value)))

    def delete(self, key: str) -> None:
        if self._envelope is not None:
            return self._envelope.delete(key)
        self.session.remove(check_key(key))

    def list(self, prefix: str = "") -> list[str]:
        if self._envelope is not None:
            return self._envelope.list(prefix)
        return [label for label in self.session.labels() if label.startswith(prefix)]

    def close(self) -> None:
        if self._envelope is not None:
            self._envelope.close()
        else:
            self.key_manager.close()
