"""Envelope encryption through external key-management services."""

from sealstore.kms.base import EnvelopeService, KeyManager
from sealstore.kms.fernet import FernetKeyManager

__all__ = [
    "EnvelopeService",
    "FernetKeyManager",
    "KeyManager",
]
