"""Hardware Security Module (HSM) wrapper over PKCS#11.

The HSM plays the key-management role of envelope encryption, but locally.
``sealstore.hsm.session`` needs the ``hsm`` extra (python-pkcs11) and is
only imported when a session has to be opened from configuration.
"""

from sealstore.hsm.service import HSMKeyManager, HSMService, HSMSession

__all__ = ["HSMKeyManager", "HSMService", "HSMSession"]
