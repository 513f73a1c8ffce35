"""sealstore - redundant encrypted storage for Vault unsealing material.

sealstore keeps root tokens and unseal key shares in durable storage that
survives the loss of a region or a provider. Every backend implements the
same small key-value contract, so storage and encryption compose freely.

Key modules:

- :mod:`sealstore.kv` - The ``Service`` contract, raw storage adapters and the
  multi-store aggregator
- :mod:`sealstore.kms` - Envelope encryption through cloud key-management services
- :mod:`sealstore.hsm` - PKCS#11 hardware security module wrapper
- :mod:`sealstore.config` - YAML/environment configuration models
- :mod:`sealstore.factory` - Backend selection and validation
- :mod:`sealstore.cli` - ``sealstore`` command line
"""

__version__ = "0.1.0"
