"""Key-value storage backends.

Cloud adapters live in their own modules (``sealstore.kv.s3``,
``sealstore.kv.gcs``, ...) so their SDKs are only imported when used.
"""

from sealstore.kv.base import Service
from sealstore.kv.file import FileService
from sealstore.kv.memory import MemoryService, dev_service
from sealstore.kv.multi import MultiService

__all__ = [
    "FileService",
    "MemoryService",
    "MultiService",
    "Service",
    "dev_service",
]
