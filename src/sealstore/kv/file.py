"""Local filesystem store: one file per key."""

import logging
import os
import tempfile
from pathlib import Path

from sealstore.errors import NotFoundError, UnavailableError
from sealstore.kv.base import Service, check_key, check_value

logger = logging.getLogger(__name__)


class FileService(Service):
    """Stores each value in ``<directory>/<key>`` with mode 0600.

    Writes go through a temporary file in the same directory followed by an
    atomic rename, so a reader never sees a half-written value.
    """

    def __init__(self, directory: str | Path):
        """Initialize the file store.

        Args:
            directory: Directory holding the key files (created if missing)
        """
        self.directory = Path(directory).expanduser()
        try:
            self.directory.mkdir(parents=True, exist_ok=True, mode=0o700)
        except OSError as e:
            raise UnavailableError(f"cannot create {self.directory}: {e}") from e

    @property
    def name(self) -> str:
        return f"file://{self.directory}"

    def _path(self, key: str) -> Path:
        check_key(key)
        # Leading dots are reserved for temporary files
        if "/" in key or "\\" in key or key.startswith("."):
            raise ValueError(f"invalid key for file store: {key!r}")
        return self.directory / key

    def get(self, key: str) -> bytes:
        path = self._path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise NotFoundError(key) from None
        except OSError as e:
            raise UnavailableError(f"cannot read {path}: {e}") from e

    def set(self, key: str, value: bytes) -> None:
        path = self._path(key)
        value = check_value(value)
        try:
            fd, tmp = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(value)
                    f.flush()
                    os.fsync(f.fileno())
                os.chmod(tmp, 0o600)
                os.replace(tmp, path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise UnavailableError(f"cannot write {path}: {e}") from e

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise UnavailableError(f"cannot delete {path}: {e}") from e

    def list(self, prefix: str = "") -> list[str]:
        try:
            names = [p.name for p in self.directory.iterdir() if p.is_file()]
        except OSError as e:
            raise UnavailableError(f"cannot list {self.directory}: {e}") from e
        return sorted(n for n in names if n.startswith(prefix) and not n.startswith("."))
