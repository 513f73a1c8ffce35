"""Multi-store aggregator.

Presents several independently located stores (for example one encrypted
bucket per region) as one logical store:

- Writes and deletes go to every member and succeed only if every member
  succeeds; failures are reported per member, never masked.
- Reads try members in construction order and return the first value found.
  Unavailable or undecryptable members are skipped.
"""

import logging
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

from sealstore.errors import (
    DecryptionError,
    NotFoundError,
    PartialReplicationError,
    SealStoreError,
    UnavailableError,
    describe_failures,
)
from sealstore.kv.base import Service, check_key

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MultiService(Service):
    """Redundant group of stores treated as replicas of one logical store.

    Example:
        >>> store = MultiService([eu_store, us_store])
        >>> store.set("vault-root", token)   # written to both regions
        >>> store.get("vault-root")          # eu first, us if eu is down
    """

    def __init__(self, services: Sequence[Service], parallel: bool = False):
        """Initialize the aggregate.

        Args:
            services: Member stores, in read-preference order
            parallel: Fan writes out from a thread pool instead of sequentially
        """
        if not services:
            raise ValueError("MultiService needs at least one member")
        self.services = list(services)
        self.parallel = parallel
        self._labels = self._member_labels()

    def _member_labels(self) -> list[str]:
        """Member names, suffixed with their index where names collide."""
        names = [s.name for s in self.services]
        return [
            f"{name} #{i}" if names.count(name) > 1 else name
            for i, name in enumerate(names)
        ]

    @property
    def name(self) -> str:
        return "multi(" + ", ".join(self._labels) + ")"

    def _fan_out(self, op: Callable[[Service], T]) -> dict[str, Exception]:
        """Run ``op`` on every member and collect every failure."""
        failures: dict[str, Exception] = {}

        if self.parallel and len(self.services) > 1:
            with ThreadPoolExecutor(max_workers=len(self.services)) as pool:
                futures = [pool.submit(op, service) for service in self.services]
                for label, future in zip(self._labels, futures):
                    err = future.exception()
                    if err is not None:
                        failures[label] = err
        else:
            for label, service in zip(self._labels, self.services):
                try:
                    op(service)
                except Exception as e:
                    failures[label] = e

        return failures

    def get(self, key: str) -> bytes:
        check_key(key)
        failures: dict[str, Exception] = {}
        last_error: Exception | None = None

        for label, service in zip(self._labels, self.services):
            try:
                return service.get(key)
            except NotFoundError as e:
                failures[label] = e
            except (UnavailableError, DecryptionError) as e:
                logger.warning(f"Skipping {label} while reading {key}: {e}")
                failures[label] = e
                last_error = e

        if last_error is None:
            raise NotFoundError(key, failures=failures)

        message = f"no member could serve {key}: {describe_failures(failures)}"
        raise type(last_error)(message, failures=failures)

    def set(self, key: str, value: bytes) -> None:
        check_key(key)
        failures = self._fan_out(lambda service: service.set(key, value))
        if failures:
            logger.error(
                f"Write of {key} failed on {len(failures)} of {len(self.services)} members"
            )
            raise PartialReplicationError(
                f"set {key} failed on: {describe_failures(failures)}", failures=failures
            )

    def delete(self, key: str) -> None:
        check_key(key)
        failures = self._fan_out(lambda service: service.delete(key))
        if failures:
            raise PartialReplicationError(
                f"delete {key} failed on: {describe_failures(failures)}", failures=failures
            )

    def list(self, prefix: str = "") -> list[str]:
        keys: set[str] = set()
        failures: dict[str, Exception] = {}

        for label, service in zip(self._labels, self.services):
            try:
                keys.update(service.list(prefix))
            except SealStoreError as e:
                logger.warning(f"Skipping {label} while listing: {e}")
                failures[label] = e

        if len(failures) == len(self.services):
            raise UnavailableError(
                f"no member could be listed: {describe_failures(failures)}", failures=failures
            )
        return sorted(keys)

    def close(self) -> None:
        for service in self.services:
            service.close()
