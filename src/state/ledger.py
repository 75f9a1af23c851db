from __future__ import annotations

import threading
from typing import Dict, Optional, Protocol, Tuple, runtime_checkable

from common.errors import OptimisticLockError


@runtime_checkable
class Ledger(Protocol):
    """
    Byte-addressed key-value space used as the only persistence substrate.

    - `get_data` returns empty bytes when the entry does not exist.
    - `set_data` overwrites unconditionally.
    - `is_available` is a readiness probe; readers treat `False` as "no data".
    """

    def is_available(self) -> bool: ...

    def get_data(self, key: str) -> bytes: ...

    def set_data(self, key: str, value: bytes) -> None: ...


@runtime_checkable
class VersionedLedger(Ledger, Protocol):
    """
    Ledger that can expose an opaque version per entry and perform a
    compare-and-swap write against it.

    - `get_data_versioned(key)` returns `(data, version)`; version is None
      for a missing entry.
    - `set_data_if_match(key, value, expected)` writes only if the current
      version equals `expected` (None: entry must not exist yet), otherwise
      raises `OptimisticLockError`. Returns the new version.
    """

    def get_data_versioned(self, key: str) -> Tuple[bytes, Optional[str]]: ...

    def set_data_if_match(self, key: str, value: bytes, expected: Optional[str]) -> str: ...


def supports_versioning(ledger: Ledger) -> bool:
    return isinstance(ledger, VersionedLedger)


class InMemoryLedger:
    """Thread-safe in-process ledger with per-entry version counters."""

    def __init__(self, *, available: bool = True) -> None:
        self._data: Dict[str, bytes] = {}
        self._versions: Dict[str, int] = {}
        self._lock = threading.Lock()
        self.available = available

    def is_available(self) -> bool:
        return self.available

    def get_data(self, key: str) -> bytes:
        with self._lock:
            return self._data.get(key, b"")

    def set_data(self, key: str, value: bytes) -> None:
        with self._lock:
            self._write(key, value)

    def get_data_versioned(self, key: str) -> Tuple[bytes, Optional[str]]:
        with self._lock:
            if key not in self._data:
                return (b"", None)
            return (self._data[key], str(self._versions[key]))

    def set_data_if_match(self, key: str, value: bytes, expected: Optional[str]) -> str:
        with self._lock:
            current = str(self._versions[key]) if key in self._data else None
            if current != expected:
                raise OptimisticLockError(
                    f"version mismatch for {key!r}: expected {expected}, found {current}"
                )
            return self._write(key, value)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._data)

    def _write(self, key: str, value: bytes) -> str:
        self._data[key] = bytes(value)
        self._versions[key] = self._versions.get(key, 0) + 1
        return str(self._versions[key])


__all__ = ["Ledger", "VersionedLedger", "InMemoryLedger", "supports_versioning"]
