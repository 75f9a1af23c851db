from __future__ import annotations

import logging
from typing import List

from common.errors import LedgerUnavailableError, MalformedDataError, OptimisticLockError

from .ledger import Ledger, supports_versioning
from .models import CATALOG_KEY, dump_catalog_json, load_catalog_json


logger = logging.getLogger(__name__)

DEFAULT_CAS_ATTEMPTS = 5


class KeyIndex:
    """
    Catalog of every record id, kept as one JSON array under `will_keys`.

    - `list()` degrades gracefully: unavailable ledger, missing entry or a
      malformed body all read as an empty catalog.
    - `append(id)` is read-modify-write. When the ledger supports versioned
      writes the update is a compare-and-swap retried up to `max_attempts`
      times; on a plain ledger it is an unconditional overwrite and two
      concurrent appends can lose one id.
    """

    def __init__(self, ledger: Ledger, *, max_attempts: int = DEFAULT_CAS_ATTEMPTS) -> None:
        if max_attempts <= 0:
            raise ValueError("max_attempts must be > 0")
        self._ledger = ledger
        self._max_attempts = max_attempts

    def list(self) -> List[str]:
        if not self._ledger.is_available():
            return []
        try:
            data = self._ledger.get_data(CATALOG_KEY)
            if not data:
                return []
            return load_catalog_json(data)
        except MalformedDataError as ex:
            logger.warning(f"Ignoring malformed catalog entry: {ex}")
            return []

    def append(self, will_id: str) -> None:
        """Append `will_id` to the catalog (no deduplication)."""
        if not self._ledger.is_available():
            raise LedgerUnavailableError("ledger is not available; cannot update catalog")

        if not supports_versioning(self._ledger):
            ids = self._load_for_update(self._ledger.get_data(CATALOG_KEY))
            ids.append(will_id)
            self._ledger.set_data(CATALOG_KEY, dump_catalog_json(ids))
            return

        for attempt in range(1, self._max_attempts + 1):
            data, version = self._ledger.get_data_versioned(CATALOG_KEY)
            ids = self._load_for_update(data)
            ids.append(will_id)
            try:
                self._ledger.set_data_if_match(CATALOG_KEY, dump_catalog_json(ids), version)
                return
            except OptimisticLockError:
                logger.warning(
                    f"Catalog changed while appending {will_id!r} (attempt {attempt}/{self._max_attempts})"
                )
        raise OptimisticLockError(
            f"gave up appending {will_id!r} to catalog after {self._max_attempts} attempts"
        )

    @staticmethod
    def _load_for_update(data: bytes) -> List[str]:
        # A malformed catalog is not overwritten: that would drop every id in it
        if not data:
            return []
        return load_catalog_json(data)


__all__ = ["KeyIndex", "DEFAULT_CAS_ATTEMPTS"]
