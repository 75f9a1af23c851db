from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from common.errors import LedgerUnavailableError, MalformedDataError, NotFoundError

from .key_index import KeyIndex
from .ledger import Ledger, supports_versioning
from .models import WillRecord, dump_record_json, load_record_json, record_key


logger = logging.getLogger(__name__)


class RecordStore:
    """
    Per-record persistence: one JSON body under `will_{id}` per record.

    - `get()` never raises on bad data; corrupt entries are logged and read as absent.
    - `load()` is the strict variant used before mutations.
    - `put()` overwrites unconditionally (last write wins).
    - `load_versioned()` / `put_if_match()` give compare-and-swap on versioned
      ledgers; on a plain ledger the version is None and the write is a `put()`.
    """

    def __init__(self, ledger: Ledger, index: Optional[KeyIndex] = None) -> None:
        self._ledger = ledger
        self._index = index or KeyIndex(ledger)

    @property
    def index(self) -> KeyIndex:
        return self._index

    def get(self, will_id: str) -> Optional[WillRecord]:
        if not self._ledger.is_available():
            return None
        try:
            data = self._ledger.get_data(record_key(will_id))
            if not data:
                return None
            return load_record_json(will_id, data)
        except MalformedDataError as ex:
            logger.warning(f"Skipping malformed record {will_id!r}: {ex}")
            return None

    def load(self, will_id: str) -> WillRecord:
        """Load a record or raise NotFoundError / MalformedDataError / LedgerUnavailableError."""
        if not self._ledger.is_available():
            raise LedgerUnavailableError("ledger is not available")
        data = self._ledger.get_data(record_key(will_id))
        if not data:
            raise NotFoundError(f"will {will_id!r} not found")
        return load_record_json(will_id, data)

    def put(self, will_id: str, record: WillRecord) -> None:
        if record.id != will_id:
            raise ValueError(f"record id {record.id!r} does not match key id {will_id!r}")
        if not self._ledger.is_available():
            raise LedgerUnavailableError("ledger is not available; cannot write record")
        self._ledger.set_data(record_key(will_id), dump_record_json(record))

    def load_versioned(self, will_id: str) -> Tuple[WillRecord, Optional[str]]:
        """Like `load`, also returning the entry version (None on a plain ledger)."""
        if not self._ledger.is_available():
            raise LedgerUnavailableError("ledger is not available")
        key = record_key(will_id)
        if supports_versioning(self._ledger):
            data, version = self._ledger.get_data_versioned(key)
        else:
            data, version = self._ledger.get_data(key), None
        if not data:
            raise NotFoundError(f"will {will_id!r} not found")
        return (load_record_json(will_id, data), version)

    def put_if_match(self, will_id: str, record: WillRecord, expected: Optional[str]) -> None:
        """Write only if the entry is still at `expected`; raises OptimisticLockError."""
        if not supports_versioning(self._ledger):
            self.put(will_id, record)
            return
        if record.id != will_id:
            raise ValueError(f"record id {record.id!r} does not match key id {will_id!r}")
        if not self._ledger.is_available():
            raise LedgerUnavailableError("ledger is not available; cannot write record")
        self._ledger.set_data_if_match(record_key(will_id), dump_record_json(record), expected)

    def list_all(self) -> List[WillRecord]:
        """Every catalogued record that loads, newest first."""
        records: List[WillRecord] = []
        for will_id in self._index.list():
            rec = self.get(will_id)
            if rec is not None:
                records.append(rec)
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records


__all__ = ["RecordStore"]
