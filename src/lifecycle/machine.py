from __future__ import annotations

import logging
import secrets
import string
import time
from typing import Callable, Dict, Optional, Tuple

from common import access, codec
from common.access import Role, normalize_address
from common.errors import ForbiddenError, InvalidTransitionError, OptimisticLockError
from state.key_index import DEFAULT_CAS_ATTEMPTS, KeyIndex
from state.models import WillRecord, WillStatus
from state.record_store import RecordStore


logger = logging.getLogger(__name__)

# source state -> (target state, role allowed to perform it)
TRANSITIONS: Dict[WillStatus, Tuple[WillStatus, Role]] = {
    WillStatus.DRAFT: (WillStatus.ACTIVE, Role.OWNER),
    WillStatus.ACTIVE: (WillStatus.EXECUTED, Role.EXECUTOR),
}

_ID_ALPHABET = string.digits + string.ascii_lowercase


def new_will_id(clock: Callable[[], float] = time.time) -> str:
    """Millisecond timestamp plus a 7-char base36 random suffix."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(7))
    return f"{int(clock() * 1000)}-{suffix}"


class LifecycleStateMachine:
    """
    Creates wills and moves them forward through draft -> active -> executed.

    Every guard (existence, role, source state) runs before the single write,
    so a rejected transition leaves the stored entry untouched. On a versioned
    ledger the write is conditional on the version that was checked; if the
    record changed in between, it is reloaded and the guards run again, so a
    stale caller can never move a record backwards.

    `create` writes the record and then appends its id to the catalog. The two
    writes are not atomic: if the append fails the record stays stored but is
    not listed. That case is logged and the error is re-raised.
    """

    def __init__(
        self,
        store: RecordStore,
        index: Optional[KeyIndex] = None,
        *,
        clock: Callable[[], float] = time.time,
        id_factory: Optional[Callable[[], str]] = None,
        max_attempts: int = DEFAULT_CAS_ATTEMPTS,
    ) -> None:
        if max_attempts <= 0:
            raise ValueError("max_attempts must be > 0")
        self._store = store
        self._index = index or store.index
        self._clock = clock
        self._id_factory = id_factory or (lambda: new_will_id(self._clock))
        self._max_attempts = max_attempts

    def create(
        self,
        owner_caller: str,
        beneficiary: str,
        executor: str,
        value: codec.Number,
        conditions: str = "",
    ) -> WillRecord:
        record = WillRecord(
            id=self._id_factory(),
            obfuscated_value=codec.encode(value),
            created_at=int(self._clock()),
            owner=normalize_address(owner_caller),
            beneficiary=normalize_address(beneficiary),
            executor=normalize_address(executor),
            status=WillStatus.DRAFT,
            conditions=conditions or "",
        )
        self._store.put(record.id, record)
        try:
            self._index.append(record.id)
        except Exception:
            logger.error(f"Will {record.id!r} was stored but could not be added to the catalog")
            raise
        logger.info(f"Created will {record.id!r} for owner {record.owner}")
        return record

    def activate(self, will_id: str, caller: str) -> WillRecord:
        return self._advance(will_id, caller, WillStatus.ACTIVE)

    def execute(self, will_id: str, caller: str) -> WillRecord:
        return self._advance(will_id, caller, WillStatus.EXECUTED)

    def _advance(self, will_id: str, caller: str, target: WillStatus) -> WillRecord:
        source = next(src for src, (dst, _) in TRANSITIONS.items() if dst is target)
        role = TRANSITIONS[source][1]

        for attempt in range(1, self._max_attempts + 1):
            record, version = self._store.load_versioned(will_id)

            if role not in access.roles(record, caller):
                raise ForbiddenError(f"caller is not the {role.value} of will {will_id!r}")
            if record.status is not source:
                raise InvalidTransitionError(
                    f"will {will_id!r} is {record.status.value}; {target.value} requires {source.value}"
                )

            updated = record.model_copy(update={"status": target})
            try:
                self._store.put_if_match(will_id, updated, version)
            except OptimisticLockError:
                # Someone else wrote the record since we read it: re-run the guards
                logger.warning(
                    f"Will {will_id!r} changed during {target.value} (attempt {attempt}/{self._max_attempts})"
                )
                continue
            logger.info(f"Will {will_id!r} moved {source.value} -> {target.value}")
            return updated

        raise OptimisticLockError(
            f"gave up moving will {will_id!r} to {target.value} after {self._max_attempts} attempts"
        )


__all__ = ["LifecycleStateMachine", "TRANSITIONS", "new_will_id"]
