from __future__ import annotations

from collections import Counter
from typing import Dict, List, Optional

from common import access, challenge, codec
from common.challenge import SessionParams, SignFn, VerifyFn
from common.config import Settings
from state.key_index import KeyIndex
from state.ledger import Ledger
from state.models import WillRecord, WillStatus
from state.record_store import RecordStore
from state.s3_ledger import S3Ledger

from .machine import LifecycleStateMachine


class WillService:
    """
    Entry point for callers: listing, lifecycle transitions and reveal,
    all bound to one ledger.
    """

    def __init__(
        self,
        ledger: Ledger,
        *,
        contract_address: str = "",
        duration_days: int = challenge.DEFAULT_DURATION_DAYS,
        cas_attempts: int = 5,
    ) -> None:
        self.ledger = ledger
        self.contract_address = contract_address
        self.duration_days = duration_days
        self.index = KeyIndex(ledger, max_attempts=cas_attempts)
        self.store = RecordStore(ledger, self.index)
        self.machine = LifecycleStateMachine(self.store, self.index, max_attempts=cas_attempts)

    @classmethod
    def from_settings(cls, settings: Settings) -> "WillService":
        return cls(
            S3Ledger.from_settings(settings),
            contract_address=settings.contract_address,
            duration_days=settings.duration_days,
            cas_attempts=settings.cas_attempts,
        )

    @classmethod
    def from_env(cls) -> "WillService":
        return cls.from_settings(Settings.from_env())

    # -------- Reads --------
    def list_wills(self) -> List[WillRecord]:
        return self.store.list_all()

    def wills_for(self, caller: str) -> List[WillRecord]:
        """Wills the caller owns or executes, newest first."""
        return access.records_for(self.store.list_all(), caller)

    def status_counts(self, records: Optional[List[WillRecord]] = None) -> Dict[WillStatus, int]:
        recs = self.store.list_all() if records is None else records
        counts = Counter(r.status for r in recs)
        return {status: counts.get(status, 0) for status in WillStatus}

    # -------- Writes --------
    def create(
        self,
        owner_caller: str,
        beneficiary: str,
        executor: str,
        value: codec.Number,
        conditions: str = "",
    ) -> WillRecord:
        return self.machine.create(owner_caller, beneficiary, executor, value, conditions)

    def activate(self, will_id: str, caller: str) -> WillRecord:
        return self.machine.activate(will_id, caller)

    def execute(self, will_id: str, caller: str) -> WillRecord:
        return self.machine.execute(will_id, caller)

    # -------- Reveal --------
    def session(self, chain_id: int) -> SessionParams:
        """Fresh challenge parameters for this ledger on `chain_id`."""
        return SessionParams.new(self.contract_address, chain_id, duration_days=self.duration_days)

    async def reveal(
        self,
        will_id: str,
        sign_fn: SignFn,
        params: SessionParams,
        *,
        caller: Optional[str] = None,
        verify_fn: Optional[VerifyFn] = None,
    ) -> codec.Number:
        record = self.store.load(will_id)
        return await challenge.reveal(record, sign_fn, params, verify_fn=verify_fn, caller=caller)


__all__ = ["WillService"]
