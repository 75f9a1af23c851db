import json
import logging

import pytest

from common.codec import decode, encode
from common.errors import LedgerUnavailableError, MalformedDataError, NotFoundError, OptimisticLockError
from state.ledger import InMemoryLedger
from state.models import CATALOG_KEY, WillRecord, WillStatus, record_key
from state.record_store import RecordStore


OWNER = "0x" + "aa" * 20
BENEFICIARY = "0x" + "bb" * 20
EXECUTOR = "0x" + "cc" * 20


def _will(will_id: str, created_at: int = 1700000000, **overrides) -> WillRecord:
    fields = dict(
        id=will_id,
        obfuscated_value=encode(10),
        created_at=created_at,
        owner=OWNER,
        beneficiary=BENEFICIARY,
        executor=EXECUTOR,
        conditions="split evenly",
    )
    fields.update(overrides)
    return WillRecord(**fields)


def _catalog(ledger: InMemoryLedger, ids) -> None:
    ledger.set_data(CATALOG_KEY, json.dumps(ids).encode("utf-8"))


def test_put_then_get_roundtrip():
    store = RecordStore(InMemoryLedger())
    rec = _will("w1")
    store.put("w1", rec)
    got = store.get("w1")
    assert got == rec
    assert got.status is WillStatus.DRAFT
    assert decode(got.obfuscated_value) == 10


def test_stored_body_uses_ledger_field_names():
    ledger = InMemoryLedger()
    RecordStore(ledger).put("w1", _will("w1"))
    body = json.loads(ledger.get_data("will_w1"))
    assert set(body) == {
        "data",
        "timestamp",
        "owner",
        "beneficiary",
        "executor",
        "status",
        "conditions",
        "version",
    }
    assert body["status"] == "draft"
    assert body["timestamp"] == 1700000000


def test_addresses_are_normalized_at_the_boundary():
    ledger = InMemoryLedger()
    legacy = {
        "data": encode(3.5),
        "timestamp": 1690000000,
        "owner": "0x" + "AA" * 20,
        "beneficiary": "0x" + "Bb" * 20,
        "executor": "0x" + "cC" * 20,
    }
    ledger.set_data(record_key("old"), json.dumps(legacy).encode("utf-8"))

    rec = RecordStore(ledger).get("old")

    assert rec.owner == OWNER
    assert rec.beneficiary == BENEFICIARY
    assert rec.executor == EXECUTOR
    # Entries written before status/conditions/version existed
    assert rec.status is WillStatus.DRAFT
    assert rec.conditions == ""
    assert rec.version == 1


def test_get_missing_returns_none():
    assert RecordStore(InMemoryLedger()).get("nope") is None


def test_get_returns_none_when_unavailable():
    ledger = InMemoryLedger()
    store = RecordStore(ledger)
    store.put("w1", _will("w1"))
    ledger.available = False
    assert store.get("w1") is None


@pytest.mark.parametrize(
    "body",
    [
        b"{broken",
        b"[1, 2]",
        b'{"data": "FHE-MTA=", "timestamp": 1, "owner": "bob", "beneficiary": "x", "executor": "y"}',
        json.dumps(
            {
                "data": "FHE-MTA=",
                "timestamp": 1,
                "owner": OWNER,
                "beneficiary": BENEFICIARY,
                "executor": EXECUTOR,
                "status": "revoked",
            }
        ).encode(),
        json.dumps(
            {
                "data": "FHE-MTA=",
                "timestamp": 1,
                "owner": OWNER,
                "beneficiary": BENEFICIARY,
                "executor": EXECUTOR,
                "version": 2,
            }
        ).encode(),
    ],
)
def test_get_treats_malformed_entries_as_absent(body, caplog):
    ledger = InMemoryLedger()
    ledger.set_data(record_key("bad"), body)
    with caplog.at_level(logging.WARNING):
        assert RecordStore(ledger).get("bad") is None
    assert "bad" in caplog.text


def test_load_surfaces_typed_errors():
    ledger = InMemoryLedger()
    store = RecordStore(ledger)
    ledger.set_data(record_key("bad"), b"{broken")

    with pytest.raises(NotFoundError):
        store.load("missing")
    with pytest.raises(MalformedDataError):
        store.load("bad")

    ledger.available = False
    with pytest.raises(LedgerUnavailableError):
        store.load("bad")


def test_put_requires_available_ledger_and_matching_id():
    ledger = InMemoryLedger(available=False)
    store = RecordStore(ledger)
    with pytest.raises(LedgerUnavailableError):
        store.put("w1", _will("w1"))

    ledger.available = True
    with pytest.raises(ValueError):
        store.put("w2", _will("w1"))


def test_put_overwrites_last_write_wins():
    store = RecordStore(InMemoryLedger())
    store.put("w1", _will("w1", conditions="first"))
    store.put("w1", _will("w1", conditions="second"))
    assert store.get("w1").conditions == "second"


def test_list_all_newest_first_and_skips_broken_entries():
    ledger = InMemoryLedger()
    store = RecordStore(ledger)
    store.put("old", _will("old", created_at=100))
    store.put("new", _will("new", created_at=300))
    store.put("mid", _will("mid", created_at=200))
    ledger.set_data(record_key("corrupt"), b"not json")
    _catalog(ledger, ["old", "corrupt", "new", "dangling", "mid"])

    assert [r.id for r in store.list_all()] == ["new", "mid", "old"]


def test_list_all_empty_when_unavailable():
    ledger = InMemoryLedger()
    store = RecordStore(ledger)
    store.put("w1", _will("w1"))
    _catalog(ledger, ["w1"])
    ledger.available = False
    assert store.list_all() == []


class _PlainLedger:
    def __init__(self) -> None:
        self._data = {}

    def is_available(self) -> bool:
        return True

    def get_data(self, key: str) -> bytes:
        return self._data.get(key, b"")

    def set_data(self, key: str, value: bytes) -> None:
        self._data[key] = value


def test_put_if_match_rejects_a_stale_version():
    store = RecordStore(InMemoryLedger())
    store.put("w1", _will("w1"))
    record, version = store.load_versioned("w1")
    assert version is not None

    store.put("w1", _will("w1", status=WillStatus.ACTIVE))
    with pytest.raises(OptimisticLockError):
        store.put_if_match("w1", record.model_copy(update={"status": WillStatus.EXECUTED}), version)
    assert store.load("w1").status is WillStatus.ACTIVE

    _, current = store.load_versioned("w1")
    store.put_if_match("w1", _will("w1", status=WillStatus.EXECUTED), current)
    assert store.load("w1").status is WillStatus.EXECUTED


def test_versioned_helpers_fall_back_on_a_plain_ledger():
    store = RecordStore(_PlainLedger())
    store.put("w1", _will("w1"))
    record, version = store.load_versioned("w1")
    assert version is None

    store.put_if_match("w1", record.model_copy(update={"status": WillStatus.ACTIVE}), version)
    assert store.load("w1").status is WillStatus.ACTIVE


def test_load_versioned_surfaces_typed_errors():
    with pytest.raises(NotFoundError):
        RecordStore(InMemoryLedger()).load_versioned("nope")
    with pytest.raises(LedgerUnavailableError):
        RecordStore(InMemoryLedger(available=False)).load_versioned("w1")
