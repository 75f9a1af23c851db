from common import access
from common.access import Role
from common.codec import encode
from state.models import WillRecord


OWNER = "0x" + "Ab" * 20
BENEFICIARY = "0x" + "cd" * 20
EXECUTOR = "0x" + "EF" * 20


def _will(**overrides) -> WillRecord:
    fields = dict(
        id="1700000000000-abc1234",
        obfuscated_value=encode(5),
        created_at=1700000000,
        owner=OWNER,
        beneficiary=BENEFICIARY,
        executor=EXECUTOR,
    )
    fields.update(overrides)
    return WillRecord(**fields)


def test_owner_and_executor_compare_case_insensitively():
    rec = _will()
    assert access.is_owner(rec, OWNER.upper().replace("0X", "0x"))
    assert access.is_owner(rec, "  " + OWNER.lower())
    assert access.is_executor(rec, EXECUTOR.lower())
    assert not access.is_owner(rec, EXECUTOR)
    assert not access.is_executor(rec, OWNER)


def test_roles_collects_every_matching_field():
    rec = _will(executor=OWNER)
    assert access.roles(rec, OWNER) == {Role.OWNER, Role.EXECUTOR}
    assert access.roles(rec, BENEFICIARY) == {Role.BENEFICIARY}
    assert access.roles(rec, "0x" + "00" * 20) == set()


def test_malformed_or_missing_caller_holds_no_role():
    rec = _will()
    assert access.roles(rec, None) == set()
    assert access.roles(rec, "") == set()
    assert not access.is_owner(rec, 12345)  # type: ignore[arg-type]


def test_records_for_returns_owned_or_executed_only():
    mine = _will(id="a")
    executing = _will(id="b", owner="0x" + "11" * 20, executor=OWNER)
    beneficiary_only = _will(id="c", owner="0x" + "11" * 20, beneficiary=OWNER)
    got = access.records_for([mine, executing, beneficiary_only], OWNER)
    assert [r.id for r in got] == ["a", "b"]
