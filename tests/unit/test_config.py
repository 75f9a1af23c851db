import pytest

from common.config import Settings


_ALL = (
    "WILL_LEDGER_BUCKET",
    "WILL_LEDGER_PREFIX",
    "WILL_FERNET_KEY",
    "WILL_AWS_REGION",
    "WILL_CONTRACT_ADDRESS",
    "WILL_RPC_URL",
    "WILL_WALLET_ADDRESS",
    "WILL_DURATION_DAYS",
    "WILL_CAS_ATTEMPTS",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _ALL:
        monkeypatch.delenv(name, raising=False)


def test_missing_bucket_raises():
    with pytest.raises(RuntimeError):
        Settings.from_env()


def test_defaults(monkeypatch):
    monkeypatch.setenv("WILL_LEDGER_BUCKET", "wills")
    s = Settings.from_env()
    assert s.ledger_bucket == "wills"
    assert s.ledger_prefix == ""
    assert s.fernet_key is None
    assert s.duration_days == 30
    assert s.cas_attempts == 5
    assert s.rpc_url is None


def test_full_configuration(monkeypatch):
    monkeypatch.setenv("WILL_LEDGER_BUCKET", "wills")
    monkeypatch.setenv("WILL_LEDGER_PREFIX", "prod/")
    monkeypatch.setenv("WILL_CONTRACT_ADDRESS", "0xledger")
    monkeypatch.setenv("WILL_RPC_URL", "http://localhost:8545")
    monkeypatch.setenv("WILL_WALLET_ADDRESS", "0x" + "aa" * 20)
    monkeypatch.setenv("WILL_DURATION_DAYS", "7")
    monkeypatch.setenv("WILL_CAS_ATTEMPTS", "9")
    s = Settings.from_env()
    assert s.ledger_prefix == "prod/"
    assert s.contract_address == "0xledger"
    assert s.duration_days == 7
    assert s.cas_attempts == 9


@pytest.mark.parametrize("value", ["abc", "0", "-3"])
def test_invalid_integers_raise(monkeypatch, value):
    monkeypatch.setenv("WILL_LEDGER_BUCKET", "wills")
    monkeypatch.setenv("WILL_DURATION_DAYS", value)
    with pytest.raises(RuntimeError):
        Settings.from_env()


def test_rpc_url_without_wallet_address_raises(monkeypatch):
    monkeypatch.setenv("WILL_LEDGER_BUCKET", "wills")
    monkeypatch.setenv("WILL_RPC_URL", "http://localhost:8545")
    with pytest.raises(RuntimeError, match="WILL_WALLET_ADDRESS"):
        Settings.from_env()
