from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


ENV_LEDGER_BUCKET = "WILL_LEDGER_BUCKET"
ENV_LEDGER_PREFIX = "WILL_LEDGER_PREFIX"
ENV_FERNET_KEY = "WILL_FERNET_KEY"
ENV_AWS_REGION = "WILL_AWS_REGION"
ENV_CONTRACT_ADDRESS = "WILL_CONTRACT_ADDRESS"
ENV_RPC_URL = "WILL_RPC_URL"
ENV_WALLET_ADDRESS = "WILL_WALLET_ADDRESS"
ENV_DURATION_DAYS = "WILL_DURATION_DAYS"
ENV_CAS_ATTEMPTS = "WILL_CAS_ATTEMPTS"


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.environ.get(name)
    return val if val not in (None, "") else default


def _getint(name: str, default: int) -> int:
    raw = _getenv(name)
    if raw is None:
        return default
    try:
        val = int(raw)
    except ValueError as exc:
        raise RuntimeError(f"Invalid integer for {name}: {raw!r}") from exc
    if val <= 0:
        raise RuntimeError(f"{name} must be > 0, got {val}")
    return val


@dataclass(frozen=True)
class Settings:
    """
    Runtime configuration resolved from environment variables.

    - `WILL_LEDGER_BUCKET` (required): S3 bucket backing the ledger
    - `WILL_LEDGER_PREFIX`: key prefix inside the bucket (default "")
    - `WILL_FERNET_KEY`: encrypt ledger bodies at rest when set
    - `WILL_AWS_REGION`: region for the S3 client
    - `WILL_CONTRACT_ADDRESS`: ledger address quoted in the reveal challenge
    - `WILL_RPC_URL` / `WILL_WALLET_ADDRESS`: JSON-RPC wallet used for signing
    - `WILL_DURATION_DAYS`: challenge validity in days (default 30)
    - `WILL_CAS_ATTEMPTS`: catalog compare-and-swap attempts (default 5)
    """

    ledger_bucket: str
    ledger_prefix: str = ""
    fernet_key: Optional[str] = None
    aws_region: Optional[str] = None
    contract_address: str = ""
    rpc_url: Optional[str] = None
    wallet_address: Optional[str] = None
    duration_days: int = 30
    cas_attempts: int = 5

    @classmethod
    def from_env(cls) -> "Settings":
        bucket = _getenv(ENV_LEDGER_BUCKET)
        if not bucket:
            raise RuntimeError(f"Missing required configuration: {ENV_LEDGER_BUCKET}")
        rpc_url = _getenv(ENV_RPC_URL)
        wallet = _getenv(ENV_WALLET_ADDRESS)
        if bool(rpc_url) != bool(wallet):
            missing = [name for name, val in [(ENV_RPC_URL, rpc_url), (ENV_WALLET_ADDRESS, wallet)] if not val]
            raise RuntimeError(f"Missing required configuration: {', '.join(missing)}")
        return cls(
            ledger_bucket=bucket,
            ledger_prefix=_getenv(ENV_LEDGER_PREFIX, "") or "",
            fernet_key=_getenv(ENV_FERNET_KEY),
            aws_region=_getenv(ENV_AWS_REGION),
            contract_address=_getenv(ENV_CONTRACT_ADDRESS, "") or "",
            rpc_url=rpc_url,
            wallet_address=wallet,
            duration_days=_getint(ENV_DURATION_DAYS, 30),
            cas_attempts=_getint(ENV_CAS_ATTEMPTS, 5),
        )


__all__ = ["Settings"]
