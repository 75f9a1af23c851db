from __future__ import annotations

import secrets
import time
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from . import codec
from .access import is_owner
from .errors import ForbiddenError, UserRejectedError, WillError

if TYPE_CHECKING:
    from state.models import WillRecord


DEFAULT_DURATION_DAYS = 30
PUBLIC_KEY_HEX_DIGITS = 2000

SignFn = Callable[[str], Awaitable[str]]
VerifyFn = Callable[[str, str], bool]


def generate_public_key() -> str:
    """Random session public key: ``0x`` followed by 2000 hex digits."""
    return "0x" + secrets.token_hex(PUBLIC_KEY_HEX_DIGITS // 2)


def build_challenge(
    public_key: str,
    ledger_address: str,
    chain_id: int,
    start_timestamp: int,
    duration_days: int,
) -> str:
    """Deterministic challenge text: one `key:value` line per field, fixed order."""
    return "\n".join(
        [
            f"publickey:{public_key}",
            f"contractAddresses:{ledger_address}",
            f"contractsChainId:{chain_id}",
            f"startTimestamp:{start_timestamp}",
            f"durationDays:{duration_days}",
        ]
    )


class SessionParams(BaseModel):
    """Inputs to the reveal challenge for one signing session."""

    model_config = ConfigDict(frozen=True)

    public_key: str = Field(..., min_length=1)
    ledger_address: str
    chain_id: int = Field(..., ge=0)
    start_timestamp: int = Field(..., ge=0)
    duration_days: int = Field(DEFAULT_DURATION_DAYS, gt=0)

    @classmethod
    def new(
        cls,
        ledger_address: str,
        chain_id: int,
        *,
        duration_days: int = DEFAULT_DURATION_DAYS,
        clock: Callable[[], float] = time.time,
    ) -> "SessionParams":
        """Start a session now with a freshly generated public key."""
        return cls(
            public_key=generate_public_key(),
            ledger_address=ledger_address,
            chain_id=chain_id,
            start_timestamp=int(clock()),
            duration_days=duration_days,
        )

    def challenge(self) -> str:
        return build_challenge(
            self.public_key,
            self.ledger_address,
            self.chain_id,
            self.start_timestamp,
            self.duration_days,
        )


async def reveal(
    record: "WillRecord",
    sign_fn: SignFn,
    params: SessionParams,
    *,
    verify_fn: Optional[VerifyFn] = None,
    caller: Optional[str] = None,
) -> codec.Number:
    """
    Decode a record's value once the caller has signed the session challenge.

    - `sign_fn` receives the exact challenge text. Any failure it raises aborts
      the reveal before decoding: typed errors pass through, anything else is
      reported as UserRejectedError. Task cancellation propagates unchanged.
    - The signature is not inspected unless `verify_fn(challenge, signature)`
      is supplied; a False result raises ForbiddenError.
    - If `caller` is given it must be the record owner.

    This is a speed-bump in front of data that is readable on the ledger,
    not access control.
    """
    if caller is not None and not is_owner(record, caller):
        raise ForbiddenError(f"only the owner may reveal will {record.id!r}")

    message = params.challenge()
    try:
        signature = await sign_fn(message)
    except WillError:
        raise
    except Exception as ex:
        raise UserRejectedError(f"signing was rejected: {ex}") from ex

    if verify_fn is not None and not verify_fn(message, signature):
        raise ForbiddenError(f"signature does not verify for will {record.id!r}")

    return codec.decode(record.obfuscated_value)


__all__ = [
    "DEFAULT_DURATION_DAYS",
    "SessionParams",
    "SignFn",
    "VerifyFn",
    "build_challenge",
    "generate_public_key",
    "reveal",
]
