from __future__ import annotations

import re
from enum import Enum
from typing import TYPE_CHECKING, Iterable, List, Optional, Set

if TYPE_CHECKING:
    from state.models import WillRecord


_ADDRESS_RE = re.compile(r"^0x[0-9a-f]{40}$")


class Role(str, Enum):
    OWNER = "owner"
    BENEFICIARY = "beneficiary"
    EXECUTOR = "executor"


def normalize_address(address: str) -> str:
    """Return the canonical lowercase form of an address, or raise ValueError."""
    if not isinstance(address, str):
        raise ValueError("address must be a string")
    norm = address.strip().lower()
    if not _ADDRESS_RE.match(norm):
        raise ValueError(f"malformed address: {address!r}")
    return norm


def _canon(caller: Optional[str]) -> Optional[str]:
    # Callers are compared, not validated: a malformed caller simply holds no role
    if not isinstance(caller, str):
        return None
    return caller.strip().lower() or None


def is_owner(record: "WillRecord", caller: Optional[str]) -> bool:
    return _canon(caller) == record.owner


def is_executor(record: "WillRecord", caller: Optional[str]) -> bool:
    return _canon(caller) == record.executor


def is_beneficiary(record: "WillRecord", caller: Optional[str]) -> bool:
    """Beneficiaries may read a record; no transition is granted to them."""
    return _canon(caller) == record.beneficiary


def roles(record: "WillRecord", caller: Optional[str]) -> Set[Role]:
    out: Set[Role] = set()
    if is_owner(record, caller):
        out.add(Role.OWNER)
    if is_beneficiary(record, caller):
        out.add(Role.BENEFICIARY)
    if is_executor(record, caller):
        out.add(Role.EXECUTOR)
    return out


def involves(record: "WillRecord", caller: Optional[str]) -> bool:
    """True when the caller owns or executes the record ("my wills")."""
    return is_owner(record, caller) or is_executor(record, caller)


def records_for(records: Iterable["WillRecord"], caller: Optional[str]) -> List["WillRecord"]:
    return [r for r in records if involves(r, caller)]


__all__ = [
    "Role",
    "normalize_address",
    "is_owner",
    "is_executor",
    "is_beneficiary",
    "roles",
    "involves",
    "records_for",
]
