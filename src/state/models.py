from __future__ import annotations

import json
from enum import Enum
from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from common.access import normalize_address
from common.errors import MalformedDataError


SCHEMA_VERSION = 1

CATALOG_KEY = "will_keys"
RECORD_KEY_PREFIX = "will_"


def record_key(will_id: str) -> str:
    return f"{RECORD_KEY_PREFIX}{will_id}"


class WillStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    EXECUTED = "executed"


class WillRecord(BaseModel):
    """
    A testament record as stored under `will_{id}`.

    Fields
    - id: ledger id; derived from the entry key and never serialized into the body.
    - obfuscated_value: codec output (JSON field `data`).
    - created_at: seconds since epoch (JSON field `timestamp`), set once.
    - owner / beneficiary / executor: addresses, lowercased on the way in.
    - status: lifecycle state; legacy entries without one read as draft.
    - conditions: free-form text, never interpreted.
    - version: body schema version; entries written before versioning read as 1.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(..., min_length=1)
    obfuscated_value: str = Field(..., alias="data")
    created_at: int = Field(..., alias="timestamp", ge=0)
    owner: str
    beneficiary: str
    executor: str
    status: WillStatus = WillStatus.DRAFT
    conditions: str = ""
    version: int = SCHEMA_VERSION

    @field_validator("owner", "beneficiary", "executor", mode="before")
    @classmethod
    def _normalize_address(cls, v: Any) -> str:
        return normalize_address(v)

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, v: Any) -> Any:
        return v or WillStatus.DRAFT

    @field_validator("conditions", mode="before")
    @classmethod
    def _default_conditions(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("version")
    @classmethod
    def _known_version(cls, v: int) -> int:
        if v != SCHEMA_VERSION:
            raise ValueError(f"unsupported record schema version {v}")
        return v


_catalog_adapter = TypeAdapter(List[str])


def dump_record_json(record: WillRecord) -> bytes:
    # Deterministic JSON: stable key order, no extra whitespace
    body = record.model_dump(mode="json", by_alias=True, exclude={"id"})
    return json.dumps(body, separators=(",", ":"), sort_keys=True).encode("utf-8")


def load_record_json(will_id: str, data: bytes) -> WillRecord:
    """Parse and validate a record body; raises MalformedDataError."""
    try:
        raw = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as ex:
        raise MalformedDataError(f"record {will_id!r} is not valid JSON") from ex
    if not isinstance(raw, dict):
        raise MalformedDataError(f"record {will_id!r} is not a JSON object")
    try:
        return WillRecord.model_validate({**raw, "id": will_id})
    except ValidationError as ex:
        raise MalformedDataError(f"record {will_id!r} failed validation: {ex}") from ex


def dump_catalog_json(ids: List[str]) -> bytes:
    return json.dumps(list(ids), separators=(",", ":")).encode("utf-8")


def load_catalog_json(data: bytes) -> List[str]:
    """Parse the catalog body; blank content is an empty catalog."""
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as ex:
        raise MalformedDataError("catalog is not valid UTF-8") from ex
    if not text.strip():
        return []
    try:
        return _catalog_adapter.validate_json(text)
    except ValidationError as ex:
        raise MalformedDataError(f"catalog failed validation: {ex}") from ex


__all__ = [
    "SCHEMA_VERSION",
    "CATALOG_KEY",
    "RECORD_KEY_PREFIX",
    "WillStatus",
    "WillRecord",
    "record_key",
    "normalize_address",
    "dump_record_json",
    "load_record_json",
    "dump_catalog_json",
    "load_catalog_json",
]
