from __future__ import annotations

from typing import Optional, Tuple

import boto3
from botocore.exceptions import ClientError
from cryptography.fernet import Fernet, InvalidToken

from common.config import Settings
from common.errors import MalformedDataError, OptimisticLockError


_MISSING_CODES = ("NoSuchKey", "404")
_CONFLICT_CODES = ("PreconditionFailed", "412", "ConditionalRequestConflict", "409")


def _to_fernet(key: str | bytes) -> Fernet:
    """Construct a Fernet instance from a user-provided key.

    The key must be a URL-safe base64-encoded 32-byte key (str or bytes),
    as returned by `cryptography.fernet.Fernet.generate_key()`.
    """
    if isinstance(key, str):
        key_bytes = key.encode("utf-8")
    else:
        key_bytes = key
    return Fernet(key_bytes)


def _error_code(e: ClientError) -> Optional[str]:
    return e.response.get("Error", {}).get("Code")


class S3Ledger:
    """
    S3-backed ledger: every ledger key is one object under `prefix`.

    Usage
    - `get_data(key)` returns the object body, or b"" if the object does not exist.
    - `set_data(key, value)` overwrites the object.
    - `get_data_versioned` / `set_data_if_match` expose the object ETag for
      compare-and-swap using S3 conditional writes (If-Match / If-None-Match).
    - With a Fernet key, bodies are encrypted at rest. A body that fails to
      decrypt raises MalformedDataError.
    """

    def __init__(
        self,
        *,
        s3: Optional[object] = None,
        bucket: str,
        prefix: str = "",
        fernet_key: str | bytes | None = None,
        region_name: Optional[str] = None,
    ) -> None:
        if not bucket:
            raise ValueError("bucket is required")
        self._s3 = s3 or boto3.client("s3", region_name=region_name)
        self._bucket = bucket
        self._prefix = prefix
        self._fernet = _to_fernet(fernet_key) if fernet_key else None

    # -------- Construction helpers --------
    @classmethod
    def from_settings(cls, settings: Settings) -> "S3Ledger":
        return cls(
            bucket=settings.ledger_bucket,
            prefix=settings.ledger_prefix,
            fernet_key=settings.fernet_key,
            region_name=settings.aws_region,
        )

    def _object_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _seal(self, value: bytes) -> bytes:
        return self._fernet.encrypt(value) if self._fernet else value

    def _open(self, key: str, body: bytes) -> bytes:
        if not self._fernet or not body:
            return body
        try:
            return self._fernet.decrypt(body)
        except InvalidToken as ex:
            raise MalformedDataError(f"Failed to decrypt ledger entry {key!r}: invalid Fernet token") from ex

    # -------- Ledger protocol --------
    def is_available(self) -> bool:
        try:
            self._s3.head_bucket(Bucket=self._bucket)
        except ClientError:
            return False
        return True

    def get_data(self, key: str) -> bytes:
        data, _ = self.get_data_versioned(key)
        return data

    def set_data(self, key: str, value: bytes) -> None:
        self._s3.put_object(
            Bucket=self._bucket,
            Key=self._object_key(key),
            Body=self._seal(value),
            ContentType="application/octet-stream",
        )

    # -------- Versioned extension --------
    def get_data_versioned(self, key: str) -> Tuple[bytes, Optional[str]]:
        """Return (body, etag); (b"", None) if the object does not exist."""
        try:
            resp = self._s3.get_object(Bucket=self._bucket, Key=self._object_key(key))
        except ClientError as e:
            if _error_code(e) in _MISSING_CODES:
                return (b"", None)
            raise
        body = resp["Body"].read()
        return (self._open(key, body), resp.get("ETag"))

    def set_data_if_match(self, key: str, value: bytes, expected: Optional[str]) -> str:
        """Conditional write; raises OptimisticLockError on a precondition failure.

        `expected=None` creates the object only if it does not exist yet
        (If-None-Match: *); otherwise the destination ETag must equal `expected`.
        """
        dest = self._object_key(key)
        condition = {"IfNoneMatch": "*"} if expected is None else {"IfMatch": expected}
        try:
            resp = self._s3.put_object(
                Bucket=self._bucket,
                Key=dest,
                Body=self._seal(value),
                ContentType="application/octet-stream",
                **condition,
            )
        except ClientError as e:
            if _error_code(e) in _CONFLICT_CODES:
                raise OptimisticLockError(
                    f"Precondition failed for s3://{self._bucket}/{dest} (expected {expected})"
                ) from e
            raise
        return str(resp.get("ETag"))


__all__ = ["S3Ledger"]
