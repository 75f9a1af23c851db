from __future__ import annotations


class WillError(RuntimeError):
    """Base error for testament ledger operations."""


class NotFoundError(WillError):
    """No record is stored under the requested id."""


class ForbiddenError(WillError):
    """Caller lacks the role required for the requested operation."""


class InvalidTransitionError(WillError):
    """Record exists but is not in the state the transition requires."""


class UserRejectedError(WillError):
    """The signing step was rejected or cancelled by the caller."""


class MalformedDataError(WillError):
    """A ledger entry exists but does not parse or fails schema validation."""


class LedgerUnavailableError(WillError):
    """The ledger reported that it is not ready."""


class OptimisticLockError(WillError):
    """Raised when a version precondition fails during a conditional write."""


class WalletError(WillError):
    """Wallet endpoint returned an error payload or unexpected structure."""


__all__ = [
    "WillError",
    "NotFoundError",
    "ForbiddenError",
    "InvalidTransitionError",
    "UserRejectedError",
    "MalformedDataError",
    "LedgerUnavailableError",
    "OptimisticLockError",
    "WalletError",
]
