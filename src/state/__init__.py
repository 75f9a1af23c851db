"""
Ledger-backed persistence for wills.

A ledger is a plain key-value space; records live under `will_{id}` and the
catalog of ids under `will_keys`, both as UTF-8 JSON.
"""

from .models import WillRecord, WillStatus

__all__ = ["WillRecord", "WillStatus"]
