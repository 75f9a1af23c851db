"""
Common building blocks for the testament ledger.

Modules:
- codec: reversible obfuscation of the asset value
- access: address normalization and role derivation
- challenge: reveal challenge text and the signature-gated reveal flow
- wallet: async JSON-RPC wallet used as a signer
- config: environment-driven settings
- errors: typed failures shared by every package
"""

__all__ = [
    "access",
    "challenge",
    "codec",
    "config",
    "errors",
    "wallet",
]
