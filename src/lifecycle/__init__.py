"""
Testament lifecycle: draft -> active -> executed under role-based guards,
plus a service facade wiring ledger, stores and wallet from configuration.
"""

from .machine import LifecycleStateMachine, TRANSITIONS

__all__ = ["LifecycleStateMachine", "TRANSITIONS"]
