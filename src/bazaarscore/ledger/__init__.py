"""
bazaarscore.ledger - Participation ledger access

The ledger is the external authority for raw activity counters.
"""

from .client import LedgerClient, LedgerError

__all__ = [
    "LedgerClient",
    "LedgerError",
]
