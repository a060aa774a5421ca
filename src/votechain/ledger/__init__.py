"""Adaptadores de los puertos del ledger.

Ledger port adapters.
"""

from .memory import InMemoryLedger, InMemoryWallet

__all__ = ["InMemoryLedger", "InMemoryWallet"]
