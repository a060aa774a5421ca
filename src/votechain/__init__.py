"""VoteChain: derivación de estado y agregación de votaciones en ledger.

VoteChain: voting state derivation and aggregation over a ledger.
"""

__version__ = "0.1.0"
