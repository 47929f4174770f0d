"""
shielded_core.relayer — ledger-side collaborators.

Provides:
- SpendRelayer: owns the output and nullifier accumulators and records spends
- BatchVerifier: verifies independent proofs on a worker pool
"""

from shielded_core.relayer.batch import BatchVerifier
from shielded_core.relayer.spend_relayer import SpendRelayer

__all__ = [
    "SpendRelayer",
    "BatchVerifier",
]
