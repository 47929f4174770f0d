"""
Operational bounds for the shielded core.

Every size-sensitive entry point (ring signing/verification, input-set
aggregation, decoy selection, batch verification) takes a CoreConfig and
falls back to DEFAULT_CONFIG when none is given.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from shielded_core.core.errors import SizeConstraintViolation


@dataclass(frozen=True)
class CoreConfig:
    """
    Configuration for proof sizes and anonymity-set construction.

    Args:
        min_ring_size:      Smallest ring accepted by LSAG sign/verify
        max_ring_size:      Largest ring accepted by LSAG sign/verify
        max_inputs:         Largest number of spend proofs in one InputSet
        range_bits:         Bit length of the amount range proof
        decoy_count:        Default number of decoys mixed with a real input
        min_confirmations:  Blocks an output must age before it may be used as a decoy
        verify_workers:     Worker count for BatchVerifier pools
    """
    min_ring_size: int = 2
    max_ring_size: int = 16
    max_inputs: int = 16
    range_bits: int = 64
    decoy_count: int = 7
    min_confirmations: int = 10
    verify_workers: int = 4

    def __post_init__(self) -> None:
        if self.min_ring_size < 2:
            raise ValueError(f"min_ring_size must be >= 2, got {self.min_ring_size}")
        if self.max_ring_size < self.min_ring_size:
            raise ValueError(
                f"max_ring_size ({self.max_ring_size}) < min_ring_size ({self.min_ring_size})"
            )
        if self.max_inputs < 1:
            raise ValueError(f"max_inputs must be >= 1, got {self.max_inputs}")
        if not 1 <= self.range_bits <= 64:
            raise ValueError(f"range_bits must be in [1, 64], got {self.range_bits}")
        if self.verify_workers < 1:
            raise ValueError(f"verify_workers must be >= 1, got {self.verify_workers}")

    @classmethod
    def from_env(cls) -> CoreConfig:
        """Build a config from SHIELDED_* environment variables, defaulting the rest."""
        defaults = cls()
        return cls(
            min_ring_size=int(os.getenv("SHIELDED_MIN_RING_SIZE", defaults.min_ring_size)),
            max_ring_size=int(os.getenv("SHIELDED_MAX_RING_SIZE", defaults.max_ring_size)),
            max_inputs=int(os.getenv("SHIELDED_MAX_INPUTS", defaults.max_inputs)),
            range_bits=int(os.getenv("SHIELDED_RANGE_BITS", defaults.range_bits)),
            decoy_count=int(os.getenv("SHIELDED_DECOY_COUNT", defaults.decoy_count)),
            min_confirmations=int(
                os.getenv("SHIELDED_MIN_CONFIRMATIONS", defaults.min_confirmations)
            ),
            verify_workers=int(os.getenv("SHIELDED_VERIFY_WORKERS", defaults.verify_workers)),
        )

    def ring_size_ok(self, n: int) -> bool:
        return self.min_ring_size <= n <= self.max_ring_size

    def validate_ring_size(self, n: int) -> None:
        """Raise SizeConstraintViolation if n is outside [min_ring_size, max_ring_size]."""
        if not self.ring_size_ok(n):
            raise SizeConstraintViolation(
                f"Ring size {n} outside configured bounds "
                f"[{self.min_ring_size}, {self.max_ring_size}]"
            )

    def batch_size_ok(self, n: int) -> bool:
        return 1 <= n <= self.max_inputs

    def validate_batch_size(self, n: int) -> None:
        """Raise SizeConstraintViolation if n is outside [1, max_inputs]."""
        if not self.batch_size_ok(n):
            raise SizeConstraintViolation(
                f"Input count {n} outside configured bounds [1, {self.max_inputs}]"
            )


DEFAULT_CONFIG = CoreConfig()
