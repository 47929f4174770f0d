"""
Pedersen commitments for hidden amounts.

Mathematical foundation:
    C = amount·H + r·G
    where H is the NUMS secondary generator from shielded_core.crypto.curve.

    - Hiding: reveals nothing about `amount` without `r`
    - Binding: cannot open to a different (amount', r') pair
    - Homomorphic: C1 + C2 commits to (a1 + a2) under (r1 + r2)

References:
    [Ped91] T.P. Pedersen, "Non-Interactive and Information-Theoretic Secure
            Verifiable Secret Sharing", CRYPTO '91, §3.
"""

from __future__ import annotations

from shielded_core.crypto.curve import (
    IDENTITY,
    SECP256K1_N,
    CurvePoint,
    add,
    generator,
    scalar_mul,
    secondary_generator,
    subtract,
)


class PedersenCommitment:
    """
    Pedersen commitment scheme over secp256k1.

    All methods are static; commitments are plain CurvePoints so they compose
    with the rest of the group arithmetic directly.
    """

    @staticmethod
    def commit(amount: int, randomness: int) -> CurvePoint:
        """
        Create a commitment C = amount·H + randomness·G.

        Args:
            amount: The committed value (non-negative integer).
            randomness: The blinding factor r in [1, N-1].

        Returns:
            The commitment point C.

        Raises:
            ValueError: If randomness is out of range or amount is negative.
        """
        if randomness <= 0 or randomness >= SECP256K1_N:
            raise ValueError(f"randomness must be in [1, N-1], got {randomness}")
        if amount < 0:
            raise ValueError(f"amount must be non-negative, got {amount}")
        return add(
            scalar_mul(amount, secondary_generator()),
            scalar_mul(randomness, generator()),
        )

    @staticmethod
    def verify(commitment: CurvePoint, amount: int, randomness: int) -> bool:
        """Check that commitment == amount·H + randomness·G."""
        if amount < 0:
            return False
        expected = add(
            scalar_mul(amount, secondary_generator()),
            scalar_mul(randomness, generator()),
        )
        return commitment == expected

    @staticmethod
    def open(commitment: CurvePoint, amount: int) -> CurvePoint:
        """
        Strip the amount component, yielding r·G.

        Knowledge of r can then be shown with a plain Schnorr proof against
        the returned point.
        """
        return subtract(commitment, scalar_mul(amount, secondary_generator()))

    @staticmethod
    def combine(commitments: list[CurvePoint]) -> CurvePoint:
        """Homomorphic sum of a list of commitments."""
        total = IDENTITY
        for c in commitments:
            total = add(total, c)
        return total
