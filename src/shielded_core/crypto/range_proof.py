"""
Bit-decomposition range proofs over Pedersen commitments.

The spend assembler only consumes the proof's binding hash (AmountProof
carries `range_proof_hash`); producing a succinct range proof is the job of
an external prover. This module is the in-tree stand-in for that
collaborator: it commits to every bit of the amount and checks that the
weighted bit commitments recompose to the amount commitment.

    C        = v·H + r·G
    C_i      = b_i·H + r_i·G,   Σ 2^i·r_i ≡ r (mod N)
    Σ 2^i·C_i == C

It does not prove b_i ∈ {0, 1}; treat it as pre-validation, not as a
zero-knowledge range proof.

References:
    [Bun18] B. Bünz et al., "Bulletproofs: Short Proofs for Confidential
            Transactions and More", 2018 IEEE S&P, §4.2 (Range Proofs).
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass

from shielded_core.crypto.curve import (
    IDENTITY,
    SECP256K1_N,
    CurvePoint,
    add,
    scalar_mul,
)
from shielded_core.crypto.hashing import DOMAIN_RANGE_PROOF, hash_to_field
from shielded_core.crypto.pedersen import PedersenCommitment

BIT_LENGTH = 64
"""Default number of bits proven."""

MAX_VALUE = 2**BIT_LENGTH - 1


@dataclass(frozen=True)
class RangeProof:
    """
    Attestation that a commitment hides a value in [0, 2^bit_length).

    Attributes:
        commitment: The Pedersen commitment C = v·H + r·G.
        bit_commitments: Per-bit commitments C_i.
        proof_hash: Field element binding C and every C_i.
        bit_length: Number of bits proven.
    """
    commitment: CurvePoint
    bit_commitments: tuple[CurvePoint, ...]
    proof_hash: int
    bit_length: int = BIT_LENGTH


def _binding_hash(commitment: CurvePoint, bit_commitments: tuple[CurvePoint, ...]) -> int:
    return hash_to_field(DOMAIN_RANGE_PROOF, commitment, *bit_commitments)


def prove_range(value: int, blinding: int, bit_length: int = BIT_LENGTH) -> RangeProof:
    """
    Generate a range proof that value ∈ [0, 2^bit_length).

    Args:
        value: The committed value v.
        blinding: The blinding factor r of the commitment.
        bit_length: Number of bits (default 64).

    Raises:
        ValueError: If value is out of range or blinding is invalid.
    """
    if not 1 <= bit_length <= BIT_LENGTH:
        raise ValueError(f"bit_length must be in [1, {BIT_LENGTH}], got {bit_length}")
    if value < 0 or value >= (1 << bit_length):
        raise ValueError(f"Value {value} out of range [0, 2^{bit_length})")
    if blinding <= 0 or blinding >= SECP256K1_N:
        raise ValueError("Blinding factor out of range [1, N-1]")

    commitment = PedersenCommitment.commit(value, blinding)
    bits = [(value >> i) & 1 for i in range(bit_length)]

    # Per-bit blindings; the last one absorbs the remainder so Σ 2^i·r_i = r
    bit_blindings: list[int] = []
    remaining = blinding
    for i in range(bit_length - 1):
        ri = secrets.randbelow(SECP256K1_N - 1) + 1
        bit_blindings.append(ri)
        remaining = (remaining - ri * (1 << i)) % SECP256K1_N
    last_power_inv = pow(1 << (bit_length - 1), SECP256K1_N - 2, SECP256K1_N)
    bit_blindings.append((remaining * last_power_inv) % SECP256K1_N)

    bit_commitments = tuple(
        PedersenCommitment.commit(b, ri) for b, ri in zip(bits, bit_blindings)
    )

    return RangeProof(
        commitment=commitment,
        bit_commitments=bit_commitments,
        proof_hash=_binding_hash(commitment, bit_commitments),
        bit_length=bit_length,
    )


def verify_range(proof: RangeProof) -> bool:
    """
    Check the binding hash and that Σ 2^i·C_i equals the commitment.

    Returns False (never raises) on any malformed proof.
    """
    if len(proof.bit_commitments) != proof.bit_length or proof.bit_length == 0:
        return False
    if proof.proof_hash == 0:
        return False
    if _binding_hash(proof.commitment, proof.bit_commitments) != proof.proof_hash:
        return False

    weighted_sum = IDENTITY
    for i, c_bit in enumerate(proof.bit_commitments):
        weighted_sum = add(weighted_sum, scalar_mul(1 << i, c_bit))
    return weighted_sum == proof.commitment
