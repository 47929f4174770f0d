"""
Nullifiers: deterministic, unlinkable spend tags.

Mathematical foundation:
    nullifier = H_null(sk, C.x, C.y)   mod p

    where sk is the spender's one-time secret key and C the amount commitment
    of the output being spent. The same (sk, C) always gives the same
    nullifier, so a second spend of C is caught by looking the nullifier up
    in the ledger's nullifier accumulator. Without sk the value is a random
    field element, so it cannot be linked back to C.

Nullifier proof (Schnorr, Fiat-Shamir):
    K = k·G,  PK = sk·G
    c = H_np(nullifier, K, C, PK)   mod N
    s = k − c·sk                    mod N

    Verification recomputes c, requires a non-zero nullifier, and checks the
    response relation s·G + c·PK == K. The proof shows knowledge of the key
    that owns C and binds that knowledge to this nullifier and this output;
    that the nullifier was derived from sk by the hash above is attested
    outside this package (the execution proof of the verifier).

Double-spend check priority (check_spend_validity):
    MALFORMED_INPUT → PROOF_INVALID → DOUBLE_SPEND → VALID
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from shielded_core.core.errors import MalformedInput, VerificationResult, Verdict
from shielded_core.crypto.curve import (
    SECP256K1_N,
    SECP256K1_P,
    CurvePoint,
    add,
    generator,
    is_on_curve,
    random_scalar,
    scalar_mul,
)
from shielded_core.crypto.hashing import (
    DOMAIN_NULLIFIER,
    DOMAIN_NULLIFIER_EXT,
    DOMAIN_NULLIFIER_PROOF,
    hash_to_field,
    hash_to_scalar,
)
from shielded_core.privacy.accumulator import (
    AccumulatorState,
    MembershipProof,
    hash_leaf,
    verify_membership,
)

logger = logging.getLogger("shielded_core.nullifier")


@dataclass(frozen=True)
class NullifierProof:
    """
    Schnorr-style proof binding a nullifier to an output and its owner key.

    Attributes:
        nullifier: The spend tag.
        public_key: PK = sk·G of the output's owner.
        key_commitment: K = k·G.
        output_commitment: Amount commitment C of the output being spent.
        challenge: c = H(nullifier, K, C, PK) mod N.
        response: s = k − c·sk mod N.
    """
    nullifier: int
    public_key: CurvePoint
    key_commitment: CurvePoint
    output_commitment: CurvePoint
    challenge: int
    response: int


# ==============================================================================
# Derivation
# ==============================================================================


def _check_inputs(secret_key: int, commitment: CurvePoint) -> None:
    if not 0 < secret_key < SECP256K1_N:
        raise MalformedInput("secret_key must be in [1, N-1]")
    if commitment.is_identity() or not is_on_curve(commitment):
        raise MalformedInput("output commitment must be a non-identity curve point")


def compute_nullifier(secret_key: int, commitment: CurvePoint) -> int:
    """
    Derive the nullifier for spending `commitment` with `secret_key`.

    Raises:
        MalformedInput: If sk is out of range or the commitment is degenerate.
    """
    _check_inputs(secret_key, commitment)
    return hash_to_field(DOMAIN_NULLIFIER, secret_key, commitment.x, commitment.y)


def compute_nullifier_extended(
    secret_key: int,
    commitment: CurvePoint,
    asset_id: int,
    aux: int = 0,
) -> int:
    """
    Nullifier for multi-asset or time-locked outputs.

    Mixes the asset identifier and auxiliary data (e.g. an unlock height)
    in under its own domain tag, so it never collides with the plain
    variant for the same (sk, commitment).
    """
    _check_inputs(secret_key, commitment)
    if asset_id < 0 or aux < 0:
        raise MalformedInput("asset_id and aux must be non-negative")
    return hash_to_field(
        DOMAIN_NULLIFIER_EXT, secret_key, commitment.x, commitment.y, asset_id, aux
    )


def nullifier_leaf(nullifier: int) -> int:
    """Leaf value under which the ledger records a spent nullifier."""
    return hash_leaf(nullifier)


# ==============================================================================
# Proof
# ==============================================================================


def nullifier_challenge(
    nullifier: int,
    key_commitment: CurvePoint,
    output_commitment: CurvePoint,
    public_key: CurvePoint,
) -> int:
    return hash_to_scalar(
        DOMAIN_NULLIFIER_PROOF, nullifier, key_commitment, output_commitment, public_key
    )


def generate_nullifier_proof(
    secret_key: int,
    commitment: CurvePoint,
    nonce: int | None = None,
    nullifier: int | None = None,
) -> NullifierProof:
    """
    Compute the nullifier for `commitment` and prove knowledge of its key.

    Args:
        secret_key: One-time secret key of the output.
        commitment: The output's amount commitment.
        nonce: Optional Schnorr nonce k; must never repeat under one key.
        nullifier: Precomputed nullifier (e.g. the extended variant);
            defaults to compute_nullifier(secret_key, commitment).

    Raises:
        MalformedInput: On out-of-range keys/nonces or a degenerate commitment.
    """
    _check_inputs(secret_key, commitment)
    if nullifier is None:
        nullifier = compute_nullifier(secret_key, commitment)
    if not 0 < nullifier < SECP256K1_P:
        raise MalformedInput("nullifier must be a non-zero field element")

    k = random_scalar() if nonce is None else nonce
    if not 0 < k < SECP256K1_N:
        raise MalformedInput("nonce must be in [1, N-1]")

    public_key = scalar_mul(secret_key, generator())
    key_commitment = scalar_mul(k, generator())
    c = nullifier_challenge(nullifier, key_commitment, commitment, public_key)
    s = (k - c * secret_key) % SECP256K1_N

    return NullifierProof(
        nullifier=nullifier,
        public_key=public_key,
        key_commitment=key_commitment,
        output_commitment=commitment,
        challenge=c,
        response=s,
    )


def _verify_nullifier_proof(proof: NullifierProof) -> VerificationResult:
    if not 0 < proof.nullifier < SECP256K1_P:
        return VerificationResult.malformed("nullifier is zero or not a field element")
    for label, point in (
        ("public_key", proof.public_key),
        ("key_commitment", proof.key_commitment),
        ("output_commitment", proof.output_commitment),
    ):
        if point.is_identity() or not is_on_curve(point):
            return VerificationResult.malformed(f"{label} is not a valid curve point")
    if not (0 <= proof.challenge < SECP256K1_N and 0 <= proof.response < SECP256K1_N):
        return VerificationResult.malformed("challenge or response out of range")

    expected = nullifier_challenge(
        proof.nullifier, proof.key_commitment, proof.output_commitment, proof.public_key
    )
    if expected != proof.challenge:
        return VerificationResult.invalid("nullifier proof challenge mismatch")

    lhs = add(
        scalar_mul(proof.response, generator()),
        scalar_mul(proof.challenge, proof.public_key),
    )
    if lhs != proof.key_commitment:
        return VerificationResult.invalid("nullifier proof response relation fails")
    return VerificationResult.valid()


def verify_nullifier_proof(proof: NullifierProof) -> VerificationResult:
    """
    Verify a NullifierProof.

    Checks, in order: nullifier is a non-zero field element; points are on
    the curve; the challenge recomputes; s·G + c·PK == K. Total: fields of
    the wrong type yield MALFORMED_INPUT.
    """
    try:
        return _verify_nullifier_proof(proof)
    except (ValueError, TypeError, AttributeError) as e:
        return VerificationResult.malformed(f"malformed nullifier proof: {e}")


# ==============================================================================
# Double-spend check
# ==============================================================================


def check_spend_validity(
    proof: NullifierProof,
    nullifier_accumulator: AccumulatorState,
    membership_proof: MembershipProof | None = None,
) -> VerificationResult:
    """
    Decide whether a nullifier may be spent against the ledger's nullifier set.

    Args:
        proof: The spender's nullifier proof.
        nullifier_accumulator: Current state of the ledger's nullifier tree.
        membership_proof: A proof that nullifier_leaf(proof.nullifier) is in
            that tree, when one exists. Proofs for other leaves are ignored.

    Returns:
        MALFORMED_INPUT for a zero nullifier, PROOF_INVALID when the nullifier
        proof fails, DOUBLE_SPEND when the membership proof resolves against
        the accumulator root, else VALID.
    """
    try:
        return _check_spend_validity(proof, nullifier_accumulator, membership_proof)
    except (ValueError, TypeError, AttributeError) as e:
        return VerificationResult.malformed(f"malformed spend check input: {e}")


def _check_spend_validity(
    proof: NullifierProof,
    nullifier_accumulator: AccumulatorState,
    membership_proof: MembershipProof | None,
) -> VerificationResult:
    if not 0 < proof.nullifier < SECP256K1_P:
        return VerificationResult.malformed("nullifier is zero or not a field element")

    result = verify_nullifier_proof(proof)
    if not result:
        logger.debug(f"Nullifier proof rejected: {result.reason}")
        return VerificationResult(Verdict.PROOF_INVALID, result.reason)

    if (
        membership_proof is not None
        and nullifier_accumulator.size > 0
        and membership_proof.leaf == nullifier_leaf(proof.nullifier)
        and verify_membership(
            membership_proof, nullifier_accumulator.root, size=nullifier_accumulator.size
        )
    ):
        logger.warning(f"Double-spend attempt: nullifier 0x{proof.nullifier:064x}")
        return VerificationResult(Verdict.DOUBLE_SPEND, "nullifier already in accumulator")

    return VerificationResult.valid()
