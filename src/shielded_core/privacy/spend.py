"""
Spend proofs: one verifiable claim per transaction input.

A SpendProof bundles four sub-proofs about one SpendableInput:

    membership  — the output's leaf is in the output accumulator
    ownership   — Schnorr proof of the one-time secret key, bound to
                  (leaf, nullifier)
    nullifier   — the spend tag plus its NullifierProof
    amount      — the amount commitment plus a range-proof hash

Each verifies on its own, and they are tied together: the membership leaf
is recomputed from the amount commitment and the public key, and the
nullifier proof must speak for the same key and the same commitment.

An InputSet aggregates n SpendProofs. Its total commitment is the
homomorphic sum of the inputs' amount commitments, and an aggregate Schnorr
proof over Σ PK_i with challenge H(n_1..n_k, total, K) binds the set of
nullifiers to that total. This is a binding convenience, not a
size-reducing aggregation: every SpendProof is still carried and checked.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from shielded_core.config import DEFAULT_CONFIG, CoreConfig
from shielded_core.core.errors import MalformedInput, VerificationResult, Verdict
from shielded_core.core.models import SpendableInput
from shielded_core.crypto import schnorr
from shielded_core.crypto.curve import (
    IDENTITY,
    SECP256K1_N,
    SECP256K1_P,
    CurvePoint,
    add,
    generator,
    is_on_curve,
    random_scalar,
    scalar_mul,
)
from shielded_core.crypto.hashing import DOMAIN_INPUT_SET, DOMAIN_OWNERSHIP, hash_to_scalar
from shielded_core.crypto.pedersen import PedersenCommitment
from shielded_core.crypto.range_proof import prove_range
from shielded_core.privacy.accumulator import MembershipProof, hash_leaf, verify_membership
from shielded_core.privacy.nullifier import (
    NullifierProof,
    generate_nullifier_proof,
    verify_nullifier_proof,
)

logger = logging.getLogger("shielded_core.spend")


# ==============================================================================
# Types
# ==============================================================================


@dataclass(frozen=True)
class AmountProof:
    """Amount commitment plus the binding hash of its (external) range proof."""
    commitment: CurvePoint
    range_proof_hash: int


@dataclass(frozen=True)
class SpendProof:
    nullifier: int
    membership_proof: MembershipProof
    ownership_proof: schnorr.SchnorrProof
    public_key: CurvePoint
    nullifier_proof: NullifierProof
    amount_proof: AmountProof


@dataclass(frozen=True)
class InputSet:
    """
    n spend proofs plus an aggregate proof binding their nullifiers to the
    total amount commitment.
    """
    proofs: tuple[SpendProof, ...]
    total_commitment: CurvePoint
    aggregate_commitment: CurvePoint
    aggregate_challenge: int
    aggregate_response: int

    @property
    def nullifiers(self) -> tuple[int, ...]:
        return tuple(p.nullifier for p in self.proofs)


# ==============================================================================
# Leaves and contexts
# ==============================================================================


def output_leaf(item: SpendableInput) -> int:
    """Leaf under which the ledger records an output in the output accumulator."""
    return hash_leaf(item.amount_commitment, item.one_time_public_key, item.global_index)


def _leaf_for(commitment: CurvePoint, public_key: CurvePoint, index: int) -> int:
    return hash_leaf(commitment, public_key, index)


def _ownership_context(leaf: int, nullifier: int) -> tuple[int, int]:
    return (leaf, nullifier)


# ==============================================================================
# Generation
# ==============================================================================


def generate_amount_proof(amount: int, blinding: int, bit_length: int = 64) -> AmountProof:
    """Produce an AmountProof through the bit-decomposition range prover."""
    proof = prove_range(amount, blinding, bit_length)
    return AmountProof(commitment=proof.commitment, range_proof_hash=proof.proof_hash)


def generate_spend_proof(
    spendable_input: SpendableInput,
    secret_key: int,
    membership_proof: MembershipProof,
    amount: int,
    blinding: int,
    range_proof_hash: int | None = None,
    nullifier_nonce: int | None = None,
    ownership_nonce: int | None = None,
    nullifier: int | None = None,
    config: CoreConfig = DEFAULT_CONFIG,
) -> SpendProof:
    """
    Assemble a SpendProof for one input.

    Args:
        spendable_input: The output being spent.
        secret_key: Its one-time secret key.
        membership_proof: Path for output_leaf(spendable_input) in the
            current output accumulator.
        amount: Plaintext amount behind the commitment.
        blinding: Blinding factor behind the commitment.
        range_proof_hash: Hash from an external range prover. When omitted
            the in-tree bit-decomposition prover is run.
        nullifier_nonce: Optional nonce for the nullifier proof.
        ownership_nonce: Optional nonce for the ownership proof.
        nullifier: Precomputed nullifier, e.g. from compute_nullifier_extended.
            Defaults to compute_nullifier(secret_key, commitment).
        config: Supplies the range-proof bit length.

    Raises:
        MalformedInput: If the key, path, or opening doesn't match the input.
    """
    if not 0 < secret_key < SECP256K1_N:
        raise MalformedInput("secret_key must be in [1, N-1]")
    leaf = output_leaf(spendable_input)
    if membership_proof.leaf != leaf:
        raise MalformedInput("membership proof is for a different leaf")
    if membership_proof.leaf_index != spendable_input.global_index:
        raise MalformedInput("membership proof index does not match the input's global index")
    if range_proof_hash is not None and not 0 < range_proof_hash < SECP256K1_P:
        raise MalformedInput("range_proof_hash must be a non-zero field element")
    if scalar_mul(secret_key, generator()) != spendable_input.one_time_public_key:
        raise MalformedInput("secret_key does not own this input")
    if not PedersenCommitment.verify(spendable_input.amount_commitment, amount, blinding):
        raise MalformedInput("amount and blinding do not open the input commitment")

    nullifier_proof = generate_nullifier_proof(
        secret_key, spendable_input.amount_commitment, nonce=nullifier_nonce, nullifier=nullifier
    )
    nullifier = nullifier_proof.nullifier
    ownership = schnorr.prove(
        secret_key,
        context=_ownership_context(leaf, nullifier),
        nonce=ownership_nonce,
        domain=DOMAIN_OWNERSHIP,
    )
    if range_proof_hash is None:
        amount_proof = generate_amount_proof(amount, blinding, config.range_bits)
    else:
        amount_proof = AmountProof(spendable_input.amount_commitment, range_proof_hash)

    return SpendProof(
        nullifier=nullifier,
        membership_proof=membership_proof,
        ownership_proof=ownership,
        public_key=spendable_input.one_time_public_key,
        nullifier_proof=nullifier_proof,
        amount_proof=amount_proof,
    )


# ==============================================================================
# Verification
# ==============================================================================


def _verify_spend_proof(proof: SpendProof, output_root: int) -> VerificationResult:
    if not 0 < proof.nullifier < SECP256K1_P:
        return VerificationResult.malformed("nullifier is zero or not a field element")
    if proof.public_key.is_identity() or not is_on_curve(proof.public_key):
        return VerificationResult.malformed("public key is not a valid curve point")

    np = proof.nullifier_proof
    if np.nullifier != proof.nullifier:
        return VerificationResult.invalid("nullifier proof is for another nullifier")
    if np.public_key != proof.public_key:
        return VerificationResult.invalid("nullifier proof is for another key")
    if np.output_commitment != proof.amount_proof.commitment:
        return VerificationResult.invalid("amount proof is for another output")
    result = verify_nullifier_proof(np)
    if not result:
        return result

    mp = proof.membership_proof
    leaf = _leaf_for(proof.amount_proof.commitment, proof.public_key, mp.leaf_index)
    if mp.leaf != leaf:
        return VerificationResult.invalid("membership leaf does not match the spent output")
    if not verify_membership(mp, output_root):
        return VerificationResult.invalid("membership proof does not resolve to the output root")

    if not schnorr.verify(
        proof.ownership_proof,
        proof.public_key,
        context=_ownership_context(leaf, proof.nullifier),
        domain=DOMAIN_OWNERSHIP,
    ):
        return VerificationResult.invalid("ownership proof fails")

    if proof.amount_proof.range_proof_hash == 0:
        return VerificationResult.invalid("amount proof carries no range proof")
    return VerificationResult.valid()


def verify_spend_proof(proof: SpendProof, output_root: int) -> VerificationResult:
    """
    Verify one SpendProof against the caller's output-accumulator root.

    Total: malformed field types yield MALFORMED_INPUT rather than raising.
    """
    try:
        result = _verify_spend_proof(proof, output_root)
    except (ValueError, TypeError, AttributeError) as e:
        result = VerificationResult.malformed(f"malformed spend proof: {e}")
    if not result:
        logger.debug(f"Spend proof rejected: {result.reason}")
    return result


# ==============================================================================
# InputSet aggregation
# ==============================================================================


def input_set_challenge(
    nullifiers: Sequence[int],
    total_commitment: CurvePoint,
    aggregate_commitment: CurvePoint,
) -> int:
    return hash_to_scalar(DOMAIN_INPUT_SET, *nullifiers, total_commitment, aggregate_commitment)


def _sum_points(points: Sequence[CurvePoint]) -> CurvePoint:
    total = IDENTITY
    for p in points:
        total = add(total, p)
    return total


def aggregate_inputs(
    proofs: Sequence[SpendProof],
    secret_keys: Sequence[int],
    nonce: int | None = None,
    config: CoreConfig = DEFAULT_CONFIG,
) -> InputSet:
    """
    Fold n spend proofs into an InputSet.

    Args:
        proofs: Spend proofs, one per input.
        secret_keys: The matching one-time secret keys, same order.
        nonce: Optional nonce for the aggregate proof.
        config: Batch-size bounds.

    Raises:
        MalformedInput: Empty set, key count mismatch, repeated nullifier or
            output, or a key that doesn't match its proof.
        SizeConstraintViolation: More inputs than config.max_inputs.
    """
    proofs = tuple(proofs)
    n = len(proofs)
    if n == 0:
        raise MalformedInput("input set is empty")
    config.validate_batch_size(n)
    if len(secret_keys) != n:
        raise MalformedInput(f"{len(secret_keys)} secret keys for {n} inputs")
    nullifiers = [p.nullifier for p in proofs]
    if len(set(nullifiers)) != n:
        raise MalformedInput("input set spends the same nullifier twice")
    if len({p.membership_proof.leaf for p in proofs}) != n:
        raise MalformedInput("input set spends the same output twice")
    k = random_scalar() if nonce is None else nonce
    if not 0 < k < SECP256K1_N:
        raise MalformedInput("nonce must be in [1, N-1]")
    for i, (p, sk) in enumerate(zip(proofs, secret_keys)):
        if not 0 < sk < SECP256K1_N or scalar_mul(sk, generator()) != p.public_key:
            raise MalformedInput(f"secret key {i} does not match its spend proof")

    aggregate_secret = sum(secret_keys) % SECP256K1_N
    total_commitment = PedersenCommitment.combine([p.amount_proof.commitment for p in proofs])
    aggregate_commitment = scalar_mul(k, generator())
    c = input_set_challenge(nullifiers, total_commitment, aggregate_commitment)
    s = (k - c * aggregate_secret) % SECP256K1_N

    return InputSet(
        proofs=proofs,
        total_commitment=total_commitment,
        aggregate_commitment=aggregate_commitment,
        aggregate_challenge=c,
        aggregate_response=s,
    )


def verify_input_set(
    input_set: InputSet,
    output_root: int,
    config: CoreConfig = DEFAULT_CONFIG,
) -> VerificationResult:
    """
    Verify every spend proof in the set and the aggregate binding.

    Total: malformed field types yield MALFORMED_INPUT rather than raising.

    Returns:
        MALFORMED_INPUT, SIZE_CONSTRAINT_VIOLATION, DOUBLE_SPEND (a nullifier
        or an output repeated inside the set), PROOF_INVALID, or VALID.
    """
    try:
        result = _verify_input_set(input_set, output_root, config)
    except (ValueError, TypeError, AttributeError) as e:
        result = VerificationResult.malformed(f"malformed input set: {e}")
    if not result:
        logger.debug(f"Input set rejected: {result.reason}")
    return result


def _verify_input_set(
    input_set: InputSet,
    output_root: int,
    config: CoreConfig,
) -> VerificationResult:
    n = len(input_set.proofs)
    if n == 0:
        return VerificationResult.malformed("input set is empty")
    if not config.batch_size_ok(n):
        return VerificationResult(
            Verdict.SIZE_CONSTRAINT_VIOLATION,
            f"input count {n} outside [1, {config.max_inputs}]",
        )
    nullifiers = input_set.nullifiers
    if len(set(nullifiers)) != n:
        return VerificationResult(Verdict.DOUBLE_SPEND, "nullifier repeated within input set")
    if len({p.membership_proof.leaf for p in input_set.proofs}) != n:
        return VerificationResult(Verdict.DOUBLE_SPEND, "output spent twice within input set")

    for i, proof in enumerate(input_set.proofs):
        result = verify_spend_proof(proof, output_root)
        if not result:
            return VerificationResult(result.verdict, f"input {i}: {result.reason}")

    if not (0 <= input_set.aggregate_challenge < SECP256K1_N
            and 0 <= input_set.aggregate_response < SECP256K1_N):
        return VerificationResult.malformed("aggregate challenge or response out of range")
    if not is_on_curve(input_set.aggregate_commitment):
        return VerificationResult.malformed("aggregate commitment is not a curve point")

    expected_total = PedersenCommitment.combine(
        [p.amount_proof.commitment for p in input_set.proofs]
    )
    if expected_total != input_set.total_commitment:
        return VerificationResult.invalid("total commitment does not match the inputs")

    expected_c = input_set_challenge(
        nullifiers, input_set.total_commitment, input_set.aggregate_commitment
    )
    if expected_c != input_set.aggregate_challenge:
        return VerificationResult.invalid("aggregate challenge mismatch")

    aggregate_key = _sum_points([p.public_key for p in input_set.proofs])
    lhs = add(
        scalar_mul(input_set.aggregate_response, generator()),
        scalar_mul(input_set.aggregate_challenge, aggregate_key),
    )
    if lhs != input_set.aggregate_commitment:
        return VerificationResult.invalid("aggregate response relation fails")
    return VerificationResult.valid()
