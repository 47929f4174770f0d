"""
Unit tests for shielded_core.privacy.spend — spend proofs and input-set aggregation.

Range proofs are generated with a 16-bit config to keep the suite fast; the
64-bit prover is covered in test_range_proof.
"""

import secrets
from dataclasses import replace

import pytest

from shielded_core.config import CoreConfig
from shielded_core.core.errors import MalformedInput, SizeConstraintViolation, Verdict
from shielded_core.core.models import SpendableInput
from shielded_core.crypto.curve import IDENTITY, SECP256K1_N, generator, scalar_mul
from shielded_core.crypto.pedersen import PedersenCommitment
from shielded_core.privacy.accumulator import LeanIMT, hash_leaf
from shielded_core.privacy.nullifier import compute_nullifier, compute_nullifier_extended
from shielded_core.privacy.spend import (
    AmountProof,
    InputSet,
    aggregate_inputs,
    generate_amount_proof,
    generate_spend_proof,
    input_set_challenge,
    output_leaf,
    verify_input_set,
    verify_spend_proof,
)

FAST = CoreConfig(range_bits=16)


def _random_r() -> int:
    return secrets.randbelow(SECP256K1_N - 1) + 1


def _register(tree: LeanIMT, amount: int = 100) -> tuple[SpendableInput, int, int]:
    """Add an output to `tree`; returns (input, secret key, blinding)."""
    sk, blinding = _random_r(), _random_r()
    item = SpendableInput(
        amount_commitment=PedersenCommitment.commit(amount, blinding),
        one_time_public_key=scalar_mul(sk, generator()),
        global_index=tree.size,
        creation_height=0,
    )
    tree.insert(output_leaf(item))
    return item, sk, blinding


def _ledger(amounts: list[int]) -> tuple[LeanIMT, list[tuple[SpendableInput, int, int]]]:
    tree = LeanIMT()
    outputs = [_register(tree, a) for a in amounts]
    return tree, outputs


def _spend(tree: LeanIMT, output, amount: int, **kwargs):
    item, sk, blinding = output
    return generate_spend_proof(
        item, sk, tree.generate_proof(item.global_index), amount, blinding, config=FAST, **kwargs
    )


# ==============================================================================
# Output leaves and amount proofs
# ==============================================================================


class TestOutputLeaf:

    def test_binds_all_fields(self):
        tree = LeanIMT()
        item, _, _ = _register(tree)
        assert output_leaf(item) == hash_leaf(
            item.amount_commitment, item.one_time_public_key, item.global_index
        )
        assert output_leaf(replace(item, global_index=item.global_index + 1)) != output_leaf(item)

    def test_creation_height_not_part_of_leaf(self):
        tree = LeanIMT()
        item, _, _ = _register(tree)
        assert output_leaf(replace(item, creation_height=99)) == output_leaf(item)


class TestAmountProof:

    def test_generate(self):
        r = _random_r()
        proof = generate_amount_proof(500, r, bit_length=16)
        assert proof.commitment == PedersenCommitment.commit(500, r)
        assert proof.range_proof_hash != 0

    def test_out_of_range(self):
        with pytest.raises(ValueError, match="out of range"):
            generate_amount_proof(2**16, _random_r(), bit_length=16)


# ==============================================================================
# Spend proofs
# ==============================================================================


class TestSpendProof:

    def test_generate_and_verify(self):
        tree, outputs = _ledger([100, 250, 7])
        proof = _spend(tree, outputs[1], 250)
        assert verify_spend_proof(proof, tree.root).verdict is Verdict.VALID

    def test_every_position(self):
        amounts = [10 * (i + 1) for i in range(9)]
        tree, outputs = _ledger(amounts)
        for output, amount in zip(outputs, amounts):
            assert verify_spend_proof(_spend(tree, output, amount), tree.root)

    def test_nullifier_matches_engine(self):
        tree, outputs = _ledger([42])
        item, sk, _ = outputs[0]
        proof = _spend(tree, outputs[0], 42)
        assert proof.nullifier == compute_nullifier(sk, item.amount_commitment)
        assert proof.public_key == item.one_time_public_key

    def test_extended_nullifier(self):
        tree, outputs = _ledger([42, 43])
        item, sk, _ = outputs[1]
        extended = compute_nullifier_extended(sk, item.amount_commitment, asset_id=1)
        proof = _spend(tree, outputs[1], 43, nullifier=extended)
        assert proof.nullifier == extended
        assert verify_spend_proof(proof, tree.root).verdict is Verdict.VALID

    def test_external_range_proof_hash(self):
        tree, outputs = _ledger([42, 43])
        proof = _spend(tree, outputs[0], 42, range_proof_hash=123456789)
        assert proof.amount_proof == AmountProof(outputs[0][0].amount_commitment, 123456789)
        assert verify_spend_proof(proof, tree.root)

    def test_wrong_root(self):
        tree, outputs = _ledger([1, 2])
        proof = _spend(tree, outputs[0], 1)
        result = verify_spend_proof(proof, tree.root ^ 1)
        assert result.verdict is Verdict.PROOF_INVALID

    def test_stale_root_still_verifies_against_its_own_root(self):
        tree, outputs = _ledger([1, 2])
        proof = _spend(tree, outputs[0], 1)
        old_root = tree.root
        _register(tree)
        assert verify_spend_proof(proof, old_root)
        assert not verify_spend_proof(proof, tree.root)


class TestSpendProofGenerationRejects:

    def test_wrong_secret_key(self):
        tree, outputs = _ledger([5])
        item, _, blinding = outputs[0]
        with pytest.raises(MalformedInput, match="does not own"):
            generate_spend_proof(item, _random_r(), tree.generate_proof(0), 5, blinding)

    def test_wrong_amount(self):
        tree, outputs = _ledger([5])
        with pytest.raises(MalformedInput, match="do not open"):
            _spend(tree, outputs[0], 6)

    def test_membership_for_other_leaf(self):
        tree, outputs = _ledger([5, 6])
        item, sk, blinding = outputs[0]
        with pytest.raises(MalformedInput, match="different leaf"):
            generate_spend_proof(item, sk, tree.generate_proof(1), 5, blinding)

    def test_zero_secret_key(self):
        tree, outputs = _ledger([5])
        item, _, blinding = outputs[0]
        with pytest.raises(MalformedInput, match="secret_key"):
            generate_spend_proof(item, 0, tree.generate_proof(0), 5, blinding)

    def test_zero_range_hash(self):
        tree, outputs = _ledger([5])
        with pytest.raises(MalformedInput, match="range_proof_hash"):
            _spend(tree, outputs[0], 5, range_proof_hash=0)


class TestSpendProofVerificationRejects:

    def _proof(self):
        tree, outputs = _ledger([100, 200, 300])
        return tree, outputs, _spend(tree, outputs[1], 200)

    def test_zero_nullifier(self):
        tree, _, proof = self._proof()
        result = verify_spend_proof(replace(proof, nullifier=0), tree.root)
        assert result.verdict is Verdict.MALFORMED_INPUT

    def test_identity_public_key(self):
        tree, _, proof = self._proof()
        result = verify_spend_proof(replace(proof, public_key=IDENTITY), tree.root)
        assert result.verdict is Verdict.MALFORMED_INPUT

    def test_nullifier_mismatch(self):
        tree, outputs, proof = self._proof()
        other = _spend(tree, outputs[0], 100)
        result = verify_spend_proof(replace(proof, nullifier=other.nullifier), tree.root)
        assert result.verdict is Verdict.PROOF_INVALID

    def test_foreign_ownership_proof(self):
        tree, outputs, proof = self._proof()
        other = _spend(tree, outputs[0], 100)
        result = verify_spend_proof(
            replace(proof, ownership_proof=other.ownership_proof), tree.root
        )
        assert result.verdict is Verdict.PROOF_INVALID

    def test_foreign_amount_commitment(self):
        tree, outputs, proof = self._proof()
        swapped = AmountProof(outputs[0][0].amount_commitment, proof.amount_proof.range_proof_hash)
        result = verify_spend_proof(replace(proof, amount_proof=swapped), tree.root)
        assert result.verdict is Verdict.PROOF_INVALID

    def test_foreign_public_key(self):
        tree, outputs, proof = self._proof()
        result = verify_spend_proof(
            replace(proof, public_key=outputs[0][0].one_time_public_key), tree.root
        )
        assert result.verdict is Verdict.PROOF_INVALID

    def test_shifted_leaf_index(self):
        tree, _, proof = self._proof()
        shifted = replace(proof.membership_proof, leaf_index=0)
        result = verify_spend_proof(replace(proof, membership_proof=shifted), tree.root)
        assert result.verdict is Verdict.PROOF_INVALID

    def test_missing_range_proof(self):
        tree, _, proof = self._proof()
        empty = replace(proof.amount_proof, range_proof_hash=0)
        result = verify_spend_proof(replace(proof, amount_proof=empty), tree.root)
        assert result.verdict is Verdict.PROOF_INVALID

    def test_structurally_broken_proof(self):
        tree, _, proof = self._proof()
        result = verify_spend_proof(replace(proof, membership_proof=None), tree.root)
        assert result.verdict is Verdict.MALFORMED_INPUT


# ==============================================================================
# Input sets
# ==============================================================================


class TestInputSet:

    def _set(self, amounts: list[int]):
        tree, outputs = _ledger(amounts + [999])
        proofs = [_spend(tree, o, a) for o, a in zip(outputs, amounts)]
        keys = [sk for _, sk, _ in outputs[: len(amounts)]]
        return tree, outputs, proofs, keys

    def test_aggregate_and_verify(self):
        tree, outputs, proofs, keys = self._set([100, 20, 3])
        input_set = aggregate_inputs(proofs, keys)
        assert input_set.nullifiers == tuple(p.nullifier for p in proofs)
        assert verify_input_set(input_set, tree.root).verdict is Verdict.VALID

    def test_total_commitment_is_homomorphic_sum(self):
        tree, outputs, proofs, keys = self._set([100, 20, 3])
        input_set = aggregate_inputs(proofs, keys)
        blinding = sum(b for _, _, b in outputs[:3]) % SECP256K1_N
        assert PedersenCommitment.verify(input_set.total_commitment, 123, blinding)

    def test_single_input(self):
        tree, _, proofs, keys = self._set([64])
        assert verify_input_set(aggregate_inputs(proofs, keys), tree.root)

    def test_deterministic_with_nonce(self):
        _, _, proofs, keys = self._set([1, 2])
        k = _random_r()
        assert aggregate_inputs(proofs, keys, nonce=k) == aggregate_inputs(proofs, keys, nonce=k)

    def test_empty_rejected(self):
        with pytest.raises(MalformedInput, match="empty"):
            aggregate_inputs([], [])

    def test_key_count_mismatch(self):
        _, _, proofs, keys = self._set([1, 2])
        with pytest.raises(MalformedInput, match="secret keys"):
            aggregate_inputs(proofs, keys[:1])

    def test_wrong_key_rejected(self):
        _, _, proofs, keys = self._set([1, 2])
        with pytest.raises(MalformedInput, match="secret key 1"):
            aggregate_inputs(proofs, [keys[0], _random_r()])

    def test_repeated_nullifier_rejected(self):
        _, _, proofs, keys = self._set([1])
        with pytest.raises(MalformedInput, match="same nullifier"):
            aggregate_inputs(proofs * 2, keys * 2)

    def test_same_output_under_two_nullifiers_rejected(self):
        tree, outputs, proofs, keys = self._set([1])
        item, sk, _ = outputs[0]
        extended = compute_nullifier_extended(sk, item.amount_commitment, asset_id=1)
        again = _spend(tree, outputs[0], 1, nullifier=extended)
        with pytest.raises(MalformedInput, match="same output"):
            aggregate_inputs([proofs[0], again], keys * 2)

    def test_too_many_inputs(self):
        _, _, proofs, keys = self._set([1, 2, 3])
        with pytest.raises(SizeConstraintViolation):
            aggregate_inputs(proofs, keys, config=CoreConfig(max_inputs=2))


class TestInputSetVerificationRejects:

    def _valid(self):
        tree, outputs = _ledger([10, 20, 30, 40])
        proofs = [_spend(tree, o, a) for o, a in zip(outputs[:3], [10, 20, 30])]
        keys = [sk for _, sk, _ in outputs[:3]]
        return tree, outputs, aggregate_inputs(proofs, keys)

    def test_empty(self):
        tree, _, input_set = self._valid()
        result = verify_input_set(replace(input_set, proofs=()), tree.root)
        assert result.verdict is Verdict.MALFORMED_INPUT

    def test_size_bound(self):
        tree, _, input_set = self._valid()
        result = verify_input_set(input_set, tree.root, config=CoreConfig(max_inputs=2))
        assert result.verdict is Verdict.SIZE_CONSTRAINT_VIOLATION

    def test_repeated_nullifier_is_double_spend(self):
        tree, _, input_set = self._valid()
        doubled = replace(input_set, proofs=(input_set.proofs[0], input_set.proofs[0]))
        result = verify_input_set(doubled, tree.root)
        assert result.verdict is Verdict.DOUBLE_SPEND

    def test_bad_member_proof_reported_with_index(self):
        tree, _, input_set = self._valid()
        proofs = list(input_set.proofs)
        no_range = replace(proofs[1].amount_proof, range_proof_hash=0)
        proofs[1] = replace(proofs[1], amount_proof=no_range)
        result = verify_input_set(replace(input_set, proofs=tuple(proofs)), tree.root)
        assert result.verdict is Verdict.PROOF_INVALID
        assert result.reason.startswith("input 1:")

    def test_tampered_total(self):
        tree, _, input_set = self._valid()
        bad = replace(input_set, total_commitment=input_set.total_commitment + generator())
        assert verify_input_set(bad, tree.root).verdict is Verdict.PROOF_INVALID

    def test_dropped_input(self):
        tree, _, input_set = self._valid()
        bad = replace(input_set, proofs=input_set.proofs[:2])
        assert verify_input_set(bad, tree.root).verdict is Verdict.PROOF_INVALID

    def test_swapped_input(self):
        """Replacing one input with another valid spend breaks the aggregate binding."""
        tree, outputs, input_set = self._valid()
        extra = _spend(tree, outputs[3], 40)
        bad = replace(input_set, proofs=input_set.proofs[:2] + (extra,))
        assert verify_input_set(bad, tree.root).verdict is Verdict.PROOF_INVALID

    def test_tampered_response(self):
        tree, _, input_set = self._valid()
        response = (input_set.aggregate_response + 1) % SECP256K1_N
        bad = replace(input_set, aggregate_response=response)
        assert verify_input_set(bad, tree.root).verdict is Verdict.PROOF_INVALID

    def test_out_of_range_challenge(self):
        tree, _, input_set = self._valid()
        bad = replace(input_set, aggregate_challenge=SECP256K1_N)
        assert verify_input_set(bad, tree.root).verdict is Verdict.MALFORMED_INPUT

    def test_same_output_under_two_nullifiers_is_double_spend(self):
        """Every proof and the aggregate are sound; only the spent output repeats."""
        tree, outputs = _ledger([10, 20])
        item, sk, _ = outputs[0]
        extended = compute_nullifier_extended(sk, item.amount_commitment, asset_id=1)
        proofs = (_spend(tree, outputs[0], 10), _spend(tree, outputs[0], 10, nullifier=extended))
        k = _random_r()
        total = PedersenCommitment.combine([p.amount_proof.commitment for p in proofs])
        aggregate_commitment = scalar_mul(k, generator())
        c = input_set_challenge([p.nullifier for p in proofs], total, aggregate_commitment)
        input_set = InputSet(
            proofs=proofs,
            total_commitment=total,
            aggregate_commitment=aggregate_commitment,
            aggregate_challenge=c,
            aggregate_response=(k - c * 2 * sk) % SECP256K1_N,
        )

        result = verify_input_set(input_set, tree.root)

        assert result.verdict is Verdict.DOUBLE_SPEND
        assert "output" in result.reason

    @pytest.mark.parametrize("field", [
        "proofs", "aggregate_challenge", "aggregate_response", "aggregate_commitment",
    ])
    def test_missing_field_malformed(self, field):
        tree, _, input_set = self._valid()
        result = verify_input_set(replace(input_set, **{field: None}), tree.root)
        assert result.verdict is Verdict.MALFORMED_INPUT

    def test_non_proof_member_malformed(self):
        tree, _, input_set = self._valid()
        bad = replace(input_set, proofs=input_set.proofs[:2] + (None,))
        assert verify_input_set(bad, tree.root).verdict is Verdict.MALFORMED_INPUT
