"""
Unit tests for shielded_core.core — verdicts, exceptions and boundary records.
"""

import inspect

import pytest
from pydantic import ValidationError

from shielded_core.core.errors import (
    InsufficientPool,
    MalformedInput,
    ShieldedCoreError,
    SizeConstraintViolation,
    VerificationResult,
    Verdict,
)
from shielded_core.core.models import (
    AccumulatorRecord,
    OutputRecord,
    SpendableInput,
    SpendReceipt,
)
from shielded_core.crypto.curve import generator, scalar_mul
from shielded_core.privacy.accumulator import AccumulatorState, LeanIMT, hash_leaf


def _input(index: int = 3) -> SpendableInput:
    return SpendableInput(
        amount_commitment=scalar_mul(11, generator()),
        one_time_public_key=scalar_mul(13, generator()),
        global_index=index,
        creation_height=42,
    )


# ==============================================================================
# Verdicts
# ==============================================================================


class TestVerificationResult:

    def test_valid_is_truthy(self):
        assert VerificationResult.valid()
        assert VerificationResult.valid().ok

    @pytest.mark.parametrize("verdict", [v for v in Verdict if v is not Verdict.VALID])
    def test_failures_are_falsy(self, verdict):
        result = VerificationResult(verdict, "reason")
        assert not result
        assert not result.ok

    def test_helpers(self):
        assert VerificationResult.malformed("x").verdict is Verdict.MALFORMED_INPUT
        assert VerificationResult.invalid("y").verdict is Verdict.PROOF_INVALID
        assert VerificationResult.invalid("y").reason == "y"

    def test_verdict_values_are_strings(self):
        assert Verdict.DOUBLE_SPEND == "double_spend"
        assert Verdict("valid") is Verdict.VALID


class TestExceptions:

    @pytest.mark.parametrize("exc,verdict", [
        (MalformedInput, Verdict.MALFORMED_INPUT),
        (SizeConstraintViolation, Verdict.SIZE_CONSTRAINT_VIOLATION),
        (InsufficientPool, Verdict.INSUFFICIENT_POOL),
    ])
    def test_hierarchy_and_verdict(self, exc, verdict):
        err = exc("boom")
        assert isinstance(err, ShieldedCoreError)
        assert isinstance(err, ValueError)
        assert err.verdict is verdict


# ==============================================================================
# Records
# ==============================================================================


class TestOutputRecord:

    def test_roundtrip(self):
        item = _input()
        record = OutputRecord.from_input(item, denomination_bin=2)
        assert record.commitment_x == item.amount_commitment.x
        assert record.public_key_y == item.one_time_public_key.y
        assert record.denomination_bin == 2
        assert record.to_input() == item

    def test_json_roundtrip(self):
        record = OutputRecord.from_input(_input())
        restored = OutputRecord.model_validate_json(record.model_dump_json())
        assert restored == record

    def test_off_curve_rejected(self):
        record = OutputRecord.from_input(_input())
        bad = record.model_copy(update={"commitment_y": record.commitment_y + 1})
        with pytest.raises(ValueError, match="off-curve"):
            bad.to_input()

    def test_negative_index_rejected(self):
        with pytest.raises(ValidationError):
            OutputRecord(
                global_index=-1,
                commitment_x=1,
                commitment_y=1,
                public_key_x=1,
                public_key_y=1,
                creation_height=0,
            )


class TestAccumulatorRecord:

    def test_from_state(self):
        tree = LeanIMT([hash_leaf(i) for i in range(1, 6)])
        record = AccumulatorRecord.from_state(tree.state())
        assert (record.root, record.size, record.depth) == (tree.root, 5, 3)

    def test_empty_state(self):
        record = AccumulatorRecord.from_state(AccumulatorState.empty())
        assert record.size == 0
        assert record.root == 0

    def test_from_state_is_typed(self):
        annotation = inspect.signature(AccumulatorRecord.from_state).parameters["state"].annotation
        assert annotation == "AccumulatorState"


class TestSpendReceipt:

    def test_accepted(self):
        receipt = SpendReceipt(
            nullifier=5, verdict=Verdict.VALID.value, output_root=1, nullifier_root=2,
            nullifier_index=0,
        )
        assert receipt.accepted

    def test_rejected(self):
        receipt = SpendReceipt(
            nullifier=5, verdict=Verdict.DOUBLE_SPEND.value, reason="spent",
            output_root=1, nullifier_root=2,
        )
        assert not receipt.accepted
        assert receipt.nullifier_index is None
