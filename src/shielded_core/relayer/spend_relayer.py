"""
Spend Relayer — reference ledger for outputs and nullifiers.

Owns the two authoritative accumulators and the output registry:

    outputs tree:    one leaf per registered output, output_leaf(input)
    nullifier tree:  one leaf per accepted spend, nullifier_leaf(nullifier)
    spent outputs:   output leaves consumed by accepted spends
    registry:        OutputRecord per global index (persisted form)

Spend flow:
    1. The membership root carried by the proof must be one of the last
       `root_history` output roots, so proofs built just before another
       output lands still verify.
    2. The spend proof (or input set) is verified outside the lock.
    3. Under the lock, every nullifier is checked against the nullifier
       tree and every output leaf against the spent outputs; if none is
       present, all are recorded together.

Step 3 is the only place where either set changes, so two concurrent
submissions of the same nullifier can never both be accepted. An output
may be spent once whichever nullifier variant the proof carries
(compute_nullifier or compute_nullifier_extended).
"""

from __future__ import annotations

import logging
import threading
from collections import deque

from shielded_core.config import DEFAULT_CONFIG, CoreConfig
from shielded_core.core.errors import MalformedInput, VerificationResult, Verdict
from shielded_core.core.models import AccumulatorRecord, OutputRecord, SpendableInput, SpendReceipt
from shielded_core.crypto.curve import CurvePoint, is_on_curve
from shielded_core.privacy.accumulator import AccumulatorState, LeanIMT, MembershipProof
from shielded_core.privacy.decoys import PoolEntry
from shielded_core.privacy.nullifier import check_spend_validity, nullifier_leaf
from shielded_core.privacy.spend import (
    InputSet,
    SpendProof,
    output_leaf,
    verify_input_set,
    verify_spend_proof,
)

logger = logging.getLogger("shielded_core.relayer")

# Number of past output roots a spend proof may be anchored to
DEFAULT_ROOT_HISTORY = 32


class SpendRelayer:
    """
    In-memory ledger collaborator.

    Usage:
        relayer = SpendRelayer()
        item = relayer.register_output(commitment, one_time_pk, creation_height=5)
        proof = generate_spend_proof(item, sk, relayer.output_proof(item.global_index), ...)
        receipt = relayer.submit_spend(proof)
        assert receipt.accepted
    """

    def __init__(
        self,
        config: CoreConfig = DEFAULT_CONFIG,
        root_history: int = DEFAULT_ROOT_HISTORY,
    ):
        """
        Args:
            config: Bounds applied to submitted input sets.
            root_history: How many recent output roots stay acceptable.
        """
        if root_history < 1:
            raise ValueError(f"root_history must be >= 1, got {root_history}")
        self.config = config
        self._lock = threading.Lock()
        self._outputs = LeanIMT()
        self._nullifiers = LeanIMT()
        self._spent_outputs: set[int] = set()
        self._records: list[OutputRecord] = []
        self._recent_roots: deque[int] = deque(maxlen=root_history)

    # ------------------------------------------------------------------
    # Outputs
    # ------------------------------------------------------------------

    def register_output(
        self,
        amount_commitment: CurvePoint,
        one_time_public_key: CurvePoint,
        creation_height: int,
        denomination_bin: int = 0,
    ) -> SpendableInput:
        """
        Append a new output and return it with its global index.

        Raises:
            MalformedInput: If a point is the identity or off the curve, or
                the height is negative.
        """
        for label, point in (
            ("amount_commitment", amount_commitment),
            ("one_time_public_key", one_time_public_key),
        ):
            if point.is_identity() or not is_on_curve(point):
                raise MalformedInput(f"{label} is not a valid curve point")
        if creation_height < 0:
            raise MalformedInput(f"creation_height must be non-negative, got {creation_height}")

        with self._lock:
            item = SpendableInput(
                amount_commitment=amount_commitment,
                one_time_public_key=one_time_public_key,
                global_index=self._outputs.size,
                creation_height=creation_height,
            )
            self._outputs.insert(output_leaf(item))
            self._records.append(OutputRecord.from_input(item, denomination_bin))
            self._recent_roots.append(self._outputs.root)

        logger.info(f"Registered output {item.global_index} at height {creation_height}")
        return item

    def output(self, global_index: int) -> SpendableInput:
        """Look up an output by global index (IndexError if unknown)."""
        with self._lock:
            if not 0 <= global_index < len(self._records):
                raise IndexError(f"No output with global index {global_index}")
            record = self._records[global_index]
        return record.to_input()

    def output_proof(self, global_index: int) -> MembershipProof:
        """Membership proof for an output against the current output root."""
        with self._lock:
            return self._outputs.generate_proof(global_index)

    def decoy_pool(self) -> list[PoolEntry]:
        """Every registered output in the shape decoy selection expects."""
        with self._lock:
            return [
                PoolEntry(r.global_index, r.denomination_bin, r.creation_height)
                for r in self._records
            ]

    def records(self) -> list[OutputRecord]:
        with self._lock:
            return list(self._records)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def output_state(self) -> AccumulatorState:
        with self._lock:
            return self._outputs.state()

    @property
    def nullifier_state(self) -> AccumulatorState:
        with self._lock:
            return self._nullifiers.state()

    def snapshot(self) -> dict[str, AccumulatorRecord]:
        """Persistable records for both accumulators."""
        with self._lock:
            return {
                "outputs": AccumulatorRecord.from_state(self._outputs.state()),
                "nullifiers": AccumulatorRecord.from_state(self._nullifiers.state()),
            }

    def is_known_root(self, root: int) -> bool:
        with self._lock:
            return root in self._recent_roots

    def is_spent(self, nullifier: int) -> bool:
        with self._lock:
            return self._nullifiers.has(nullifier_leaf(nullifier))

    def is_output_spent(self, global_index: int) -> bool:
        """True once any accepted spend consumed the output (IndexError if unknown)."""
        with self._lock:
            if not 0 <= global_index < self._outputs.size:
                raise IndexError(f"No output with global index {global_index}")
            return self._outputs.leaves[global_index] in self._spent_outputs

    def nullifier_membership(self, nullifier: int) -> MembershipProof | None:
        """Proof that a nullifier was spent, or None if it never was."""
        with self._lock:
            index = self._nullifiers.index_of(nullifier_leaf(nullifier))
            if index is None:
                return None
            return self._nullifiers.generate_proof(index)

    # ------------------------------------------------------------------
    # Spends
    # ------------------------------------------------------------------

    def _receipt(
        self,
        nullifier: int,
        result: VerificationResult,
        nullifier_index: int | None = None,
    ) -> SpendReceipt:
        return SpendReceipt(
            nullifier=nullifier,
            verdict=result.verdict.value,
            reason=result.reason,
            output_root=self._outputs.root,
            nullifier_root=self._nullifiers.root,
            nullifier_index=nullifier_index,
        )

    def _anchor(self, proofs: tuple[SpendProof, ...]) -> tuple[int | None, VerificationResult]:
        roots = {p.membership_proof.root for p in proofs}
        if len(roots) != 1:
            return None, VerificationResult.invalid("inputs are anchored to different output roots")
        root = roots.pop()
        if not self.is_known_root(root):
            return None, VerificationResult.invalid("membership root is not a recent output root")
        return root, VerificationResult.valid()

    def _check_unspent(self, proof: SpendProof) -> VerificationResult:
        """Caller holds the lock."""
        index = self._nullifiers.index_of(nullifier_leaf(proof.nullifier))
        membership = None if index is None else self._nullifiers.generate_proof(index)
        result = check_spend_validity(proof.nullifier_proof, self._nullifiers.state(), membership)
        if result and proof.membership_proof.leaf in self._spent_outputs:
            logger.warning(f"Double-spend attempt: output {proof.membership_proof.leaf_index}")
            return VerificationResult(Verdict.DOUBLE_SPEND, "output already spent")
        return result

    def submit_spend(self, proof: SpendProof) -> SpendReceipt:
        """
        Verify a spend proof and record its nullifier and the spent output.

        Returns:
            A SpendReceipt; `accepted` is True only when the nullifier was
            inserted by this call.
        """
        root, result = self._anchor((proof,))
        if result:
            result = verify_spend_proof(proof, root)
        if not result:
            logger.debug(f"Rejected spend 0x{proof.nullifier:064x}: {result.reason}")
            with self._lock:
                return self._receipt(proof.nullifier, result)

        with self._lock:
            result = self._check_unspent(proof)
            if not result:
                return self._receipt(proof.nullifier, result)
            index = self._nullifiers.insert(nullifier_leaf(proof.nullifier))
            self._spent_outputs.add(proof.membership_proof.leaf)
            receipt = self._receipt(proof.nullifier, result, index)

        logger.info(f"Accepted spend 0x{proof.nullifier:064x} as nullifier {index}")
        return receipt

    def submit_input_set(self, input_set: InputSet) -> list[SpendReceipt]:
        """
        Verify an input set and record all of its nullifiers and outputs, or none.

        Returns:
            One receipt per input, in input order, all sharing one verdict.
        """
        proofs = tuple(input_set.proofs)
        if not proofs:
            return []
        root, result = self._anchor(proofs)
        if result:
            result = verify_input_set(input_set, root, self.config)
        if not result:
            logger.debug(f"Rejected input set of {len(proofs)}: {result.reason}")
            with self._lock:
                return [self._receipt(p.nullifier, result) for p in proofs]

        with self._lock:
            for i, proof in enumerate(proofs):
                check = self._check_unspent(proof)
                if not check:
                    failure = VerificationResult(check.verdict, f"input {i}: {check.reason}")
                    return [self._receipt(p.nullifier, failure) for p in proofs]
            indices = [self._nullifiers.insert(nullifier_leaf(p.nullifier)) for p in proofs]
            self._spent_outputs.update(p.membership_proof.leaf for p in proofs)
            receipts = [
                self._receipt(p.nullifier, VerificationResult.valid(), idx)
                for p, idx in zip(proofs, indices)
            ]

        logger.info(f"Accepted input set of {len(proofs)} (nullifiers {indices[0]}..{indices[-1]})")
        return receipts

