"""
Core data models shared between the shielded core and the ledger.

Internal code works on structured values (CurvePoint, SpendableInput).
The pydantic records below are the ledger's persistence format, where curve
points are flattened into separate x/y fields; convert at the boundary with
the from_*/to_* helpers and never pass records into the crypto layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from shielded_core.crypto.curve import CurvePoint, is_on_curve

if TYPE_CHECKING:
    from shielded_core.privacy.accumulator import AccumulatorState


@dataclass(frozen=True)
class SpendableInput:
    """
    An unspent encrypted output, as issued by the ledger's output registry.

    Immutable once created; always referenced by global_index.
    """
    amount_commitment: CurvePoint
    one_time_public_key: CurvePoint
    global_index: int
    creation_height: int


class OutputRecord(BaseModel):
    """Persisted form of a SpendableInput (flattened coordinates)."""
    global_index: int = Field(..., ge=0)
    commitment_x: int = Field(..., ge=0)
    commitment_y: int = Field(..., ge=0)
    public_key_x: int = Field(..., ge=0)
    public_key_y: int = Field(..., ge=0)
    creation_height: int = Field(..., ge=0)
    denomination_bin: int = Field(0, ge=0)

    @classmethod
    def from_input(cls, item: SpendableInput, denomination_bin: int = 0) -> OutputRecord:
        return cls(
            global_index=item.global_index,
            commitment_x=item.amount_commitment.x,
            commitment_y=item.amount_commitment.y,
            public_key_x=item.one_time_public_key.x,
            public_key_y=item.one_time_public_key.y,
            creation_height=item.creation_height,
            denomination_bin=denomination_bin,
        )

    def to_input(self) -> SpendableInput:
        """
        Rebuild the structured input.

        Raises:
            ValueError: If either stored point is not on the curve.
        """
        commitment = CurvePoint(self.commitment_x, self.commitment_y)
        public_key = CurvePoint(self.public_key_x, self.public_key_y)
        if not (is_on_curve(commitment) and is_on_curve(public_key)):
            raise ValueError(f"Output {self.global_index} holds an off-curve point")
        return SpendableInput(
            amount_commitment=commitment,
            one_time_public_key=public_key,
            global_index=self.global_index,
            creation_height=self.creation_height,
        )


class AccumulatorRecord(BaseModel):
    """Persisted accumulator snapshot {root, size, depth}."""
    root: int = Field(..., ge=0)
    size: int = Field(..., ge=0)
    depth: int = Field(..., ge=0)

    @classmethod
    def from_state(cls, state: AccumulatorState) -> AccumulatorRecord:
        return cls(root=state.root, size=state.size, depth=state.depth)


class SpendReceipt(BaseModel):
    """What the ledger reports back after processing a spend."""
    nullifier: int
    verdict: str
    reason: str = ""
    output_root: int
    nullifier_root: int
    nullifier_index: int | None = None

    @property
    def accepted(self) -> bool:
        return self.verdict == "valid"
