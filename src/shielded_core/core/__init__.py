"""
shielded_core.core — verdicts, exceptions and boundary data models.
"""

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

__all__ = [
    "Verdict",
    "VerificationResult",
    "ShieldedCoreError",
    "MalformedInput",
    "SizeConstraintViolation",
    "InsufficientPool",
    "SpendableInput",
    "OutputRecord",
    "AccumulatorRecord",
    "SpendReceipt",
]
