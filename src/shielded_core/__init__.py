"""
shielded-core: confidential amounts, nullifiers, accumulators and ring
signatures for spending hidden outputs exactly once.

Usage:
    from shielded_core import CoreConfig, LeanIMT, generate_spend_proof
    from shielded_core.relayer import SpendRelayer
"""

from shielded_core.config import DEFAULT_CONFIG, CoreConfig
from shielded_core.core.errors import (
    InsufficientPool,
    MalformedInput,
    ShieldedCoreError,
    SizeConstraintViolation,
    VerificationResult,
    Verdict,
)
from shielded_core.core.models import SpendableInput
from shielded_core.privacy.accumulator import LeanIMT, verify_membership
from shielded_core.privacy.spend import (
    aggregate_inputs,
    generate_spend_proof,
    verify_input_set,
    verify_spend_proof,
)

__version__ = "0.1.0"
__all__ = [
    "CoreConfig",
    "DEFAULT_CONFIG",
    "Verdict",
    "VerificationResult",
    "ShieldedCoreError",
    "MalformedInput",
    "SizeConstraintViolation",
    "InsufficientPool",
    "SpendableInput",
    "LeanIMT",
    "verify_membership",
    "generate_spend_proof",
    "verify_spend_proof",
    "aggregate_inputs",
    "verify_input_set",
]
