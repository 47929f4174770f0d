"""
Verdicts and exceptions for the shielded core.

Two channels, never mixed:

- Verification entry points are total. They return a VerificationResult
  carrying a Verdict and never raise on malformed input.
- Construction entry points (signing, proof generation, decoy selection)
  raise a ShieldedCoreError subclass on precondition violations, before any
  curve work is done.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Verdict(str, Enum):
    """Outcome of a verification call."""
    VALID = "valid"
    MALFORMED_INPUT = "malformed_input"
    SIZE_CONSTRAINT_VIOLATION = "size_constraint_violation"
    PROOF_INVALID = "proof_invalid"
    DOUBLE_SPEND = "double_spend"
    INSUFFICIENT_POOL = "insufficient_pool"


@dataclass(frozen=True)
class VerificationResult:
    """
    A verdict plus a human-readable reason.

    Truthy only when the verdict is VALID, so `if verify(...)` reads
    naturally; inspect `.verdict` when the failure kind matters.
    """
    verdict: Verdict
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.verdict is Verdict.VALID

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def valid(cls) -> VerificationResult:
        return cls(Verdict.VALID)

    @classmethod
    def malformed(cls, reason: str) -> VerificationResult:
        return cls(Verdict.MALFORMED_INPUT, reason)

    @classmethod
    def invalid(cls, reason: str) -> VerificationResult:
        return cls(Verdict.PROOF_INVALID, reason)


class ShieldedCoreError(ValueError):
    """Base class for precondition violations raised by construction entry points."""
    verdict = Verdict.MALFORMED_INPUT


class MalformedInput(ShieldedCoreError):
    """Zero or degenerate values, empty rings, empty proofs, keys that don't match."""
    verdict = Verdict.MALFORMED_INPUT


class SizeConstraintViolation(ShieldedCoreError):
    """Ring or batch size outside the configured bounds."""
    verdict = Verdict.SIZE_CONSTRAINT_VIOLATION


class InsufficientPool(ShieldedCoreError):
    """Too few eligible decoys or ring candidates to satisfy a request."""
    verdict = Verdict.INSUFFICIENT_POOL
