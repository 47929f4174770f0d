"""
Schnorr proof of knowledge of a discrete logarithm (Fiat-Shamir).

Statement: "I know x such that X = x·G", bound to a caller-chosen context.

    commitment = k·G
    challenge  = H(domain, context..., X, commitment)   mod N
    response   = k − challenge·x                        mod N

Verification recomputes the challenge and checks
    response·G + challenge·X == commitment.

All scalar arithmetic is modulo the group order N. The nonce k must never
be reused under the same x: two proofs sharing k reveal x.
"""

from __future__ import annotations

from dataclasses import dataclass

from shielded_core.crypto.curve import (
    SECP256K1_N,
    CurvePoint,
    add,
    generator,
    is_on_curve,
    random_scalar,
    scalar_mul,
)
from shielded_core.crypto.hashing import DOMAIN_SCHNORR, hash_to_scalar


@dataclass(frozen=True)
class SchnorrProof:
    """A (commitment, challenge, response) triple."""
    commitment: CurvePoint
    challenge: int
    response: int


def challenge_for(
    public_point: CurvePoint,
    commitment: CurvePoint,
    context: tuple[int | CurvePoint, ...] = (),
    domain: bytes = DOMAIN_SCHNORR,
) -> int:
    return hash_to_scalar(domain, *context, public_point, commitment)


def prove(
    secret: int,
    context: tuple[int | CurvePoint, ...] = (),
    nonce: int | None = None,
    domain: bytes = DOMAIN_SCHNORR,
) -> SchnorrProof:
    """
    Prove knowledge of `secret` for the point secret·G.

    Args:
        secret: The discrete log x in [1, N-1].
        context: Values the proof is bound to (e.g. the output being spent).
        nonce: Optional k; drawn from the CSPRNG when omitted.
        domain: Domain tag for the challenge hash.

    Raises:
        ValueError: If secret or nonce is out of range.
    """
    if not 0 < secret < SECP256K1_N:
        raise ValueError("secret must be in [1, N-1]")
    k = random_scalar() if nonce is None else nonce
    if not 0 < k < SECP256K1_N:
        raise ValueError("nonce must be in [1, N-1]")

    public_point = scalar_mul(secret, generator())
    commitment = scalar_mul(k, generator())
    c = challenge_for(public_point, commitment, context, domain)
    s = (k - c * secret) % SECP256K1_N
    return SchnorrProof(commitment=commitment, challenge=c, response=s)


def verify(
    proof: SchnorrProof,
    public_point: CurvePoint,
    context: tuple[int | CurvePoint, ...] = (),
    domain: bytes = DOMAIN_SCHNORR,
) -> bool:
    """Return True iff the proof is well-formed and both checks pass."""
    if not (0 <= proof.challenge < SECP256K1_N and 0 <= proof.response < SECP256K1_N):
        return False
    if public_point.is_identity() or not is_on_curve(public_point):
        return False
    if proof.commitment.is_identity() or not is_on_curve(proof.commitment):
        return False
    if challenge_for(public_point, proof.commitment, context, domain) != proof.challenge:
        return False
    lhs = add(
        scalar_mul(proof.response, generator()),
        scalar_mul(proof.challenge, public_point),
    )
    return lhs == proof.commitment
