"""
Linkable Spontaneous Anonymous Group (LSAG) ring signatures.

Signs a message on behalf of an ad-hoc ring of public keys without revealing
which member signed, while exposing a key image that is the same for every
signature made with the same secret key.

Mathematical foundation:
    Hp(P)      = hash_to_curve(P)
    I          = sk·Hp(P_s)                                  (key image)
    m          = H_msg(message)

    Signer s picks k:      L_s = k·G,  R_s = k·Hp(P_s)
                           c_{s+1} = H(m, L_s, R_s)
    Other members i ≠ s:   L_i = r_i·G + c_i·P_i
                           R_i = r_i·Hp(P_i) + c_i·I
                           c_{i+1} = H(m, L_i, R_i)
    Close the ring:        r_s = k − c_s·sk   (mod N)

    Signature = (ring, I, c_0, r_0..r_{n-1}). Verification replays the walk
    from c_0 over all n members and accepts iff it returns to c_0.

All challenges and responses live in Z_N. The per-member responses r_i
(i ≠ s) are taken from caller-supplied nonces when given; nonce_slot maps a
ring position to its nonce. Reusing k across two signatures by the same key
reveals the key.

References:
    [LWW04] J.K. Liu, V.K. Wei, D.S. Wong, "Linkable Spontaneous Anonymous
            Group Signature for Ad Hoc Groups", ACISP 2004.
    [ZtM2]  Koe, K.M. Alonso, S. Noether, "Zero to Monero", 2nd ed., §3.4.
"""

from __future__ import annotations

import logging
import random
import secrets
from collections.abc import Collection, Iterable, Sequence
from dataclasses import dataclass

from shielded_core.config import DEFAULT_CONFIG, CoreConfig
from shielded_core.core.errors import (
    InsufficientPool,
    MalformedInput,
    VerificationResult,
    Verdict,
)
from shielded_core.crypto.curve import (
    SECP256K1_N,
    CurvePoint,
    add,
    generator,
    hash_point_to_curve,
    is_on_curve,
    random_scalar,
    scalar_mul,
)
from shielded_core.crypto.hashing import (
    DOMAIN_RING,
    DOMAIN_RING_MESSAGE,
    hash_message,
    hash_to_scalar,
)

logger = logging.getLogger("shielded_core.ring_signature")


@dataclass(frozen=True)
class RingSignature:
    """
    An LSAG signature.

    Attributes:
        ring: Public keys P_0..P_{n-1}, in signing order.
        key_image: I = sk·Hp(P_s); identical across all signatures by sk.
        c0: Challenge at ring position 0.
        responses: r_0..r_{n-1}.
    """
    ring: tuple[CurvePoint, ...]
    key_image: CurvePoint
    c0: int
    responses: tuple[int, ...]

    @property
    def ring_size(self) -> int:
        return len(self.ring)


# ==============================================================================
# Helpers
# ==============================================================================


def nonce_slot(position: int, signer_index: int, ring_size: int) -> int:
    """
    Index into the supplied nonce list for a non-signer ring position.

    The signing walk visits signer+1, signer+2, … (mod n); the member at
    distance d ≥ 1 from the signer consumes nonce d − 1. Slots therefore run
    0..n−2 in walk order, independent of where the signer sits.

    Raises:
        ValueError: If an index is out of range or position is the signer's.
    """
    if ring_size < 2:
        raise ValueError(f"ring_size must be >= 2, got {ring_size}")
    if not 0 <= position < ring_size or not 0 <= signer_index < ring_size:
        raise ValueError("position and signer_index must be in [0, ring_size)")
    if position == signer_index:
        raise ValueError("the signer's position has no nonce slot")
    return (position - signer_index - 1) % ring_size


def key_image(secret_key: int, public_key: CurvePoint | None = None) -> CurvePoint:
    """I = sk·Hp(sk·G). Pass public_key to skip recomputing sk·G."""
    if not 0 < secret_key < SECP256K1_N:
        raise MalformedInput("secret_key must be in [1, N-1]")
    if public_key is None:
        public_key = scalar_mul(secret_key, generator())
    return scalar_mul(secret_key, hash_point_to_curve(public_key))


def _round_challenge(m: int, L: CurvePoint, R: CurvePoint) -> int:
    return hash_to_scalar(DOMAIN_RING, m, L, R)


def _member_round(
    m: int,
    response: int,
    challenge: int,
    member: CurvePoint,
    image: CurvePoint,
) -> int:
    L = add(scalar_mul(response, generator()), scalar_mul(challenge, member))
    R = add(
        scalar_mul(response, hash_point_to_curve(member)),
        scalar_mul(challenge, image),
    )
    return _round_challenge(m, L, R)


def _validate_members(ring: Sequence[CurvePoint]) -> None:
    if len(set(ring)) != len(ring):
        raise MalformedInput("ring contains duplicate public keys")
    for i, p in enumerate(ring):
        if p.is_identity() or not is_on_curve(p):
            raise MalformedInput(f"ring member {i} is not a valid curve point")


# ==============================================================================
# Sign / verify
# ==============================================================================


def sign(
    message: bytes | str,
    secret_key: int,
    signer_index: int,
    ring: Sequence[CurvePoint],
    nonces: Sequence[int] | None = None,
    k: int | None = None,
    config: CoreConfig = DEFAULT_CONFIG,
) -> RingSignature:
    """
    Produce an LSAG signature over `message`.

    Args:
        message: Bytes or text to sign.
        secret_key: sk with ring[signer_index] == sk·G.
        signer_index: Position of the signer in the ring.
        ring: Public keys, signer included.
        nonces: n − 1 responses for the non-signer members, consumed in walk
            order (see nonce_slot). Drawn from the CSPRNG when omitted.
        k: The signer's commitment nonce; drawn from the CSPRNG when omitted.
        config: Ring-size bounds.

    Raises:
        MalformedInput: Empty ring, bad index, wrong nonce count, invalid or
            duplicate members, or a key that doesn't match the ring.
        SizeConstraintViolation: Ring size outside the configured bounds.
    """
    ring = tuple(ring)
    n = len(ring)
    if n == 0:
        raise MalformedInput("ring is empty")
    config.validate_ring_size(n)
    if not 0 <= signer_index < n:
        raise MalformedInput(f"signer_index {signer_index} out of range for ring of {n}")
    if not 0 < secret_key < SECP256K1_N:
        raise MalformedInput("secret_key must be in [1, N-1]")
    if nonces is None:
        nonces = [random_scalar() for _ in range(n - 1)]
    if len(nonces) != n - 1:
        raise MalformedInput(f"expected {n - 1} nonces, got {len(nonces)}")
    if any(not 0 <= r < SECP256K1_N for r in nonces):
        raise MalformedInput("nonces must be in [0, N-1]")
    if k is None:
        k = random_scalar()
    if not 0 < k < SECP256K1_N:
        raise MalformedInput("k must be in [1, N-1]")
    _validate_members(ring)

    signer_pk = ring[signer_index]
    if scalar_mul(secret_key, generator()) != signer_pk:
        raise MalformedInput("secret_key does not match ring[signer_index]")

    m = hash_message(DOMAIN_RING_MESSAGE, message)
    signer_hp = hash_point_to_curve(signer_pk)
    image = scalar_mul(secret_key, signer_hp)

    challenges = [0] * n
    responses = [0] * n

    i = (signer_index + 1) % n
    challenges[i] = _round_challenge(
        m, scalar_mul(k, generator()), scalar_mul(k, signer_hp)
    )
    while i != signer_index:
        responses[i] = nonces[nonce_slot(i, signer_index, n)]
        nxt = (i + 1) % n
        challenges[nxt] = _member_round(m, responses[i], challenges[i], ring[i], image)
        i = nxt

    responses[signer_index] = (k - challenges[signer_index] * secret_key) % SECP256K1_N

    return RingSignature(
        ring=ring,
        key_image=image,
        c0=challenges[0],
        responses=tuple(responses),
    )


def verify(
    signature: RingSignature,
    message: bytes | str,
    config: CoreConfig = DEFAULT_CONFIG,
) -> VerificationResult:
    """
    Verify an LSAG signature. Total: never raises on malformed input,
    including fields of the wrong type.

    Returns:
        MALFORMED_INPUT, SIZE_CONSTRAINT_VIOLATION, PROOF_INVALID or VALID.
    """
    try:
        return _verify(signature, message, config)
    except (ValueError, TypeError, AttributeError) as e:
        logger.debug(f"Malformed ring signature: {e}")
        return VerificationResult.malformed(f"malformed ring signature: {e}")


def _verify(
    signature: RingSignature,
    message: bytes | str,
    config: CoreConfig,
) -> VerificationResult:
    n = len(signature.ring)
    if n == 0:
        return VerificationResult.malformed("ring is empty")
    if not config.ring_size_ok(n):
        return VerificationResult(
            Verdict.SIZE_CONSTRAINT_VIOLATION,
            f"ring size {n} outside [{config.min_ring_size}, {config.max_ring_size}]",
        )
    if len(signature.responses) != n:
        return VerificationResult.malformed(
            f"{len(signature.responses)} responses for a ring of {n}"
        )
    image = signature.key_image
    if image.is_identity() or not is_on_curve(image):
        return VerificationResult.malformed("key image is not a valid curve point")
    try:
        _validate_members(signature.ring)
    except MalformedInput as e:
        return VerificationResult.malformed(str(e))
    if not 0 <= signature.c0 < SECP256K1_N:
        return VerificationResult.malformed("c0 out of range")
    if any(not 0 <= r < SECP256K1_N for r in signature.responses):
        return VerificationResult.malformed("response out of range")

    m = hash_message(DOMAIN_RING_MESSAGE, message)
    c = signature.c0
    for member, response in zip(signature.ring, signature.responses):
        c = _member_round(m, response, c, member, image)

    if c != signature.c0:
        logger.debug(f"Ring of {n} failed to close")
        return VerificationResult.invalid("challenge chain does not close")
    return VerificationResult.valid()


# ==============================================================================
# Linkability
# ==============================================================================


def is_linked(a: RingSignature, b: RingSignature) -> bool:
    """True when both signatures were produced with the same secret key."""
    return a.key_image == b.key_image


def key_image_seen(image: CurvePoint, seen: Collection[CurvePoint]) -> bool:
    """Membership search over previously observed key images."""
    return image in seen


# ==============================================================================
# Ring selection
# ==============================================================================


def select_ring(
    signer_public_key: CurvePoint,
    decoy_pool: Iterable[CurvePoint],
    ring_size: int,
    seed: int | None = None,
    config: CoreConfig = DEFAULT_CONFIG,
) -> tuple[tuple[CurvePoint, ...], int]:
    """
    Build a ring around the signer from a pool of candidate keys.

    Decoys are drawn without repetition (the signer's own key and invalid
    points are skipped) and the signer lands at a pseudorandom position.
    A fixed seed makes the selection reproducible.

    Returns:
        (ring, signer_index)

    Raises:
        SizeConstraintViolation: ring_size outside the configured bounds.
        InsufficientPool: Fewer than ring_size − 1 distinct eligible decoys.
    """
    config.validate_ring_size(ring_size)

    candidates: list[CurvePoint] = []
    seen: set[CurvePoint] = {signer_public_key}
    for p in decoy_pool:
        if p in seen or p.is_identity() or not is_on_curve(p):
            continue
        seen.add(p)
        candidates.append(p)

    if len(candidates) < ring_size - 1:
        raise InsufficientPool(
            f"Need {ring_size - 1} distinct decoys, pool has {len(candidates)}"
        )

    rng: random.Random = random.Random(seed) if seed is not None else secrets.SystemRandom()
    decoys = rng.sample(candidates, ring_size - 1)
    signer_index = rng.randrange(ring_size)
    ring = (*decoys[:signer_index], signer_public_key, *decoys[signer_index:])
    return ring, signer_index
