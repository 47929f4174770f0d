"""
Additively homomorphic (exponential) ElGamal over secp256k1.

Provides:
- Ciphertext: (C1, C2) pair with componentwise homomorphic algebra
- encrypt / decrypt / rerandomize
- decode_amount: bounded discrete-log recovery of the plaintext scalar
- EncryptedBalance: a running encrypted balance with pending deltas and epochs

Mathematical foundation:
    Enc(a, PK; r) = (r·G, a·H + r·PK)           with PK = sk·G
    Dec(C, sk)    = C2 − sk·C1 = a·H

    Enc(a; r1) + Enc(b; r2) = Enc(a + b; r1 + r2), componentwise.

    Decryption yields the point a·H, not a. Recovering a needs either a
    bounded search (decode_amount) or an auxiliary plaintext channel.

References:
    [ElG85] T. ElGamal, "A Public Key Cryptosystem and a Signature Scheme
            Based on Discrete Logarithms", CRYPTO '84.
    [CGS97] Cramer, Gennaro, Schoenmakers, "A Secure and Optimally Efficient
            Multi-Authority Election Scheme", EUROCRYPT '97 (exponential ElGamal).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace

from shielded_core.crypto.curve import (
    IDENTITY,
    SECP256K1_N,
    CurvePoint,
    add,
    generator,
    is_on_curve,
    negate,
    scalar_mul,
    secondary_generator,
    subtract,
)

DEFAULT_MAX_AMOUNT = 2**20
"""Default search bound for decode_amount."""


# ==============================================================================
# Ciphertext
# ==============================================================================


@dataclass(frozen=True)
class Ciphertext:
    """An ElGamal ciphertext (C1 = r·G, C2 = amount·H + r·PK)."""
    c1: CurvePoint
    c2: CurvePoint

    def __add__(self, other: Ciphertext) -> Ciphertext:
        return homomorphic_add(self, other)

    def __sub__(self, other: Ciphertext) -> Ciphertext:
        return homomorphic_sub(self, other)

    def __mul__(self, k: int) -> Ciphertext:
        return homomorphic_scalar_mul(self, k)

    __rmul__ = __mul__

    def is_well_formed(self) -> bool:
        return is_on_curve(self.c1) and is_on_curve(self.c2)


ZERO_CIPHERTEXT = Ciphertext(IDENTITY, IDENTITY)
"""Enc(0; r = 0): the additive identity for ciphertexts."""


def encrypt(amount: int, public_key: CurvePoint, randomness: int) -> Ciphertext:
    """
    Encrypt `amount` under `public_key` with explicit randomness r.

    Args:
        amount: Non-negative plaintext amount.
        public_key: Recipient public key PK = sk·G.
        randomness: r in [1, N-1]; must be fresh per encryption.

    Raises:
        ValueError: On a negative amount, out-of-range r, or identity key.
    """
    if amount < 0:
        raise ValueError(f"amount must be non-negative, got {amount}")
    if randomness <= 0 or randomness >= SECP256K1_N:
        raise ValueError(f"randomness must be in [1, N-1], got {randomness}")
    if public_key.is_identity() or not is_on_curve(public_key):
        raise ValueError("public_key must be a non-identity curve point")

    c1 = scalar_mul(randomness, generator())
    c2 = add(scalar_mul(amount, secondary_generator()), scalar_mul(randomness, public_key))
    return Ciphertext(c1, c2)


def decrypt(ct: Ciphertext, secret_key: int) -> CurvePoint:
    """Return amount·H = C2 − sk·C1."""
    return subtract(ct.c2, scalar_mul(secret_key, ct.c1))


def rerandomize(ct: Ciphertext, public_key: CurvePoint, randomness: int) -> Ciphertext:
    """
    Produce an unlinkable ciphertext of the same amount.

    decrypt(rerandomize(ct, pk, r'), sk) == decrypt(ct, sk) for every r'.
    """
    if randomness <= 0 or randomness >= SECP256K1_N:
        raise ValueError(f"randomness must be in [1, N-1], got {randomness}")
    return Ciphertext(
        add(ct.c1, scalar_mul(randomness, generator())),
        add(ct.c2, scalar_mul(randomness, public_key)),
    )


def homomorphic_add(a: Ciphertext, b: Ciphertext) -> Ciphertext:
    return Ciphertext(add(a.c1, b.c1), add(a.c2, b.c2))


def homomorphic_sub(a: Ciphertext, b: Ciphertext) -> Ciphertext:
    return Ciphertext(add(a.c1, negate(b.c1)), add(a.c2, negate(b.c2)))


def homomorphic_scalar_mul(ct: Ciphertext, k: int) -> Ciphertext:
    return Ciphertext(scalar_mul(k, ct.c1), scalar_mul(k, ct.c2))


# ==============================================================================
# Plaintext recovery
# ==============================================================================


def decode_amount(point: CurvePoint, max_amount: int = DEFAULT_MAX_AMOUNT) -> int | None:
    """
    Recover a from a·H by baby-step giant-step over [0, max_amount].

    Returns None when the amount is outside the bound. Cost is
    O(sqrt(max_amount)) point additions and memory.
    """
    if max_amount < 0:
        raise ValueError("max_amount must be non-negative")
    if point.is_identity():
        return 0

    H = secondary_generator()
    m = math.isqrt(max_amount) + 1

    baby: dict[CurvePoint, int] = {}
    acc = IDENTITY
    for j in range(m):
        baby.setdefault(acc, j)
        acc = add(acc, H)

    giant_step = negate(scalar_mul(m, H))
    gamma = point
    for i in range(m + 1):
        j = baby.get(gamma)
        if j is not None:
            amount = i * m + j
            return amount if amount <= max_amount else None
        gamma = add(gamma, giant_step)
    return None


# ==============================================================================
# EncryptedBalance
# ==============================================================================


@dataclass(frozen=True)
class EncryptedBalance:
    """
    An account balance kept as a ciphertext, with pending deltas.

    Incoming and outgoing transfers accumulate in pending_in / pending_out
    so that a sender's proofs stay valid against a stable `ciphertext`
    while transfers land. `rollup` folds the pendings in and bumps `epoch`.

    The ledger that owns a balance must not run two rollups over
    overlapping pending deltas concurrently.
    """
    ciphertext: Ciphertext = ZERO_CIPHERTEXT
    pending_in: Ciphertext = ZERO_CIPHERTEXT
    pending_out: Ciphertext = ZERO_CIPHERTEXT
    epoch: int = 0

    def credit(self, ct: Ciphertext) -> EncryptedBalance:
        return replace(self, pending_in=homomorphic_add(self.pending_in, ct))

    def debit(self, ct: Ciphertext) -> EncryptedBalance:
        return replace(self, pending_out=homomorphic_add(self.pending_out, ct))

    def has_pending(self) -> bool:
        return self.pending_in != ZERO_CIPHERTEXT or self.pending_out != ZERO_CIPHERTEXT

    def rollup(self) -> EncryptedBalance:
        """balance += pending_in − pending_out; pendings reset; epoch + 1."""
        merged = homomorphic_sub(
            homomorphic_add(self.ciphertext, self.pending_in),
            self.pending_out,
        )
        return EncryptedBalance(
            ciphertext=merged,
            pending_in=ZERO_CIPHERTEXT,
            pending_out=ZERO_CIPHERTEXT,
            epoch=self.epoch + 1,
        )
