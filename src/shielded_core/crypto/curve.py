"""
Elliptic-curve group arithmetic for the shielded core.

Provides:
- CurvePoint: immutable affine point with an explicit identity sentinel (0, 0)
- add / negate / subtract / scalar_mul over secp256k1
- generator() and the NUMS secondary generator H via hash_to_curve
- Point encode/decode utilities for compressed secp256k1 points

Mathematical foundation:
    E: y² = x³ + 7 over F_p, prime group order N, base point G.
    H = hash_to_curve(G) has no known discrete log with respect to G, which
    is what makes amount commitments (amount·H + r·G) binding.

    The identity element has no affine coordinates; it is represented by the
    sentinel (0, 0), which is not on the curve (0 ≠ 7 mod p).

References:
    [SEC2]  Certicom Research, "SEC 2: Recommended Elliptic Curve Domain
            Parameters", v2.0, §2.4.1 (secp256k1).
    [H2C]   IETF draft-irtf-cfrg-hash-to-curve, §5 (try-and-increment method).
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from functools import lru_cache

import ecdsa
import ecdsa.ellipticcurve as ec

# ==============================================================================
# secp256k1 curve constants
# ==============================================================================

# Field prime
SECP256K1_P = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F

# Group order
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

# Generator point (compressed)
G_COMPRESSED = "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"

_CURVE = ecdsa.SECP256k1.curve
_GENERATOR = ecdsa.SECP256k1.generator

# Domain tag for hash-to-curve; kept here to avoid a cycle with hashing.py
HASH_TO_CURVE_DOMAIN = b"shielded.h2c.v1"


# ==============================================================================
# CurvePoint
# ==============================================================================


@dataclass(frozen=True)
class CurvePoint:
    """
    An affine secp256k1 point, or the identity sentinel (0, 0).

    Instances are plain values: hashable, comparable, and safe to share
    between threads. Use the module-level functions (or the operators, which
    delegate to them) for group arithmetic.
    """
    x: int
    y: int

    def is_identity(self) -> bool:
        return self.x == 0 and self.y == 0

    def __add__(self, other: CurvePoint) -> CurvePoint:
        return add(self, other)

    def __sub__(self, other: CurvePoint) -> CurvePoint:
        return subtract(self, other)

    def __neg__(self) -> CurvePoint:
        return negate(self)

    def __mul__(self, k: int) -> CurvePoint:
        return scalar_mul(k, self)

    __rmul__ = __mul__

    def __repr__(self) -> str:
        if self.is_identity():
            return "CurvePoint(IDENTITY)"
        return f"CurvePoint(x=0x{self.x:064x}, y=0x{self.y:064x})"


IDENTITY = CurvePoint(0, 0)
"""The group identity (point at infinity) sentinel."""


# ==============================================================================
# ecdsa interop
# ==============================================================================


def _to_jacobi(p: CurvePoint) -> ec.PointJacobi:
    return ec.PointJacobi(_CURVE, p.x, p.y, 1, SECP256K1_N)


def _from_ecdsa(pt: ec.AbstractPoint) -> CurvePoint:
    if pt == ec.INFINITY:
        return IDENTITY
    return CurvePoint(pt.x(), pt.y())


# ==============================================================================
# Group operations
# ==============================================================================


def is_identity(p: CurvePoint) -> bool:
    return p.is_identity()


def is_on_curve(p: CurvePoint) -> bool:
    """True for the identity sentinel and for points satisfying y² = x³ + 7."""
    if p.is_identity():
        return True
    if not (0 <= p.x < SECP256K1_P and 0 <= p.y < SECP256K1_P):
        return False
    return _CURVE.contains_point(p.x, p.y)


def add(a: CurvePoint, b: CurvePoint) -> CurvePoint:
    if a.is_identity():
        return b
    if b.is_identity():
        return a
    return _from_ecdsa(_to_jacobi(a) + _to_jacobi(b))


def negate(p: CurvePoint) -> CurvePoint:
    if p.is_identity():
        return p
    return CurvePoint(p.x, (-p.y) % SECP256K1_P)


def subtract(a: CurvePoint, b: CurvePoint) -> CurvePoint:
    if b.is_identity():
        return a
    return add(a, negate(b))


def scalar_mul(k: int, p: CurvePoint) -> CurvePoint:
    """
    Compute k·p.

    k is reduced modulo the group order first, so negative scalars work as
    expected. k ≡ 0 and an identity operand both yield the identity; k = 1
    returns the operand unchanged. Everything else goes through ecdsa's
    Jacobian double-and-add (with the precomputed table when p is G).

    Not constant time.
    """
    k %= SECP256K1_N
    if k == 0 or p.is_identity():
        return IDENTITY
    if k == 1:
        return p
    if p == _G:
        return _from_ecdsa(k * _GENERATOR)
    if p == _H:
        return _from_ecdsa(k * _H_JACOBI)
    return _from_ecdsa(k * _to_jacobi(p))


def multi_scalar_mul(pairs: list[tuple[int, CurvePoint]]) -> CurvePoint:
    """Σ k_i·P_i, skipping zero terms."""
    acc = IDENTITY
    for k, p in pairs:
        acc = add(acc, scalar_mul(k, p))
    return acc


def random_scalar() -> int:
    """Uniform scalar in [1, N-1] from the OS CSPRNG."""
    return secrets.randbelow(SECP256K1_N - 1) + 1


# ==============================================================================
# Point codec (public API)
# ==============================================================================


def decode_point(hex_str: str) -> CurvePoint:
    """
    Decode a 33-byte compressed secp256k1 point.

    Args:
        hex_str: 66-character hex string (02/03 prefix + 32-byte X coordinate).

    Returns:
        The decoded CurvePoint.

    Raises:
        ValueError: If the hex string is malformed or not on the curve.
    """
    raw = bytes.fromhex(hex_str)
    if len(raw) != 33:
        raise ValueError(f"Expected 33 bytes, got {len(raw)}")
    prefix = raw[0]
    if prefix not in (0x02, 0x03):
        raise ValueError(f"Invalid prefix byte: 0x{prefix:02x}")

    x = int.from_bytes(raw[1:], "big")
    if x >= SECP256K1_P:
        raise ValueError("X coordinate is not a field element")
    y_sq = (pow(x, 3, SECP256K1_P) + 7) % SECP256K1_P
    y = pow(y_sq, (SECP256K1_P + 1) // 4, SECP256K1_P)

    if (y * y) % SECP256K1_P != y_sq:
        raise ValueError(f"X coordinate 0x{x:064x} does not correspond to a curve point")

    is_even = (prefix == 0x02)
    if (y % 2 == 0) != is_even:
        y = SECP256K1_P - y

    return CurvePoint(x, y)


def encode_point(p: CurvePoint) -> str:
    """
    Encode a point as a 33-byte compressed hex string.

    Raises:
        ValueError: If the point is the identity.
    """
    if p.is_identity():
        raise ValueError("Cannot encode the point at infinity")
    prefix = b"\x02" if p.y % 2 == 0 else b"\x03"
    return (prefix + p.x.to_bytes(32, "big")).hex()


# ==============================================================================
# hash_to_curve — NUMS point derivation
# ==============================================================================


@lru_cache(maxsize=4096)
def hash_to_curve(data: bytes, domain: bytes = HASH_TO_CURVE_DOMAIN) -> CurvePoint:
    """
    Map bytes to a curve point with no known discrete log relative to G.

    Algorithm (try-and-increment, per [H2C] §5):
        1. x = int(Blake2b256(len(domain) || domain || data)) mod p
        2. While x³+7 mod p is not a quadratic residue: x += 1
        3. y = sqrt(x³+7) mod p, normalised to even y

    Raises:
        RuntimeError: If no point is found within 1000 increments.
    """
    hasher = hashlib.blake2b(digest_size=32)
    hasher.update(bytes([len(domain)]) + domain)
    hasher.update(data)
    x = int.from_bytes(hasher.digest(), "big") % SECP256K1_P

    for _ in range(1000):
        y_sq = (pow(x, 3, SECP256K1_P) + 7) % SECP256K1_P
        # Euler criterion
        if pow(y_sq, (SECP256K1_P - 1) // 2, SECP256K1_P) == 1:
            y = pow(y_sq, (SECP256K1_P + 1) // 4, SECP256K1_P)
            if y % 2 != 0:
                y = SECP256K1_P - y
            return CurvePoint(x, y)
        x = (x + 1) % SECP256K1_P

    raise RuntimeError("hash_to_curve: failed to find a valid point in 1000 iterations")


def hash_point_to_curve(p: CurvePoint) -> CurvePoint:
    """HashToCurve(P) over the point's compressed encoding."""
    return hash_to_curve(bytes.fromhex(encode_point(p)))


# ==============================================================================
# Generators
# ==============================================================================

_G = _from_ecdsa(_GENERATOR)

_H = hash_to_curve(bytes.fromhex(G_COMPRESSED))
_H_JACOBI = ec.PointJacobi(_CURVE, _H.x, _H.y, 1, SECP256K1_N, generator=True)

NUMS_H = encode_point(_H)
"""Compressed hex of the NUMS secondary generator H = hash_to_curve(G)."""


def generator() -> CurvePoint:
    """The curve's published base point G."""
    return _G


def secondary_generator() -> CurvePoint:
    """The nothing-up-my-sleeve generator H used for amount commitments."""
    return _H
