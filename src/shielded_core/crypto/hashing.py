"""
Domain-separated hashing.

Every hash in the shielded core goes through this module, and every call site
uses its own domain tag. Inputs are integers (field elements, scalars) or
CurvePoints; a point contributes its x then y coordinate, so
H(tag, P) == H(tag, P.x, P.y). Each integer is encoded as a fixed 32-byte
big-endian word, which makes argument order and count part of the digest.

Tags and argument order are part of the wire format: data produced by one
deployment only verifies under another with identical values here.

Hash function: Blake2b-256, as used by the rest of the crypto package.
"""

from __future__ import annotations

import hashlib

from shielded_core.crypto.curve import SECP256K1_N, SECP256K1_P, CurvePoint

# ==============================================================================
# Domain tags
# ==============================================================================

DOMAIN_LEAF = b"shielded.limt.leaf.v1"
DOMAIN_NODE = b"shielded.limt.node.v1"
DOMAIN_NULLIFIER = b"shielded.nullifier.v1"
DOMAIN_NULLIFIER_EXT = b"shielded.nullifier.ext.v1"
DOMAIN_NULLIFIER_PROOF = b"shielded.nullifier.proof.v1"
DOMAIN_SCHNORR = b"shielded.schnorr.v1"
DOMAIN_OWNERSHIP = b"shielded.ownership.v1"
DOMAIN_RING = b"shielded.lsag.round.v1"
DOMAIN_RING_MESSAGE = b"shielded.lsag.msg.v1"
DOMAIN_OUTPUT = b"shielded.output.v1"
DOMAIN_INPUT_SET = b"shielded.inputset.v1"
DOMAIN_RANGE_PROOF = b"shielded.rangeproof.v1"

_WORD = 32


def _encode(values: tuple[int | CurvePoint, ...]) -> bytes:
    out = bytearray()
    for v in values:
        if isinstance(v, CurvePoint):
            out += v.x.to_bytes(_WORD, "big")
            out += v.y.to_bytes(_WORD, "big")
        elif isinstance(v, bool) or not isinstance(v, int):
            raise TypeError(f"Cannot hash value of type {type(v).__name__}")
        elif v < 0 or v.bit_length() > 8 * _WORD:
            raise ValueError(f"Hash input out of range: {v}")
        else:
            out += v.to_bytes(_WORD, "big")
    return bytes(out)


def hash_bytes(domain: bytes, *values: int | CurvePoint) -> bytes:
    """Blake2b-256 over len(domain) || domain || encoded values."""
    hasher = hashlib.blake2b(digest_size=32)
    hasher.update(bytes([len(domain)]) + domain)
    hasher.update(_encode(values))
    return hasher.digest()


def hash_to_field(domain: bytes, *values: int | CurvePoint) -> int:
    """Hash to a field element (mod p)."""
    return int.from_bytes(hash_bytes(domain, *values), "big") % SECP256K1_P


def hash_to_scalar(domain: bytes, *values: int | CurvePoint) -> int:
    """Hash to a group scalar (mod N); used for every Fiat-Shamir challenge."""
    return int.from_bytes(hash_bytes(domain, *values), "big") % SECP256K1_N


def hash_message(domain: bytes, message: bytes | str) -> int:
    """Reduce an arbitrary-length message to a field element."""
    if isinstance(message, str):
        message = message.encode("utf-8")
    hasher = hashlib.blake2b(digest_size=32)
    hasher.update(bytes([len(domain)]) + domain)
    hasher.update(message)
    return int.from_bytes(hasher.digest(), "big") % SECP256K1_P
