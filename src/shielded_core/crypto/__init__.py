"""
shielded_core.crypto — group arithmetic and primitives for confidential amounts.

Provides:
- secp256k1 point arithmetic with an explicit identity sentinel
- NUMS generator derivation via hash-to-curve
- Domain-separated Blake2b hashing
- Pedersen commitments and exponential-ElGamal amount encryption
- Schnorr proofs of knowledge
- Bit-decomposition range proofs (external-prover stand-in)
"""

from shielded_core.crypto.curve import (
    G_COMPRESSED,
    IDENTITY,
    NUMS_H,
    SECP256K1_N,
    SECP256K1_P,
    CurvePoint,
    add,
    decode_point,
    encode_point,
    generator,
    hash_to_curve,
    is_identity,
    is_on_curve,
    negate,
    random_scalar,
    scalar_mul,
    secondary_generator,
    subtract,
)
from shielded_core.crypto.elgamal import (
    ZERO_CIPHERTEXT,
    Ciphertext,
    EncryptedBalance,
    decode_amount,
    decrypt,
    encrypt,
    homomorphic_add,
    homomorphic_scalar_mul,
    homomorphic_sub,
    rerandomize,
)
from shielded_core.crypto.pedersen import PedersenCommitment
from shielded_core.crypto.range_proof import RangeProof, prove_range, verify_range
from shielded_core.crypto.schnorr import SchnorrProof

__all__ = [
    # Curve
    "SECP256K1_P",
    "SECP256K1_N",
    "G_COMPRESSED",
    "NUMS_H",
    "IDENTITY",
    "CurvePoint",
    "add",
    "negate",
    "subtract",
    "scalar_mul",
    "generator",
    "secondary_generator",
    "is_identity",
    "is_on_curve",
    "random_scalar",
    "hash_to_curve",
    "encode_point",
    "decode_point",
    # ElGamal
    "Ciphertext",
    "ZERO_CIPHERTEXT",
    "EncryptedBalance",
    "encrypt",
    "decrypt",
    "rerandomize",
    "homomorphic_add",
    "homomorphic_sub",
    "homomorphic_scalar_mul",
    "decode_amount",
    # Pedersen / Schnorr
    "PedersenCommitment",
    "SchnorrProof",
    # Range proofs
    "RangeProof",
    "prove_range",
    "verify_range",
]
