"""
shielded_core.privacy — spend-side protocol components.

Provides:
- Lean IMT accumulator with membership proofs
- Nullifier derivation, nullifier proofs and the double-spend check
- LSAG linkable ring signatures and ring selection
- Decoy selection over the output pool
- Spend proofs and input-set aggregation
"""

from shielded_core.privacy.accumulator import (
    EMPTY_NODE,
    AccumulatorState,
    LeanIMT,
    MembershipProof,
    depth,
    hash_leaf,
    hash_pair,
    needs_depth_increase,
    verify_membership,
)
from shielded_core.privacy.decoys import DecoySelection, PoolEntry, select_decoys
from shielded_core.privacy.nullifier import (
    NullifierProof,
    check_spend_validity,
    compute_nullifier,
    compute_nullifier_extended,
    generate_nullifier_proof,
    nullifier_leaf,
    verify_nullifier_proof,
)
from shielded_core.privacy.ring_signature import (
    RingSignature,
    is_linked,
    key_image,
    key_image_seen,
    nonce_slot,
    select_ring,
)
from shielded_core.privacy.spend import (
    AmountProof,
    InputSet,
    SpendProof,
    aggregate_inputs,
    generate_amount_proof,
    generate_spend_proof,
    output_leaf,
    verify_input_set,
    verify_spend_proof,
)

__all__ = [
    # Accumulator
    "EMPTY_NODE",
    "AccumulatorState",
    "MembershipProof",
    "LeanIMT",
    "depth",
    "needs_depth_increase",
    "hash_leaf",
    "hash_pair",
    "verify_membership",
    # Nullifiers
    "NullifierProof",
    "compute_nullifier",
    "compute_nullifier_extended",
    "nullifier_leaf",
    "generate_nullifier_proof",
    "verify_nullifier_proof",
    "check_spend_validity",
    # Ring signatures (sign/verify stay namespaced under ring_signature)
    "RingSignature",
    "key_image",
    "nonce_slot",
    "is_linked",
    "key_image_seen",
    "select_ring",
    # Decoys
    "PoolEntry",
    "DecoySelection",
    "select_decoys",
    # Spend proofs
    "AmountProof",
    "SpendProof",
    "InputSet",
    "output_leaf",
    "generate_amount_proof",
    "generate_spend_proof",
    "verify_spend_proof",
    "aggregate_inputs",
    "verify_input_set",
]
