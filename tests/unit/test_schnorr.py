"""
Unit tests for shielded_core.crypto.schnorr — proofs of knowledge of a discrete log.
"""

import secrets
from dataclasses import replace

import pytest

from shielded_core.crypto import schnorr
from shielded_core.crypto.curve import (
    IDENTITY,
    SECP256K1_N,
    add,
    generator,
    scalar_mul,
)
from shielded_core.crypto.hashing import DOMAIN_OWNERSHIP


def _random_r() -> int:
    return secrets.randbelow(SECP256K1_N - 1) + 1


class TestSchnorrProof:

    def test_prove_verify(self):
        x = _random_r()
        proof = schnorr.prove(x)
        assert schnorr.verify(proof, scalar_mul(x, generator()))

    def test_with_context(self):
        x = _random_r()
        proof = schnorr.prove(x, context=(1, 2, generator()))
        assert schnorr.verify(proof, scalar_mul(x, generator()), context=(1, 2, generator()))

    def test_wrong_context_fails(self):
        x = _random_r()
        proof = schnorr.prove(x, context=(1,))
        assert not schnorr.verify(proof, scalar_mul(x, generator()), context=(2,))

    def test_wrong_domain_fails(self):
        x = _random_r()
        proof = schnorr.prove(x, domain=DOMAIN_OWNERSHIP)
        assert not schnorr.verify(proof, scalar_mul(x, generator()))
        assert schnorr.verify(proof, scalar_mul(x, generator()), domain=DOMAIN_OWNERSHIP)

    def test_wrong_public_point_fails(self):
        proof = schnorr.prove(_random_r())
        assert not schnorr.verify(proof, scalar_mul(_random_r(), generator()))

    def test_deterministic_with_nonce(self):
        x, k = _random_r(), _random_r()
        assert schnorr.prove(x, nonce=k) == schnorr.prove(x, nonce=k)

    def test_response_mod_n(self):
        x, k = _random_r(), _random_r()
        proof = schnorr.prove(x, nonce=k)
        assert proof.response == (k - proof.challenge * x) % SECP256K1_N
        assert 0 <= proof.response < SECP256K1_N

    def test_tampered_response_fails(self):
        x = _random_r()
        proof = schnorr.prove(x)
        bad = replace(proof, response=(proof.response + 1) % SECP256K1_N)
        assert not schnorr.verify(bad, scalar_mul(x, generator()))

    def test_tampered_commitment_fails(self):
        x = _random_r()
        proof = schnorr.prove(x)
        bad = replace(proof, commitment=add(proof.commitment, generator()))
        assert not schnorr.verify(bad, scalar_mul(x, generator()))

    def test_out_of_range_values_rejected(self):
        x = _random_r()
        proof = schnorr.prove(x)
        assert not schnorr.verify(replace(proof, response=SECP256K1_N), scalar_mul(x, generator()))
        assert not schnorr.verify(replace(proof, challenge=-1), scalar_mul(x, generator()))

    def test_identity_public_point_rejected(self):
        proof = schnorr.prove(_random_r())
        assert not schnorr.verify(proof, IDENTITY)

    def test_invalid_secret(self):
        with pytest.raises(ValueError, match="secret"):
            schnorr.prove(0)

    def test_invalid_nonce(self):
        with pytest.raises(ValueError, match="nonce"):
            schnorr.prove(_random_r(), nonce=SECP256K1_N)
