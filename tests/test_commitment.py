import hashlib
from dataclasses import replace

import pytest

from tapstr import G, AdaptorSignature, Scalar, SecretProof, SwapCommitment, commit_presignature
from tapstr.errors import SecretMismatchError


def test_commitment_is_hash_of_presignature_scalar(seller_key, secret, message, rng):
    pre = AdaptorSignature.create(seller_key, message, secret * G, rng=rng)
    assert commit_presignature(pre) == hashlib.sha256(pre.s.to_bytes()).digest()


def test_swap_commitment_verifies(seller_key, secret, message, rng):
    pre = AdaptorSignature.create(seller_key, message, secret * G, rng=rng)
    com = SwapCommitment.create(pre, secret, rng=rng)
    assert com.adaptor_point == secret * G
    assert com.verify(pre)


def test_swap_commitment_rejects_other_presignature(seller_key, secret, message, rng):
    pre = AdaptorSignature.create(seller_key, message, secret * G, rng=rng)
    other = AdaptorSignature.create(seller_key, message, secret * G, rng=rng)
    com = SwapCommitment.create(pre, secret, rng=rng)
    assert not com.verify(other)


def test_swap_commitment_rejects_foreign_proof(seller_key, secret, message, rng):
    pre = AdaptorSignature.create(seller_key, message, secret * G, rng=rng)
    com = SwapCommitment.create(pre, secret, rng=rng)
    foreign = SecretProof.prove(secret, secret * G, context=b"another swap", rng=rng)
    assert not replace(com, proof=foreign).verify(pre)


def test_secret_proof(secret, rng):
    T = secret * G
    proof = SecretProof.prove(secret, T, context=b"ctx", rng=rng)
    assert proof.verify(T, context=b"ctx")
    assert not proof.verify(T, context=b"other")
    assert not proof.verify(T + G, context=b"ctx")

    wrong = SecretProof.prove(secret + Scalar(1), T, context=b"ctx", rng=rng)
    assert not wrong.verify(T, context=b"ctx")

    parsed = SecretProof.from_bytes(proof.to_bytes())
    assert parsed.verify(T, context=b"ctx")


def test_swap_commitment_requires_matching_secret(seller_key, secret, message, rng):
    pre = AdaptorSignature.create(seller_key, message, secret * G, rng=rng)
    with pytest.raises(SecretMismatchError):
        SwapCommitment.create(pre, secret + Scalar(1), rng=rng)


def test_swap_commitment_rejects_presignature_for_other_point(seller_key, secret, message, rng):
    pre = AdaptorSignature.create(seller_key, message, secret * G, rng=rng)
    com = SwapCommitment.create(pre, secret, rng=rng)
    assert not com.verify(replace(pre, adaptor_point=pre.adaptor_point + G))
