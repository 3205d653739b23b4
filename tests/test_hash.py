import hashlib

import pytest

import tapstr.hash as tapstr_hash
from tapstr import G, ORDER, Scalar, challenge, tagged_hash
from tapstr.errors import ScalarOverflowError


def _bip340_challenge(R, P, msg):
    tag = hashlib.sha256(b"BIP0340/challenge").digest()
    data = tag + tag + R.x_bytes() + P.x_bytes() + msg
    return int.from_bytes(hashlib.sha256(data).digest(), "big") % ORDER


def test_tagged_hash_prefixes_tag_digest_twice():
    tag = hashlib.sha256(b"some/tag").digest()
    expected = hashlib.sha256(tag + tag + b"payload").digest()
    assert tagged_hash(b"some/tag", b"payload") == expected


def test_challenge_matches_bip340_construction(rng, message):
    R = Scalar.random(rng) * G
    P = Scalar.random(rng) * G
    assert challenge(R, P, message).value == _bip340_challenge(R, P, message)


def test_challenge_ignores_point_parity(rng, message):
    R = Scalar.random(rng) * G
    P = Scalar.random(rng) * G
    assert challenge(R, P, message) == challenge(-R, -P, message)


def test_challenge_is_deterministic(rng, message):
    R = Scalar.random(rng) * G
    P = Scalar.random(rng) * G
    first = challenge(R, P, message)
    for _ in range(5):
        assert challenge(R, P, message) == first


def test_challenge_changes_with_any_input(rng, message):
    R = Scalar.random(rng) * G
    P = Scalar.random(rng) * G
    base = challenge(R, P, message)

    for i in range(0, len(message), 7):
        flipped = bytearray(message)
        flipped[i] ^= 0x01
        assert challenge(R, P, bytes(flipped)) != base

    assert challenge(R + G, P, message) != base
    assert challenge(R, P + G, message) != base
    assert challenge(P, R, message) != base


def test_challenge_accepts_any_message_length(rng):
    R = Scalar.random(rng) * G
    P = Scalar.random(rng) * G
    assert challenge(R, P, b"") != challenge(R, P, b"\x00")


def test_challenge_rejects_overflowing_digest(rng, monkeypatch):
    R = Scalar.random(rng) * G
    P = Scalar.random(rng) * G
    monkeypatch.setattr(tapstr_hash, "tagged_hash", lambda tag, data: b"\xff" * 32)
    with pytest.raises(ScalarOverflowError):
        challenge(R, P, b"m")
