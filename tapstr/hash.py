"""
Domain-separated hash functions for tapstr.

Every hash follows the BIP-340 tagged-hash construction

    H_tag(x) = SHA-256( SHA-256(tag) ‖ SHA-256(tag) ‖ x )

so outputs for different protocol roles (signature challenge, swap
commitment, proof of knowledge, key tweak) are independent even when
fed identical data.

``challenge`` is bit-for-bit the BIP-340 challenge: the resulting
signatures verify under any standard BIP-340 verifier.
"""

from __future__ import annotations

import hashlib
from typing import Any

from .curve import Scalar, Point, ORDER, SCALAR_BYTES, fixed_width_encode
from .errors import ScalarOverflowError


# ── domain tags ─────────────────────────────────────────────────────────
TAG_CHALLENGE = b"BIP0340/challenge"
_TAG_ADAPTOR_POINT = b"tapstr/v1/adaptor_point"
_TAG_POK = b"tapstr/v1/secret_pok"
_TAG_SWAP_ID = b"tapstr/v1/swap_id"


# ── internal helpers ────────────────────────────────────────────────────
def _tagged_hasher(tag: bytes) -> "hashlib._Hash":
    """Return a SHA-256 context pre-loaded with the BIP-340 tag prefix."""
    tag_hash = hashlib.sha256(tag).digest()
    h = hashlib.sha256()
    h.update(tag_hash)
    h.update(tag_hash)
    return h


def _encode_item(item: Any) -> bytes:
    """
    Canonical encoding of a protocol element for hashing.

    Variable-length ``bytes`` are length-prefixed so concatenations
    cannot be re-split ambiguously.
    """
    if isinstance(item, bytes):
        return len(item).to_bytes(4, "big") + item
    if isinstance(item, int):
        return item.to_bytes(SCALAR_BYTES, "big")
    if isinstance(item, Scalar):
        return item.to_bytes()
    if isinstance(item, Point):
        return item.to_bytes_compressed()
    raise TypeError(f"cannot hash item of type {type(item).__name__}")


def tagged_hash(tag: bytes, data: bytes) -> bytes:
    """Raw BIP-340 tagged hash of *data* (no framing)."""
    h = _tagged_hasher(tag)
    h.update(data)
    return h.digest()


def _tagged_hash_items(tag: bytes, *args: Any) -> bytes:
    h = _tagged_hasher(tag)
    for a in args:
        h.update(_encode_item(a))
    return h.digest()


def _tagged_scalar(tag: bytes, *args: Any) -> Scalar:
    """Hash to scalar, reducing modulo *q* (for proof challenges)."""
    return Scalar(int.from_bytes(_tagged_hash_items(tag, *args), "big"))


# ── public hash functions ───────────────────────────────────────────────

def challenge(R: Point, P: Point, message: bytes) -> Scalar:
    r"""
    BIP-340 challenge  e = H_{BIP0340/challenge}(x(R) ‖ x(P) ‖ m).

    Raises ``ScalarOverflowError`` when the digest is not below the group
    order instead of reducing it; the signer retries with a fresh nonce.
    """
    data = (
        fixed_width_encode(R.x_bytes())
        + fixed_width_encode(P.x_bytes())
        + bytes(message)
    )
    digest = tagged_hash(TAG_CHALLENGE, data)
    value = int.from_bytes(digest, "big")
    if value >= ORDER:
        raise ScalarOverflowError("challenge hash exceeds group order")
    return Scalar(value)


def hash_presignature(s: Scalar) -> bytes:
    """Swap commitment  SHA-256(s)  over the pre-signature scalar."""
    return hashlib.sha256(s.to_bytes()).digest()


def hash_adaptor_point(T: Point, R: Point, P: Point) -> bytes:
    """Binds the adaptor point to the nonce sum and signer key."""
    return _tagged_hash_items(_TAG_ADAPTOR_POINT, T, R, P)


def hash_secret_pok(R: Point, T: Point, context: bytes = b"") -> Scalar:
    """Fiat-Shamir challenge for a Schnorr PoK of the adaptor secret."""
    return _tagged_scalar(_TAG_POK, R, T, context)


def hash_swap_id(seller_key: Point, nonce_sum: Point, message: bytes) -> bytes:
    """Stable public identifier of a swap."""
    return _tagged_hash_items(_TAG_SWAP_ID, seller_key, nonce_sum, message)
