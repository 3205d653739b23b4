"""
Proof that the seller knows the adaptor secret.

A buyer locking funds against an adaptor signature needs assurance that
*T* is a point whose discrete log the seller actually holds; otherwise
the seller could never complete the signature and the swap stalls until
refund.  A Schnorr proof of knowledge bound to the swap commitment
provides that assurance without revealing *t*.

References
----------
- Schnorr (1989). "Efficient Identification and Signatures for Smart
  Cards."  CRYPTO 1989.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .curve import Scalar, Point, G, RandomSource, COMPRESSED_BYTES, SCALAR_BYTES
from .errors import InvalidScalarError, MalformedInputError
from .hash import hash_secret_pok


@dataclass(frozen=True)
class SecretProof:
    """
    Non-interactive proof of knowledge of  t  such that  T = t·G.

    Transcript: (R, z)  where  R = k·G,  z = k + c·t,  c = H(R, T, ctx).
    Verification:  z·G  ==  R + c·T.
    """

    R: Point
    z: Scalar

    @staticmethod
    def prove(
        secret: Scalar,
        public: Point,
        context: bytes = b"",
        rng: Optional[RandomSource] = None,
    ) -> SecretProof:
        """
        Produce a PoK for  (secret, public = secret·G).

        *context* binds the proof to one swap (its commitment), so it
        cannot be replayed into another.
        """
        k = Scalar.random(rng)
        R = k * G
        c = hash_secret_pok(R, public, context)
        z = k + c * secret
        return SecretProof(R=R, z=z)

    def verify(self, public: Point, context: bytes = b"") -> bool:
        if public.is_inf() or self.R.is_inf():
            return False
        c = hash_secret_pok(self.R, public, context)
        return self.z * G == self.R + (c * public)

    def to_bytes(self) -> bytes:
        return self.R.to_bytes_compressed() + self.z.to_bytes()

    @classmethod
    def from_bytes(cls, data: bytes) -> SecretProof:
        if len(data) != COMPRESSED_BYTES + SCALAR_BYTES:
            raise MalformedInputError(
                f"expected {COMPRESSED_BYTES + SCALAR_BYTES} bytes, "
                f"got {len(data)}"
            )
        R = Point.from_bytes(data[:COMPRESSED_BYTES])
        try:
            z = Scalar.from_bytes(data[COMPRESSED_BYTES:])
        except InvalidScalarError as exc:
            raise MalformedInputError("proof response out of range") from exc
        return cls(R=R, z=z)
