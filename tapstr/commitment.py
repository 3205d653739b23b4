"""
Swap commitment linking the Bitcoin lock to the Nostr reveal.

The lock commitment is  SHA-256(s)  over the pre-signature scalar.  Two
different adaptor secrets give different nonce sums, hence different
challenges and pre-signatures, hence different commitments.

The commitment alone says nothing about who owns *T*.  ``SwapCommitment``
therefore carries a second digest binding *T* to the nonce sum and the
signer key, and a proof of knowledge of *t* whose context is the lock
commitment.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .adaptor import AdaptorSignature
from .curve import Scalar, Point, RandomSource
from .errors import SecretMismatchError
from .hash import hash_presignature, hash_adaptor_point
from .proofs import SecretProof


@dataclass(frozen=True)
class SwapCommitment:
    """Public commitment material the seller hands to the buyer."""

    digest: bytes               # SHA-256(s), 32 bytes; tweaks the lock key
    adaptor_point: Point        # T
    point_binding: bytes        # H(T, R', P)
    proof: SecretProof          # PoK of t, context = digest

    @classmethod
    def create(
        cls,
        adaptor_sig: AdaptorSignature,
        secret: Scalar,
        rng: Optional[RandomSource] = None,
    ) -> SwapCommitment:
        T = Point.from_scalar(secret.require_nonzero("adaptor secret"))
        if T != adaptor_sig.adaptor_point:
            raise SecretMismatchError("secret does not match the adaptor point")
        digest = commit_presignature(adaptor_sig)
        return cls(
            digest=digest,
            adaptor_point=T,
            point_binding=hash_adaptor_point(
                T, adaptor_sig.nonce_sum, adaptor_sig.public_key,
            ),
            proof=SecretProof.prove(secret, T, context=digest, rng=rng),
        )

    def verify(self, adaptor_sig: AdaptorSignature) -> bool:
        """
        Check that this commitment belongs to *adaptor_sig*.

        Does not check the pre-signature equation itself; see
        ``AdaptorSignature.verify``.
        """
        if self.adaptor_point.is_inf():
            return False
        if self.adaptor_point != adaptor_sig.adaptor_point:
            return False
        if commit_presignature(adaptor_sig) != self.digest:
            return False
        expected = hash_adaptor_point(
            self.adaptor_point, adaptor_sig.nonce_sum, adaptor_sig.public_key,
        )
        if expected != self.point_binding:
            return False
        return self.proof.verify(self.adaptor_point, context=self.digest)


def commit_presignature(adaptor_sig: AdaptorSignature) -> bytes:
    """32-byte lock commitment  SHA-256(s)."""
    return hash_presignature(adaptor_sig.s)
