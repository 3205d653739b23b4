"""
Schnorr adaptor signatures over secp256k1 (BIP-340 flavour).

An adaptor pre-signature  (R', s)  on message *m* under key *P* with
adaptor point  T = t·G  satisfies

    s·G + T  ==  R' + e·P    where  R' = R + T,  e = H(R', P, m)

It is *not* a valid signature: the signer only knows  k = log_G(R),
not  log_G(R').  Adding the secret gives the real scalar

    s' = s + t              (complete)

and anyone holding both  s  and  s'  recovers the secret

    t  = s' - s             (extract_secret)

The completed pair  (x(R'), s')  is a standard 64-byte BIP-340
signature.  For that to hold, both  P  and  R'  must have even y:
the key is negated when needed, the nonce is negated so that  R  has
even y, and the nonce is resampled until  R'  has even y too.  A
pre-signature whose  R'  or  P  has odd y does not verify.

References
----------
- BIP-340  "Schnorr Signatures for secp256k1"
- Poelstra (2017). "Scriptless Scripts."
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .curve import (
    Scalar,
    Point,
    G,
    RandomSource,
    SCALAR_BYTES,
    XONLY_BYTES,
    COMPRESSED_BYTES,
    FIELD_PRIME,
    add_points,
    with_even_y,
)
from .errors import (
    EncodingError,
    InvalidScalarError,
    MalformedInputError,
    PointAtInfinityError,
    ScalarOverflowError,
    TapstrError,
)
from .hash import challenge

WIRE_VERSION = 0x01
SIGNATURE_BYTES = 64


# ── standard BIP-340 signature ──────────────────────────────────────────

@dataclass(frozen=True)
class SchnorrSignature:
    """
    A finalised BIP-340 signature  (x(R), s).

    Serialises to the standard 64 bytes  x(R) ‖ s.
    """

    r: bytes       # x(R), 32 bytes
    s: Scalar

    def to_bytes(self) -> bytes:
        return self.r + self.s.to_bytes()

    @classmethod
    def from_bytes(cls, data: bytes) -> SchnorrSignature:
        if len(data) != SIGNATURE_BYTES:
            raise EncodingError(
                f"expected {SIGNATURE_BYTES} bytes, got {len(data)}"
            )
        try:
            s = Scalar.from_bytes(data[32:64])
        except InvalidScalarError as exc:
            raise EncodingError("signature scalar is not canonical") from exc
        return cls(r=bytes(data[:32]), s=s)

    def hex(self) -> str:
        return self.to_bytes().hex()

    def verify(self, public_key: Point, message: bytes) -> bool:
        return verify_schnorr(public_key, message, self)


def verify_schnorr(
    public_key: Point,
    message: bytes,
    sig: SchnorrSignature,
) -> bool:
    """
    BIP-340 verification of a 64-byte signature against an x-only key.

    Only  x(public_key)  is used; the key is lifted to even y exactly as
    a Bitcoin or Nostr verifier would.
    """
    if public_key.is_inf():
        return False
    P = Point.from_xonly(public_key.x_bytes())
    if int.from_bytes(sig.r, "big") >= FIELD_PRIME:
        return False
    try:
        R = Point.from_xonly(sig.r)
        e = challenge(R, P, message)
    except (MalformedInputError, ScalarOverflowError):
        return False
    R_calc = (sig.s * G) - (e * P)
    if R_calc.is_inf() or not R_calc.has_even_y():
        return False
    return R_calc.x_bytes() == sig.r


# ── adaptor pre-signature ───────────────────────────────────────────────

@dataclass(frozen=True)
class AdaptorSignature:
    """
    Adaptor pre-signature  (R', s)  plus the context needed to check it.

    Immutable once created.  ``ex`` is only known to the signer and is
    ``None`` after deserialisation.
    """

    nonce_sum: Point          # R' = R + T
    adaptor_point: Point      # T
    s: Scalar                 # k + e·x
    public_key: Point         # x·G with even y
    message: bytes
    ex: Optional[Scalar] = None   # e·x

    # construction -------------------------------------------------------

    @classmethod
    def create(
        cls,
        private_key: Scalar,
        message: bytes,
        adaptor_point: Point,
        rng: Optional[RandomSource] = None,
        max_attempts: Optional[int] = None,
    ) -> AdaptorSignature:
        """
        Pre-sign *message* for adaptor point  T = t·G.

        Parameters
        ----------
        private_key : Scalar
            Signer's secret *x*; negated internally if  x·G  has odd y.
        message : bytes
            Payload being signed (for Nostr, the 32-byte event id).
        adaptor_point : Point
            *T*; the matching secret *t* is not needed here.
        rng : RandomSource, optional
            Source for the nonce; defaults to ``secrets``.
        max_attempts : int, optional
            Bound on nonce resampling; defaults to the configured value.
        """
        if adaptor_point.is_inf():
            raise MalformedInputError("adaptor point is the identity")
        if max_attempts is None:
            from .config import settings
            max_attempts = settings.max_nonce_attempts

        x, P = with_even_y(private_key)
        message = bytes(message)

        for _ in range(max_attempts):
            k = Scalar.random(rng)
            R = k * G
            if not R.has_even_y():
                k = -k
                R = -R
            try:
                R_prime = add_points(R, adaptor_point)
            except PointAtInfinityError:
                continue
            if not R_prime.has_even_y():
                continue
            try:
                e = challenge(R_prime, P, message)
            except ScalarOverflowError:
                continue

            ex = e * x
            return cls(
                nonce_sum=R_prime,
                adaptor_point=adaptor_point,
                s=k + ex,
                public_key=P,
                message=message,
                ex=ex,
            )

        raise TapstrError(
            f"no usable nonce after {max_attempts} attempts"
        )

    # checks -------------------------------------------------------------

    def verify(self) -> bool:
        """
        Check  s·G + T  ==  R' + e·P  with  e = H(R', P, m).

        Both  R'  and  P  must have even y, otherwise the completed
        signature would not verify under BIP-340 and the secret could
        not be recovered from it.

        Returns ``False`` for a well-formed but wrong pre-signature and
        raises ``MalformedInputError`` only for degenerate points.
        """
        if (
            self.nonce_sum.is_inf()
            or self.adaptor_point.is_inf()
            or self.public_key.is_inf()
        ):
            raise MalformedInputError("adaptor signature holds the identity")
        if not isinstance(self.s, Scalar):
            raise MalformedInputError("pre-signature scalar has wrong type")

        if not (self.nonce_sum.has_even_y() and self.public_key.has_even_y()):
            return False
        try:
            e = challenge(self.nonce_sum, self.public_key, self.message)
        except ScalarOverflowError:
            return False

        eP = e * self.public_key
        if self.ex is not None and self.ex * G != eP:
            return False
        return self.s * G + self.adaptor_point == self.nonce_sum + eP

    # completion / extraction -------------------------------------------

    def complete(self, secret: Scalar) -> Scalar:
        """Real signature scalar  s' = s + t.

        The caller must make sure *secret* belongs to the adaptor point
        used at construction.
        """
        return self.s + secret

    def extract_secret(self, completed: Scalar) -> Scalar:
        """Recover  t = s' - s  from a completed signature scalar.

        Meaningless unless *completed* belongs to a signature that
        verified for this very context.
        """
        return completed - self.s

    def extract_from_signature(self, sig: SchnorrSignature) -> Scalar:
        """Recover *t* from a published 64-byte signature."""
        return self.extract_secret(sig.s)

    def final_signature(self, completed: Scalar) -> SchnorrSignature:
        """Assemble the standard encoding  x(R') ‖ s'."""
        if not isinstance(completed, Scalar):
            raise EncodingError("completed signature must be a Scalar")
        if self.nonce_sum.is_inf():
            raise EncodingError("nonce sum has no x-only encoding")
        return SchnorrSignature(r=self.nonce_sum.x_bytes(), s=completed)

    # serialisation ------------------------------------------------------

    def to_bytes(self) -> bytes:
        """
        ``version (1) ‖ R' (33) ‖ T (33) ‖ s (32) ‖ x(P) (32) ‖ m``.

        Points are SEC 1 compressed, so the parity of  R'  travels with it.
        """
        return (
            bytes([WIRE_VERSION])
            + self.nonce_sum.to_bytes_compressed()
            + self.adaptor_point.to_bytes_compressed()
            + self.s.to_bytes()
            + self.public_key.x_bytes()
            + self.message
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> AdaptorSignature:
        header = 1 + 2 * COMPRESSED_BYTES + SCALAR_BYTES + XONLY_BYTES
        if len(data) < header:
            raise MalformedInputError(
                f"adaptor signature needs at least {header} bytes, "
                f"got {len(data)}"
            )
        if data[0] != WIRE_VERSION:
            raise MalformedInputError(f"unknown wire version {data[0]}")

        off = 1
        R_prime = Point.from_bytes(data[off:off + COMPRESSED_BYTES])
        if R_prime.is_inf():
            raise MalformedInputError("nonce sum is the identity")
        off += COMPRESSED_BYTES
        T = Point.from_bytes(data[off:off + COMPRESSED_BYTES])
        if T.is_inf():
            raise MalformedInputError("adaptor point is the identity")
        off += COMPRESSED_BYTES
        try:
            s = Scalar.from_bytes(data[off:off + SCALAR_BYTES])
        except InvalidScalarError as exc:
            raise MalformedInputError("pre-signature scalar out of range") from exc
        off += SCALAR_BYTES
        P = Point.from_xonly(data[off:off + XONLY_BYTES])
        off += XONLY_BYTES

        return cls(
            nonce_sum=R_prime,
            adaptor_point=T,
            s=s,
            public_key=P,
            message=bytes(data[off:]),
        )
