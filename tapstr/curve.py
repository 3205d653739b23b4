"""
Elliptic curve arithmetic on secp256k1 via libsecp256k1.

Group operations (scalar multiplication, point addition) are delegated
to ``coincurve``, which wraps Bitcoin Core's libsecp256k1.  Scalars are
plain Python integers reduced modulo the group order.

Points are held as full affine points internally; the BIP-340 x-only
form is produced on demand by ``Point.x_bytes`` and parsed back with
``Point.from_xonly`` (which lifts to the even-y point).

References
----------
- SEC 2 v2 §2.4.1  secp256k1 domain parameters
- BIP-340            Schnorr signature specification for Bitcoin
"""

from __future__ import annotations

import secrets
from typing import Optional, Protocol, Tuple

from coincurve import PrivateKey as _SK, PublicKey as _PK

from .errors import InvalidScalarError, MalformedInputError, PointAtInfinityError

# ── secp256k1 constants ─────────────────────────────────────────────────
ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
FIELD_PRIME = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F
SCALAR_BYTES = 32
XONLY_BYTES = 32
COMPRESSED_BYTES = 33


# ── randomness capability ───────────────────────────────────────────────
class RandomSource(Protocol):
    """Anything that yields cryptographically secure bytes.

    The ``secrets`` module itself satisfies this protocol and is the
    default everywhere a source is optional.
    """

    def token_bytes(self, nbytes: int) -> bytes: ...


def fixed_width_encode(data: bytes) -> bytes:
    """
    Left-pad a big-endian integer encoding to exactly 32 bytes.

    Inputs longer than 32 bytes keep only their low-order 32 bytes.  This
    is a formatting helper, not a modular reduction.
    """
    if len(data) >= SCALAR_BYTES:
        return bytes(data[len(data) - SCALAR_BYTES:])
    return bytes(SCALAR_BYTES - len(data)) + bytes(data)


# ── Scalar  (Z_q arithmetic, pure Python) ───────────────────────────────
class Scalar:
    """Element of the scalar field  Z_q  where *q* = ``ORDER``."""

    __slots__ = ("_v",)

    def __init__(self, value: int) -> None:
        self._v = value % ORDER

    # constructors -----------------------------------------------------------
    @classmethod
    def zero(cls) -> Scalar:
        return cls(0)

    @classmethod
    def random(cls, rng: Optional[RandomSource] = None) -> Scalar:
        """Uniform in [1, q-1] via rejection sampling."""
        source = rng if rng is not None else secrets
        while True:
            c = int.from_bytes(source.token_bytes(SCALAR_BYTES), "big")
            if 0 < c < ORDER:
                return cls(c)

    @classmethod
    def from_bytes(cls, data: bytes) -> Scalar:
        """Parse a canonical 32-byte big-endian scalar (zero allowed)."""
        if len(data) != SCALAR_BYTES:
            raise MalformedInputError(
                f"need {SCALAR_BYTES} bytes, got {len(data)}"
            )
        v = int.from_bytes(data, "big")
        if v >= ORDER:
            raise InvalidScalarError("scalar out of range")
        return cls(v)

    @classmethod
    def from_secret_bytes(cls, data: bytes) -> Scalar:
        """Parse a private key: canonical and non-zero."""
        s = cls.from_bytes(data)
        if s.is_zero():
            raise InvalidScalarError("secret scalar must be non-zero")
        return s

    # serialisation ----------------------------------------------------------
    def to_bytes(self) -> bytes:
        return self._v.to_bytes(SCALAR_BYTES, "big")

    @property
    def value(self) -> int:
        return self._v

    def is_zero(self) -> bool:
        return self._v == 0

    def require_nonzero(self, what: str = "scalar") -> Scalar:
        if self._v == 0:
            raise InvalidScalarError(f"{what} must be non-zero")
        return self

    # arithmetic -------------------------------------------------------------
    def __add__(self, o: Scalar) -> Scalar:
        if not isinstance(o, Scalar):
            return NotImplemented
        return Scalar((self._v + o._v) % ORDER)

    def __sub__(self, o: Scalar) -> Scalar:
        if not isinstance(o, Scalar):
            return NotImplemented
        return Scalar((self._v - o._v) % ORDER)

    def __mul__(self, o):
        if isinstance(o, Scalar):
            return Scalar((self._v * o._v) % ORDER)
        if isinstance(o, Point):
            return o._smul(self)
        return NotImplemented

    def __rmul__(self, o):
        if isinstance(o, int):
            return Scalar((o * self._v) % ORDER)
        return NotImplemented

    def __neg__(self) -> Scalar:
        return Scalar((-self._v) % ORDER)

    # comparison / hashing ---------------------------------------------------
    def __eq__(self, o: object) -> bool:
        if isinstance(o, Scalar):
            return self._v == o._v
        if isinstance(o, int):
            return self._v == o % ORDER
        return False

    def __hash__(self) -> int:
        return hash(self._v)

    def __bool__(self) -> bool:
        return self._v != 0

    def __repr__(self) -> str:
        # never print the full value: scalars are usually secrets
        h = hex(self._v)
        return f"Scalar(0x{h[2:10]}…)" if len(h) > 14 else f"Scalar({h})"


# ── Point  (secp256k1 group element via libsecp256k1) ───────────────────
class Point:
    """
    Point on secp256k1.

    The identity (point at infinity) is represented by a flag rather than
    a ``coincurve.PublicKey``, which cannot hold it.
    """

    __slots__ = ("_pk", "_inf")

    def __init__(self, *, pk: Optional[_PK] = None, infinity: bool = False):
        self._pk: Optional[_PK] = pk
        self._inf: bool = infinity

    # constructors -----------------------------------------------------------
    @classmethod
    def generator(cls) -> Point:
        """Standard base point *G*."""
        return cls(pk=_SK(b"\x00" * 31 + b"\x01").public_key)

    @classmethod
    def identity(cls) -> Point:
        """Point at infinity — additive identity."""
        return cls(infinity=True)

    @classmethod
    def from_scalar(cls, s: Scalar) -> Point:
        """Compute *s · G*."""
        if s.is_zero():
            return cls.identity()
        return cls(pk=_SK(s.to_bytes()).public_key)

    @classmethod
    def from_bytes(cls, data: bytes) -> Point:
        """Deserialise SEC 1 compressed (33 B) or uncompressed (65 B)."""
        if data and all(b == 0 for b in data):
            return cls.identity()
        try:
            return cls(pk=_PK(bytes(data)))
        except (ValueError, TypeError) as exc:
            raise MalformedInputError(f"invalid point encoding: {exc}") from exc

    @classmethod
    def from_xonly(cls, data: bytes) -> Point:
        """BIP-340 ``lift_x``: the point with this x and even y."""
        if len(data) != XONLY_BYTES:
            raise MalformedInputError(
                f"x-only key needs {XONLY_BYTES} bytes, got {len(data)}"
            )
        if int.from_bytes(data, "big") >= FIELD_PRIME:
            raise MalformedInputError("x coordinate not in field")
        try:
            return cls(pk=_PK(b"\x02" + bytes(data)))
        except ValueError as exc:
            raise MalformedInputError("x coordinate is not on the curve") from exc

    # serialisation ----------------------------------------------------------
    def to_bytes_compressed(self) -> bytes:
        if self._inf:
            return b"\x00" * COMPRESSED_BYTES
        return self._pk.format(compressed=True)  # type: ignore[union-attr]

    def x_bytes(self) -> bytes:
        """32-byte x-only encoding (parity discarded)."""
        if self._inf:
            raise PointAtInfinityError("identity has no x-only encoding")
        return fixed_width_encode(self.to_bytes_compressed()[1:])

    @property
    def x(self) -> int:
        if self._inf:
            return 0
        raw = self._pk.format(compressed=False)  # type: ignore[union-attr]
        return int.from_bytes(raw[1:33], "big")

    def has_even_y(self) -> bool:
        if self._inf:
            return False
        return self._pk.format(compressed=True)[0] == 0x02  # type: ignore

    def is_inf(self) -> bool:
        return self._inf

    # group operations -------------------------------------------------------
    def _smul(self, s: Scalar) -> Point:
        """Scalar multiplication  s · self  (C speed)."""
        if self._inf or s.is_zero():
            return Point.identity()
        copy = _PK(self._pk.format())  # type: ignore[union-attr]
        return Point(pk=copy.multiply(s.to_bytes()))

    def __neg__(self) -> Point:
        if self._inf:
            return self
        raw = bytearray(self._pk.format(compressed=True))  # type: ignore
        raw[0] ^= 0x01            # 0x02 ↔ 0x03 flip parity
        return Point(pk=_PK(bytes(raw)))

    def __add__(self, o: Point) -> Point:
        if not isinstance(o, Point):
            return NotImplemented
        if self._inf:
            return o
        if o._inf:
            return self
        # check for P + (-P) = O
        if self._pk.format() == (-o)._pk.format():  # type: ignore
            return Point.identity()
        return Point(pk=_PK.combine_keys(
            [self._pk, o._pk]))  # type: ignore[list-item]

    def __sub__(self, o: Point) -> Point:
        return self + (-o)

    def __rmul__(self, s) -> Point:
        if isinstance(s, Scalar):
            return self._smul(s)
        if isinstance(s, int):
            return self._smul(Scalar(s))
        return NotImplemented

    def __eq__(self, o: object) -> bool:
        if not isinstance(o, Point):
            return False
        if self._inf and o._inf:
            return True
        if self._inf or o._inf:
            return False
        return self._pk.format() == o._pk.format()  # type: ignore

    def __hash__(self) -> int:
        return hash(self.to_bytes_compressed())

    def __repr__(self) -> str:
        if self._inf:
            return "Point(∞)"
        return f"Point(0x{self.x:064x})"[:42] + "…)"


# ── free-function helpers ───────────────────────────────────────────────

def add_points(p1: Point, p2: Point) -> Point:
    """Group-law addition that refuses to produce the identity."""
    result = p1 + p2
    if result.is_inf():
        raise PointAtInfinityError("point addition yields the identity")
    return result


def negate_point(p: Point) -> Point:
    """Return *-P*  (same x, negated y)."""
    return -p


def with_even_y(secret: Scalar) -> Tuple[Scalar, Point]:
    """
    Adjust a secret so its public point has even y (BIP-340 convention).

    Returns ``(secret', secret'·G)``; ``secret'`` is either ``secret`` or
    ``-secret``, and the x coordinate of the point is unchanged.
    """
    secret.require_nonzero("secret")
    point = Point.from_scalar(secret)
    if not point.has_even_y():
        return -secret, -point
    return secret, point


# ── module-level generator ──────────────────────────────────────────────
G = Point.generator()
