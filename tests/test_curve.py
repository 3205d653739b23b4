import pytest

from tapstr import (
    G,
    ORDER,
    Point,
    Scalar,
    add_points,
    fixed_width_encode,
    negate_point,
    with_even_y,
)
from tapstr.errors import InvalidScalarError, MalformedInputError, PointAtInfinityError


def test_fixed_width_encode_pads_left():
    assert fixed_width_encode(b"\x01") == b"\x00" * 31 + b"\x01"
    assert fixed_width_encode(b"") == b"\x00" * 32


def test_fixed_width_encode_keeps_exact_width():
    data = bytes(range(32))
    assert fixed_width_encode(data) == data


def test_fixed_width_encode_drops_high_order_overflow():
    data = b"\xaa\xbb" + bytes(range(32))
    assert fixed_width_encode(data) == bytes(range(32))


def test_add_points_matches_scalar_addition(rng):
    a, b = Scalar.random(rng), Scalar.random(rng)
    assert add_points(a * G, b * G) == (a + b) * G


def test_add_points_doubling():
    assert add_points(G, G) == Scalar(2) * G


def test_add_points_rejects_inverses(rng):
    P = Scalar.random(rng) * G
    with pytest.raises(PointAtInfinityError):
        add_points(P, negate_point(P))


def test_negate_point_keeps_x_flips_parity(rng):
    P = Scalar.random(rng) * G
    N = negate_point(P)
    assert N.x == P.x
    assert N.has_even_y() != P.has_even_y()
    assert negate_point(N) == P


def test_with_even_y_negates_odd_keys(make_rng):
    rng = make_rng(b"parity")
    seen_odd = False
    for _ in range(16):
        x = Scalar.random(rng)
        adjusted, P = with_even_y(x)
        assert P.has_even_y()
        assert adjusted * G == P
        if not (x * G).has_even_y():
            seen_odd = True
            assert adjusted == -x
    assert seen_odd


def test_with_even_y_rejects_zero():
    with pytest.raises(InvalidScalarError):
        with_even_y(Scalar.zero())


def test_xonly_round_trip_lifts_to_even_y(rng):
    P = Scalar.random(rng) * G
    lifted = Point.from_xonly(P.x_bytes())
    assert lifted.has_even_y()
    assert lifted.x == P.x


def test_from_xonly_rejects_bad_input():
    with pytest.raises(MalformedInputError):
        Point.from_xonly(b"\x01" * 31)
    with pytest.raises(MalformedInputError):
        Point.from_xonly(b"\xff" * 32)          # x >= p
    # BIP-340 test vector 5: x not on the curve
    with pytest.raises(MalformedInputError):
        Point.from_xonly(bytes.fromhex(
            "EEFDEA4CDB677750A420FEE807EACF21EB9898AE79B9768766E4FAA04A2D4A34"
        ))


def test_from_bytes_rejects_garbage():
    with pytest.raises(MalformedInputError):
        Point.from_bytes(b"\x05" + b"\x01" * 32)


def test_identity_has_no_xonly_form():
    with pytest.raises(PointAtInfinityError):
        Point.identity().x_bytes()


def test_scalar_from_bytes_checks_range():
    with pytest.raises(InvalidScalarError):
        Scalar.from_bytes(ORDER.to_bytes(32, "big"))
    with pytest.raises(MalformedInputError):
        Scalar.from_bytes(b"\x01" * 31)
    with pytest.raises(InvalidScalarError):
        Scalar.from_secret_bytes(b"\x00" * 32)
    assert Scalar.from_bytes((ORDER - 1).to_bytes(32, "big")) == -Scalar(1)


def test_scalar_random_uses_injected_source(make_rng):
    a = Scalar.random(make_rng(b"same"))
    b = Scalar.random(make_rng(b"same"))
    c = Scalar.random(make_rng(b"other"))
    assert a == b
    assert a != c


def test_scalar_arithmetic_wraps_modulo_order():
    assert Scalar(ORDER - 1) + Scalar(2) == Scalar(1)
    assert Scalar(0) - Scalar(1) == Scalar(ORDER - 1)
    assert -Scalar.zero() == Scalar.zero()


def test_scalar_repr_does_not_leak_value():
    s = Scalar(0x1234567890ABCDEF1234567890ABCDEF)
    assert "1234567890abcdef1234567890abcdef" not in repr(s)
