import hashlib

import pytest

from tapstr import G, AdaptorSignature, Scalar, TapstrSettings, challenge, with_even_y


class SeededRandom:
    """Deterministic ``RandomSource`` for reproducible tests."""

    def __init__(self, seed: bytes) -> None:
        self._seed = seed
        self._counter = 0

    def token_bytes(self, nbytes: int) -> bytes:
        out = b""
        while len(out) < nbytes:
            block = self._seed + self._counter.to_bytes(8, "big")
            out += hashlib.sha256(block).digest()
            self._counter += 1
        return out[:nbytes]


@pytest.fixture
def rng():
    return SeededRandom(b"tapstr-tests")


@pytest.fixture
def seller_key(rng):
    return Scalar.random(rng)


@pytest.fixture
def secret(rng):
    return Scalar.random(rng)


@pytest.fixture
def message():
    return hashlib.sha256(b"Buy this digital item").digest()


@pytest.fixture
def config():
    return TapstrSettings(swap_timeout=60.0, max_nonce_attempts=64, dust_limit=546)


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_rng():
    return SeededRandom


@pytest.fixture
def odd_nonce_presig(seller_key, secret, message, make_rng):
    """Satisfies the adaptor equation, but its nonce sum has odd y."""
    rng = make_rng(b"odd-nonce")
    x, P = with_even_y(seller_key)
    T = secret * G
    while True:
        k = Scalar.random(rng)
        R_prime = k * G + T
        if not R_prime.is_inf() and not R_prime.has_even_y():
            break
    e = challenge(R_prime, P, message)
    return AdaptorSignature(
        nonce_sum=R_prime,
        adaptor_point=T,
        s=k + e * x,
        public_key=P,
        message=message,
    )
