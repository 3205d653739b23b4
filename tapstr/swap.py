"""
Seller / Buyer roles around a single adaptor signature.

One swap moves through

    INITIATED ──lock──▶ LOCKED ──reveal──▶ REVEALED ──extract──▶ COMPLETED

and may be ABORTED from any non-terminal state, explicitly, on timeout,
on failed verification, or on an out-of-order step.  Each state is its
own immutable record carrying only what exists at that point (the lock
transaction appears at LOCKED, the signature at REVEALED).

**Seller** pre-signs the message (e.g. a Nostr event id) for adaptor
point  T = t·G  and commits to the pre-signature.  Once funds are
locked it publishes the completed signature  s' = s + t.

**Buyer** verifies the pre-signature, the commitment, and the proof
that the seller knows *t*, then locks funds to the key tweaked by the
commitment.  When the signature is published it checks it with a
standard BIP-340 verifier and extracts  t = s' - s.

The refund path for a seller who never reveals lives in the lock
script and is outside this module.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, ClassVar, Dict, List, Optional, Set, Union

from loguru import logger

from .adaptor import AdaptorSignature, SchnorrSignature, verify_schnorr
from .commitment import SwapCommitment
from .config import TapstrSettings, settings as default_settings
from .curve import Scalar, Point, G, RandomSource, with_even_y
from .errors import (
    ProtocolViolationError,
    SecretMismatchError,
    SwapTimeoutError,
)
from .hash import hash_swap_id
from .taproot import (
    LockTransaction,
    SpendTransaction,
    build_lock_transaction,
    build_spend_transaction,
    tweak_private_key,
)


class SwapState(Enum):
    INITIATED = "initiated"
    LOCKED = "locked"
    REVEALED = "revealed"
    COMPLETED = "completed"
    ABORTED = "aborted"


TERMINAL_STATES = frozenset({SwapState.COMPLETED, SwapState.ABORTED})


# ── state-tagged records ────────────────────────────────────────────────

@dataclass(frozen=True)
class Initiated:
    state: ClassVar[SwapState] = SwapState.INITIATED


@dataclass(frozen=True)
class Locked:
    lock: LockTransaction
    state: ClassVar[SwapState] = SwapState.LOCKED


@dataclass(frozen=True)
class Revealed:
    lock: LockTransaction
    signature: SchnorrSignature
    state: ClassVar[SwapState] = SwapState.REVEALED


@dataclass(frozen=True)
class Completed:
    lock: LockTransaction
    signature: SchnorrSignature
    state: ClassVar[SwapState] = SwapState.COMPLETED


@dataclass(frozen=True)
class Aborted:
    reason: str
    previous: SwapState
    state: ClassVar[SwapState] = SwapState.ABORTED


SwapStatus = Union[Initiated, Locked, Revealed, Completed, Aborted]


# ── swap record ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Swap:
    """Everything the seller publishes to start a swap.  Read-only."""

    swap_id: bytes
    adaptor_sig: AdaptorSignature
    commitment: SwapCommitment
    seller_key: Point                   # even-y signing key
    message: bytes
    buyer_key: Optional[Point] = None

    @property
    def adaptor_point(self) -> Point:
        return self.commitment.adaptor_point

    @property
    def short_id(self) -> str:
        return self.swap_id.hex()[:16]


# ── session (per-swap state machine) ────────────────────────────────────

class SwapSession:
    """
    Mutable holder of one swap's current state.

    Every transition checks the current state and the deadline; an
    out-of-order step aborts the swap and raises
    ``ProtocolViolationError``.
    """

    def __init__(
        self,
        swap: Swap,
        timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if timeout is None:
            timeout = default_settings.swap_timeout
        self.swap = swap
        self._clock = clock
        self.deadline = clock() + timeout
        self._status: SwapStatus = Initiated()
        self._abort_hooks: List[Callable[[Swap], None]] = []
        logger.info(f"Swap {swap.short_id}: initiated")

    # ── inspection ────────────────────────────────────────────────────

    @property
    def status(self) -> SwapStatus:
        return self._status

    @property
    def state(self) -> SwapState:
        return self._status.state

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def expired(self) -> bool:
        return self._clock() >= self.deadline

    # ── guards ────────────────────────────────────────────────────────

    def ensure(self, *expected: SwapState, action: str) -> None:
        """Raise (and abort) unless the swap is in one of *expected*."""
        if self.is_terminal:
            raise ProtocolViolationError(
                f"cannot {action}: swap is {self.state.value}"
            )
        if self.expired():
            self.abort(f"timed out before {action}")
            raise SwapTimeoutError(f"swap timed out before {action}")
        if self.state not in expected:
            names = "/".join(s.value for s in expected)
            reason = f"{action} attempted while {self.state.value} (needs {names})"
            self.abort(reason)
            raise ProtocolViolationError(reason)

    def expect_status(self, kind):
        """Current record, narrowed to *kind*."""
        if not isinstance(self._status, kind):
            raise ProtocolViolationError(
                f"swap record is {type(self._status).__name__}, "
                f"expected {kind.__name__}"
            )
        return self._status

    def check_timeout(self) -> bool:
        """Abort a non-terminal swap whose deadline passed."""
        if not self.is_terminal and self.expired():
            self.abort("timed out")
            return True
        return False

    # ── transitions ───────────────────────────────────────────────────

    def on_abort(self, hook: Callable[[Swap], None]) -> None:
        self._abort_hooks.append(hook)

    def abort(self, reason: str) -> None:
        if self.is_terminal:
            raise ProtocolViolationError(
                f"cannot abort: swap is {self.state.value}"
            )
        previous = self.state
        self._status = Aborted(reason=reason, previous=previous)
        logger.warning(f"Swap {self.swap.short_id}: aborted ({reason})")
        for hook in self._abort_hooks:
            hook(self.swap)
        self._abort_hooks.clear()

    def record_lock(self, lock: LockTransaction) -> None:
        self.ensure(SwapState.INITIATED, action="lock")
        self._status = Locked(lock=lock)
        logger.info(f"Swap {self.swap.short_id}: locked in {lock.txid[:16]}")

    def record_reveal(self, signature: SchnorrSignature) -> None:
        self.ensure(SwapState.LOCKED, action="reveal")
        status = self.expect_status(Locked)
        self._status = Revealed(lock=status.lock, signature=signature)
        logger.info(f"Swap {self.swap.short_id}: signature revealed")

    def record_completion(self) -> None:
        self.ensure(SwapState.REVEALED, action="complete")
        status = self.expect_status(Revealed)
        self._status = Completed(lock=status.lock, signature=status.signature)
        self._abort_hooks.clear()
        logger.info(f"Swap {self.swap.short_id}: completed")

    def __repr__(self) -> str:
        return f"SwapSession({self.swap.short_id}, {self.state.value})"


# ── seller ──────────────────────────────────────────────────────────────

class Seller:
    """
    Holds the signing key and the per-swap adaptor secrets.

    A secret lives from ``initiate`` until ``reveal`` or abort, and an
    adaptor point is never accepted twice.
    """

    def __init__(
        self,
        private_key: Scalar,
        rng: Optional[RandomSource] = None,
        config: Optional[TapstrSettings] = None,
    ) -> None:
        self._key, self.public_key = with_even_y(private_key)
        self._rng = rng
        self._config = config or default_settings
        self._secrets: Dict[bytes, Scalar] = {}
        self._used_points: Set[bytes] = set()

    def initiate(
        self,
        message: bytes,
        secret: Optional[Scalar] = None,
        buyer_key: Optional[Point] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> SwapSession:
        """
        Pre-sign *message* and publish the commitment.

        Parameters
        ----------
        message : bytes
            What the completed signature will sign (a Nostr event id).
        secret : Scalar, optional
            Adaptor secret *t*; freshly sampled when omitted.  A secret
            whose point was already used by this seller is refused.
        buyer_key : Point, optional
            Counterparty identity recorded on the swap.
        """
        if secret is None:
            secret = Scalar.random(self._rng)
        secret.require_nonzero("adaptor secret")
        T = Point.from_scalar(secret)
        if T.to_bytes_compressed() in self._used_points:
            raise ProtocolViolationError("adaptor secret already used")

        adaptor_sig = AdaptorSignature.create(
            self._key,
            message,
            T,
            rng=self._rng,
            max_attempts=self._config.max_nonce_attempts,
        )
        commitment = SwapCommitment.create(adaptor_sig, secret, rng=self._rng)
        swap = Swap(
            swap_id=hash_swap_id(self.public_key, adaptor_sig.nonce_sum, message),
            adaptor_sig=adaptor_sig,
            commitment=commitment,
            seller_key=self.public_key,
            message=bytes(message),
            buyer_key=buyer_key,
        )

        self._used_points.add(T.to_bytes_compressed())
        self._secrets[swap.swap_id] = secret
        session = SwapSession(swap, timeout=self._config.swap_timeout, clock=clock)
        session.on_abort(self._forget)
        logger.debug(
            f"Swap {swap.short_id}: commitment {commitment.digest.hex()}"
        )
        return session

    def reveal(self, session: SwapSession) -> SchnorrSignature:
        """Publish the completed signature once the buyer has locked."""
        session.ensure(SwapState.LOCKED, action="reveal")
        secret = self._secrets.get(session.swap.swap_id)
        if secret is None:
            session.abort("seller holds no secret for this swap")
            raise ProtocolViolationError("unknown swap or secret already used")

        adaptor_sig = session.swap.adaptor_sig
        sig = adaptor_sig.final_signature(adaptor_sig.complete(secret))
        session.record_reveal(sig)
        self._forget(session.swap)
        return sig

    def claim(
        self,
        session: SwapSession,
        destination: bytes,
        amount: int,
    ) -> SpendTransaction:
        """
        Spend the lock output once the signature is public.

        Only works for locks keyed to the seller (the default in
        ``Buyer.lock``); the session state is left unchanged.
        """
        if session.state not in (SwapState.REVEALED, SwapState.COMPLETED):
            raise ProtocolViolationError(
                f"cannot claim: swap is {session.state.value}"
            )
        lock = session.status.lock
        key = tweak_private_key(self._key, session.swap.commitment.digest)
        spend = build_spend_transaction(
            lock, key, destination, amount, rng=self._rng,
        )
        logger.info(
            f"Swap {session.swap.short_id}: lock output claimed in {spend.txid[:16]}"
        )
        return spend

    def abort(self, session: SwapSession, reason: str = "seller aborted") -> None:
        session.abort(reason)
        self._forget(session.swap)

    def holds_secret(self, swap: Swap) -> bool:
        return swap.swap_id in self._secrets

    def _forget(self, swap: Swap) -> None:
        # best-effort in Python: drop the only reference
        self._secrets.pop(swap.swap_id, None)


# ── buyer ───────────────────────────────────────────────────────────────

class Buyer:
    """Verifies the seller's offer, locks funds, and extracts the secret."""

    def __init__(
        self,
        public_key: Optional[Point] = None,
        config: Optional[TapstrSettings] = None,
    ) -> None:
        self.public_key = public_key
        self._config = config or default_settings

    @staticmethod
    def verify_offer(swap: Swap) -> bool:
        """
        Pre-signature, commitment and proof of knowledge of *t*.

        An odd-y  R'  is refused: the seller could then publish a valid
        signature under  x(R')  that does not reveal *t*.
        """
        sig = swap.adaptor_sig
        if sig.message != swap.message:
            return False
        if sig.public_key.x_bytes() != swap.seller_key.x_bytes():
            return False
        if not (sig.nonce_sum.has_even_y() and sig.public_key.has_even_y()):
            return False
        if sig.adaptor_point != swap.adaptor_point:
            return False
        if not sig.verify():
            return False
        return swap.commitment.verify(sig)

    def lock(
        self,
        session: SwapSession,
        prev_txid: str,
        prev_vout: int,
        amount: int,
        recipient_key: Optional[Point] = None,
    ) -> LockTransaction:
        """
        Lock *amount* sats against the swap commitment.

        The output key is *recipient_key* (default: the seller's key)
        tweaked by the commitment.  Funds are never locked on an offer
        that fails ``verify_offer``.
        """
        session.ensure(SwapState.INITIATED, action="lock")
        swap = session.swap
        if not self.verify_offer(swap):
            session.abort("offer failed verification")
            raise ProtocolViolationError("adaptor offer failed verification")
        if (
            swap.buyer_key is not None
            and self.public_key is not None
            and swap.buyer_key != self.public_key
        ):
            session.abort("offer addressed to a different buyer")
            raise ProtocolViolationError("offer addressed to a different buyer")

        key = recipient_key if recipient_key is not None else swap.seller_key
        lock = build_lock_transaction(
            swap.commitment.digest,
            key,
            prev_txid,
            prev_vout,
            amount,
            dust_limit=self._config.dust_limit,
        )
        session.record_lock(lock)
        return lock

    def extract(
        self,
        session: SwapSession,
        signature: Optional[SchnorrSignature] = None,
    ) -> Scalar:
        """
        Recover *t* from the revealed signature and complete the swap.

        *signature* is what the buyer observed (e.g. on a relay); when
        the session is still LOCKED it is recorded as the reveal first.
        """
        if signature is not None and session.state is SwapState.LOCKED:
            session.record_reveal(signature)
        session.ensure(SwapState.REVEALED, action="extract")
        status = session.expect_status(Revealed)
        sig = signature if signature is not None else status.signature
        swap = session.swap

        if sig.r != swap.adaptor_sig.nonce_sum.x_bytes() or not verify_schnorr(
            swap.seller_key, swap.message, sig,
        ):
            session.abort("revealed signature failed verification")
            raise ProtocolViolationError("revealed signature failed verification")

        secret = swap.adaptor_sig.extract_from_signature(sig)
        if secret * G != swap.adaptor_point:
            session.abort("extracted secret does not match adaptor point")
            raise SecretMismatchError("extracted secret does not match T")

        session.record_completion()
        return secret
