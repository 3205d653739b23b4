"""
High-level orchestration of one Bitcoin ↔ Nostr atomic swap.

Ties the Seller and Buyer roles, the Nostr event and the Taproot lock
into a single call, useful for integration tests and demos.

Usage
-----
::

    from tapstr import AtomicSwapProtocol

    proto = AtomicSwapProtocol.setup()
    result = proto.run(
        "Buy this digital item",
        prev_txid="00" * 32,
        prev_vout=0,
        amount=10_000,
    )
    assert result.event.verify()
    assert result.secret_matches
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from loguru import logger

from .config import TapstrSettings, settings as default_settings
from .curve import Scalar, Point, G, RandomSource
from .nostr import NostrEvent
from .swap import Buyer, Seller, SwapSession
from .taproot import LockTransaction, SpendTransaction, tweak_private_key


@dataclass
class SwapResult:
    """Outcome of a full swap run (public data plus the buyer's secret)."""

    session: SwapSession
    event: NostrEvent
    lock: LockTransaction
    secret: Scalar
    secret_matches: bool
    steps: List[str]
    spend: Optional[SpendTransaction] = None


class AtomicSwapProtocol:
    """
    End-to-end swap between a Nostr seller and a Bitcoin buyer.

    1. Seller builds the Nostr event and adaptor-signs its id.
    2. Buyer verifies the offer and locks funds to the tweaked key.
    3. Seller reveals the completed signature on the event.
    4. Buyer verifies it and extracts the adaptor secret.
    """

    def __init__(
        self,
        seller: Seller,
        buyer: Buyer,
        seller_key: Scalar,
        rng: Optional[RandomSource] = None,
        config: Optional[TapstrSettings] = None,
    ) -> None:
        self.seller = seller
        self.buyer = buyer
        self._seller_key = seller_key
        self._rng = rng
        self._config = config or default_settings

    # ── factories ──────────────────────────────────────────────────────

    @classmethod
    def setup(
        cls,
        seller_key: Optional[Scalar] = None,
        buyer_key: Optional[Point] = None,
        rng: Optional[RandomSource] = None,
        config: Optional[TapstrSettings] = None,
    ) -> AtomicSwapProtocol:
        """Create both roles; missing seller key material is sampled."""
        if seller_key is None:
            seller_key = Scalar.random(rng)
        seller = Seller(seller_key, rng=rng, config=config)
        buyer = Buyer(public_key=buyer_key, config=config)
        return cls(seller, buyer, seller_key, rng=rng, config=config)

    # ── run ────────────────────────────────────────────────────────────

    def run(
        self,
        content: str,
        prev_txid: str,
        prev_vout: int,
        amount: int,
        secret: Optional[Scalar] = None,
        created_at: Optional[int] = None,
        claim_to: Optional[bytes] = None,
        fee: int = 0,
    ) -> SwapResult:
        """
        Execute all four steps for one Nostr note, plus the optional claim.

        Parameters
        ----------
        content : str
            Note content, e.g. ``"Buy this digital item"``.
        prev_txid, prev_vout
            Buyer's funding output.
        amount : int
            Sats locked by the buyer.
        secret : Scalar, optional
            Adaptor secret; sampled fresh when omitted.
        claim_to : bytes, optional
            scriptPubKey the seller sweeps the lock to; no spend is built
            when omitted.
        fee : int
            Sats left out of the claim.
        """
        steps: List[str] = []

        def step(msg: str) -> None:
            logger.info(msg)
            steps.append(msg)

        if secret is None:
            secret = Scalar.random(self._rng)
        expected_point = secret.require_nonzero("adaptor secret") * G

        event = NostrEvent.create(
            self.seller.public_key,
            content,
            kind=self._config.nostr_kind,
            created_at=created_at,
        )
        session = self.seller.initiate(
            event.digest, secret=secret, buyer_key=self.buyer.public_key,
        )
        step(f"Seller pre-signed event {event.id[:16]}")
        step(f"Seller commitment {session.swap.commitment.digest.hex()}")

        lock = self.buyer.lock(session, prev_txid, prev_vout, amount)
        step(f"Buyer verified offer and locked {amount} sats in {lock.txid[:16]}")

        sig = self.seller.reveal(session)
        event = event.with_signature(sig)
        step(f"Seller published signed event {event.id[:16]}")

        recovered = self.buyer.extract(session, sig)
        matches = recovered * G == expected_point
        step(f"Buyer extracted secret, matches adaptor point: {matches}")

        spend = None
        if claim_to is not None:
            spend = self.seller.claim(session, claim_to, amount - fee)
            step(f"Seller claimed {amount - fee} sats in {spend.txid[:16]}")

        return SwapResult(
            session=session,
            event=event,
            lock=lock,
            secret=recovered,
            secret_matches=matches,
            steps=steps,
            spend=spend,
        )

    def lock_spend_key(self, commitment: bytes) -> Scalar:
        """Secret key for the lock output when it is keyed to the seller."""
        return tweak_private_key(self._seller_key, commitment)

    def __repr__(self) -> str:
        return f"AtomicSwapProtocol(seller={self.seller.public_key!r})"
