"""
Nostr side of the swap: the event whose signature releases the secret.

Only the NIP-01 pieces the swap needs are implemented: the event id
digest (which is what gets adaptor-signed), attaching the finalised
signature, verifying it, and plain signing for events outside a swap.
Relay I/O is left to the caller.
"""

from __future__ import annotations

import hashlib
import json
import secrets
import time
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from coincurve import PrivateKey, PublicKeyXOnly

from .adaptor import SchnorrSignature
from .curve import Scalar, Point, RandomSource, with_even_y
from .errors import MalformedInputError


@dataclass(frozen=True)
class NostrEvent:
    """A NIP-01 event; ``sig`` is empty until the swap reveals it."""

    pubkey: str                 # hex x-only key
    created_at: int
    kind: int
    content: str
    tags: List[List[str]] = field(default_factory=list)
    sig: str = ""

    @classmethod
    def create(
        cls,
        public_key: Point,
        content: str,
        kind: Optional[int] = None,
        tags: Optional[List[List[str]]] = None,
        created_at: Optional[int] = None,
    ) -> NostrEvent:
        if kind is None:
            from .config import settings
            kind = settings.nostr_kind
        return cls(
            pubkey=public_key.x_bytes().hex(),
            created_at=int(time.time()) if created_at is None else created_at,
            kind=kind,
            content=content,
            tags=[list(t) for t in (tags or [])],
        )

    def serialize(self) -> str:
        return json.dumps(
            [0, self.pubkey, self.created_at, self.kind, self.tags, self.content],
            separators=(",", ":"),
            ensure_ascii=False,
        )

    @property
    def digest(self) -> bytes:
        """32-byte event id; the message the seller adaptor-signs."""
        return hashlib.sha256(self.serialize().encode("utf-8")).digest()

    @property
    def id(self) -> str:
        return self.digest.hex()

    def with_signature(self, sig: SchnorrSignature) -> NostrEvent:
        return replace(self, sig=sig.hex())

    @property
    def signature(self) -> SchnorrSignature:
        if not self.sig:
            raise MalformedInputError("event is not signed")
        try:
            raw = bytes.fromhex(self.sig)
        except ValueError as exc:
            raise MalformedInputError("signature is not hex") from exc
        return SchnorrSignature.from_bytes(raw)

    def verify(self) -> bool:
        """Check ``sig`` with libsecp256k1's BIP-340 verifier."""
        if not self.sig:
            return False
        try:
            key = PublicKeyXOnly(bytes.fromhex(self.pubkey))
            return key.verify(bytes.fromhex(self.sig), self.digest)
        except ValueError:
            return False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "pubkey": self.pubkey,
            "created_at": self.created_at,
            "kind": self.kind,
            "tags": self.tags,
            "content": self.content,
            "sig": self.sig,
        }


def create_signed_event(
    private_key: Scalar,
    content: str,
    kind: Optional[int] = None,
    tags: Optional[List[List[str]]] = None,
    created_at: Optional[int] = None,
    rng: Optional[RandomSource] = None,
) -> NostrEvent:
    """Build an event and sign it directly with the author's key."""
    d, P = with_even_y(private_key)
    event = NostrEvent.create(P, content, kind=kind, tags=tags, created_at=created_at)
    source = rng if rng is not None else secrets
    raw = PrivateKey(d.to_bytes()).sign_schnorr(event.digest, source.token_bytes(32))
    return event.with_signature(SchnorrSignature.from_bytes(raw))
