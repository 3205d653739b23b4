"""
Bitcoin side of the swap: Taproot key tweak, lock and key-path spend.

The core hands the transaction layer two things: the 32-byte swap
commitment and the tweaked x-only key

    Q = lift_x(x(K)) + c·G        c = int(commitment)

and receives a previous-output reference and an amount.  The lock
transaction is produced unsigned (the buyer's wallet funds and signs
it).  Whoever holds the tweaked secret spends the lock output through
the key path: BIP-341 sighash, BIP-340 signature, one-item witness.

Fee selection and broadcast are left to the caller.
"""

from __future__ import annotations

import hashlib
import secrets
import struct
from dataclasses import dataclass, field
from io import BytesIO
from typing import Dict, List, Optional

from coincurve import PrivateKey

from .curve import Scalar, Point, G, ORDER, XONLY_BYTES, RandomSource, with_even_y
from .errors import (
    InvalidScalarError,
    MalformedInputError,
    PointAtInfinityError,
    SecretMismatchError,
)
from .hash import tagged_hash

OP_1 = 0x51
TX_VERSION = 2
SEQUENCE_FINAL = 0xFFFFFFFF
SIGHASH_DEFAULT = 0x00
LOCK_VOUT = 0

_TAG_SIGHASH = b"TapSighash"


# ── key tweak ───────────────────────────────────────────────────────────

def _commitment_scalar(commitment: bytes) -> Scalar:
    if len(commitment) != 32:
        raise MalformedInputError(
            f"commitment must be 32 bytes, got {len(commitment)}"
        )
    c = int.from_bytes(commitment, "big")
    if c >= ORDER:
        raise InvalidScalarError("commitment is not a valid tweak")
    return Scalar(c)


def tweak_public_key(internal_key: Point, commitment: bytes) -> Point:
    """
    Tweak an x-only internal key by the swap commitment.

    Returns the full tweaked point; its ``x_bytes()`` is the output key.
    """
    if internal_key.is_inf():
        raise MalformedInputError("internal key is the identity")
    K = Point.from_xonly(internal_key.x_bytes())
    Q = K + (_commitment_scalar(commitment) * G)
    if Q.is_inf():
        raise PointAtInfinityError("tweaked key is the identity")
    return Q


def tweak_private_key(secret: Scalar, commitment: bytes) -> Scalar:
    """Secret for ``tweak_public_key(secret·G, commitment)``."""
    d, _ = with_even_y(secret)
    return d + _commitment_scalar(commitment)


def p2tr_script(output_key: Point) -> bytes:
    """``OP_1 <x(Q)>`` scriptPubKey."""
    return bytes([OP_1, XONLY_BYTES]) + output_key.x_bytes()


# ── minimal transaction types ───────────────────────────────────────────

def write_compact(n: int) -> bytes:
    if n < 0xFD:
        return struct.pack("<B", n)
    if n <= 0xFFFF:
        return b"\xfd" + struct.pack("<H", n)
    if n <= 0xFFFFFFFF:
        return b"\xfe" + struct.pack("<I", n)
    return b"\xff" + struct.pack("<Q", n)


@dataclass(frozen=True)
class OutPoint:
    """Reference to a previous output; *txid* in display (big-endian) hex."""

    txid: str
    vout: int

    def __post_init__(self) -> None:
        if len(self.txid) != 64:
            raise MalformedInputError("txid must be 64 hex characters")
        try:
            bytes.fromhex(self.txid)
        except ValueError as exc:
            raise MalformedInputError("txid is not hex") from exc
        if not 0 <= self.vout <= 0xFFFFFFFF:
            raise MalformedInputError("vout out of range")

    def serialize(self) -> bytes:
        return bytes.fromhex(self.txid)[::-1] + struct.pack("<I", self.vout)


@dataclass(frozen=True)
class TxIn:
    prevout: OutPoint
    script_sig: bytes = b""
    sequence: int = SEQUENCE_FINAL


@dataclass(frozen=True)
class TxOut:
    value: int
    script_pubkey: bytes

    def serialize(self) -> bytes:
        return (
            struct.pack("<q", self.value)
            + write_compact(len(self.script_pubkey))
            + self.script_pubkey
        )


@dataclass(frozen=True)
class Tx:
    ins: List[TxIn] = field(default_factory=list)
    outs: List[TxOut] = field(default_factory=list)
    version: int = TX_VERSION
    locktime: int = 0

    def raw(self, witnesses: Optional[Dict[int, List[bytes]]] = None) -> bytes:
        """Serialise; with *witnesses* the BIP-144 segwit form is used."""
        o = BytesIO()
        o.write(struct.pack("<i", self.version))
        if witnesses:
            o.write(b"\x00\x01")
        o.write(write_compact(len(self.ins)))
        for i in self.ins:
            o.write(i.prevout.serialize())
            o.write(write_compact(len(i.script_sig)) + i.script_sig)
            o.write(struct.pack("<I", i.sequence))
        o.write(write_compact(len(self.outs)))
        for t in self.outs:
            o.write(t.serialize())
        if witnesses:
            for idx in range(len(self.ins)):
                wit = witnesses.get(idx, [])
                o.write(write_compact(len(wit)))
                for item in wit:
                    o.write(write_compact(len(item)) + item)
        o.write(struct.pack("<I", self.locktime))
        return o.getvalue()

    @property
    def txid(self) -> str:
        """Display-order txid of the non-witness serialisation."""
        digest = hashlib.sha256(hashlib.sha256(self.raw()).digest()).digest()
        return digest[::-1].hex()


def sighash_key_path(tx: Tx, idx: int, spent: List[TxOut]) -> bytes:
    """BIP-341 key-path sighash with ``SIGHASH_DEFAULT`` and no annex."""
    if len(spent) != len(tx.ins):
        raise ValueError("need one spent output per input")
    if not 0 <= idx < len(tx.ins):
        raise ValueError(f"input index {idx} out of range")

    s = BytesIO()
    s.write(b"\x00")                                # epoch
    s.write(struct.pack("<B", SIGHASH_DEFAULT))
    s.write(struct.pack("<i", tx.version))
    s.write(struct.pack("<I", tx.locktime))

    h = hashlib.sha256()
    for inp in tx.ins:
        h.update(inp.prevout.serialize())
    s.write(h.digest())                             # sha_prevouts
    h = hashlib.sha256()
    for out in spent:
        h.update(struct.pack("<q", out.value))
    s.write(h.digest())                             # sha_amounts
    h = hashlib.sha256()
    for out in spent:
        h.update(write_compact(len(out.script_pubkey)) + out.script_pubkey)
    s.write(h.digest())                             # sha_scriptpubkeys
    h = hashlib.sha256()
    for inp in tx.ins:
        h.update(struct.pack("<I", inp.sequence))
    s.write(h.digest())                             # sha_sequences
    h = hashlib.sha256()
    for out in tx.outs:
        h.update(out.serialize())
    s.write(h.digest())                             # sha_outputs

    s.write(b"\x00")                                # spend_type: key path
    s.write(struct.pack("<I", idx))
    return tagged_hash(_TAG_SIGHASH, s.getvalue())


# ── lock ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class LockTransaction:
    """Unsigned transaction paying *amount* sats to the tweaked key."""

    prevout: OutPoint
    amount: int
    output_key: Point
    commitment: bytes

    @property
    def script_pubkey(self) -> bytes:
        return p2tr_script(self.output_key)

    @property
    def output(self) -> TxOut:
        return TxOut(self.amount, self.script_pubkey)

    @property
    def tx(self) -> Tx:
        return Tx(ins=[TxIn(self.prevout)], outs=[self.output])

    def serialize(self) -> bytes:
        return self.tx.raw()

    @property
    def txid(self) -> str:
        return self.tx.txid

    @property
    def outpoint(self) -> OutPoint:
        return OutPoint(self.txid, LOCK_VOUT)


def build_lock_transaction(
    commitment: bytes,
    internal_key: Point,
    prev_txid: str,
    prev_vout: int,
    amount: int,
    dust_limit: Optional[int] = None,
) -> LockTransaction:
    """
    Build the unsigned lock transaction for a swap.

    Parameters
    ----------
    commitment : bytes
        32-byte swap commitment.
    internal_key : Point
        Key whose x-only form is tweaked by the commitment.
    prev_txid, prev_vout
        Output being spent into the lock.
    amount : int
        Value locked, in satoshis.
    dust_limit : int, optional
        Minimum amount; defaults to the configured value.
    """
    if dust_limit is None:
        from .config import settings
        dust_limit = settings.dust_limit
    if amount < dust_limit:
        raise ValueError(f"amount {amount} is below dust limit {dust_limit}")

    Q = tweak_public_key(internal_key, commitment)
    return LockTransaction(
        prevout=OutPoint(txid=prev_txid, vout=prev_vout),
        amount=amount,
        output_key=Q,
        commitment=bytes(commitment),
    )


# ── key-path spend ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class SpendTransaction:
    """Signed key-path spend of a lock output."""

    tx: Tx
    spent: TxOut
    sighash: bytes
    signature: bytes            # 64-byte BIP-340 signature over sighash

    @property
    def witness(self) -> List[bytes]:
        return [self.signature]

    def serialize(self) -> bytes:
        return self.tx.raw({0: self.witness})

    @property
    def txid(self) -> str:
        return self.tx.txid


def build_spend_transaction(
    lock: LockTransaction,
    spend_key: Scalar,
    destination: bytes,
    amount: int,
    rng: Optional[RandomSource] = None,
) -> SpendTransaction:
    """
    Spend the lock output through the Taproot key path.

    Parameters
    ----------
    lock : LockTransaction
        The (confirmed) lock; its output 0 is spent.
    spend_key : Scalar
        Tweaked secret, e.g. from ``tweak_private_key``.
    destination : bytes
        scriptPubKey receiving the funds.
    amount : int
        Value sent; ``lock.amount - amount`` is left as fee.
    rng : RandomSource, optional
        Source of the BIP-340 auxiliary randomness.
    """
    spend_key.require_nonzero("spend key")
    if (spend_key * G).x_bytes() != lock.output_key.x_bytes():
        raise SecretMismatchError("spend key does not match the lock output")
    if not 0 < amount <= lock.amount:
        raise ValueError(
            f"amount {amount} must be positive and at most {lock.amount}"
        )

    tx = Tx(
        ins=[TxIn(lock.outpoint)],
        outs=[TxOut(amount, bytes(destination))],
    )
    spent = lock.output
    sighash = sighash_key_path(tx, 0, [spent])
    source = rng if rng is not None else secrets
    signature = PrivateKey(spend_key.to_bytes()).sign_schnorr(
        sighash, source.token_bytes(32),
    )
    return SpendTransaction(tx=tx, spent=spent, sighash=sighash, signature=signature)
