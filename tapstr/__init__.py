"""
tapstr: atomic Bitcoin ↔ Nostr swaps with Schnorr adaptor signatures.

A seller adaptor-signs a Nostr event id for a secret point  T = t·G.
The buyer verifies the pre-signature, locks bitcoin to a Taproot key
tweaked by a commitment to it, and once the seller publishes the real
signature on the event, recovers  t = s' - s.

Quick start
-----------
::

    from tapstr import AdaptorSignature, Scalar, G

    x, t = Scalar.random(), Scalar.random()
    pre = AdaptorSignature.create(x, b"Buy this digital item", t * G)
    assert pre.verify()

    s_final = pre.complete(t)
    sig = pre.final_signature(s_final)
    assert sig.verify(pre.public_key, pre.message)
    assert pre.extract_secret(s_final) == t
"""

__version__ = "0.1.0"

# ── core types ──────────────────────────────────────────────────────────
from .curve import (
    Scalar,
    Point,
    G,
    ORDER,
    RandomSource,
    fixed_width_encode,
    add_points,
    negate_point,
    with_even_y,
)

# ── errors ──────────────────────────────────────────────────────────────
from .errors import (
    TapstrError,
    InvalidScalarError,
    PointAtInfinityError,
    ScalarOverflowError,
    MalformedInputError,
    EncodingError,
    SecretMismatchError,
    ProtocolViolationError,
    SwapTimeoutError,
)

# ── hashing ─────────────────────────────────────────────────────────────
from .hash import challenge, tagged_hash

# ── adaptor signatures ──────────────────────────────────────────────────
from .adaptor import AdaptorSignature, SchnorrSignature, verify_schnorr
from .proofs import SecretProof
from .commitment import SwapCommitment, commit_presignature

# ── collaborators ───────────────────────────────────────────────────────
from .taproot import (
    OutPoint,
    LockTransaction,
    SpendTransaction,
    build_lock_transaction,
    build_spend_transaction,
    sighash_key_path,
    tweak_public_key,
    tweak_private_key,
)
from .nostr import NostrEvent, create_signed_event

# ── swap protocol ───────────────────────────────────────────────────────
from .swap import (
    SwapState,
    Swap,
    SwapSession,
    Seller,
    Buyer,
    Initiated,
    Locked,
    Revealed,
    Completed,
    Aborted,
)
from .protocol import AtomicSwapProtocol, SwapResult
from .config import TapstrSettings, settings

__all__ = [
    # version
    "__version__",
    # core
    "Scalar", "Point", "G", "ORDER", "RandomSource",
    "fixed_width_encode", "add_points", "negate_point", "with_even_y",
    # errors
    "TapstrError", "InvalidScalarError", "PointAtInfinityError",
    "ScalarOverflowError", "MalformedInputError", "EncodingError",
    "SecretMismatchError", "ProtocolViolationError", "SwapTimeoutError",
    # hashing
    "challenge", "tagged_hash",
    # adaptor
    "AdaptorSignature", "SchnorrSignature", "verify_schnorr",
    "SecretProof", "SwapCommitment", "commit_presignature",
    # collaborators
    "OutPoint", "LockTransaction", "build_lock_transaction",
    "SpendTransaction", "build_spend_transaction", "sighash_key_path",
    "tweak_public_key", "tweak_private_key",
    "NostrEvent", "create_signed_event",
    # swap
    "SwapState", "Swap", "SwapSession", "Seller", "Buyer",
    "Initiated", "Locked", "Revealed", "Completed", "Aborted",
    "AtomicSwapProtocol", "SwapResult",
    # config
    "TapstrSettings", "settings",
]
