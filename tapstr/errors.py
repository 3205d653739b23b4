"""
Exception taxonomy for tapstr.

Arithmetic and encoding failures derive from ``ValueError``; protocol
failures derive from ``RuntimeError``.  A mathematically wrong but
well-formed signature is *not* an error: ``verify`` returns ``False``.
"""

from __future__ import annotations


class TapstrError(Exception):
    """Base class for every error raised by tapstr."""


# ── arithmetic / encoding ───────────────────────────────────────────────

class InvalidScalarError(TapstrError, ValueError):
    """Scalar is zero or outside [1, q-1] where a non-zero one is needed."""


class PointAtInfinityError(TapstrError, ValueError):
    """Point addition collapsed to the identity."""


class ScalarOverflowError(TapstrError, ValueError):
    """Hash output is not below the group order.

    Recoverable: sign again with a fresh nonce.
    """


class MalformedInputError(TapstrError, ValueError):
    """Structurally invalid point, scalar or serialised artefact."""


class EncodingError(TapstrError, ValueError):
    """A value cannot be encoded canonically."""


class SecretMismatchError(TapstrError, ValueError):
    """Extracted secret ``t`` does not match the expected adaptor point."""


# ── protocol ────────────────────────────────────────────────────────────

class ProtocolViolationError(TapstrError, RuntimeError):
    """Swap step attempted out of order or on unverified data."""


class SwapTimeoutError(ProtocolViolationError):
    """Swap deadline passed before the step was attempted."""
