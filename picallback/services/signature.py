"""HMAC verification of Pi callback signatures.

The scheme is HMAC-SHA256 over the exact request bytes, hex-encoded, sent in
``X-Signature`` or ``X-Pi-Signature``. This is a placeholder contract: swap
``compute_signature`` for the network's documented algorithm once published.

When no secret is configured the verifier reports ``UNCONFIGURED`` and the
request proceeds unauthenticated. That branch exists for local development
only and is logged on every request.
"""
from __future__ import annotations

import enum
import hashlib
import hmac
from dataclasses import dataclass
from typing import Mapping

from picallback.core.logging import get_logger

logger = get_logger(__name__)

SIGNATURE_HEADERS = ("x-signature", "x-pi-signature")


class SignatureOutcome(str, enum.Enum):
    AUTHENTICATED = "authenticated"
    REJECTED = "rejected"
    UNCONFIGURED = "unconfigured"


class RejectionReason(str, enum.Enum):
    MISSING_SIGNATURE = "missing_signature"
    INVALID_SIGNATURE = "invalid_signature"
    VERIFICATION_ERROR = "verification_error"


@dataclass(frozen=True)
class SignatureResult:
    outcome: SignatureOutcome
    reason: RejectionReason | None = None

    @property
    def allowed(self) -> bool:
        return self.outcome is not SignatureOutcome.REJECTED


AUTHENTICATED = SignatureResult(SignatureOutcome.AUTHENTICATED)
UNCONFIGURED = SignatureResult(SignatureOutcome.UNCONFIGURED)


def _rejected(reason: RejectionReason) -> SignatureResult:
    return SignatureResult(SignatureOutcome.REJECTED, reason)


def secret_fingerprint(secret: str | None) -> str | None:
    """Return a deterministic marker instead of the raw secret for logs."""

    if not secret:
        return None
    digest = hashlib.sha256(secret.encode("utf-8")).hexdigest()[:8]
    return f"sha256:{digest}"


def signature_from_headers(headers: Mapping[str, str]) -> str | None:
    """Return the first non-empty signature header, matched case-insensitively."""

    lowered = {key.lower(): value for key, value in headers.items()}
    for name in SIGNATURE_HEADERS:
        value = (lowered.get(name) or "").strip()
        if value:
            return value
    return None


def compute_signature(secret: str, raw_body: bytes) -> str:
    """Compute the hex HMAC-SHA256 of ``raw_body`` keyed by ``secret``."""

    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify(raw_body: bytes, signature: str | None, secret: str | None) -> SignatureResult:
    """Authenticate a callback body against its signature header."""

    if not secret:
        logger.warning("PI_CALLBACK_SECRET not set; skipping signature verification (insecure)")
        return UNCONFIGURED

    if not signature:
        logger.warning(
            "Pi callback without signature header",
            extra={"secret_fingerprint": secret_fingerprint(secret)},
        )
        return _rejected(RejectionReason.MISSING_SIGNATURE)

    try:
        expected = compute_signature(secret, raw_body).encode("utf-8")
        provided = signature.encode("utf-8")
    except Exception:  # noqa: BLE001
        logger.exception("Signature verification error")
        return _rejected(RejectionReason.VERIFICATION_ERROR)

    if len(expected) != len(provided) or not hmac.compare_digest(expected, provided):
        logger.warning(
            "Pi callback signature mismatch",
            extra={"secret_fingerprint": secret_fingerprint(secret)},
        )
        return _rejected(RejectionReason.INVALID_SIGNATURE)

    return AUTHENTICATED


__all__ = [
    "SIGNATURE_HEADERS",
    "RejectionReason",
    "SignatureOutcome",
    "SignatureResult",
    "compute_signature",
    "secret_fingerprint",
    "signature_from_headers",
    "verify",
]
