"""Structural validation of decoded Pi callback bodies."""
from __future__ import annotations

import enum
import json
import math
from dataclasses import dataclass, field
from typing import Any

UNKNOWN_STATUS = "unknown"


class ValidationFailure(str, enum.Enum):
    MISSING_TRANSACTION_ID = "missing_transaction_id"


@dataclass(frozen=True)
class ValidPayload:
    transaction_id: str
    status: str
    raw: dict[str, Any] = field(repr=False)
    status_reported: bool = True
    memo: str | None = None


@dataclass(frozen=True)
class InvalidPayload:
    reason: ValidationFailure


ValidationResult = ValidPayload | InvalidPayload


def decode_body(raw_body: bytes) -> Any:
    """Decode a JSON request body, returning ``None`` when it is not JSON."""

    if not raw_body:
        return None
    try:
        return json.loads(raw_body)
    except (UnicodeDecodeError, ValueError, RecursionError):
        return None


def _transaction_id(value: Any) -> str | None:
    # bool is an int subclass; True is not a payment id.
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return str(int(value)) if value.is_integer() else repr(value)
    # Ids are opaque: whitespace is rejected only when it is all there is.
    if isinstance(value, str) and value.strip():
        return value
    return None


def validate(body: Any) -> ValidationResult:
    """Check the minimum shape of a callback: an object with a ``payment_id``.

    Every other field is optional and kept verbatim in ``raw``.
    """

    if not isinstance(body, dict):
        return InvalidPayload(ValidationFailure.MISSING_TRANSACTION_ID)

    transaction_id = _transaction_id(body.get("payment_id"))
    if transaction_id is None:
        return InvalidPayload(ValidationFailure.MISSING_TRANSACTION_ID)

    status = body.get("status")
    status_reported = isinstance(status, str) and bool(status)
    memo = body.get("memo")

    return ValidPayload(
        transaction_id=transaction_id,
        status=status if status_reported else UNKNOWN_STATUS,
        raw=body,
        status_reported=status_reported,
        memo=memo if isinstance(memo, str) else None,
    )


__all__ = [
    "UNKNOWN_STATUS",
    "InvalidPayload",
    "ValidPayload",
    "ValidationFailure",
    "ValidationResult",
    "decode_body",
    "validate",
]
