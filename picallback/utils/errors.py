"""Utility helpers for standardized error responses."""
from typing import Any


def error_response(message: str, reason: str | None = None) -> dict[str, Any]:
    """Return the flat error payload the payment network expects.

    ``reason`` is a short machine-readable code (``invalid_signature``,
    ``missing_transaction_id``...) and is omitted for opaque errors.
    """

    payload: dict[str, Any] = {"error": message}
    if reason:
        payload["reason"] = reason
    return payload


INTERNAL_ERROR_MESSAGE = "Internal server error"


def internal_error_response() -> dict[str, Any]:
    return error_response(INTERNAL_ERROR_MESSAGE)


__all__ = ["INTERNAL_ERROR_MESSAGE", "error_response", "internal_error_response"]
