"""Tests for callback payload validation."""
import pytest

from picallback.services.validation import (
    UNKNOWN_STATUS,
    InvalidPayload,
    ValidationFailure,
    ValidPayload,
    decode_body,
    validate,
)


@pytest.mark.parametrize(
    "body",
    [
        None,
        [],
        "payment",
        {},
        {"status": "APPROVED"},
        {"payment_id": None},
        {"payment_id": ""},
        {"payment_id": "   "},
        {"payment_id": {"id": "1"}},
        {"payment_id": True},
        {"payment_id": float("nan")},
        {"payment_id": float("inf")},
    ],
)
def test_missing_transaction_id(body):
    result = validate(body)

    assert isinstance(result, InvalidPayload)
    assert result.reason is ValidationFailure.MISSING_TRANSACTION_ID


def test_status_defaults_to_unknown():
    result = validate({"payment_id": "pay-1"})

    assert isinstance(result, ValidPayload)
    assert result.transaction_id == "pay-1"
    assert result.status == UNKNOWN_STATUS
    assert result.status_reported is False


def test_reported_status_and_memo_are_kept():
    result = validate({"payment_id": "pay-1", "status": "APPROVED", "memo": "order #7"})

    assert result.status == "APPROVED"
    assert result.status_reported is True
    assert result.memo == "order #7"


def test_unknown_fields_pass_through_raw():
    body = {"payment_id": "pay-1", "status": "COMPLETED", "txid": "abc", "metadata": {"k": [1, 2]}}

    result = validate(body)

    assert result.raw == body


def test_numeric_payment_id_is_normalised_to_string():
    result = validate({"payment_id": 42})

    assert result.transaction_id == "42"


def test_decode_body_tolerates_garbage():
    assert decode_body(b"") is None
    assert decode_body(b"{not json") is None
    assert decode_body(b"\xff\xfe") is None
    assert decode_body(b'{"payment_id": "1"}') == {"payment_id": "1"}


def test_decode_body_rejects_deeply_nested_json():
    body = b"[" * 50000 + b"]" * 50000

    assert decode_body(body) is None
    assert isinstance(validate(decode_body(body)), InvalidPayload)


def test_string_payment_id_is_kept_verbatim():
    leading = validate({"payment_id": " abc"})
    trailing = validate({"payment_id": "abc "})

    assert leading.transaction_id == " abc"
    assert trailing.transaction_id == "abc "


@pytest.mark.parametrize(
    ("payment_id", "expected"),
    [
        (1.5, "1.5"),
        (2.0, "2"),
        (-0.25, "-0.25"),
    ],
)
def test_float_payment_id_is_accepted(payment_id, expected):
    result = validate({"payment_id": payment_id})

    assert isinstance(result, ValidPayload)
    assert result.transaction_id == expected
