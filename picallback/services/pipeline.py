"""Pi callback ingestion: authenticate, validate, persist, acknowledge.

Once a callback is authenticated and well-formed it is always acknowledged
with a 200, whatever happened to the write. The network retries anything
that is not a 2xx on its own schedule, and a storm of retries is worse than a
persistence gap that can be reconciled from the logs. Signature and payload
failures are never acknowledged.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Mapping

from fastapi import status

from picallback import db
from picallback.config import Settings
from picallback.core.logging import get_logger
from picallback.core.metrics import record_outcome, record_store_error
from picallback.services import signature as signature_service
from picallback.services import validation as validation_service
from picallback.services.signature import RejectionReason, SignatureOutcome
from picallback.services.store import (
    NotificationStore,
    StoreOutcome,
    StoreResult,
    SupportsUpsert,
    upsert_with_timeout,
)
from picallback.services.validation import InvalidPayload, ValidPayload
from picallback.utils.errors import error_response, internal_error_response

logger = get_logger(__name__)

ACK_MESSAGE = "Callback received"

_REJECTIONS: dict[RejectionReason, tuple[int, str]] = {
    RejectionReason.MISSING_SIGNATURE: (status.HTTP_400_BAD_REQUEST, "Missing signature header"),
    RejectionReason.INVALID_SIGNATURE: (status.HTTP_401_UNAUTHORIZED, "Invalid signature"),
    RejectionReason.VERIFICATION_ERROR: (
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Signature verification failed",
    ),
}


class PipelineStage(str, enum.Enum):
    ACKNOWLEDGED = "acknowledged"
    REJECTED = "rejected"
    INVALID = "invalid"
    FAILED = "failed"


@dataclass(frozen=True)
class PipelineResponse:
    status_code: int
    body: dict[str, Any]
    stage: PipelineStage
    store_result: StoreResult | None = field(default=None, compare=False)


@dataclass(frozen=True)
class CallbackContext:
    """Process-wide collaborators, built once at startup and read-only after."""

    secret: str | None
    store: SupportsUpsert
    store_timeout_seconds: float = 3.0


def build_context(settings: Settings, store: SupportsUpsert | None = None) -> CallbackContext:
    if store is None:
        db.init_engine(settings)
        store = NotificationStore(db.get_sessionmaker())
    return CallbackContext(
        secret=settings.pi_callback_secret,
        store=store,
        store_timeout_seconds=settings.STORE_TIMEOUT_SECONDS,
    )


class CallbackPipeline:
    def __init__(self, context: CallbackContext) -> None:
        self.context = context

    async def ingest(self, raw_body: bytes, headers: Mapping[str, str]) -> PipelineResponse:
        """Run one callback through the pipeline; never raises."""

        try:
            return await self._ingest(raw_body, headers)
        except Exception:  # noqa: BLE001
            logger.exception("Unhandled error while ingesting Pi callback")
            record_outcome("internal_error")
            return PipelineResponse(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                internal_error_response(),
                PipelineStage.FAILED,
            )

    async def _ingest(self, raw_body: bytes, headers: Mapping[str, str]) -> PipelineResponse:
        auth = signature_service.verify(
            raw_body,
            signature_service.signature_from_headers(headers),
            self.context.secret,
        )
        if not auth.allowed:
            return self._rejected(auth.reason)

        checked = validation_service.validate(validation_service.decode_body(raw_body))
        if isinstance(checked, InvalidPayload):
            logger.warning("Invalid Pi callback payload", extra={"reason": checked.reason.value})
            record_outcome(checked.reason.value)
            return PipelineResponse(
                status.HTTP_400_BAD_REQUEST,
                error_response("Invalid payload, missing payment_id", checked.reason.value),
                PipelineStage.INVALID,
            )

        logger.info(
            "Pi callback received",
            extra={
                "payment_id": checked.transaction_id,
                "status": checked.status,
                "signature": auth.outcome.value,
            },
        )
        stored = await self._persist(checked)
        record_outcome(
            "acknowledged_unsigned" if auth.outcome is SignatureOutcome.UNCONFIGURED else "acknowledged"
        )
        return PipelineResponse(
            status.HTTP_200_OK,
            {"message": ACK_MESSAGE, "payment_id": checked.raw.get("payment_id")},
            PipelineStage.ACKNOWLEDGED,
            stored,
        )

    def _rejected(self, reason: RejectionReason | None) -> PipelineResponse:
        reason = reason or RejectionReason.VERIFICATION_ERROR
        status_code, message = _REJECTIONS[reason]
        record_outcome(reason.value)
        return PipelineResponse(status_code, error_response(message, reason.value), PipelineStage.REJECTED)

    async def _persist(self, payload: ValidPayload) -> StoreResult:
        result = await upsert_with_timeout(
            self.context.store,
            payload.transaction_id,
            payload.status,
            payload.raw,
            timeout=self.context.store_timeout_seconds,
            status_reported=payload.status_reported,
            memo=payload.memo,
        )
        if result.outcome is not StoreOutcome.OK:
            # Acknowledged anyway; the gap is reconciled out-of-band.
            kind = result.error.value if result.error else result.outcome.value
            record_store_error(kind)
            logger.error(
                "Pi callback acknowledged without durable record",
                extra={"payment_id": payload.transaction_id, "store_error": kind},
            )
        return result


__all__ = [
    "ACK_MESSAGE",
    "CallbackContext",
    "CallbackPipeline",
    "PipelineResponse",
    "PipelineStage",
    "build_context",
]
