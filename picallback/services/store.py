"""Idempotent persistence of Pi payment notifications."""
from __future__ import annotations

import enum
import functools
from dataclasses import dataclass
from typing import Any, Protocol

import anyio
from sqlalchemy import select, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from picallback.core.logging import get_logger
from picallback.models.notification import PaymentNotification
from picallback.utils.time import utcnow

logger = get_logger(__name__)

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class StoreOutcome(str, enum.Enum):
    OK = "ok"
    UNAVAILABLE = "unavailable"
    ERROR = "error"


class StoreErrorKind(str, enum.Enum):
    UNAVAILABLE = "unavailable"
    WRITE_FAILED = "write_failed"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class StoreResult:
    outcome: StoreOutcome
    error: StoreErrorKind | None = None


STORE_OK = StoreResult(StoreOutcome.OK)
STORE_UNAVAILABLE = StoreResult(StoreOutcome.UNAVAILABLE, StoreErrorKind.UNAVAILABLE)


class SupportsUpsert(Protocol):
    def upsert(
        self,
        transaction_id: str,
        status: str,
        raw: dict[str, Any],
        *,
        status_reported: bool = True,
        memo: str | None = None,
    ) -> StoreResult: ...


class NotificationStore:
    """Merge-upserts notifications keyed by ``transaction_id``.

    The write is a single ``INSERT ... ON CONFLICT DO UPDATE`` so concurrent
    deliveries of the same payment are serialised by the database. Columns not
    carried by a delivery keep their stored value.
    """

    def __init__(self, session_factory: sessionmaker[Session] | None) -> None:
        self._session_factory = session_factory

    @property
    def available(self) -> bool:
        return self._session_factory is not None

    def _upsert_statement(
        self,
        dialect_name: str,
        transaction_id: str,
        status: str,
        raw: dict[str, Any],
        status_reported: bool,
        memo: str | None,
    ):
        try:
            insert = _INSERT_BY_DIALECT[dialect_name]
        except KeyError:
            raise RuntimeError(f"No atomic upsert available for dialect {dialect_name!r}") from None

        table = PaymentNotification.__table__
        now = utcnow()
        stmt = insert(table).values(
            transaction_id=transaction_id,
            status=status,
            memo=memo,
            raw_json=raw,
            delivery_count=1,
            created_at=now,
            updated_at=now,
        )
        merged: dict[str, Any] = {
            "raw_json": stmt.excluded.raw_json,
            "updated_at": stmt.excluded.updated_at,
            "delivery_count": table.c.delivery_count + 1,
        }
        if status_reported:
            merged["status"] = stmt.excluded.status
        if memo is not None:
            merged["memo"] = stmt.excluded.memo
        return stmt.on_conflict_do_update(index_elements=[table.c.transaction_id], set_=merged)

    def upsert(
        self,
        transaction_id: str,
        status: str,
        raw: dict[str, Any],
        *,
        status_reported: bool = True,
        memo: str | None = None,
    ) -> StoreResult:
        if self._session_factory is None:
            logger.warning(
                "Notification store not available; skipping write",
                extra={"payment_id": transaction_id},
            )
            return STORE_UNAVAILABLE

        try:
            with self._session_factory() as session, session.begin():
                stmt = self._upsert_statement(
                    session.get_bind().dialect.name,
                    transaction_id,
                    status,
                    raw,
                    status_reported,
                    memo,
                )
                session.execute(stmt)
        except SQLAlchemyError:
            logger.exception(
                "Failed to persist Pi notification",
                extra={"payment_id": transaction_id, "store_error": StoreErrorKind.WRITE_FAILED.value},
            )
            return StoreResult(StoreOutcome.ERROR, StoreErrorKind.WRITE_FAILED)

        logger.info("Notification stored", extra={"payment_id": transaction_id, "status": status})
        return STORE_OK

    def get(self, transaction_id: str) -> PaymentNotification | None:
        if self._session_factory is None:
            return None
        with self._session_factory() as session:
            return session.scalars(
                select(PaymentNotification).where(PaymentNotification.transaction_id == transaction_id)
            ).one_or_none()

    def ping(self) -> str:
        """Return 'ok' | 'unavailable' | 'error' for the health endpoint."""

        if self._session_factory is None:
            return StoreOutcome.UNAVAILABLE.value
        try:
            with self._session_factory() as session:
                session.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.exception("Notification store health check failed")
            return StoreOutcome.ERROR.value
        return StoreOutcome.OK.value


async def upsert_with_timeout(
    store: SupportsUpsert,
    transaction_id: str,
    status: str,
    raw: dict[str, Any],
    *,
    timeout: float,
    status_reported: bool = True,
    memo: str | None = None,
) -> StoreResult:
    """Run the blocking upsert in a worker thread, bounded by ``timeout`` seconds.

    On expiry the thread is abandoned, not killed: the write may still land
    later and is logged as pending.
    """

    call = functools.partial(
        store.upsert, transaction_id, status, raw, status_reported=status_reported, memo=memo
    )
    try:
        with anyio.fail_after(timeout):
            return await anyio.to_thread.run_sync(call, abandon_on_cancel=True)
    except TimeoutError:
        logger.error(
            "Notification write timed out; continuing as best-effort",
            extra={
                "payment_id": transaction_id,
                "timeout_seconds": timeout,
                "store_error": StoreErrorKind.TIMEOUT.value,
            },
        )
        return StoreResult(StoreOutcome.ERROR, StoreErrorKind.TIMEOUT)
    except Exception:  # noqa: BLE001
        logger.exception(
            "Notification write raised",
            extra={"payment_id": transaction_id, "store_error": StoreErrorKind.WRITE_FAILED.value},
        )
        return StoreResult(StoreOutcome.ERROR, StoreErrorKind.WRITE_FAILED)


__all__ = [
    "NotificationStore",
    "StoreErrorKind",
    "StoreOutcome",
    "StoreResult",
    "SupportsUpsert",
    "upsert_with_timeout",
]
