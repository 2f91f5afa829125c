"""Persisted Pi payment notifications."""
from sqlalchemy import JSON, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class PaymentNotification(Base):
    """Latest known state of a Pi payment, merged across callback deliveries.

    ``created_at`` is the first receipt; ``updated_at`` is stamped on every
    successful write.
    """

    __tablename__ = "payment_notifications"
    __table_args__ = (Index("ix_payment_notifications_status", "status"),)

    transaction_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    status: Mapped[str] = mapped_column(String(64), nullable=False, default="unknown")
    memo: Mapped[str | None] = mapped_column(Text, nullable=True)
    raw_json: Mapped[dict] = mapped_column(JSON, nullable=False)
    delivery_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
