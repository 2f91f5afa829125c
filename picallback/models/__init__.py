"""ORM models package."""
from .base import Base
from .notification import PaymentNotification

__all__ = ["Base", "PaymentNotification"]
