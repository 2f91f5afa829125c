"""Print the stored state of a payment, for reconciling acknowledged callbacks.

Usage: python scripts/show_notification.py <payment_id>
"""
import json
import sys

from picallback.db import get_sessionmaker, init_engine
from picallback.services.store import NotificationStore


def main() -> None:
    if len(sys.argv) != 2:
        print(__doc__)
        raise SystemExit(2)

    if init_engine() is None:
        print("DATABASE_URL is not set")
        raise SystemExit(1)

    record = NotificationStore(get_sessionmaker()).get(sys.argv[1])
    if record is None:
        print(f"No notification stored for payment {sys.argv[1]}")
        raise SystemExit(1)

    print(f"payment_id:     {record.transaction_id}")
    print(f"status:         {record.status}")
    print(f"memo:           {record.memo}")
    print(f"deliveries:     {record.delivery_count}")
    print(f"first received: {record.created_at.isoformat()}")
    print(f"last updated:   {record.updated_at.isoformat()}")
    print(json.dumps(record.raw_json, indent=2, sort_keys=True))


if __name__ == "__main__":
    main()
