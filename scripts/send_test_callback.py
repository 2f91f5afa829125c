"""Sign a sample payload with PI_CALLBACK_SECRET and POST it to a running receiver.

Usage: python scripts/send_test_callback.py <payment_id> [status] [base_url]
"""
import json
import sys

import httpx

from picallback.config import get_settings
from picallback.services.signature import compute_signature


def main() -> None:
    if len(sys.argv) < 2:
        print(__doc__)
        raise SystemExit(2)

    payment_id = sys.argv[1]
    status = sys.argv[2] if len(sys.argv) > 2 else "APPROVED"
    base_url = sys.argv[3] if len(sys.argv) > 3 else f"http://localhost:{get_settings().PORT}"

    body = json.dumps({"payment_id": payment_id, "status": status}).encode()
    headers = {"Content-Type": "application/json"}
    secret = get_settings().pi_callback_secret
    if secret:
        headers["X-Signature"] = compute_signature(secret, body)
    else:
        print("PI_CALLBACK_SECRET not set; sending unsigned")

    response = httpx.post(f"{base_url}/pi_callback", content=body, headers=headers, timeout=10)
    print(f"{response.status_code} {response.text}")


if __name__ == "__main__":
    main()
