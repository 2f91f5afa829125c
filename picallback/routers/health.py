"""Liveness endpoint."""
from __future__ import annotations

from fastapi import APIRouter, Request

from picallback.services.signature import secret_fingerprint

router = APIRouter(tags=["health"])


def _signature_mode(secret: str | None) -> str:
    return "enforced" if secret else "unconfigured"


@router.get("/healthz", summary="Liveness check")
def healthz(request: Request) -> dict[str, object]:
    """Always 200 while the process serves requests; store state is informational."""

    context = request.app.state.pipeline.context
    ping = getattr(context.store, "ping", None)
    store_status = ping() if callable(ping) else "unknown"
    return {
        "status": "ok",
        "store_status": store_status,
        "signature_mode": _signature_mode(context.secret),
        "secret_fingerprint": secret_fingerprint(context.secret),
    }
