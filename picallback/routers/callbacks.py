"""Route receiving Pi payment callbacks."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from picallback.config import Settings
from picallback.core.logging import get_logger
from picallback.core.metrics import record_outcome
from picallback.services.pipeline import CallbackPipeline
from picallback.utils.errors import error_response

logger = get_logger(__name__)

router = APIRouter(tags=["callbacks"])


def get_pipeline(request: Request) -> CallbackPipeline:
    return request.app.state.pipeline


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


async def _read_body(request: Request, limit: int) -> bytes | None:
    """Read the request body, or return ``None`` as soon as it exceeds ``limit`` bytes."""

    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        return None

    chunks: list[bytes] = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if size > limit:
            return None
        chunks.append(chunk)
    return b"".join(chunks)


@router.post("/pi_callback", status_code=status.HTTP_200_OK)
async def pi_callback(
    request: Request,
    pipeline: CallbackPipeline = Depends(get_pipeline),
    settings: Settings = Depends(get_app_settings),
) -> JSONResponse:
    raw_body = await _read_body(request, settings.MAX_BODY_BYTES)
    if raw_body is None:
        logger.warning(
            "Pi callback body too large",
            extra={
                "content_length": request.headers.get("content-length"),
                "limit": settings.MAX_BODY_BYTES,
            },
        )
        record_outcome("payload_too_large")
        return JSONResponse(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            content=error_response("Payload too large", "payload_too_large"),
        )

    result = await pipeline.ingest(raw_body, request.headers)
    return JSONResponse(status_code=result.status_code, content=result.body)


__all__ = ["router", "get_app_settings", "get_pipeline"]
