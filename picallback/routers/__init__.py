"""API routers for the callback receiver."""
from fastapi import APIRouter

from . import callbacks, health


def get_api_router() -> APIRouter:
    """Return the root API router."""

    api_router = APIRouter()
    api_router.include_router(health.router)
    api_router.include_router(callbacks.router)
    return api_router
