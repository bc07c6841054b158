"""Top-level API router composition."""

from fastapi import APIRouter

from dataplane_sdk.api.routes import health_router, signaling_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(signaling_router)

__all__ = ["api_router"]
