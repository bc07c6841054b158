"""Route modules public API."""

from dataplane_sdk.api.routes.health import router as health_router
from dataplane_sdk.api.routes.signaling import router as signaling_router

__all__ = ["health_router", "signaling_router"]
