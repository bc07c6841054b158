"""API layer public API."""

from dataplane_sdk.api.router import api_router

__all__ = ["api_router"]
