"""Dependency providers for FastAPI routes."""

from functools import lru_cache

from fastapi import Request

from dataplane_sdk.application.services import Dataplane
from dataplane_sdk.config import Settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return singleton settings."""

    return Settings()


def get_dataplane(request: Request) -> Dataplane:
    """Return the orchestrator the application was created with."""

    return request.app.state.dataplane


__all__ = ["get_dataplane", "get_settings"]
