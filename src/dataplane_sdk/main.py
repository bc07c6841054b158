"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from dataplane_sdk import __version__
from dataplane_sdk.api import api_router
from dataplane_sdk.api.dependencies import get_settings
from dataplane_sdk.application.services import Dataplane
from dataplane_sdk.config import Settings

logger = logging.getLogger(__name__)


def create_app(dataplane: Dataplane, settings: Settings | None = None) -> FastAPI:
    """Build a FastAPI application serving the signaling API of `dataplane`."""

    effective_settings = settings if settings is not None else get_settings()

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        """Register on the control plane at startup and release the store on shutdown."""

        if (
            effective_settings.control_plane_registration_enabled
            and effective_settings.control_plane_endpoint
        ):
            registered = await dataplane.register_on(effective_settings.control_plane_endpoint)
            if registered.failed():
                logger.warning("Serving without control-plane registration.")
        yield
        close = getattr(dataplane.store, "close", None)
        if close is not None:
            await close()

    app = FastAPI(
        title=effective_settings.app_name,
        version=__version__,
        lifespan=lifespan,
    )
    app.state.dataplane = dataplane
    app.include_router(api_router, prefix=effective_settings.api_prefix)
    return app


def run(dataplane: Dataplane, settings: Settings | None = None) -> None:
    """Serve `dataplane` with uvicorn."""

    effective_settings = settings if settings is not None else get_settings()
    uvicorn.run(
        create_app(dataplane, effective_settings),
        host=effective_settings.host,
        port=effective_settings.port,
    )


__all__ = ["create_app", "run"]
