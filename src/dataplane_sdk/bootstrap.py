"""Application bootstrap/wiring."""

from __future__ import annotations

import logging

from dataplane_sdk.application.services import Dataplane
from dataplane_sdk.config import Settings, StoreBackend
from dataplane_sdk.domain.ports import DataFlowAction, DataFlowStore
from dataplane_sdk.infrastructure.control_plane import ControlPlaneClient
from dataplane_sdk.infrastructure.stores import InMemoryDataFlowStore, PostgresDataFlowStore

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> DataFlowStore:
    if settings.store_backend == StoreBackend.POSTGRES:
        if settings.postgres_dsn is None:
            raise ValueError(
                "DATAPLANE_POSTGRES_DSN is required when DATAPLANE_STORE_BACKEND=postgres."
            )
        return PostgresDataFlowStore(
            dsn=settings.postgres_dsn,
            min_pool_size=settings.postgres_pool_min_size,
            max_pool_size=settings.postgres_pool_max_size,
        )
    return InMemoryDataFlowStore()


def dataplane_signaling_endpoint(settings: Settings) -> str | None:
    """Build externally reachable signaling endpoint from settings."""

    if settings.dataplane_public_url is None:
        return None

    base_url = settings.dataplane_public_url.strip().rstrip("/")
    if not base_url:
        return None

    api_prefix = settings.api_prefix.strip()
    if not api_prefix:
        return base_url

    normalized_prefix = api_prefix if api_prefix.startswith("/") else f"/{api_prefix}"
    normalized_prefix = normalized_prefix.rstrip("/")
    return f"{base_url}{normalized_prefix}"


def build_dataplane(
    settings: Settings,
    store: DataFlowStore | None = None,
    control_plane_client: ControlPlaneClient | None = None,
    **extension_points: DataFlowAction,
) -> Dataplane:
    """Compose store, control-plane client and orchestrator.

    `extension_points` are passed through by name (`on_prepare`, `on_start`,
    `on_started`, `on_suspend`, `on_terminate`, `on_completed`).
    """

    endpoint = dataplane_signaling_endpoint(settings)
    if endpoint is None and settings.control_plane_registration_enabled:
        logger.warning(
            "Control-plane registration enabled but DATAPLANE_DATAPLANE_PUBLIC_URL is missing; "
            "the registration will not advertise an endpoint."
        )

    return Dataplane(
        id=settings.dataplane_id,
        name=settings.dataplane_name or settings.app_name,
        description=settings.dataplane_description,
        endpoint=endpoint,
        transfer_types=settings.transfer_types,
        labels=settings.labels,
        store=store if store is not None else build_store(settings),
        control_plane_client=(
            control_plane_client
            if control_plane_client is not None
            else ControlPlaneClient(timeout_seconds=settings.control_plane_timeout_seconds)
        ),
        **extension_points,
    )


__all__ = ["build_dataplane", "build_store", "dataplane_signaling_endpoint"]
