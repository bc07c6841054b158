"""Infrastructure layer public API."""

from dataplane_sdk.infrastructure.control_plane import ControlPlaneClient
from dataplane_sdk.infrastructure.stores import InMemoryDataFlowStore, PostgresDataFlowStore

__all__ = [
    "ControlPlaneClient",
    "InMemoryDataFlowStore",
    "PostgresDataFlowStore",
]
