"""Data flow store implementations."""

from dataplane_sdk.infrastructure.stores.in_memory_dataflow_store import InMemoryDataFlowStore
from dataplane_sdk.infrastructure.stores.postgres_dataflow_store import PostgresDataFlowStore

__all__ = ["InMemoryDataFlowStore", "PostgresDataFlowStore"]
