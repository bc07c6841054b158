"""In-memory store implementation for data flows."""

from __future__ import annotations

import asyncio
import copy

from dataplane_sdk.domain.entities import DataFlow
from dataplane_sdk.domain.errors import DataFlowNotFoundError
from dataplane_sdk.domain.ports import DataFlowStore
from dataplane_sdk.domain.result import Result


class InMemoryDataFlowStore(DataFlowStore):
    """Simple store for local development and tests.

    Records are copied on the way in and out, so a caller mutating a fetched
    flow never changes what other readers see until it saves the flow again.
    """

    def __init__(self) -> None:
        self._by_id: dict[str, DataFlow] = {}
        self._lock = asyncio.Lock()

    async def save(self, data_flow: DataFlow) -> Result[None]:
        """Persist a snapshot of the entity state."""

        snapshot = copy.deepcopy(data_flow)
        async with self._lock:
            self._by_id[snapshot.id] = snapshot
        return Result.success()

    async def find_by_id(self, data_flow_id: str) -> Result[DataFlow]:
        """Return a copy of the flow stored under `data_flow_id`."""

        async with self._lock:
            stored = self._by_id.get(data_flow_id)
        if stored is None:
            return Result.failure(DataFlowNotFoundError(f"DataFlow {data_flow_id} not found"))
        return Result.success(copy.deepcopy(stored))


__all__ = ["InMemoryDataFlowStore"]
