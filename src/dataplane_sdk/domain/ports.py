"""Ports for flow persistence and application-supplied extension points."""

from __future__ import annotations

from typing import Protocol

from dataplane_sdk.domain.entities import DataFlow
from dataplane_sdk.domain.errors import ExtensionPointNotImplementedError
from dataplane_sdk.domain.result import Result


class DataFlowStore(Protocol):
    """Keyed repository of data flows."""

    async def save(self, data_flow: DataFlow) -> Result[None]:
        """Create or replace the record stored under `data_flow.id`."""

    async def find_by_id(self, data_flow_id: str) -> Result[DataFlow]:
        """Return a detached copy of the stored record or a not-found failure."""


class DataFlowAction(Protocol):
    """Extension point invoked with the in-progress data flow.

    Implementations perform the actual data movement side effect, may mutate
    the record (data address, intermediate state) and return it, or veto the
    transition by returning a failure.
    """

    async def __call__(self, data_flow: DataFlow) -> Result[DataFlow]: ...


class OnPrepare(DataFlowAction, Protocol):
    """Called on prepare and as the completer of `notify_prepared`."""


class OnStart(DataFlowAction, Protocol):
    """Called on start and as the completer of `notify_started`."""


class OnStarted(DataFlowAction, Protocol):
    """Called when the counterparty reports the flow as started."""


class OnSuspend(DataFlowAction, Protocol):
    """Called after the flow moved to SUSPENDED; must halt running work."""


class OnTerminate(DataFlowAction, Protocol):
    """Called after the flow moved to TERMINATED."""


class OnCompleted(DataFlowAction, Protocol):
    """Called when the counterparty reports the flow as completed."""


class NotImplementedAction:
    """Default extension point: always fails instead of silently succeeding."""

    def __init__(self, name: str) -> None:
        self._name = name

    async def __call__(self, data_flow: DataFlow) -> Result[DataFlow]:
        _ = data_flow
        return Result.failure(ExtensionPointNotImplementedError(f"{self._name} is not implemented"))

    def __repr__(self) -> str:
        return f"NotImplementedAction({self._name!r})"


__all__ = [
    "DataFlowAction",
    "DataFlowStore",
    "NotImplementedAction",
    "OnCompleted",
    "OnPrepare",
    "OnStart",
    "OnStarted",
    "OnSuspend",
    "OnTerminate",
]
