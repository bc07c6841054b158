"""Data plane signaling orchestration."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any
from uuid import uuid4

from dataplane_sdk.domain.entities import DataFlow
from dataplane_sdk.domain.errors import (
    DataFlowNotFoundError,
    DataFlowNotifyControlPlaneFailedError,
    DataFlowStateError,
    DataFlowValidationError,
    DataplaneNotRegisteredError,
)
from dataplane_sdk.domain.ports import (
    DataFlowAction,
    DataFlowStore,
    NotImplementedAction,
    OnCompleted,
    OnPrepare,
    OnStart,
    OnStarted,
    OnSuspend,
    OnTerminate,
)
from dataplane_sdk.domain.result import Result
from dataplane_sdk.domain.signaling_models import (
    DataAddress,
    DataFlowBaseMessage,
    DataFlowPrepareMessage,
    DataFlowResponseMessage,
    DataFlowStartedNotificationMessage,
    DataFlowStartMessage,
    DataFlowStatusResponseMessage,
    DataPlaneRegistrationMessage,
)
from dataplane_sdk.domain.transfer_types import transfer_direction
from dataplane_sdk.infrastructure.control_plane import ControlPlaneClient
from dataplane_sdk.infrastructure.stores import InMemoryDataFlowStore

logger = logging.getLogger(__name__)


class Dataplane:
    """Drives the data flow lifecycle for signaling requests and notifications.

    Every operation returns a `Result`. Expected failures (unknown flow, vetoing
    extension point, unacknowledged notification) are carried as the cause and
    leave the stored flow untouched.

    Operations do not lock per flow id. Applications that may receive
    concurrent requests for the same process id must serialize them in their
    extension points or in the store.
    """

    def __init__(
        self,
        id: str | None = None,
        name: str | None = None,
        description: str | None = None,
        endpoint: str | None = None,
        transfer_types: Iterable[str] = (),
        labels: Iterable[str] = (),
        store: DataFlowStore | None = None,
        control_plane_client: ControlPlaneClient | None = None,
        on_prepare: OnPrepare | None = None,
        on_start: OnStart | None = None,
        on_started: OnStarted | None = None,
        on_suspend: OnSuspend | None = None,
        on_terminate: OnTerminate | None = None,
        on_completed: OnCompleted | None = None,
    ) -> None:
        self._id = id or str(uuid4())
        self._name = name
        self._description = description
        self._endpoint = endpoint
        self._transfer_types = frozenset(transfer_types)
        self._labels = frozenset(labels)
        self._store: DataFlowStore = store if store is not None else InMemoryDataFlowStore()
        self._control_plane_client = (
            control_plane_client if control_plane_client is not None else ControlPlaneClient()
        )
        self._on_prepare: DataFlowAction = on_prepare or NotImplementedAction("onPrepare")
        self._on_start: DataFlowAction = on_start or NotImplementedAction("onStart")
        self._on_started: DataFlowAction = on_started or NotImplementedAction("onStarted")
        self._on_suspend: DataFlowAction = on_suspend or NotImplementedAction("onSuspend")
        self._on_terminate: DataFlowAction = on_terminate or NotImplementedAction("onTerminate")
        self._on_completed: DataFlowAction = on_completed or NotImplementedAction("onCompleted")

    @property
    def id(self) -> str:
        return self._id

    @property
    def store(self) -> DataFlowStore:
        return self._store

    async def get_by_id(self, data_flow_id: str) -> Result[DataFlow]:
        """Fetch a detached copy of one flow."""

        return await self._store.find_by_id(data_flow_id)

    async def save(self, data_flow: DataFlow) -> Result[None]:
        """Persist a flow changed outside of the lifecycle operations."""

        return await self._store.save(data_flow)

    async def status(self, data_flow_id: str) -> Result[DataFlowStatusResponseMessage]:
        """Handle `/dataflows/{id}/status`."""

        found = await self._store.find_by_id(data_flow_id)
        return found.map(
            lambda data_flow: DataFlowStatusResponseMessage(
                process_id=data_flow.id,
                state=data_flow.state,
            )
        )

    async def prepare(self, message: DataFlowPrepareMessage) -> Result[DataFlowResponseMessage]:
        """Handle `/dataflows/prepare`.

        The response carries the prepared data address only for PUSH flows
        that reached PREPARED synchronously.
        """

        data_flow = self._new_data_flow(message)
        writable = await self._ensure_not_terminal(data_flow.id)
        prepared = await writable.compose_async(
            lambda _: self._invoke(self._on_prepare, data_flow)
        )
        return await prepared.compose_async(self._complete_prepare)

    async def start(self, message: DataFlowStartMessage) -> Result[DataFlowResponseMessage]:
        """Handle `/dataflows/start`.

        The response carries the data address only for PULL flows that reached
        STARTED synchronously.
        """

        data_flow = self._new_data_flow(message, data_address=message.data_address)
        writable = await self._ensure_not_terminal(data_flow.id)
        started = await writable.compose_async(lambda _: self._invoke(self._on_start, data_flow))
        return await started.compose_async(self._complete_start)

    async def suspend(self, data_flow_id: str, reason: str | None = None) -> Result[None]:
        """Handle `/dataflows/{id}/suspend`."""

        found = await self._store.find_by_id(data_flow_id)
        suspended = found.compose(
            lambda data_flow: self._transition(data_flow, DataFlow.transition_to_suspended, reason)
        )
        acted = await suspended.compose_async(
            lambda data_flow: self._invoke(self._on_suspend, data_flow)
        )
        return await acted.compose_async(self._save)

    async def terminate(self, data_flow_id: str, reason: str | None = None) -> Result[None]:
        """Handle `/dataflows/{id}/terminate`."""

        found = await self._store.find_by_id(data_flow_id)
        terminated = found.compose(
            lambda data_flow: self._transition(
                data_flow, DataFlow.transition_to_terminated, reason
            )
        )
        acted = await terminated.compose_async(
            lambda data_flow: self._invoke(self._on_terminate, data_flow)
        )
        return await acted.compose_async(self._save)

    async def started(
        self,
        data_flow_id: str,
        message: DataFlowStartedNotificationMessage | None = None,
    ) -> Result[None]:
        """Handle `/dataflows/{id}/started` sent by the counterparty."""

        found = await self._store.find_by_id(data_flow_id)
        active = found.compose(self._reject_terminal)
        addressed = active.map(
            lambda data_flow: self._apply_started_notification(data_flow, message)
        )
        acted = await addressed.compose_async(
            lambda data_flow: self._invoke(self._on_started, data_flow)
        )
        transitioned = acted.compose(
            lambda data_flow: self._transition(data_flow, DataFlow.transition_to_started)
        )
        return await transitioned.compose_async(self._save)

    async def completed(self, data_flow_id: str) -> Result[None]:
        """Handle `/dataflows/{id}/completed` sent by the counterparty."""

        found = await self._store.find_by_id(data_flow_id)
        active = found.compose(self._reject_terminal)
        acted = await active.compose_async(
            lambda data_flow: self._invoke(self._on_completed, data_flow)
        )
        transitioned = acted.compose(
            lambda data_flow: self._transition(data_flow, DataFlow.transition_to_completed)
        )
        return await transitioned.compose_async(self._save)

    async def notify_prepared(self, data_flow_id: str, completer: OnPrepare) -> Result[None]:
        """Finish an asynchronous preparation and tell the control plane.

        `completer` performs the remaining preparation work and returns the
        finalized flow, usually with its data address set.
        """

        found = await self._store.find_by_id(data_flow_id)
        active = found.compose(self._reject_terminal)
        completed = await active.compose_async(
            lambda data_flow: self._invoke(completer, data_flow)
        )
        transitioned = completed.compose(
            lambda data_flow: self._transition(data_flow, DataFlow.transition_to_prepared)
        )
        return await transitioned.compose_async(
            lambda data_flow: self._notify_control_plane(
                "prepared",
                data_flow,
                self._response_message(data_flow, data_address=data_flow.data_address),
            )
        )

    async def notify_started(self, data_flow_id: str, completer: OnStart) -> Result[None]:
        """Finish an asynchronous start and tell the control plane."""

        found = await self._store.find_by_id(data_flow_id)
        active = found.compose(self._reject_terminal)
        completed = await active.compose_async(
            lambda data_flow: self._invoke(completer, data_flow)
        )
        transitioned = completed.compose(
            lambda data_flow: self._transition(data_flow, DataFlow.transition_to_started)
        )
        return await transitioned.compose_async(
            lambda data_flow: self._notify_control_plane(
                "started",
                data_flow,
                self._response_message(data_flow, data_address=data_flow.data_address),
            )
        )

    async def notify_completed(self, data_flow_id: str) -> Result[None]:
        """Tell the control plane the transfer finished.

        COMPLETED is only persisted once the control plane acknowledged the
        notification.
        """

        found = await self._store.find_by_id(data_flow_id)
        transitioned = found.compose(
            lambda data_flow: self._transition(data_flow, DataFlow.transition_to_completed)
        )
        return await transitioned.compose_async(
            lambda data_flow: self._notify_control_plane(
                "completed",
                data_flow,
                self._response_message(data_flow),
            )
        )

    async def notify_errored(self, data_flow_id: str, error: BaseException | str) -> Result[None]:
        """Tell the control plane the transfer failed and terminate the flow."""

        reason = str(error)
        found = await self._store.find_by_id(data_flow_id)
        transitioned = found.compose(
            lambda data_flow: self._transition(
                data_flow, DataFlow.transition_to_terminated, reason
            )
        )
        return await transitioned.compose_async(
            lambda data_flow: self._notify_control_plane(
                "errored",
                data_flow,
                self._response_message(data_flow, error=reason),
            )
        )

    def registration_message(self) -> DataPlaneRegistrationMessage:
        """Describe this data plane for control-plane registration."""

        return DataPlaneRegistrationMessage(
            dataplane_id=self._id,
            name=self._name,
            description=self._description,
            endpoint=self._endpoint,
            transfer_types=sorted(self._transfer_types),
            labels=sorted(self._labels),
        )

    async def register_on(self, control_plane_endpoint: str) -> Result[None]:
        """Register this data plane on a control plane."""

        try:
            await self._control_plane_client.register_dataplane(
                control_plane_endpoint,
                self.registration_message(),
            )
        except DataplaneNotRegisteredError as exc:
            logger.warning(
                "Dataplane '%s' was not registered at '%s': %s",
                self._id,
                control_plane_endpoint,
                exc,
            )
            return Result.failure(exc)

        logger.info("Registered dataplane '%s' at '%s'.", self._id, control_plane_endpoint)
        return Result.success()

    async def _complete_prepare(self, data_flow: DataFlow) -> Result[DataFlowResponseMessage]:
        # An extension point that moved the flow on (e.g. PREPARING) keeps its state.
        if data_flow.is_initiating():
            data_flow.transition_to_prepared()

        data_address = None
        if data_flow.is_prepared() and data_flow.is_push():
            data_address = data_flow.data_address
        response = self._response_message(data_flow, data_address=data_address)
        saved = await self._save(data_flow)
        return saved.map(lambda _: response)

    async def _complete_start(self, data_flow: DataFlow) -> Result[DataFlowResponseMessage]:
        if data_flow.is_initiating():
            data_flow.transition_to_started()

        data_address = None
        if data_flow.is_started() and data_flow.is_pull():
            data_address = data_flow.data_address
        response = self._response_message(data_flow, data_address=data_address)
        saved = await self._save(data_flow)
        return saved.map(lambda _: response)

    def _new_data_flow(
        self,
        message: DataFlowBaseMessage,
        data_address: DataAddress | None = None,
    ) -> DataFlow:
        """Build a new INITIATING flow from incoming request data."""

        transfer_direction(message.transfer_type)
        return DataFlow(
            id=message.process_id,
            transfer_type=message.transfer_type,
            data_address=data_address,
            callback_address=message.callback_address,
            dataset_id=message.dataset_id,
            agreement_id=message.agreement_id,
            participant_id=message.participant_id,
            counter_party_id=message.counter_party_id,
            dataspace_context=message.dataspace_context,
            labels=list(message.labels),
            metadata=dict(message.metadata),
        )

    def _response_message(
        self,
        data_flow: DataFlow,
        data_address: DataAddress | None = None,
        error: str | None = None,
    ) -> DataFlowResponseMessage:
        return DataFlowResponseMessage(
            dataplane_id=self._id,
            data_address=data_address,
            state=data_flow.state,
            error=error,
        )

    async def _ensure_not_terminal(self, data_flow_id: str) -> Result[None]:
        """Refuse to replace a stored flow that already reached a terminal state."""

        existing = await self._store.find_by_id(data_flow_id)
        if existing.failed():
            if isinstance(existing.cause, DataFlowNotFoundError):
                return Result.success()
            return Result.failure(existing.cause)  # type: ignore[arg-type]
        return existing.compose(self._reject_terminal).map(lambda _: None)

    def _reject_terminal(self, data_flow: DataFlow) -> Result[DataFlow]:
        if data_flow.is_terminal():
            return Result.failure(
                DataFlowStateError(
                    f"DataFlow {data_flow.id} is already in terminal state '{data_flow.state}'."
                )
            )
        return Result.success(data_flow)

    def _apply_started_notification(
        self,
        data_flow: DataFlow,
        message: DataFlowStartedNotificationMessage | None,
    ) -> DataFlow:
        if message is not None and message.data_address is not None:
            data_flow.data_address = message.data_address
        return data_flow

    async def _invoke(self, action: DataFlowAction, data_flow: DataFlow) -> Result[DataFlow]:
        """Run one extension point; a success without value keeps the given flow."""

        result = await action(data_flow)
        if result.failed():
            logger.info(
                "Extension point %r failed for DataFlow '%s': %s",
                action,
                data_flow.id,
                result.cause,
            )
        return result.map(lambda returned: data_flow if returned is None else returned)

    def _transition(
        self,
        data_flow: DataFlow,
        transition: Callable[..., None],
        *args: Any,
    ) -> Result[DataFlow]:
        try:
            transition(data_flow, *args)
        except DataFlowStateError as exc:
            return Result.failure(exc)
        return Result.success(data_flow)

    async def _save(self, data_flow: DataFlow) -> Result[None]:
        saved = await self._store.save(data_flow)
        if saved.succeeded():
            logger.info("DataFlow '%s' is now %s.", data_flow.id, data_flow.state)
        return saved

    async def _notify_control_plane(
        self,
        action: str,
        data_flow: DataFlow,
        message: DataFlowResponseMessage,
    ) -> Result[None]:
        """POST one notification and persist the flow only once it was acknowledged."""

        try:
            url = data_flow.callback_endpoint_for(action)
            await self._control_plane_client.signal(url, action, message.to_wire())
        except DataFlowValidationError as exc:
            return Result.failure(DataFlowNotifyControlPlaneFailedError(action, str(exc)))
        except DataFlowNotifyControlPlaneFailedError as exc:
            logger.warning(
                "Control plane was not notified '%s' for DataFlow '%s': %s",
                action,
                data_flow.id,
                exc,
            )
            return Result.failure(exc)
        return await self._save(data_flow)


__all__ = ["Dataplane"]
