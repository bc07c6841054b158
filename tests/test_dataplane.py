from __future__ import annotations

import asyncio
import json
from collections.abc import Callable

import httpx
import pytest

from dataplane_sdk.application.services import Dataplane
from dataplane_sdk.domain.entities import DataFlow
from dataplane_sdk.domain.errors import (
    DataFlowNotFoundError,
    DataFlowNotifyControlPlaneFailedError,
    DataFlowStateError,
    DataplaneNotRegisteredError,
    ExtensionPointNotImplementedError,
    UnsupportedTransferTypeError,
)
from dataplane_sdk.domain.result import Result
from dataplane_sdk.domain.signaling_models import (
    DataAddress,
    DataFlowPrepareMessage,
    DataFlowStartedNotificationMessage,
    DataFlowStartMessage,
)
from dataplane_sdk.domain.transfer_types import DataFlowState
from dataplane_sdk.infrastructure.control_plane import ControlPlaneClient
from dataplane_sdk.infrastructure.stores import InMemoryDataFlowStore

CALLBACK_ADDRESS = "https://cp.example.com/signaling"


def _address(endpoint: str = "https://provider.example.com/public") -> DataAddress:
    return DataAddress(endpoint_type="HttpData", endpoint=endpoint)


def prepare_message(
    process_id: str = "proc-1",
    transfer_type: str = "HttpData-PUSH",
) -> DataFlowPrepareMessage:
    return DataFlowPrepareMessage(
        message_id="msg-1",
        participant_id="did:web:consumer",
        counter_party_id="did:web:provider",
        dataspace_context="context-1",
        process_id=process_id,
        agreement_id="agreement-1",
        dataset_id="dataset-1",
        callback_address=CALLBACK_ADDRESS,
        transfer_type=transfer_type,
        labels=["gold"],
        metadata={"purpose": "test"},
    )


def start_message(
    process_id: str = "proc-1",
    transfer_type: str = "HttpData-PULL",
    data_address: DataAddress | None = None,
) -> DataFlowStartMessage:
    return DataFlowStartMessage(
        message_id="msg-2",
        participant_id="did:web:provider",
        counter_party_id="did:web:consumer",
        dataspace_context="context-1",
        process_id=process_id,
        agreement_id="agreement-1",
        dataset_id="dataset-1",
        callback_address=CALLBACK_ADDRESS,
        transfer_type=transfer_type,
        data_address=data_address,
    )


class RecordingControlPlane:
    """Answers outbound calls with a fixed status and keeps the requests."""

    def __init__(self, status_code: int = 200, fail_transport: bool = False) -> None:
        self.status_code = status_code
        self.fail_transport = fail_transport
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_transport:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(status_code=self.status_code, text="conflict")

    def client(self) -> ControlPlaneClient:
        return ControlPlaneClient(transport=httpx.MockTransport(self.handler))

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]

    def payload(self, index: int = -1) -> dict[str, object]:
        return json.loads(self.requests[index].content.decode())


async def keep(data_flow: DataFlow) -> Result[DataFlow]:
    return Result.success(data_flow)


def set_address(address: DataAddress) -> Callable[[DataFlow], object]:
    async def action(data_flow: DataFlow) -> Result[DataFlow]:
        data_flow.data_address = address
        return Result.success(data_flow)

    return action


def _dataplane(control_plane: RecordingControlPlane | None = None, **kwargs: object) -> Dataplane:
    client = (control_plane or RecordingControlPlane()).client()
    return Dataplane(
        id="dataplane-test",
        store=InMemoryDataFlowStore(),
        control_plane_client=client,
        **kwargs,  # type: ignore[arg-type]
    )


def _stored(dataplane: Dataplane, data_flow_id: str = "proc-1") -> DataFlow:
    result = asyncio.run(dataplane.get_by_id(data_flow_id))
    assert result.value is not None
    return result.value


def _seed(dataplane: Dataplane, state: DataFlowState, transfer_type: str = "HttpData-PUSH") -> None:
    data_flow = DataFlow(
        id="proc-1",
        transfer_type=transfer_type,
        state=state,
        callback_address=CALLBACK_ADDRESS,
    )
    assert asyncio.run(dataplane.save(data_flow)).succeeded()


def test_missing_id_defaults_to_uuid() -> None:
    first = Dataplane()
    second = Dataplane()

    assert first.id
    assert first.id != second.id


def test_prepare_push_returns_prepared_with_address() -> None:
    address = _address("https://consumer.example.com/inbox")
    dataplane = _dataplane(on_prepare=set_address(address))

    result = asyncio.run(dataplane.prepare(prepare_message()))

    response = result.value
    assert response is not None
    assert response.state is DataFlowState.PREPARED
    assert response.dataplane_id == "dataplane-test"
    assert response.data_address == address

    stored = _stored(dataplane)
    assert stored.state is DataFlowState.PREPARED
    assert stored.callback_address == CALLBACK_ADDRESS
    assert stored.labels == ["gold"]
    assert stored.metadata == {"purpose": "test"}


def test_prepare_pull_omits_address() -> None:
    dataplane = _dataplane(on_prepare=set_address(_address()))

    result = asyncio.run(dataplane.prepare(prepare_message(transfer_type="HttpData-PULL")))

    assert result.value is not None
    assert result.value.state is DataFlowState.PREPARED
    assert result.value.data_address is None


def test_prepare_keeps_state_chosen_by_extension_point() -> None:
    async def begin(data_flow: DataFlow) -> Result[DataFlow]:
        data_flow.transition_to_preparing()
        return Result.success(data_flow)

    dataplane = _dataplane(on_prepare=begin)

    result = asyncio.run(dataplane.prepare(prepare_message()))

    assert result.value is not None
    assert result.value.state is DataFlowState.PREPARING
    assert result.value.data_address is None
    assert _stored(dataplane).state is DataFlowState.PREPARING


def test_prepare_accepts_success_without_value() -> None:
    async def silent(_: DataFlow) -> Result[DataFlow]:
        return Result.success()

    dataplane = _dataplane(on_prepare=silent)

    result = asyncio.run(dataplane.prepare(prepare_message()))

    assert result.value is not None
    assert result.value.state is DataFlowState.PREPARED


def test_prepare_failure_is_not_persisted() -> None:
    cause = RuntimeError("no capacity")

    async def veto(_: DataFlow) -> Result[DataFlow]:
        return Result.failure(cause)

    dataplane = _dataplane(on_prepare=veto)

    result = asyncio.run(dataplane.prepare(prepare_message()))

    assert result.cause is cause
    assert isinstance(
        asyncio.run(dataplane.get_by_id("proc-1")).cause,
        DataFlowNotFoundError,
    )


def test_default_extension_points_fail() -> None:
    dataplane = _dataplane()

    result = asyncio.run(dataplane.prepare(prepare_message()))

    assert isinstance(result.cause, ExtensionPointNotImplementedError)
    assert str(result.cause) == "onPrepare is not implemented"


def test_prepare_rejects_transfer_type_without_direction() -> None:
    invoked: list[str] = []

    async def record(data_flow: DataFlow) -> Result[DataFlow]:
        invoked.append(data_flow.id)
        return Result.success(data_flow)

    dataplane = _dataplane(on_prepare=record)

    with pytest.raises(UnsupportedTransferTypeError):
        asyncio.run(dataplane.prepare(prepare_message(transfer_type="HttpData")))

    assert invoked == []


def test_prepare_refuses_to_replace_terminal_flow() -> None:
    dataplane = _dataplane(on_prepare=keep)
    _seed(dataplane, DataFlowState.COMPLETED)

    result = asyncio.run(dataplane.prepare(prepare_message()))

    assert isinstance(result.cause, DataFlowStateError)
    assert _stored(dataplane).state is DataFlowState.COMPLETED


def test_prepare_twice_rebuilds_non_terminal_flow() -> None:
    dataplane = _dataplane(on_prepare=keep)
    _seed(dataplane, DataFlowState.SUSPENDED)

    result = asyncio.run(dataplane.prepare(prepare_message()))

    assert result.value is not None
    assert result.value.state is DataFlowState.PREPARED


def test_start_pull_returns_started_with_address() -> None:
    address = _address()
    dataplane = _dataplane(on_start=set_address(address))

    result = asyncio.run(dataplane.start(start_message()))

    assert result.value is not None
    assert result.value.state is DataFlowState.STARTED
    assert result.value.data_address == address
    assert _stored(dataplane).state is DataFlowState.STARTED


def test_start_push_stores_destination_but_omits_it_from_response() -> None:
    destination = _address("https://consumer.example.com/inbox")
    seen: list[DataAddress | None] = []

    async def record(data_flow: DataFlow) -> Result[DataFlow]:
        seen.append(data_flow.data_address)
        return Result.success(data_flow)

    dataplane = _dataplane(on_start=record)

    result = asyncio.run(
        dataplane.start(start_message(transfer_type="HttpData-PUSH", data_address=destination))
    )

    assert seen == [destination]
    assert result.value is not None
    assert result.value.state is DataFlowState.STARTED
    assert result.value.data_address is None
    assert _stored(dataplane).data_address == destination


def test_start_keeps_starting_state() -> None:
    async def begin(data_flow: DataFlow) -> Result[DataFlow]:
        data_flow.transition_to_starting()
        return Result.success(data_flow)

    dataplane = _dataplane(on_start=begin)

    result = asyncio.run(dataplane.start(start_message()))

    assert result.value is not None
    assert result.value.state is DataFlowState.STARTING
    assert result.value.data_address is None


def test_status_reports_stored_state_repeatedly() -> None:
    dataplane = _dataplane()
    _seed(dataplane, DataFlowState.STARTED)

    first = asyncio.run(dataplane.status("proc-1"))
    second = asyncio.run(dataplane.status("proc-1"))

    assert first.value is not None
    assert first.value.process_id == "proc-1"
    assert first.value.state is DataFlowState.STARTED
    assert second.value == first.value


def test_status_of_unknown_flow_fails() -> None:
    result = asyncio.run(_dataplane().status("missing"))

    assert isinstance(result.cause, DataFlowNotFoundError)


def test_suspend_transitions_before_extension_point() -> None:
    observed: list[tuple[DataFlowState, str | None]] = []

    async def halt(data_flow: DataFlow) -> Result[DataFlow]:
        observed.append((data_flow.state, data_flow.suspension_reason))
        return Result.success(data_flow)

    dataplane = _dataplane(on_suspend=halt)
    _seed(dataplane, DataFlowState.STARTED)

    result = asyncio.run(dataplane.suspend("proc-1", "maintenance"))

    assert result.succeeded()
    assert observed == [(DataFlowState.SUSPENDED, "maintenance")]
    stored = _stored(dataplane)
    assert stored.state is DataFlowState.SUSPENDED
    assert stored.suspension_reason == "maintenance"


def test_suspend_failure_keeps_stored_state() -> None:
    async def refuse(_: DataFlow) -> Result[DataFlow]:
        return Result.failure(RuntimeError("cannot halt"))

    dataplane = _dataplane(on_suspend=refuse)
    _seed(dataplane, DataFlowState.STARTED)

    result = asyncio.run(dataplane.suspend("proc-1", None))

    assert isinstance(result.cause, RuntimeError)
    assert _stored(dataplane).state is DataFlowState.STARTED


def test_terminate_records_reason() -> None:
    dataplane = _dataplane(on_terminate=keep)
    _seed(dataplane, DataFlowState.STARTED)

    result = asyncio.run(dataplane.terminate("proc-1", "cancelled"))

    assert result.succeeded()
    stored = _stored(dataplane)
    assert stored.state is DataFlowState.TERMINATED
    assert stored.termination_reason == "cancelled"


@pytest.mark.parametrize("terminal", [DataFlowState.COMPLETED, DataFlowState.TERMINATED])
def test_terminal_flow_cannot_be_terminated_again(terminal: DataFlowState) -> None:
    invoked: list[str] = []

    async def record(data_flow: DataFlow) -> Result[DataFlow]:
        invoked.append(data_flow.id)
        return Result.success(data_flow)

    dataplane = _dataplane(on_terminate=record)
    _seed(dataplane, terminal)

    result = asyncio.run(dataplane.terminate("proc-1", "late"))

    assert isinstance(result.cause, DataFlowStateError)
    assert invoked == []
    assert _stored(dataplane).state is terminal


def test_unknown_flow_operations_fail_with_not_found() -> None:
    dataplane = _dataplane(on_suspend=keep, on_terminate=keep, on_completed=keep, on_started=keep)

    async def scenario() -> list[Result[None]]:
        return [
            await dataplane.suspend("missing", None),
            await dataplane.terminate("missing", None),
            await dataplane.started("missing"),
            await dataplane.completed("missing"),
            await dataplane.notify_completed("missing"),
            await dataplane.notify_errored("missing", "boom"),
            await dataplane.notify_prepared("missing", keep),
            await dataplane.notify_started("missing", keep),
        ]

    for result in asyncio.run(scenario()):
        assert isinstance(result.cause, DataFlowNotFoundError)


def test_started_notification_sets_address_and_state() -> None:
    address = _address()
    dataplane = _dataplane(on_started=keep)
    _seed(dataplane, DataFlowState.PREPARED, transfer_type="HttpData-PULL")

    result = asyncio.run(
        dataplane.started("proc-1", DataFlowStartedNotificationMessage(data_address=address))
    )

    assert result.succeeded()
    stored = _stored(dataplane)
    assert stored.state is DataFlowState.STARTED
    assert stored.data_address == address


def test_started_notification_without_address_keeps_existing_one() -> None:
    dataplane = _dataplane(on_started=keep)
    data_flow = DataFlow(
        id="proc-1",
        transfer_type="HttpData-PUSH",
        state=DataFlowState.PREPARED,
        data_address=_address("https://consumer.example.com/inbox"),
    )
    asyncio.run(dataplane.save(data_flow))

    result = asyncio.run(dataplane.started("proc-1"))

    assert result.succeeded()
    assert _stored(dataplane).data_address == data_flow.data_address


def test_completed_notification_runs_extension_point() -> None:
    invoked: list[str] = []

    async def record(data_flow: DataFlow) -> Result[DataFlow]:
        invoked.append(data_flow.id)
        return Result.success(data_flow)

    dataplane = _dataplane(on_completed=record)
    _seed(dataplane, DataFlowState.STARTED)

    result = asyncio.run(dataplane.completed("proc-1"))

    assert result.succeeded()
    assert invoked == ["proc-1"]
    assert _stored(dataplane).state is DataFlowState.COMPLETED


def test_completed_notification_on_terminal_flow_skips_extension_point() -> None:
    invoked: list[str] = []

    async def record(data_flow: DataFlow) -> Result[DataFlow]:
        invoked.append(data_flow.id)
        return Result.success(data_flow)

    dataplane = _dataplane(on_completed=record)
    _seed(dataplane, DataFlowState.TERMINATED)

    result = asyncio.run(dataplane.completed("proc-1"))

    assert isinstance(result.cause, DataFlowStateError)
    assert invoked == []


def test_notify_completed_posts_and_persists() -> None:
    control_plane = RecordingControlPlane(status_code=200)
    dataplane = _dataplane(control_plane)
    _seed(dataplane, DataFlowState.STARTED)

    result = asyncio.run(dataplane.notify_completed("proc-1"))

    assert result.succeeded()
    assert control_plane.paths() == ["/signaling/transfers/proc-1/dataflow/completed"]
    assert control_plane.payload() == {"dataplaneId": "dataplane-test", "state": "COMPLETED"}
    assert _stored(dataplane).state is DataFlowState.COMPLETED


def test_notify_completed_rejected_by_control_plane_keeps_state() -> None:
    control_plane = RecordingControlPlane(status_code=500)
    dataplane = _dataplane(control_plane)
    _seed(dataplane, DataFlowState.STARTED)

    result = asyncio.run(dataplane.notify_completed("proc-1"))

    assert isinstance(result.cause, DataFlowNotifyControlPlaneFailedError)
    assert result.cause.status_code == 500
    assert _stored(dataplane).state is DataFlowState.STARTED


def test_notify_completed_transport_failure_keeps_state() -> None:
    control_plane = RecordingControlPlane(fail_transport=True)
    dataplane = _dataplane(control_plane)
    _seed(dataplane, DataFlowState.STARTED)

    result = asyncio.run(dataplane.notify_completed("proc-1"))

    assert isinstance(result.cause, DataFlowNotifyControlPlaneFailedError)
    assert _stored(dataplane).state is DataFlowState.STARTED


def test_notify_without_callback_address_fails() -> None:
    control_plane = RecordingControlPlane()
    dataplane = _dataplane(control_plane)
    asyncio.run(dataplane.save(DataFlow(id="proc-1", transfer_type="HttpData-PUSH")))

    result = asyncio.run(dataplane.notify_completed("proc-1"))

    assert isinstance(result.cause, DataFlowNotifyControlPlaneFailedError)
    assert control_plane.requests == []
    assert _stored(dataplane).state is DataFlowState.INITIATING


def test_notify_errored_terminates_with_reason() -> None:
    control_plane = RecordingControlPlane(status_code=204)
    dataplane = _dataplane(control_plane)
    _seed(dataplane, DataFlowState.STARTED)

    result = asyncio.run(dataplane.notify_errored("proc-1", OSError("disk full")))

    assert result.succeeded()
    assert control_plane.paths() == ["/signaling/transfers/proc-1/dataflow/errored"]
    assert control_plane.payload() == {
        "dataplaneId": "dataplane-test",
        "state": "TERMINATED",
        "error": "disk full",
    }
    stored = _stored(dataplane)
    assert stored.state is DataFlowState.TERMINATED
    assert stored.termination_reason == "disk full"


def test_notify_prepared_runs_completer_and_sends_address() -> None:
    control_plane = RecordingControlPlane()
    dataplane = _dataplane(control_plane)
    _seed(dataplane, DataFlowState.PREPARING)
    address = _address("https://consumer.example.com/inbox")

    result = asyncio.run(dataplane.notify_prepared("proc-1", set_address(address)))

    assert result.succeeded()
    assert control_plane.paths() == ["/signaling/transfers/proc-1/dataflow/prepared"]
    payload = control_plane.payload()
    assert payload["state"] == "PREPARED"
    assert payload["dataAddress"] == address.to_wire()
    stored = _stored(dataplane)
    assert stored.state is DataFlowState.PREPARED
    assert stored.data_address == address


def test_notify_prepared_failing_completer_sends_nothing() -> None:
    control_plane = RecordingControlPlane()
    dataplane = _dataplane(control_plane)
    _seed(dataplane, DataFlowState.PREPARING)

    async def fail(_: DataFlow) -> Result[DataFlow]:
        return Result.failure(RuntimeError("provisioning failed"))

    result = asyncio.run(dataplane.notify_prepared("proc-1", fail))

    assert isinstance(result.cause, RuntimeError)
    assert control_plane.requests == []
    assert _stored(dataplane).state is DataFlowState.PREPARING


def test_notify_started_posts_started() -> None:
    control_plane = RecordingControlPlane()
    dataplane = _dataplane(control_plane)
    _seed(dataplane, DataFlowState.STARTING, transfer_type="HttpData-PULL")

    result = asyncio.run(dataplane.notify_started("proc-1", keep))

    assert result.succeeded()
    assert control_plane.paths() == ["/signaling/transfers/proc-1/dataflow/started"]
    assert _stored(dataplane).state is DataFlowState.STARTED


def test_register_on_posts_sorted_registration() -> None:
    control_plane = RecordingControlPlane(status_code=200)
    dataplane = Dataplane(
        id="dataplane-test",
        name="Test dataplane",
        endpoint="https://dataplane.example.com/signaling",
        transfer_types=["HttpData-PUSH", "HttpData-PULL", "HttpData-PUSH"],
        labels=["gold"],
        control_plane_client=control_plane.client(),
    )

    result = asyncio.run(dataplane.register_on("https://cp.example.com"))

    assert result.succeeded()
    assert control_plane.paths() == ["/dataplanes/register"]
    assert control_plane.payload() == {
        "dataplaneId": "dataplane-test",
        "name": "Test dataplane",
        "endpoint": "https://dataplane.example.com/signaling",
        "transferTypes": ["HttpData-PULL", "HttpData-PUSH"],
        "labels": ["gold"],
    }


def test_register_on_conflict_fails_with_body() -> None:
    control_plane = RecordingControlPlane(status_code=409)
    dataplane = _dataplane(control_plane)

    result = asyncio.run(dataplane.register_on("https://cp.example.com"))

    assert isinstance(result.cause, DataplaneNotRegisteredError)
    assert str(result.cause) == "conflict"
    assert result.cause.status_code == 409


def test_notify_with_malformed_callback_address_fails_without_raising() -> None:
    control_plane = RecordingControlPlane()
    dataplane = _dataplane(control_plane)
    data_flow = DataFlow(
        id="proc-1",
        transfer_type="HttpData-PUSH",
        state=DataFlowState.STARTED,
        callback_address="http://cp.example.com:abc/",
    )
    asyncio.run(dataplane.save(data_flow))

    completed = asyncio.run(dataplane.notify_completed("proc-1"))
    errored = asyncio.run(dataplane.notify_errored("proc-1", "boom"))

    assert isinstance(completed.cause, DataFlowNotifyControlPlaneFailedError)
    assert isinstance(errored.cause, DataFlowNotifyControlPlaneFailedError)
    assert control_plane.requests == []
    assert _stored(dataplane).state is DataFlowState.STARTED


def test_register_on_malformed_endpoint_fails_without_raising() -> None:
    control_plane = RecordingControlPlane()
    dataplane = _dataplane(control_plane)

    result = asyncio.run(dataplane.register_on("http://cp.example.com:abc/"))

    assert isinstance(result.cause, DataplaneNotRegisteredError)
    assert control_plane.requests == []


@pytest.mark.parametrize("operation", ["notify_prepared", "notify_started"])
def test_completer_is_not_run_for_terminal_flow(operation: str) -> None:
    control_plane = RecordingControlPlane()
    dataplane = _dataplane(control_plane)
    _seed(dataplane, DataFlowState.TERMINATED)
    invoked: list[str] = []

    async def completer(data_flow: DataFlow) -> Result[DataFlow]:
        invoked.append(data_flow.id)
        return Result.success(data_flow)

    result = asyncio.run(getattr(dataplane, operation)("proc-1", completer))

    assert isinstance(result.cause, DataFlowStateError)
    assert invoked == []
    assert control_plane.requests == []
    assert _stored(dataplane).state is DataFlowState.TERMINATED
