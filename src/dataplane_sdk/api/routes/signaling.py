"""Data plane signaling routes."""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Response
from fastapi.responses import JSONResponse

from dataplane_sdk.api.dependencies import get_dataplane
from dataplane_sdk.application.services import Dataplane
from dataplane_sdk.domain.errors import (
    DataFlowNotFoundError,
    DataFlowStateError,
    DataFlowValidationError,
)
from dataplane_sdk.domain.result import Result
from dataplane_sdk.domain.signaling_models import (
    DataFlowPrepareMessage,
    DataFlowResponseMessage,
    DataFlowStartedNotificationMessage,
    DataFlowStartMessage,
    DataFlowStatusResponseMessage,
    DataFlowSuspendMessage,
    DataFlowTerminateMessage,
)
from dataplane_sdk.domain.transfer_types import DataFlowState

router = APIRouter(tags=["data-plane endpoints"])

_ACCEPTED_STATES = frozenset({DataFlowState.PREPARING, DataFlowState.STARTING})


def _http_exception(exc: Exception) -> HTTPException:
    if isinstance(exc, DataFlowNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, DataFlowValidationError | DataFlowStateError):
        return HTTPException(status_code=400, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc) or "Unexpected data flow error")


def _flow_response(result: Result[DataFlowResponseMessage]) -> JSONResponse:
    body = result.or_else_raise(_http_exception)
    assert body is not None
    status_code = 202 if body.state in _ACCEPTED_STATES else 200
    return JSONResponse(status_code=status_code, content=body.to_wire())


@router.post(
    "/dataflows/prepare",
    response_model=DataFlowResponseMessage,
    responses={202: {"model": DataFlowResponseMessage}, 400: {"description": "Bad request"}},
)
async def prepare_data_flow(
    message: DataFlowPrepareMessage,
    dataplane: Dataplane = Depends(get_dataplane),
) -> JSONResponse:
    """Prepare a data flow, usually on the consumer side."""

    try:
        result = await dataplane.prepare(message)
    except DataFlowValidationError as exc:
        raise _http_exception(exc) from exc
    return _flow_response(result)


@router.post(
    "/dataflows/start",
    response_model=DataFlowResponseMessage,
    responses={202: {"model": DataFlowResponseMessage}, 400: {"description": "Bad request"}},
)
async def start_data_flow(
    message: DataFlowStartMessage,
    dataplane: Dataplane = Depends(get_dataplane),
) -> JSONResponse:
    """Start a data flow, usually on the provider side."""

    try:
        result = await dataplane.start(message)
    except DataFlowValidationError as exc:
        raise _http_exception(exc) from exc
    return _flow_response(result)


@router.post("/dataflows/{id}/started", status_code=200)
async def started_data_flow(
    id: str = Path(...),
    message: DataFlowStartedNotificationMessage | None = Body(default=None),
    dataplane: Dataplane = Depends(get_dataplane),
) -> Response:
    """Record that the counterparty started the transfer."""

    (await dataplane.started(id, message)).or_else_raise(_http_exception)
    return Response(status_code=200)


@router.post("/dataflows/{id}/suspend", status_code=200)
async def suspend_data_flow(
    id: str = Path(...),
    message: DataFlowSuspendMessage | None = Body(default=None),
    dataplane: Dataplane = Depends(get_dataplane),
) -> Response:
    """Suspend an active data flow."""

    reason = None if message is None else message.reason
    (await dataplane.suspend(id, reason)).or_else_raise(_http_exception)
    return Response(status_code=200)


@router.post("/dataflows/{id}/terminate", status_code=200)
async def terminate_data_flow(
    id: str = Path(...),
    message: DataFlowTerminateMessage | None = Body(default=None),
    dataplane: Dataplane = Depends(get_dataplane),
) -> Response:
    """Terminate a data flow."""

    reason = None if message is None else message.reason
    (await dataplane.terminate(id, reason)).or_else_raise(_http_exception)
    return Response(status_code=200)


@router.post("/dataflows/{id}/completed", status_code=200)
async def completed_data_flow(
    id: str = Path(...),
    dataplane: Dataplane = Depends(get_dataplane),
) -> Response:
    """Record that the counterparty finished the transfer."""

    (await dataplane.completed(id)).or_else_raise(_http_exception)
    return Response(status_code=200)


@router.get(
    "/dataflows/{id}/status",
    response_model=DataFlowStatusResponseMessage,
    status_code=200,
)
async def get_data_flow_status(
    id: str = Path(...),
    dataplane: Dataplane = Depends(get_dataplane),
) -> JSONResponse:
    """Retrieve data flow status."""

    status = (await dataplane.status(id)).or_else_raise(_http_exception)
    assert status is not None
    return JSONResponse(status_code=200, content=status.to_wire())


__all__ = ["router"]
