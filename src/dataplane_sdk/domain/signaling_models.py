"""Pydantic models mapped from signaling JSON messages."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from dataplane_sdk.domain.transfer_types import DataFlowState


class SignalingModel(BaseModel):
    """Base model for signaling messages."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """Dump the JSON-ready camelCase representation."""

        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class EndpointProperty(SignalingModel):
    """Typed key/value property of a DataAddress."""

    type_: str = Field(
        default="EndpointProperty",
        alias="@type",
        validation_alias=AliasChoices("@type", "type"),
        serialization_alias="@type",
    )
    name: str
    value: str


class DataAddress(SignalingModel):
    """Endpoint data is pushed to or pulled from."""

    type_: str = Field(
        default="DataAddress",
        alias="@type",
        validation_alias=AliasChoices("@type", "type"),
        serialization_alias="@type",
    )
    endpoint_type: str = Field(alias="endpointType")
    endpoint: str
    endpoint_properties: list[EndpointProperty] = Field(
        default_factory=list, alias="endpointProperties"
    )


class DataFlowBaseMessage(SignalingModel):
    """Request fields shared across prepare/start."""

    message_id: str = Field(alias="messageId")
    participant_id: str = Field(alias="participantId")
    counter_party_id: str = Field(alias="counterPartyId")
    dataspace_context: str = Field(alias="dataspaceContext")
    process_id: str = Field(alias="processId")
    agreement_id: str = Field(alias="agreementId")
    dataset_id: str = Field(alias="datasetId")
    callback_address: str = Field(alias="callbackAddress")
    transfer_type: str = Field(alias="transferType")
    labels: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class DataFlowPrepareMessage(DataFlowBaseMessage):
    """Prepare request."""


class DataFlowStartMessage(DataFlowBaseMessage):
    """Start request; `dataAddress` is the push destination for PUSH flows."""

    data_address: DataAddress | None = Field(default=None, alias="dataAddress")


class DataFlowStartedNotificationMessage(SignalingModel):
    """Inbound started notification."""

    data_address: DataAddress | None = Field(default=None, alias="dataAddress")


class DataFlowSuspendMessage(SignalingModel):
    """Suspend request."""

    reason: str | None = None


class DataFlowTerminateMessage(SignalingModel):
    """Terminate request."""

    reason: str | None = None


class DataFlowResponseMessage(SignalingModel):
    """Lifecycle response, also used as outbound notification body."""

    dataplane_id: str = Field(alias="dataplaneId")
    data_address: DataAddress | None = Field(default=None, alias="dataAddress")
    state: DataFlowState
    error: str | None = None


class DataFlowStatusResponseMessage(SignalingModel):
    """Status response for data flow state polling."""

    process_id: str = Field(alias="processId")
    state: DataFlowState


class DataPlaneRegistrationMessage(SignalingModel):
    """Data plane registration payload sent to control plane."""

    dataplane_id: str = Field(alias="dataplaneId")
    name: str | None = None
    description: str | None = None
    endpoint: str | None = None
    transfer_types: list[str] = Field(default_factory=list, alias="transferTypes")
    labels: list[str] = Field(default_factory=list)


__all__ = [
    "DataAddress",
    "DataPlaneRegistrationMessage",
    "DataFlowBaseMessage",
    "DataFlowPrepareMessage",
    "DataFlowResponseMessage",
    "DataFlowStartMessage",
    "DataFlowStartedNotificationMessage",
    "DataFlowStatusResponseMessage",
    "DataFlowSuspendMessage",
    "DataFlowTerminateMessage",
    "EndpointProperty",
    "SignalingModel",
]
