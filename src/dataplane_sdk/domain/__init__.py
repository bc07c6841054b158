"""Domain public API."""

from dataplane_sdk.domain.entities import DataFlow
from dataplane_sdk.domain.errors import (
    ControlPlaneCommunicationError,
    DataFlowError,
    DataFlowNotFoundError,
    DataFlowNotifyControlPlaneFailedError,
    DataFlowSerializationError,
    DataFlowStateError,
    DataFlowStoreError,
    DataFlowValidationError,
    DataplaneNotRegisteredError,
    ExtensionPointNotImplementedError,
    UnsupportedTransferTypeError,
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
    DataFlowPrepareMessage,
    DataFlowResponseMessage,
    DataFlowStartedNotificationMessage,
    DataFlowStartMessage,
    DataFlowStatusResponseMessage,
    DataFlowSuspendMessage,
    DataFlowTerminateMessage,
    DataPlaneRegistrationMessage,
    EndpointProperty,
)
from dataplane_sdk.domain.transfer_types import DataFlowState, TransferMode

__all__ = [
    "ControlPlaneCommunicationError",
    "DataAddress",
    "DataFlow",
    "DataFlowAction",
    "DataFlowError",
    "DataFlowNotFoundError",
    "DataFlowNotifyControlPlaneFailedError",
    "DataFlowPrepareMessage",
    "DataFlowResponseMessage",
    "DataFlowSerializationError",
    "DataFlowStartMessage",
    "DataFlowStartedNotificationMessage",
    "DataFlowState",
    "DataFlowStateError",
    "DataFlowStatusResponseMessage",
    "DataFlowStore",
    "DataFlowStoreError",
    "DataFlowSuspendMessage",
    "DataFlowTerminateMessage",
    "DataFlowValidationError",
    "DataPlaneRegistrationMessage",
    "DataplaneNotRegisteredError",
    "EndpointProperty",
    "ExtensionPointNotImplementedError",
    "NotImplementedAction",
    "OnCompleted",
    "OnPrepare",
    "OnStart",
    "OnStarted",
    "OnSuspend",
    "OnTerminate",
    "Result",
    "TransferMode",
    "UnsupportedTransferTypeError",
]
