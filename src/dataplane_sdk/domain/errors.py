"""Domain exceptions for data flow operations.

Most of these are carried as the cause of a failed `Result` rather than raised.
`DataFlowValidationError` and its subclasses are raised directly because they
signal caller or configuration mistakes.
"""

from __future__ import annotations


class DataFlowError(Exception):
    """Base class for data flow errors."""


class DataFlowNotFoundError(DataFlowError):
    """Raised when a data flow cannot be found."""


class DataFlowStateError(DataFlowError):
    """Raised when a transition is requested from a terminal state."""


class DataFlowValidationError(DataFlowError, ValueError):
    """Raised when a data flow or request is malformed."""


class UnsupportedTransferTypeError(DataFlowValidationError):
    """Raised when a transferType carries no usable direction."""


class ExtensionPointNotImplementedError(DataFlowError):
    """Cause returned by extension points the application did not supply."""


class DataFlowStoreError(DataFlowError):
    """Raised when the data flow store cannot read or write a record."""


class DataFlowSerializationError(DataFlowStoreError):
    """Raised when a record or message cannot be encoded or decoded."""


class ControlPlaneCommunicationError(DataFlowError):
    """Base class for failed calls towards the control plane."""


class DataFlowNotifyControlPlaneFailedError(ControlPlaneCommunicationError):
    """Raised when an outbound data flow notification is not acknowledged."""

    def __init__(self, action: str, detail: str, status_code: int | None = None) -> None:
        if status_code is None:
            message = f"control-plane notification '{action}' failed: {detail}"
        else:
            message = f"control-plane responded with {status_code} to '{action}': {detail}"
        super().__init__(message)
        self.action = action
        self.detail = detail
        self.status_code = status_code


class DataplaneNotRegisteredError(ControlPlaneCommunicationError):
    """Raised when the control plane refuses or misses a registration request."""

    def __init__(self, body: str, status_code: int | None = None) -> None:
        super().__init__(body)
        self.body = body
        self.status_code = status_code


__all__ = [
    "ControlPlaneCommunicationError",
    "DataFlowError",
    "DataFlowNotFoundError",
    "DataFlowNotifyControlPlaneFailedError",
    "DataFlowSerializationError",
    "DataFlowStateError",
    "DataFlowStoreError",
    "DataFlowValidationError",
    "DataplaneNotRegisteredError",
    "ExtensionPointNotImplementedError",
    "UnsupportedTransferTypeError",
]
