"""Domain entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

from dataplane_sdk.domain.errors import DataFlowStateError, DataFlowValidationError
from dataplane_sdk.domain.signaling_models import DataAddress
from dataplane_sdk.domain.transfer_types import (
    TERMINAL_STATES,
    DataFlowState,
    TransferMode,
    parse_transfer_mode,
    transfer_direction,
)


@dataclass(slots=True)
class DataFlow:
    """One in-flight transfer, keyed by the control plane's process id.

    State only changes through the `transition_to_*` methods, which refuse to
    leave COMPLETED or TERMINATED.
    """

    id: str
    transfer_type: str
    state: DataFlowState = DataFlowState.INITIATING
    data_address: DataAddress | None = None
    callback_address: str | None = None
    dataset_id: str | None = None
    agreement_id: str | None = None
    participant_id: str | None = None
    counter_party_id: str | None = None
    dataspace_context: str | None = None
    labels: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    suspension_reason: str | None = None
    termination_reason: str | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise DataFlowValidationError("A data flow requires an id.")

    @property
    def transfer_mode(self) -> TransferMode:
        return parse_transfer_mode(self.transfer_type)

    def is_push(self) -> bool:
        return transfer_direction(self.transfer_type).upper() == TransferMode.PUSH

    def is_pull(self) -> bool:
        return transfer_direction(self.transfer_type).upper() == TransferMode.PULL

    def is_initiating(self) -> bool:
        return self.state is DataFlowState.INITIATING

    def is_preparing(self) -> bool:
        return self.state is DataFlowState.PREPARING

    def is_prepared(self) -> bool:
        return self.state is DataFlowState.PREPARED

    def is_starting(self) -> bool:
        return self.state is DataFlowState.STARTING

    def is_started(self) -> bool:
        return self.state is DataFlowState.STARTED

    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def transition_to_preparing(self) -> None:
        self._move_to(DataFlowState.PREPARING)

    def transition_to_prepared(self) -> None:
        self._move_to(DataFlowState.PREPARED)

    def transition_to_starting(self) -> None:
        self._move_to(DataFlowState.STARTING)

    def transition_to_started(self) -> None:
        self._move_to(DataFlowState.STARTED)

    def transition_to_suspended(self, reason: str | None) -> None:
        self._move_to(DataFlowState.SUSPENDED)
        self.suspension_reason = reason

    def transition_to_completed(self) -> None:
        self._move_to(DataFlowState.COMPLETED)

    def transition_to_terminated(self, reason: str | None) -> None:
        self._move_to(DataFlowState.TERMINATED)
        self.termination_reason = reason

    def callback_endpoint_for(self, action: str) -> str:
        """Build the control-plane callback URL for one notification action."""

        if self.callback_address is None or not self.callback_address.strip():
            raise DataFlowValidationError(
                f"Data flow '{self.id}' has no callbackAddress to notify '{action}'."
            )
        base_url = self.callback_address.strip().rstrip("/")
        return f"{base_url}/transfers/{quote(self.id, safe='')}/dataflow/{action}"

    def _move_to(self, target: DataFlowState) -> None:
        if self.is_terminal():
            raise DataFlowStateError(
                f"Cannot move data flow '{self.id}' from terminal state "
                f"'{self.state}' to '{target}'."
            )
        self.state = target


__all__ = ["DataFlow"]
