"""Transfer type and state helpers."""

from enum import StrEnum

from dataplane_sdk.domain.errors import UnsupportedTransferTypeError


class DataFlowState(StrEnum):
    """Data flow lifecycle states."""

    INITIATING = "INITIATING"
    PREPARING = "PREPARING"
    PREPARED = "PREPARED"
    STARTING = "STARTING"
    STARTED = "STARTED"
    SUSPENDED = "SUSPENDED"
    COMPLETED = "COMPLETED"
    TERMINATED = "TERMINATED"


class TransferMode(StrEnum):
    """Transfer direction."""

    PUSH = "PUSH"
    PULL = "PULL"


TERMINAL_STATES = frozenset({DataFlowState.COMPLETED, DataFlowState.TERMINATED})


def transfer_direction(transfer_type: str) -> str:
    """Return the direction segment of a `<method>-<direction>` transferType."""

    segments = transfer_type.split("-")
    if len(segments) < 2:
        raise UnsupportedTransferTypeError(
            f"transferType '{transfer_type}' does not match '<method>-<direction>'."
        )
    return segments[1].strip()


def parse_transfer_mode(transfer_type: str) -> TransferMode:
    """Infer transfer mode from the direction segment of transferType."""

    direction = transfer_direction(transfer_type).upper()
    if direction == TransferMode.PUSH:
        return TransferMode.PUSH
    if direction == TransferMode.PULL:
        return TransferMode.PULL
    raise UnsupportedTransferTypeError(
        f"Unable to infer PUSH/PULL mode from transferType '{transfer_type}'."
    )


__all__ = [
    "DataFlowState",
    "TERMINAL_STATES",
    "TransferMode",
    "parse_transfer_mode",
    "transfer_direction",
]
