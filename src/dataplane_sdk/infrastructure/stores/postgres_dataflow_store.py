"""PostgreSQL store implementation for data flows."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import asyncpg  # type: ignore[import-untyped]
from pydantic import ValidationError

from dataplane_sdk.domain.entities import DataFlow
from dataplane_sdk.domain.errors import (
    DataFlowNotFoundError,
    DataFlowSerializationError,
    DataFlowStoreError,
)
from dataplane_sdk.domain.ports import DataFlowStore
from dataplane_sdk.domain.result import Result
from dataplane_sdk.domain.signaling_models import DataAddress
from dataplane_sdk.domain.transfer_types import DataFlowState

logger = logging.getLogger(__name__)

_STORE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)

_SELECT_COLUMNS = """
    id,
    state,
    transfer_type,
    callback_address,
    dataset_id,
    agreement_id,
    participant_id,
    counter_party_id,
    dataspace_context,
    suspension_reason,
    termination_reason,
    data_address,
    labels,
    metadata
"""

_UPSERT = """
    INSERT INTO dataflows (
        id,
        state,
        transfer_type,
        callback_address,
        dataset_id,
        agreement_id,
        participant_id,
        counter_party_id,
        dataspace_context,
        suspension_reason,
        termination_reason,
        data_address,
        labels,
        metadata,
        updated_at
    ) VALUES (
        $1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12::jsonb, $13::jsonb, $14::jsonb, NOW()
    )
    ON CONFLICT (id) DO UPDATE SET
        state = EXCLUDED.state,
        transfer_type = EXCLUDED.transfer_type,
        callback_address = EXCLUDED.callback_address,
        dataset_id = EXCLUDED.dataset_id,
        agreement_id = EXCLUDED.agreement_id,
        participant_id = EXCLUDED.participant_id,
        counter_party_id = EXCLUDED.counter_party_id,
        dataspace_context = EXCLUDED.dataspace_context,
        suspension_reason = EXCLUDED.suspension_reason,
        termination_reason = EXCLUDED.termination_reason,
        data_address = EXCLUDED.data_address,
        labels = EXCLUDED.labels,
        metadata = EXCLUDED.metadata,
        updated_at = NOW()
"""


class PostgresDataFlowStore(DataFlowStore):
    """Data flow store backed by PostgreSQL."""

    def __init__(
        self,
        dsn: str,
        min_pool_size: int = 1,
        max_pool_size: int = 10,
    ) -> None:
        self._dsn = dsn
        self._min_pool_size = min_pool_size
        self._max_pool_size = max_pool_size
        self._pool: asyncpg.Pool | None = None
        self._pool_lock = asyncio.Lock()

    async def save(self, data_flow: DataFlow) -> Result[None]:
        """Upsert entity state."""

        try:
            parameters = self._to_parameters(data_flow)
        except (TypeError, ValueError) as exc:
            return Result.failure(
                DataFlowSerializationError(f"Cannot encode DataFlow {data_flow.id}: {exc}")
            )

        try:
            pool = await self._get_pool()
            await pool.execute(_UPSERT, *parameters)
        except _STORE_ERRORS as exc:
            logger.warning("Failed to save DataFlow '%s': %s", data_flow.id, exc)
            return Result.failure(DataFlowStoreError(f"Cannot save DataFlow {data_flow.id}: {exc}"))
        return Result.success()

    async def find_by_id(self, data_flow_id: str) -> Result[DataFlow]:
        """Return by data flow id."""

        try:
            pool = await self._get_pool()
            row = await pool.fetchrow(
                f"SELECT {_SELECT_COLUMNS} FROM dataflows WHERE id = $1",
                data_flow_id,
            )
        except _STORE_ERRORS as exc:
            logger.warning("Failed to load DataFlow '%s': %s", data_flow_id, exc)
            return Result.failure(DataFlowStoreError(f"Cannot load DataFlow {data_flow_id}: {exc}"))

        if row is None:
            return Result.failure(DataFlowNotFoundError(f"DataFlow {data_flow_id} not found"))
        try:
            return Result.success(self._to_entity(row))
        except (TypeError, ValueError, ValidationError) as exc:
            return Result.failure(
                DataFlowSerializationError(f"Cannot decode DataFlow {data_flow_id}: {exc}")
            )

    async def close(self) -> None:
        """Close the pool if it was initialized."""

        pool = self._pool
        self._pool = None
        if pool is not None:
            await pool.close()

    async def _get_pool(self) -> asyncpg.Pool:
        if self._pool is not None:
            return self._pool

        async with self._pool_lock:
            if self._pool is None:
                pool = await asyncpg.create_pool(
                    dsn=self._dsn,
                    min_size=self._min_pool_size,
                    max_size=self._max_pool_size,
                )
                await self._ensure_schema(pool)
                self._pool = pool
        assert self._pool is not None
        return self._pool

    async def _ensure_schema(self, pool: asyncpg.Pool) -> None:
        await pool.execute(
            """
            CREATE TABLE IF NOT EXISTS dataflows (
                id TEXT PRIMARY KEY,
                state TEXT NOT NULL,
                transfer_type TEXT NOT NULL,
                callback_address TEXT,
                dataset_id TEXT,
                agreement_id TEXT,
                participant_id TEXT,
                counter_party_id TEXT,
                dataspace_context TEXT,
                suspension_reason TEXT,
                termination_reason TEXT,
                data_address JSONB,
                labels JSONB NOT NULL DEFAULT '[]'::jsonb,
                metadata JSONB NOT NULL DEFAULT '{}'::jsonb,
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            );
            """
        )

    def _to_parameters(self, data_flow: DataFlow) -> tuple[Any, ...]:
        data_address = (
            None
            if data_flow.data_address is None
            else json.dumps(data_flow.data_address.model_dump(mode="json", by_alias=True))
        )
        return (
            data_flow.id,
            data_flow.state.value,
            data_flow.transfer_type,
            data_flow.callback_address,
            data_flow.dataset_id,
            data_flow.agreement_id,
            data_flow.participant_id,
            data_flow.counter_party_id,
            data_flow.dataspace_context,
            data_flow.suspension_reason,
            data_flow.termination_reason,
            data_address,
            json.dumps(data_flow.labels),
            json.dumps(data_flow.metadata),
        )

    def _to_entity(self, row: asyncpg.Record) -> DataFlow:
        raw_data_address = self._decode_json_field(row["data_address"])
        data_address = (
            None if raw_data_address is None else DataAddress.model_validate(raw_data_address)
        )
        return DataFlow(
            id=str(row["id"]),
            state=DataFlowState(str(row["state"])),
            transfer_type=str(row["transfer_type"]),
            callback_address=self._as_optional_str(row["callback_address"]),
            dataset_id=self._as_optional_str(row["dataset_id"]),
            agreement_id=self._as_optional_str(row["agreement_id"]),
            participant_id=self._as_optional_str(row["participant_id"]),
            counter_party_id=self._as_optional_str(row["counter_party_id"]),
            dataspace_context=self._as_optional_str(row["dataspace_context"]),
            suspension_reason=self._as_optional_str(row["suspension_reason"]),
            termination_reason=self._as_optional_str(row["termination_reason"]),
            data_address=data_address,
            labels=self._decode_list(row["labels"]),
            metadata=self._decode_dict(row["metadata"]),
        )

    def _decode_json_field(self, value: object) -> Any:
        if value is None:
            return None
        if isinstance(value, str):
            return json.loads(value)
        return value

    def _decode_list(self, value: object) -> list[str]:
        decoded = self._decode_json_field(value)
        if not isinstance(decoded, list):
            raise TypeError(f"Expected list payload for labels, got {type(decoded)!r}.")
        if not all(isinstance(item, str) for item in decoded):
            raise TypeError("Labels payload must contain only strings.")
        return decoded

    def _decode_dict(self, value: object) -> dict[str, Any]:
        decoded = self._decode_json_field(value)
        if not isinstance(decoded, dict):
            raise TypeError(f"Expected dict payload for metadata, got {type(decoded)!r}.")
        return decoded

    def _as_optional_str(self, value: object) -> str | None:
        if value is None:
            return None
        if isinstance(value, str):
            return value
        raise TypeError(f"Expected optional string value, got {type(value)!r}.")


__all__ = ["PostgresDataFlowStore"]
