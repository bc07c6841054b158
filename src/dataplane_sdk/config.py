"""Application settings."""

import json
from enum import StrEnum
from typing import Annotated

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class StoreBackend(StrEnum):
    """Available persistence adapters for data flow state."""

    IN_MEMORY = "in_memory"
    POSTGRES = "postgres"


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "Dataplane"
    api_prefix: str = ""
    dataplane_id: str | None = None
    dataplane_name: str | None = None
    dataplane_description: str | None = None
    dataplane_public_url: str | None = None
    host: str = "0.0.0.0"
    port: int = 8080
    transfer_types: Annotated[list[str], NoDecode] = Field(default_factory=list)
    labels: Annotated[list[str], NoDecode] = Field(default_factory=list)
    store_backend: StoreBackend = StoreBackend.IN_MEMORY
    postgres_dsn: str | None = None
    postgres_pool_min_size: int = 1
    postgres_pool_max_size: int = 10
    control_plane_registration_enabled: bool = False
    control_plane_endpoint: str | None = None
    control_plane_timeout_seconds: float = 10.0

    @field_validator("transfer_types", "labels", mode="before")
    @classmethod
    def parse_csv_list(cls, value: object) -> object:
        """Support comma-separated env var values in addition to JSON arrays."""

        if not isinstance(value, str):
            return value
        stripped = value.strip()
        if stripped.startswith("["):
            return json.loads(stripped)
        return [item.strip() for item in stripped.split(",") if item.strip()]

    @model_validator(mode="after")
    def validate_settings(self) -> "Settings":
        """Ensure backend-specific settings are valid."""

        if self.store_backend == StoreBackend.POSTGRES and not self.postgres_dsn:
            raise ValueError(
                "DATAPLANE_POSTGRES_DSN is required when DATAPLANE_STORE_BACKEND=postgres."
            )
        if self.postgres_pool_min_size < 1:
            raise ValueError("DATAPLANE_POSTGRES_POOL_MIN_SIZE must be >= 1.")
        if self.postgres_pool_max_size < self.postgres_pool_min_size:
            raise ValueError(
                "DATAPLANE_POSTGRES_POOL_MAX_SIZE must be >= DATAPLANE_POSTGRES_POOL_MIN_SIZE."
            )
        if self.control_plane_registration_enabled and not self.control_plane_endpoint:
            raise ValueError(
                "DATAPLANE_CONTROL_PLANE_ENDPOINT is required when "
                "DATAPLANE_CONTROL_PLANE_REGISTRATION_ENABLED=true."
            )
        if self.control_plane_timeout_seconds <= 0:
            raise ValueError("DATAPLANE_CONTROL_PLANE_TIMEOUT_SECONDS must be > 0.")
        return self

    model_config = SettingsConfigDict(env_prefix="DATAPLANE_", extra="ignore")


__all__ = ["Settings", "StoreBackend"]
