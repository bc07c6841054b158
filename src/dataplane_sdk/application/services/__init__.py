"""Application services public API."""

from dataplane_sdk.application.services.dataplane import Dataplane

__all__ = ["Dataplane"]
