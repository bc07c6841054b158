"""Control-plane infrastructure adapters."""

from dataplane_sdk.infrastructure.control_plane.client import ControlPlaneClient

__all__ = ["ControlPlaneClient"]
