"""HTTP client for control plane registration and data flow callbacks."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from dataplane_sdk.domain.errors import (
    DataFlowNotifyControlPlaneFailedError,
    DataplaneNotRegisteredError,
)
from dataplane_sdk.domain.signaling_models import DataPlaneRegistrationMessage

logger = logging.getLogger(__name__)


class ControlPlaneClient:
    """Wrapper around control-plane signaling endpoints.

    `timeout_seconds=None` leaves calls unbounded; deployments set a timeout
    through configuration.
    """

    def __init__(
        self,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    async def register_dataplane(
        self,
        control_plane_endpoint: str,
        message: DataPlaneRegistrationMessage,
    ) -> None:
        """Call `/dataplanes/register`; only HTTP 200 counts as registered."""

        url = f"{self._normalize_base_url(control_plane_endpoint)}/dataplanes/register"
        try:
            response = await self._post(url, message.to_wire())
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise DataplaneNotRegisteredError(f"POST {url} failed: {exc}") from exc
        if response.status_code != 200:
            raise DataplaneNotRegisteredError(response.text, status_code=response.status_code)

    async def signal(self, url: str, action: str, payload: dict[str, Any]) -> None:
        """POST one data flow notification; any 2xx counts as delivered."""

        try:
            response = await self._post(url, payload)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise DataFlowNotifyControlPlaneFailedError(
                action, f"POST {url} failed: {exc}"
            ) from exc
        if response.is_success:
            return
        raise DataFlowNotifyControlPlaneFailedError(
            action,
            self._detail_from_response(response),
            status_code=response.status_code,
        )

    async def _post(self, url: str, payload: dict[str, Any]) -> httpx.Response:
        logger.debug("POST %s", url)
        async with httpx.AsyncClient(
            timeout=self._timeout_seconds,
            transport=self._transport,
        ) as http_client:
            return await http_client.post(url, json=payload)

    def _detail_from_response(self, response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            text = response.text.strip()
            return text or "<no response body>"

        if isinstance(payload, dict):
            detail = payload.get("detail")
            if isinstance(detail, str):
                return detail
        return str(payload)

    def _normalize_base_url(self, base_url: str) -> str:
        normalized = base_url.strip().rstrip("/")
        if not normalized:
            raise DataplaneNotRegisteredError("Control plane endpoint cannot be empty.")
        return normalized


__all__ = ["ControlPlaneClient"]
