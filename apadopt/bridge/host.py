"""
Client for the privileged host bridge.

Scanning the local segment and talking to devices needs privileges the
assistant does not run with, so both are delegated to a helper process
listening on localhost:

    POST /scan   -> {"devices": [...]}
    POST /adopt  {"ip", "informUrl", "customPassword"} -> {"success", "output"}

Failures come back as a non-200 response with {"error", "kind"?}.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from apadopt.core.collaborators import DeviceAdopter, DeviceScanner
from apadopt.core.config import HostBridgeConfig
from apadopt.core.errors import AdoptionError, FailureKind, ScanError
from apadopt.core.models import Device

logger = logging.getLogger(__name__)


class DiscoveredDevice(BaseModel):
    """Device entry as the bridge reports it."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    mac: str
    ip: str
    reported_ip: str = ""
    model: str = ""
    firmware: str = ""
    hostname: str = ""
    is_managed: bool = False

    def to_device(self) -> Device:
        return Device(
            hardware_id=self.mac,
            network_address=self.ip,
            reported_address=self.reported_ip,
            model=self.model,
            firmware_version=self.firmware,
            hostname=self.hostname,
            managed_elsewhere=self.is_managed,
        )


class ScanResponse(BaseModel):
    devices: list[DiscoveredDevice] = Field(default_factory=list)


class BridgeFailure(BaseModel):
    error: str
    kind: FailureKind | None = None


class HostBridgeClient(DeviceScanner, DeviceAdopter):
    """
    Scanner and adopter backed by the host bridge.

    One HTTP client is shared by both roles.
    """

    def __init__(
        self,
        config: HostBridgeConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._config = config or HostBridgeConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def start(self) -> None:
        """Open the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._config.url,
                timeout=self._config.timeout_seconds,
                transport=self._transport,
            )
            logger.info(f"Host bridge client ready for {self._config.url}")

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def scan(self) -> list[Device]:
        try:
            response = await self._post("/scan", {})
        except httpx.HTTPError as e:
            raise ScanError(f"Scan request failed: {e}") from e

        if response.status_code != 200:
            raise ScanError(self._failure(response).error)

        try:
            payload = ScanResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise ScanError(f"Failed to parse scan result: {e}") from e

        devices = [entry.to_device() for entry in payload.devices]
        logger.info(f"Host bridge reported {len(devices)} device(s)")
        return devices

    async def adopt(
        self,
        network_address: str,
        inform_endpoint: str,
        credential: str | None = None,
    ) -> None:
        body = {
            "ip": network_address,
            "informUrl": inform_endpoint,
            "customPassword": credential,
        }

        try:
            response = await self._post("/adopt", body)
        except httpx.TimeoutException as e:
            raise AdoptionError(
                f"Timed out connecting to {network_address}", kind=FailureKind.TIMEOUT
            ) from e
        except httpx.HTTPError as e:
            raise AdoptionError(f"Adopt request failed: {e}") from e

        if response.status_code != 200:
            failure = self._failure(response)
            raise AdoptionError(failure.error, kind=failure.kind)

        logger.debug(f"Adopt output for {network_address}: {response.text.strip()}")

    async def _post(self, path: str, body: dict[str, Any]) -> httpx.Response:
        await self.start()
        assert self._client is not None
        return await self._client.post(path, json=body)

    @staticmethod
    def _failure(response: httpx.Response) -> BridgeFailure:
        try:
            return BridgeFailure.model_validate(response.json())
        except (ValueError, ValidationError):
            text = response.text.strip() or f"status {response.status_code}"
            return BridgeFailure(error=f"Host bridge error: {text}")
