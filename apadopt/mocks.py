"""
In-process stand-ins for the setup service, scanner and adopter.

Used by ``--mock`` development mode so the whole flow can be clicked
through without a network, a host bridge or real hardware.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from apadopt.core.collaborators import CodeValidator, DeviceAdopter, DeviceScanner
from apadopt.core.errors import AdoptionError, FailureKind, InvalidCodeError, ScanError
from apadopt.core.models import Device, Session

logger = logging.getLogger(__name__)


def _default_sessions() -> dict[str, Session]:
    return {
        "VS-7K2M": Session(
            inform_endpoint="http://inform.example.net:8080/inform",
            site_id="site-cafe-luna",
            site_name="Cafe Luna",
        ),
    }


def _default_devices() -> list[Device]:
    return [
        Device(
            hardware_id="78:8A:20:12:34:56",
            network_address="192.168.1.20",
            model="U6-Lite",
            firmware_version="6.5.28",
            hostname="U6-Lite",
        ),
        Device(
            hardware_id="F0:9F:C2:AB:CD:EF",
            network_address="192.168.1.21",
            reported_address="203.0.113.7",
            model="UAP-AC-LR",
            firmware_version="6.2.49",
            hostname="UAP-AC-LR",
        ),
        Device(
            hardware_id="24:5A:4C:00:11:22",
            network_address="192.168.1.22",
            model="UAP-AC-Pro",
            firmware_version="6.0.21",
            managed_elsewhere=True,
        ),
    ]


@dataclass
class MockCodeValidator(CodeValidator):
    """Accepts a fixed table of codes."""

    sessions: dict[str, Session] = field(default_factory=_default_sessions)
    delay: float = 0.5
    calls: list[str] = field(default_factory=list, init=False)

    async def validate_code(self, code: str) -> Session:
        self.calls.append(code)
        await asyncio.sleep(self.delay)

        session = self.sessions.get(code)
        if session is None:
            raise InvalidCodeError("Invalid setup code. Check the code and try again.")
        return session


@dataclass
class MockScanner(DeviceScanner):
    """
    Returns a canned device list.

    Set ``results`` to a list of lists to return a different list per scan;
    set ``error`` to make every scan fail.
    """

    devices: list[Device] = field(default_factory=_default_devices)
    results: list[list[Device]] | None = None
    error: str | None = None
    delay: float = 1.5
    scan_count: int = field(default=0, init=False)

    async def scan(self) -> list[Device]:
        self.scan_count += 1
        await asyncio.sleep(self.delay)

        if self.error is not None:
            raise ScanError(self.error)

        if self.results:
            index = min(self.scan_count - 1, len(self.results) - 1)
            return list(self.results[index])
        return list(self.devices)


@dataclass
class MockAdopter(DeviceAdopter):
    """
    Simulates set-inform.

    Devices listed in ``passwords`` reject anything but their password;
    addresses in ``unreachable`` always fail with a connection error.
    """

    passwords: dict[str, str] = field(
        default_factory=lambda: {"192.168.1.21": "secret123"}
    )
    unreachable: set[str] = field(default_factory=set)
    default_password: str = "ubnt"
    delay: float = 1.0
    calls: list[tuple[str, str, str | None]] = field(default_factory=list, init=False)

    async def adopt(
        self,
        network_address: str,
        inform_endpoint: str,
        credential: str | None = None,
    ) -> None:
        self.calls.append((network_address, inform_endpoint, credential))
        await asyncio.sleep(self.delay)

        if network_address in self.unreachable:
            raise AdoptionError(
                f"Connection refused at {network_address}",
                kind=FailureKind.CONNECTION_REFUSED,
            )

        expected = self.passwords.get(network_address, self.default_password)
        supplied = credential if credential is not None else self.default_password
        if supplied != expected:
            raise AdoptionError(
                f"Authentication failed for {network_address}, "
                "password may have been changed from factory default"
            )

        logger.info(f"Mock adopted {network_address} -> {inform_endpoint}")
