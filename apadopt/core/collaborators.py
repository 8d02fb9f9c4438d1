"""
Interfaces for the three external operations the orchestrator drives.

Implementations live in ``apadopt.bridge``, ``apadopt.adoption`` and
``apadopt.mocks``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from apadopt.core.models import Device, Session


class CodeValidator(ABC):
    """Exchanges a setup code for session metadata."""

    @abstractmethod
    async def validate_code(self, code: str) -> Session:
        """
        Look up a setup code.

        Args:
            code: Already-normalized setup code

        Returns:
            Session for the site the code belongs to

        Raises:
            InvalidCodeError: If the code is unknown, expired or unverifiable
        """
        pass

    async def close(self) -> None:
        """Release any held resources."""
        pass


class DeviceScanner(ABC):
    """Enumerates candidate devices on the local network segment."""

    @abstractmethod
    async def scan(self) -> list[Device]:
        """
        Scan the local segment.

        Raises:
            ScanError: If the scan could not run
        """
        pass

    async def close(self) -> None:
        """Release any held resources."""
        pass


class DeviceAdopter(ABC):
    """Points one device at a management endpoint."""

    @abstractmethod
    async def adopt(
        self,
        network_address: str,
        inform_endpoint: str,
        credential: str | None = None,
    ) -> None:
        """
        Run the adoption handshake.

        Args:
            network_address: Address the device is reachable on
            inform_endpoint: Where the device should report
            credential: Administrative password, or None for factory default

        Raises:
            AdoptionError: If the device could not be adopted
        """
        pass

    async def close(self) -> None:
        """Release any held resources."""
        pass
