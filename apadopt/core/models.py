"""
Data model for the adoption assistant.

Session and Device values come back from the collaborators; the snapshot
types describe everything the presentation layer needs to render.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from apadopt.core.errors import FailureKind


class OrchestratorState(str, Enum):
    """Where the user currently is in the setup flow."""

    AWAITING_CODE = "awaiting_code"
    SCANNING = "scanning"
    REVIEWING = "reviewing"
    COMPLETE = "complete"


class PendingOperation(str, Enum):
    """External call currently in flight."""

    NONE = "none"
    VALIDATE = "validate"
    SCAN = "scan"
    ADOPT = "adopt"


class AttemptOutcome(str, Enum):
    """Outcome of a single adoption attempt."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class Session:
    """Provisioning context obtained from an accepted setup code."""

    inform_endpoint: str
    site_id: str
    site_name: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "inform_endpoint": self.inform_endpoint,
            "site_id": self.site_id,
            "site_name": self.site_name,
        }


@dataclass(frozen=True)
class Device:
    """
    A candidate access point found on the local network.

    ``network_address`` is the address the scan reached the device on;
    ``reported_address`` is whatever the device claims for itself and is
    only informational.
    """

    hardware_id: str
    network_address: str
    reported_address: str = ""
    model: str = ""
    firmware_version: str = ""
    hostname: str = ""
    managed_elsewhere: bool = False

    def __post_init__(self) -> None:
        if not self.reported_address:
            object.__setattr__(self, "reported_address", self.network_address)

    @property
    def adoptable(self) -> bool:
        """Devices owned by another controller are listed but never adopted."""
        return not self.managed_elsewhere

    @property
    def display_name(self) -> str:
        return self.model or "Access Point"

    def to_dict(self) -> dict[str, Any]:
        return {
            "hardware_id": self.hardware_id,
            "network_address": self.network_address,
            "reported_address": self.reported_address,
            "model": self.model,
            "firmware_version": self.firmware_version,
            "hostname": self.hostname,
            "managed_elsewhere": self.managed_elsewhere,
            "display_name": self.display_name,
        }


@dataclass
class AdoptionAttempt:
    """One user-triggered adoption try against one device."""

    target_device: Device
    credential: str | None = None
    outcome: AttemptOutcome = AttemptOutcome.PENDING
    failure_kind: FailureKind | None = None
    message: str | None = None

    @property
    def authenticated(self) -> bool:
        return self.credential is not None


@dataclass(frozen=True)
class DeviceStatus:
    """Per-device UI state kept by the orchestrator."""

    hardware_id: str
    error: str | None = None
    password_required: bool = False
    adopting: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "hardware_id": self.hardware_id,
            "error": self.error,
            "password_required": self.password_required,
            "adopting": self.adopting,
        }


@dataclass(frozen=True)
class OrchestratorSnapshot:
    """Immutable view of the orchestrator published after every change."""

    state: OrchestratorState
    session: Session | None = None
    devices: tuple[Device, ...] = ()
    error: str | None = None
    pending: PendingOperation = PendingOperation.NONE
    device_statuses: tuple[DeviceStatus, ...] = field(default_factory=tuple)
    adopted_device: Device | None = None

    @property
    def busy(self) -> bool:
        return self.pending != PendingOperation.NONE

    def device(self, hardware_id: str) -> Device | None:
        for device in self.devices:
            if device.hardware_id == hardware_id:
                return device
        return None

    def status_for(self, hardware_id: str) -> DeviceStatus:
        """Status for a listed device (a blank status if none recorded)."""
        for status in self.device_statuses:
            if status.hardware_id == hardware_id:
                return status
        return DeviceStatus(hardware_id=hardware_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "session": self.session.to_dict() if self.session else None,
            "devices": [
                {**d.to_dict(), "status": self.status_for(d.hardware_id).to_dict()}
                for d in self.devices
            ],
            "error": self.error,
            "pending": self.pending.value,
            "busy": self.busy,
            "adopted_device": (
                self.adopted_device.to_dict() if self.adopted_device else None
            ),
        }
