"""
Tests for the data model.

Covers:
- Device defaults and adoptability
- Snapshot lookup helpers
- JSON serialization for the web UI
"""

from __future__ import annotations

import pytest

from apadopt.core.errors import AdoptionError, FailureKind, InvalidCodeError
from apadopt.core.models import (
    AdoptionAttempt,
    Device,
    DeviceStatus,
    OrchestratorSnapshot,
    OrchestratorState,
    PendingOperation,
)


class TestDevice:
    """Tests for Device."""

    def test_reported_address_defaults_to_network_address(self):
        """Missing reported address falls back to the scanned one."""
        device = Device(hardware_id="AA:BB", network_address="10.0.0.5")
        assert device.reported_address == "10.0.0.5"

    def test_reported_address_kept_when_given(self):
        """Reported address is informational and may differ."""
        device = Device(
            hardware_id="AA:BB",
            network_address="10.0.0.5",
            reported_address="203.0.113.7",
        )
        assert device.network_address == "10.0.0.5"
        assert device.reported_address == "203.0.113.7"

    def test_adoptable(self, device, managed_device):
        """Only unmanaged devices are adoptable."""
        assert device.adoptable is True
        assert managed_device.adoptable is False

    def test_display_name(self, device):
        """Model is the display name, with a generic fallback."""
        assert device.display_name == "U6-Lite"
        assert Device(hardware_id="AA", network_address="x").display_name == "Access Point"

    def test_frozen(self, device):
        """Devices are values."""
        with pytest.raises(AttributeError):
            device.model = "other"  # type: ignore[misc]


class TestAdoptionAttempt:
    """Tests for AdoptionAttempt."""

    def test_authenticated(self, device):
        """Attempts with a credential are authenticated."""
        assert AdoptionAttempt(target_device=device).authenticated is False
        assert AdoptionAttempt(target_device=device, credential="pw").authenticated is True


class TestOrchestratorSnapshot:
    """Tests for OrchestratorSnapshot."""

    def test_busy(self):
        """Busy follows the pending operation."""
        idle = OrchestratorSnapshot(state=OrchestratorState.REVIEWING)
        scanning = OrchestratorSnapshot(
            state=OrchestratorState.SCANNING,
            pending=PendingOperation.SCAN,
        )
        assert idle.busy is False
        assert scanning.busy is True

    def test_device_lookup(self, device):
        """Devices can be found by hardware id."""
        snapshot = OrchestratorSnapshot(
            state=OrchestratorState.REVIEWING,
            devices=(device,),
        )
        assert snapshot.device("AA:BB") == device
        assert snapshot.device("missing") is None

    def test_status_for_unknown_is_blank(self):
        """Devices with no recorded status get a blank one."""
        snapshot = OrchestratorSnapshot(state=OrchestratorState.REVIEWING)
        status = snapshot.status_for("AA:BB")

        assert status == DeviceStatus(hardware_id="AA:BB")
        assert status.password_required is False

    def test_to_dict(self, session, device, managed_device):
        """Serialized snapshot nests each device's status."""
        snapshot = OrchestratorSnapshot(
            state=OrchestratorState.REVIEWING,
            session=session,
            devices=(device, managed_device),
            error="scan warning",
            device_statuses=(
                DeviceStatus(hardware_id="AA:BB", error="nope", password_required=True),
            ),
        )

        data = snapshot.to_dict()

        assert data["state"] == "reviewing"
        assert data["session"]["site_name"] == "Cafe Luna"
        assert data["error"] == "scan warning"
        assert data["pending"] == "none"
        assert data["busy"] is False
        assert data["adopted_device"] is None
        assert len(data["devices"]) == 2
        assert data["devices"][0]["hardware_id"] == "AA:BB"
        assert data["devices"][0]["status"]["password_required"] is True
        assert data["devices"][0]["status"]["error"] == "nope"
        assert data["devices"][1]["managed_elsewhere"] is True
        assert data["devices"][1]["status"]["error"] is None


class TestErrors:
    """Tests for collaborator error types."""

    def test_message_attribute(self):
        """Errors expose their message."""
        error = InvalidCodeError("This setup code has expired.", expired=True)
        assert error.message == "This setup code has expired."
        assert str(error) == "This setup code has expired."
        assert error.expired is True

    def test_adoption_error_kind(self):
        """Kind is optional."""
        assert AdoptionError("x").kind is None
        assert AdoptionError("x", kind=FailureKind.TIMEOUT).kind == FailureKind.TIMEOUT
