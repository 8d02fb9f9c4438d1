"""Pytest configuration and fixtures."""

import pytest

from apadopt.core.models import Device, Session
from apadopt.core.orchestrator import AdoptionOrchestrator
from apadopt.mocks import MockAdopter, MockCodeValidator, MockScanner


@pytest.fixture
def session():
    """Session returned for the test setup code."""
    return Session(
        inform_endpoint="http://inform.example.net:8080/inform",
        site_id="site-1",
        site_name="Cafe Luna",
    )


@pytest.fixture
def device():
    """Adoptable device with the factory password."""
    return Device(
        hardware_id="AA:BB",
        network_address="192.168.1.20",
        model="U6-Lite",
        firmware_version="6.5.28",
    )


@pytest.fixture
def managed_device():
    """Device owned by another controller."""
    return Device(
        hardware_id="CC:DD",
        network_address="192.168.1.30",
        model="UAP-AC-Pro",
        managed_elsewhere=True,
    )


@pytest.fixture
def validator(session):
    """Validator that accepts VS-7K2M."""
    return MockCodeValidator(sessions={"VS-7K2M": session}, delay=0)


@pytest.fixture
def scanner(device):
    """Scanner that finds one device."""
    return MockScanner(devices=[device], delay=0)


@pytest.fixture
def adopter():
    """Adopter where every device keeps the factory password."""
    return MockAdopter(passwords={}, delay=0)


@pytest.fixture
def orchestrator(validator, scanner, adopter):
    """Orchestrator wired to in-process collaborators."""
    return AdoptionOrchestrator(validator, scanner, adopter)
