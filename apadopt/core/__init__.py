"""Core modules for the adoption assistant."""

from apadopt.core.errors import (
    AdoptionAssistantError,
    AdoptionError,
    FailureKind,
    InvalidCodeError,
    ScanError,
)
from apadopt.core.models import (
    Device,
    DeviceStatus,
    OrchestratorSnapshot,
    OrchestratorState,
    PendingOperation,
    Session,
)
from apadopt.core.orchestrator import AdoptionOrchestrator, classify_failure

__all__ = [
    "AdoptionAssistantError",
    "AdoptionError",
    "FailureKind",
    "InvalidCodeError",
    "ScanError",
    "Device",
    "DeviceStatus",
    "OrchestratorSnapshot",
    "OrchestratorState",
    "PendingOperation",
    "Session",
    "AdoptionOrchestrator",
    "classify_failure",
]
