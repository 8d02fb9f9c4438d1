"""
Failure types raised by the code validator, scanner and adopter.

The orchestrator catches these and turns each one into a state transition
plus a user-visible message.
"""

from __future__ import annotations

from enum import Enum


class FailureKind(str, Enum):
    """Structured reason attached to an adoption failure."""

    AUTHENTICATION_REQUIRED = "authentication_required"
    CONNECTION_REFUSED = "connection_refused"
    TIMEOUT = "timeout"
    COMMAND_FAILED = "command_failed"
    OTHER = "other"


class AdoptionAssistantError(Exception):
    """Base class for all collaborator failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class InvalidCodeError(AdoptionAssistantError):
    """The setup code was rejected (or could not be checked)."""

    def __init__(self, message: str, expired: bool = False):
        super().__init__(message)
        self.expired = expired


class ScanError(AdoptionAssistantError):
    """The local network scan could not be completed."""


class AdoptionError(AdoptionAssistantError):
    """
    A device refused or failed the adoption handshake.

    Adopters that can tell why should set ``kind``; older ones only
    provide a message.
    """

    def __init__(self, message: str, kind: FailureKind | None = None):
        super().__init__(message)
        self.kind = kind
