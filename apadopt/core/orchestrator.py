"""
Adoption orchestrator.

Drives the setup flow:

    AWAITING_CODE -> SCANNING -> REVIEWING -> COMPLETE

A validated code starts a scan straight away. REVIEWING can go back to
SCANNING on request and stays put across failed adoption attempts. An
adoption failure caused by a non-default device password flags that
device so the presentation layer can ask for the password; the retry is
always started by the user.

Only one external call runs at a time. Intents that arrive while a call
is pending are rejected rather than queued.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Callable

from apadopt.core.collaborators import CodeValidator, DeviceAdopter, DeviceScanner
from apadopt.core.errors import AdoptionError, FailureKind, InvalidCodeError, ScanError
from apadopt.core.models import (
    AdoptionAttempt,
    AttemptOutcome,
    Device,
    DeviceStatus,
    OrchestratorSnapshot,
    OrchestratorState,
    PendingOperation,
    Session,
)

logger = logging.getLogger(__name__)

Subscriber = Callable[[OrchestratorSnapshot], None]

# Substring adopters have historically put in authentication failures
AUTHENTICATION_SIGNAL = "authentication"

PASSWORD_HINT = (
    "This access point has a custom password. "
    "Factory reset it or enter the password below."
)
DEFAULT_CODE_ERROR = "That setup code could not be verified."
DEFAULT_SCAN_ERROR = "Network scan failed."
DEFAULT_ADOPT_ERROR = "Could not connect the access point."


def classify_failure(error: Exception) -> FailureKind:
    """
    Decide whether an adoption failure means "ask for the password".

    Either the adopter's structured kind or the authentication signal in
    the message is enough; any other kind does not rule the message out.
    """
    if getattr(error, "kind", None) == FailureKind.AUTHENTICATION_REQUIRED:
        return FailureKind.AUTHENTICATION_REQUIRED

    if AUTHENTICATION_SIGNAL in str(error).lower():
        return FailureKind.AUTHENTICATION_REQUIRED
    return FailureKind.OTHER


class AdoptionOrchestrator:
    """
    State machine behind the setup assistant.

    Usage:
        orchestrator = AdoptionOrchestrator(validator, scanner, adopter)
        orchestrator.subscribe(render)
        await orchestrator.submit_code("VS-7K2M")
        await orchestrator.adopt("AA:BB:CC:DD:EE:FF")

    Each intent returns True when it was accepted (whatever the outcome of
    the external call) and False when it was rejected outright.
    """

    def __init__(
        self,
        validator: CodeValidator,
        scanner: DeviceScanner,
        adopter: DeviceAdopter,
    ):
        self._validator = validator
        self._scanner = scanner
        self._adopter = adopter

        self._state = OrchestratorState.AWAITING_CODE
        self._pending = PendingOperation.NONE
        self._session: Session | None = None
        self._devices: tuple[Device, ...] = ()
        self._error: str | None = None
        self._statuses: dict[str, DeviceStatus] = {}
        self._adopted: Device | None = None

        self._subscribers: list[Subscriber] = []
        self._complete = asyncio.Event()

    # ========================================================================
    # Read access
    # ========================================================================

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def busy(self) -> bool:
        """Whether an external call is in flight."""
        return self._pending != PendingOperation.NONE

    @property
    def snapshot(self) -> OrchestratorSnapshot:
        """Current state as an immutable value."""
        statuses = tuple(
            self._statuses[d.hardware_id]
            for d in self._devices
            if d.hardware_id in self._statuses
        )
        return OrchestratorSnapshot(
            state=self._state,
            session=self._session,
            devices=self._devices,
            error=self._error,
            pending=self._pending,
            device_statuses=statuses,
            adopted_device=self._adopted,
        )

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a callback for every published snapshot.

        Returns:
            Function that removes the subscription
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def wait_complete(self) -> OrchestratorSnapshot:
        """Wait until a device has been adopted."""
        await self._complete.wait()
        return self.snapshot

    # ========================================================================
    # Intents
    # ========================================================================

    async def submit_code(self, code: str) -> bool:
        """Validate a setup code and, on success, scan immediately."""
        if not self._accepting(OrchestratorState.AWAITING_CODE, "submit_code"):
            return False

        code = (code or "").strip()
        if not code:
            return False

        self._pending = PendingOperation.VALIDATE
        self._error = None
        self._publish()

        try:
            session = await self._validator.validate_code(code)
        except InvalidCodeError as e:
            logger.warning(f"Setup code {code} rejected: {e}")
            self._fail_validation(e.message or DEFAULT_CODE_ERROR)
            return True
        except Exception as e:
            logger.exception(f"Unexpected error validating setup code {code}")
            self._fail_validation(str(e) or DEFAULT_CODE_ERROR)
            return True

        logger.info(
            f"Setup code accepted for site {session.site_name} ({session.site_id})"
        )
        self._session = session
        self._pending = PendingOperation.NONE
        await self._run_scan()
        return True

    async def rescan(self) -> bool:
        """Scan again, replacing the device list."""
        if not self._accepting(OrchestratorState.REVIEWING, "rescan"):
            return False

        await self._run_scan()
        return True

    async def adopt(self, hardware_id: str) -> bool:
        """Adopt a device with its factory credential."""
        return await self._attempt(hardware_id, None)

    async def adopt_with_credential(self, hardware_id: str, credential: str) -> bool:
        """Adopt a device using an administrator password."""
        if credential is None or not credential.strip():
            return False
        return await self._attempt(hardware_id, credential)

    # ========================================================================
    # Internals
    # ========================================================================

    def _accepting(self, required: OrchestratorState, intent: str) -> bool:
        if self._pending != PendingOperation.NONE:
            logger.debug(f"Ignoring {intent}: {self._pending.value} in progress")
            return False
        if self._state != required:
            logger.debug(f"Ignoring {intent} in state {self._state.value}")
            return False
        return True

    def _fail_validation(self, message: str) -> None:
        self._pending = PendingOperation.NONE
        self._error = message
        self._publish()

    async def _run_scan(self) -> None:
        self._state = OrchestratorState.SCANNING
        self._pending = PendingOperation.SCAN
        self._error = None
        self._publish()

        error: str | None = None
        try:
            found = await self._scanner.scan()
        except ScanError as e:
            logger.warning(f"Scan failed: {e}")
            found = []
            error = e.message or DEFAULT_SCAN_ERROR
        except Exception as e:
            logger.exception("Unexpected error during scan")
            found = []
            error = str(e) or DEFAULT_SCAN_ERROR

        self._devices = self._dedupe(found)
        self._statuses = {
            hid: replace(status, error=None, adopting=False)
            for hid, status in self._statuses.items()
            if any(d.hardware_id == hid for d in self._devices)
        }
        if error is None:
            logger.info(f"Scan complete: found {len(self._devices)} device(s)")

        self._state = OrchestratorState.REVIEWING
        self._pending = PendingOperation.NONE
        self._error = error
        self._publish()

    async def _attempt(self, hardware_id: str, credential: str | None) -> bool:
        intent = "adopt_with_credential" if credential is not None else "adopt"
        if not self._accepting(OrchestratorState.REVIEWING, intent):
            return False
        if self._session is None:
            return False

        device = self._find(hardware_id)
        if device is None:
            logger.debug(f"Ignoring {intent}: no device {hardware_id}")
            return False
        if not device.adoptable:
            logger.warning(f"Refusing to adopt {hardware_id}: managed by another controller")
            return False

        attempt = AdoptionAttempt(target_device=device, credential=credential)
        self._pending = PendingOperation.ADOPT
        self._set_status(hardware_id, error=None, adopting=True)
        self._publish()

        logger.info(
            f"Adopting {hardware_id} at {device.network_address}"
            f"{' with custom password' if attempt.authenticated else ''}"
        )

        try:
            await self._adopter.adopt(
                device.network_address,
                self._session.inform_endpoint,
                credential,
            )
        except AdoptionError as e:
            attempt.outcome = AttemptOutcome.FAILED
            attempt.failure_kind = classify_failure(e)
            attempt.message = e.message or DEFAULT_ADOPT_ERROR
        except Exception as e:
            logger.exception(f"Unexpected error adopting {hardware_id}")
            attempt.outcome = AttemptOutcome.FAILED
            attempt.failure_kind = FailureKind.OTHER
            attempt.message = str(e) or DEFAULT_ADOPT_ERROR
        else:
            attempt.outcome = AttemptOutcome.SUCCEEDED

        self._apply(attempt)
        return True

    def _apply(self, attempt: AdoptionAttempt) -> None:
        """Fold a finished attempt into orchestrator state."""
        device = attempt.target_device
        hid = device.hardware_id
        self._pending = PendingOperation.NONE

        if attempt.outcome == AttemptOutcome.SUCCEEDED:
            logger.info(f"Device {hid} adopted into {self._session.site_name}")
            self._set_status(hid, error=None, adopting=False)
            self._adopted = device
            self._state = OrchestratorState.COMPLETE
            self._publish()
            self._complete.set()
            return

        if attempt.failure_kind == FailureKind.AUTHENTICATION_REQUIRED:
            logger.warning(f"Device {hid} needs its administrator password")
            message = attempt.message if attempt.authenticated else PASSWORD_HINT
            self._set_status(hid, error=message, password_required=True, adopting=False)
        else:
            logger.warning(f"Adopting {hid} failed: {attempt.message}")
            self._set_status(hid, error=attempt.message, adopting=False)

        self._publish()

    def _set_status(self, hardware_id: str, **changes) -> None:
        current = self._statuses.get(hardware_id, DeviceStatus(hardware_id=hardware_id))
        self._statuses[hardware_id] = replace(current, **changes)

    def _find(self, hardware_id: str) -> Device | None:
        for device in self._devices:
            if device.hardware_id == hardware_id:
                return device
        return None

    @staticmethod
    def _dedupe(devices: list[Device]) -> tuple[Device, ...]:
        seen: set[str] = set()
        result: list[Device] = []
        for device in devices:
            if device.hardware_id in seen:
                continue
            seen.add(device.hardware_id)
            result.append(device)
        return tuple(result)

    def _publish(self) -> None:
        snapshot = self.snapshot
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Snapshot subscriber failed")
