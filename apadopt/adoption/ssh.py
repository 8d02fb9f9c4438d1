"""
SSH adopter for access points.

Logs into the device with the factory credential (or a supplied password)
and runs ``set-inform <url>`` so it starts reporting to the management
service. Uses the system OpenSSH client; ``sshpass`` is preferred when
installed, otherwise the password is fed through SSH_ASKPASS.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path

from apadopt.core.collaborators import DeviceAdopter
from apadopt.core.config import AdoptionConfig
from apadopt.core.errors import AdoptionError, FailureKind

logger = logging.getLogger(__name__)

# Older firmware only offers ssh-rsa host keys
SSH_OPTIONS = [
    "-o", "StrictHostKeyChecking=no",
    "-o", "UserKnownHostsFile=/dev/null",
    "-o", "HostKeyAlgorithms=+ssh-rsa",
    "-o", "PubkeyAcceptedAlgorithms=+ssh-rsa",
    "-o", "PubkeyAuthentication=no",
]

AUTH_MARKERS = ("Permission denied", "Authentication failed")


@dataclass
class SSHAdopter(DeviceAdopter):
    """
    Adopts devices by running set-inform over SSH.

    Args:
        username: Login user on the device
        default_password: Factory password tried when no credential is given
        port: SSH port
        connect_timeout: Seconds allowed for the TCP connect
    """

    username: str = "ubnt"
    default_password: str = "ubnt"
    port: int = 22
    connect_timeout: int = 10

    @classmethod
    def from_config(cls, config: AdoptionConfig) -> SSHAdopter:
        return cls(
            username=config.username,
            default_password=config.default_password,
            port=config.port,
            connect_timeout=config.connect_timeout_seconds,
        )

    async def adopt(
        self,
        network_address: str,
        inform_endpoint: str,
        credential: str | None = None,
    ) -> None:
        password = credential if credential is not None else self.default_password
        command = f"set-inform {inform_endpoint}"
        target = f"{self.username}@{network_address}"
        base = [
            "ssh",
            *SSH_OPTIONS,
            "-o", f"ConnectTimeout={self.connect_timeout}",
            "-p", str(self.port),
        ]

        askpass: Path | None = None
        env = dict(os.environ)

        if shutil.which("sshpass"):
            logger.info(f"Connecting to {network_address} via ssh (sshpass)")
            argv = ["sshpass", "-e", *base, target, command]
            env["SSHPASS"] = password
        else:
            logger.info(f"Connecting to {network_address} via ssh (askpass)")
            askpass = self._write_askpass(password)
            argv = [*base, "-o", "NumberOfPasswordPrompts=1", target, command]
            env.update({
                "SSH_ASKPASS": str(askpass),
                "SSH_ASKPASS_REQUIRE": "force",
                "DISPLAY": env.get("DISPLAY", ":0"),
            })

        try:
            returncode, stdout, stderr = await self._run(argv, env, network_address)
        finally:
            if askpass is not None:
                askpass.unlink(missing_ok=True)

        logger.debug(f"ssh stdout: {stdout.strip()}")
        logger.debug(f"ssh stderr: {stderr.strip()}")

        self._check_result(network_address, returncode, stdout, stderr)
        logger.info(f"set-inform sent to {network_address}: {stdout.strip()}")

    async def _run(
        self, argv: list[str], env: dict[str, str], address: str
    ) -> tuple[int, str, str]:
        """Run ssh and return (returncode, stdout, stderr)."""
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
            )
        except FileNotFoundError as e:
            raise AdoptionError(f"SSH client not available: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=self.connect_timeout + 5,
            )
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise AdoptionError(
                f"Timed out connecting to {address}", kind=FailureKind.TIMEOUT
            ) from e

        return (
            process.returncode or 0,
            stdout.decode(errors="replace"),
            stderr.decode(errors="replace"),
        )

    @staticmethod
    def _check_result(address: str, returncode: int, stdout: str, stderr: str) -> None:
        """Raise AdoptionError unless the command succeeded."""
        if returncode != 0:
            combined = f"{stdout}\n{stderr}".strip()

            if any(marker in combined for marker in AUTH_MARKERS):
                raise AdoptionError(
                    f"Authentication failed for {address}, "
                    "password may have been changed from factory default",
                    kind=FailureKind.AUTHENTICATION_REQUIRED,
                )
            if "Connection refused" in combined:
                raise AdoptionError(
                    f"Connection refused at {address}",
                    kind=FailureKind.CONNECTION_REFUSED,
                )
            if "timed out" in combined or "Connection timeout" in combined:
                raise AdoptionError(
                    f"Timed out connecting to {address}",
                    kind=FailureKind.TIMEOUT,
                )
            raise AdoptionError(f"Failed to connect to {address}: {combined}")

        # set-inform echoes the inform URL on success; "error" without it is a refusal
        lowered = stdout.lower()
        if "error" in lowered and "inform" not in lowered:
            raise AdoptionError(
                f"set-inform returned an error: {stdout.strip()}",
                kind=FailureKind.COMMAND_FAILED,
            )

    @staticmethod
    def _write_askpass(password: str) -> Path:
        """Write a throwaway SSH_ASKPASS helper that prints the password."""
        fd, name = tempfile.mkstemp(prefix="apadopt-askpass-", suffix=".sh")
        quoted = password.replace("'", "'\\''")
        with os.fdopen(fd, "w") as f:
            f.write(f"#!/bin/sh\nprintf '%s\\n' '{quoted}'\n")
        path = Path(name)
        path.chmod(0o700)
        return path
