"""
apadopt entry point.

Run with: python -m apadopt
Or: apadopt (if installed)
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path

from apadopt import __version__
from apadopt.adoption.ssh import SSHAdopter
from apadopt.assistant.server import AssistantServer
from apadopt.bridge.host import HostBridgeClient
from apadopt.bridge.setup_codes import SetupCodeClient
from apadopt.core.collaborators import CodeValidator, DeviceAdopter, DeviceScanner
from apadopt.core.config import Config
from apadopt.core.orchestrator import AdoptionOrchestrator
from apadopt.mocks import MockAdopter, MockCodeValidator, MockScanner


def build_collaborators(
    config: Config,
    mock: bool = False,
) -> tuple[CodeValidator, DeviceScanner, DeviceAdopter]:
    """Create validator, scanner and adopter for the configured backends."""
    if mock:
        return MockCodeValidator(), MockScanner(), MockAdopter()

    validator = SetupCodeClient(config.setup_api)
    bridge = HostBridgeClient(config.host_bridge)

    adopter: DeviceAdopter
    if config.adoption.backend == "bridge":
        adopter = bridge
    else:
        adopter = SSHAdopter.from_config(config.adoption)

    return validator, bridge, adopter


async def run_assistant(config: Config, mock: bool = False) -> None:
    """Serve the setup assistant until a device is adopted or we are stopped."""
    print(f"📡 Access Point Setup Assistant v{__version__}")
    print("=" * 40)

    if mock:
        print("📁 Development mode: using mock setup service, scanner and adopter")
        print("   Try code VS-7K2M; the UAP-AC-LR needs password secret123")

    validator, scanner, adopter = build_collaborators(config, mock=mock)
    orchestrator = AdoptionOrchestrator(validator, scanner, adopter)
    server = AssistantServer(orchestrator, config.assistant)

    shutdown_event = asyncio.Event()

    def signal_handler():
        print("\n🛑 Shutting down...")
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    try:
        await server.start()
        print(f"🌐 Open http://{config.assistant.host}:{config.assistant.port}/ to begin")
        print("Press Ctrl+C to stop")
        print()

        async def wait_for_adoption():
            snapshot = await orchestrator.wait_complete()
            device = snapshot.adopted_device
            site = snapshot.session.site_name if snapshot.session else "the site"
            print(f"✅ {device.display_name if device else 'Device'} adopted into {site}")
            # Leave the success page up for a moment before exiting
            await asyncio.sleep(config.assistant.complete_grace_seconds)

        wait_tasks = [
            asyncio.create_task(shutdown_event.wait()),
            asyncio.create_task(wait_for_adoption()),
        ]

        done, pending = await asyncio.wait(
            wait_tasks,
            return_when=asyncio.FIRST_COMPLETED,
        )

        for task in pending:
            task.cancel()
        for task in pending:
            try:
                await task
            except asyncio.CancelledError:
                pass

    finally:
        await server.stop()
        closed: set[int] = set()
        for collaborator in (validator, scanner, adopter):
            if id(collaborator) in closed:
                continue
            closed.add(id(collaborator))
            await collaborator.close()

    print("👋 Setup assistant stopped")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="apadopt",
        description="Adopt a wireless access point into its management service",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Configuration file path",
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Use mock setup service, scanner and adopter for development",
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Address for the local web UI",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for the local web UI",
    )
    parser.add_argument(
        "--adopter",
        choices=("ssh", "bridge"),
        default=None,
        help="Adopt over local SSH or through the host bridge",
    )

    args = parser.parse_args()

    mock = args.mock or os.environ.get("APADOPT_MOCK", "").lower() in ("1", "true", "yes")

    # Find configuration file
    config_paths = [
        args.config,
        Path("config/default.yaml"),
        Path.home() / ".config/apadopt/config.yaml",
    ]

    config = None
    try:
        for path in config_paths:
            if path and path.exists():
                print(f"Loading config from: {path}")
                config = Config.load(path)
                break

        if config is None:
            config = Config.default()

        # Command line wins over file and environment
        if args.host:
            config.set("assistant.host", args.host)
        if args.port is not None:
            config.set("assistant.port", args.port)
        if args.adopter:
            config.set("adoption.backend", args.adopter)
    except ValueError as e:
        print(f"Configuration errors:\n{e}")
        sys.exit(1)

    configure_logging(config.system.log_level)

    try:
        asyncio.run(run_assistant(config, mock=mock))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
