"""
HTTP clients for the services the assistant depends on.

The setup-code service validates codes; the host bridge scans the local
network and adopts devices with elevated privileges.
"""

from apadopt.bridge.host import HostBridgeClient
from apadopt.bridge.setup_codes import SetupCodeClient

__all__ = ["HostBridgeClient", "SetupCodeClient"]
