"""Local adoption backends."""

from apadopt.adoption.ssh import SSHAdopter

__all__ = ["SSHAdopter"]
