"""
apadopt - Access point adoption assistant.

Walks a user from a setup code to a wireless access point reporting
to its management service.
"""

__version__ = "0.1.0"
__author__ = "apadopt Contributors"
