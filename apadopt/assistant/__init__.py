"""
Presentation layer for the adoption assistant.

Serves the setup views and forwards user intents to the orchestrator.
"""

from apadopt.assistant.codes import normalize_code
from apadopt.assistant.server import AssistantServer

__all__ = ["AssistantServer", "normalize_code"]
