"""Setup code formatting applied before a code reaches the orchestrator."""

from __future__ import annotations

DEFAULT_CODE_PREFIX = "VS-"
SHORT_CODE_LENGTH = 4


def normalize_code(raw: str, prefix: str = DEFAULT_CODE_PREFIX) -> str:
    """
    Normalize a typed setup code.

    Uppercases and trims the input. A bare 4-character code gets the
    prefix added, so "7k2m" and "vs-7k2m" both become "VS-7K2M".
    """
    code = (raw or "").strip().upper()
    prefix = prefix.upper()
    if len(code) == SHORT_CODE_LENGTH and not code.startswith(prefix):
        code = prefix + code
    return code
